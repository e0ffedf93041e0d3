"""Tests for the chunked batch engine."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from bmark.models.output import CompletionResult
from bmark.pipeline.batch_engine import BatchEngine


def _result(text: str) -> CompletionResult:
    return CompletionResult(text=text, elapsed_ms=1)


class TestBatchEngineInit:
    """Tests for BatchEngine construction."""

    def test_defaults(self):
        engine = BatchEngine()

        assert engine.concurrency == 5
        assert engine.batch_delay_ms == 100

    def test_rejects_zero_concurrency(self):
        with pytest.raises(ValueError):
            BatchEngine(concurrency=0)


class TestFetchAll:
    """Tests for fetch_all."""

    @pytest.mark.asyncio
    async def test_empty_model_list_raises(self):
        engine = BatchEngine()

        with pytest.raises(ValueError, match="At least one model must be selected"):
            await engine.fetch_all([], AsyncMock())

    @pytest.mark.asyncio
    async def test_results_keep_input_order(self):
        delays = {"a": 0.03, "b": 0.0, "c": 0.01}

        async def complete(model_id):
            await asyncio.sleep(delays[model_id])
            return _result(model_id.upper())

        outcomes = await BatchEngine(batch_delay_ms=0).fetch_all(["a", "b", "c"], complete)

        assert [o.model_id for o in outcomes] == ["a", "b", "c"]
        assert [o.result.text for o in outcomes] == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_one_outcome_per_model(self):
        async def complete(model_id):
            return _result(model_id)

        ids = [f"m{i}" for i in range(7)]
        outcomes = await BatchEngine(concurrency=3, batch_delay_ms=0).fetch_all(ids, complete)

        assert len(outcomes) == 7
        assert all(o.ok for o in outcomes)

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self):
        async def complete(model_id):
            if model_id == "bad":
                raise RuntimeError("API error (500): boom")
            return _result("ok")

        outcomes = await BatchEngine(batch_delay_ms=0).fetch_all(["good", "bad", "also-good"], complete)

        assert [o.ok for o in outcomes] == [True, False, True]
        assert outcomes[1].error == "API error (500): boom"
        assert outcomes[1].result is None

    @pytest.mark.asyncio
    async def test_exception_without_message_uses_type_name(self):
        async def complete(model_id):
            raise KeyError()

        outcomes = await BatchEngine().fetch_all(["x"], complete)

        assert outcomes[0].error == "KeyError"

    @pytest.mark.asyncio
    async def test_timeout_becomes_error_outcome(self):
        async def complete(model_id):
            if model_id == "hang":
                await asyncio.Event().wait()
            return _result("fast")

        outcomes = await BatchEngine(batch_delay_ms=0).fetch_all(["hang", "fast"], complete, timeout_ms=20)

        assert outcomes[0].error == "Request timeout after 20ms"
        assert outcomes[1].result.text == "fast"

    @pytest.mark.asyncio
    async def test_empty_model_id_fails_without_calling(self):
        complete = AsyncMock(return_value=_result("ok"))

        outcomes = await BatchEngine().fetch_all(["", "real"], complete)

        assert outcomes[0].error == "Model id is required"
        assert outcomes[1].ok
        complete.assert_awaited_once_with("real")

    @pytest.mark.asyncio
    async def test_chunks_are_synchronization_points(self):
        events = []
        in_flight = 0
        peak = 0

        async def complete(model_id):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            events.append(("start", model_id))
            await asyncio.sleep(0.02 if model_id == "a" else 0.0)
            events.append(("end", model_id))
            in_flight -= 1
            return _result(model_id)

        await BatchEngine(concurrency=2, batch_delay_ms=0).fetch_all(["a", "b", "c"], complete)

        assert peak == 2
        assert events.index(("start", "c")) > events.index(("end", "a"))
        assert events.index(("start", "c")) > events.index(("end", "b"))

    @pytest.mark.asyncio
    async def test_pause_between_chunks_only(self):
        complete = AsyncMock(return_value=_result("ok"))

        with patch("bmark.pipeline.batch_engine.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await BatchEngine(concurrency=2, batch_delay_ms=100).fetch_all(["a", "b", "c", "d", "e"], complete)

        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.1)

    @pytest.mark.asyncio
    async def test_single_chunk_never_pauses(self):
        complete = AsyncMock(return_value=_result("ok"))

        with patch("bmark.pipeline.batch_engine.asyncio.sleep", new_callable=AsyncMock) as sleep:
            await BatchEngine(concurrency=5, batch_delay_ms=100).fetch_all(["a", "b"], complete)

        sleep.assert_not_awaited()
