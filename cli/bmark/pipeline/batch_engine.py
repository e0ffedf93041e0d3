"""Batch Engine - Chunked, failure-isolated fan-out of completion requests."""

import asyncio
from typing import Awaitable, Callable, Optional, Sequence

from bmark.logging import get_logger
from bmark.models.output import BatchOutcome, CompletionResult

logger = get_logger("bmark.pipeline.batch_engine")

CompleteFn = Callable[[str], Awaitable[CompletionResult]]


class BatchEngine:
    """
    Batch Engine for per-model completion requests.

    Model ids are processed in consecutive chunks of ``concurrency``. All
    requests of a chunk run at once and the next chunk starts only after
    every request of the current one has settled, followed by a short pause.
    Each request has its own timeout. A failed or timed-out request turns
    into an error outcome for that model only.
    """

    def __init__(self, concurrency: int = 5, batch_delay_ms: int = 100):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.concurrency = concurrency
        self.batch_delay_ms = batch_delay_ms

    async def _run_one(
        self,
        model_id: str,
        complete_fn: CompleteFn,
        timeout_ms: int,
    ) -> BatchOutcome:
        if not model_id:
            return BatchOutcome.failure(model_id, "Model id is required")
        try:
            result = await asyncio.wait_for(complete_fn(model_id), timeout=timeout_ms / 1000.0)
        except asyncio.TimeoutError:
            logger.warning("completion_timeout", model=model_id, timeout_ms=timeout_ms)
            return BatchOutcome.failure(model_id, f"Request timeout after {timeout_ms}ms")
        except Exception as e:
            logger.warning("completion_failed", model=model_id, error=str(e))
            return BatchOutcome.failure(model_id, str(e) or type(e).__name__)
        return BatchOutcome.success(model_id, result)

    async def fetch_all(
        self,
        model_ids: Sequence[str],
        complete_fn: CompleteFn,
        timeout_ms: int = 30000,
    ) -> list[BatchOutcome]:
        """
        Run ``complete_fn`` once per model id.

        Args:
            model_ids: Gateway model ids, in the order results should be returned
            complete_fn: Async function producing a completion for one model id
            timeout_ms: Upper bound for each individual request

        Returns:
            One BatchOutcome per model id, in input order

        Raises:
            ValueError: If model_ids is empty
        """
        if not model_ids:
            raise ValueError("At least one model must be selected")

        total = len(model_ids)
        slots: list[Optional[BatchOutcome]] = [None] * total

        for start in range(0, total, self.concurrency):
            chunk = model_ids[start:start + self.concurrency]
            outcomes = await asyncio.gather(
                *(self._run_one(model_id, complete_fn, timeout_ms) for model_id in chunk)
            )
            for offset, outcome in enumerate(outcomes):
                slots[start + offset] = outcome

            logger.debug(
                "batch_chunk_done",
                chunk_start=start,
                chunk_size=len(chunk),
                failed=sum(1 for o in outcomes if not o.ok),
            )

            if start + self.concurrency < total and self.batch_delay_ms > 0:
                await asyncio.sleep(self.batch_delay_ms / 1000.0)

        return slots
