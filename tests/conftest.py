"""Shared fixtures for the BMark test suite."""

from typing import Optional, Sequence

import pytest

from bmark.llm.usage import UsageTracker
from bmark.models.catalog import CatalogModel, GatewayModel
from bmark.models.config import BatchOptions
from bmark.models.output import BatchOutcome, CompletionResult, ResponseRecord
from bmark.storage import MemoryStore

_CREDENTIAL_VARS = (
    "OPENROUTER_API_KEY",
    "AI_GATEWAY_API_KEY",
    "SUPABASE_URL",
    "SUPABASE_KEY",
    "NEXT_PUBLIC_SUPABASE_URL",
    "NEXT_PUBLIC_SUPABASE_ANON_KEY",
)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep the developer's real credentials and settings file out of tests."""
    for name in _CREDENTIAL_VARS:
        monkeypatch.delenv(name, raising=False)
    settings_file = tmp_path / "settings.json"
    monkeypatch.setenv("BMARK_SETTINGS_FILE", str(settings_file))
    return settings_file


class FakeGateway:
    """Stands in for OpenRouterClient: answers come from a dict keyed by model id."""

    def __init__(self, answers: dict, models: Optional[list[GatewayModel]] = None):
        self.answers = answers
        self.models = models or []
        self.usage_tracker = UsageTracker()
        self.calls: list[tuple[list[str], str, Optional[BatchOptions]]] = []
        self.closed = False

    async def batch_completion(
        self,
        model_ids: Sequence[str],
        prompt: str,
        options: Optional[BatchOptions] = None,
    ) -> list[BatchOutcome]:
        self.calls.append((list(model_ids), prompt, options))
        outcomes = []
        for model_id in model_ids:
            answer = self.answers.get(model_id)
            if isinstance(answer, Exception):
                outcomes.append(BatchOutcome.failure(model_id, str(answer)))
            elif answer is None:
                outcomes.append(BatchOutcome.failure(model_id, "API error (404): Model not found"))
            else:
                outcomes.append(BatchOutcome.success(
                    model_id, CompletionResult(text=answer, elapsed_ms=120)
                ))
        return outcomes

    async def get_models(self) -> list[GatewayModel]:
        return list(self.models)

    async def close(self):
        self.closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


@pytest.fixture
def catalog():
    """Three catalog models from three providers."""
    return [
        CatalogModel(name="GPT-4o", provider="OpenAI", model_id="openai/gpt-4o"),
        CatalogModel(name="Claude 3.5 Sonnet", provider="Anthropic", model_id="anthropic/claude-3-5-sonnet"),
        CatalogModel(name="Gemini Pro 1.5", provider="Google", model_id="google/gemini-pro-1.5"),
    ]


@pytest.fixture
def store(catalog):
    """In-memory store seeded with the catalog (ids mock-0, mock-1, mock-2)."""
    return MemoryStore(catalog)


@pytest.fixture
def make_record():
    """Factory for ResponseRecord with sensible defaults."""

    def _make(text: str, model_id: str = "m", provider: Optional[str] = None, name: Optional[str] = None):
        return ResponseRecord(model_id=model_id, text=text, provider=provider, model_name=name)

    return _make


@pytest.fixture
def fake_gateway():
    """The FakeGateway class, for tests that script their own answers."""
    return FakeGateway
