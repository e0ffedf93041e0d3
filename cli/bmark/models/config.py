"""Configuration Models - Pydantic schemas for request options and app settings."""

from pydantic import BaseModel, ConfigDict, Field

from bmark.prompts import load_prompt


def _default_system_prompt() -> str:
    return load_prompt("benchmark", "system")


class BatchOptions(BaseModel):
    """Options for a batch of completion requests.

    One request is sent per model; requests are issued in chunks of
    ``concurrency`` with a pause of ``batch_delay_ms`` between chunks.
    """

    model_config = ConfigDict(frozen=True)

    max_tokens: int = Field(default=50, ge=1, description="Maximum tokens per completion")
    temperature: float = Field(default=0.7, ge=0, le=2, description="Sampling temperature")
    system_prompt: str = Field(
        default_factory=_default_system_prompt,
        description="System message sent before the user prompt",
    )
    timeout_ms: int = Field(default=30000, ge=1, description="Per-request timeout in milliseconds")
    concurrency: int = Field(default=5, ge=1, description="Requests in flight per chunk")
    batch_delay_ms: int = Field(default=100, ge=0, description="Pause between chunks in milliseconds")

    @classmethod
    def single_word(cls, **overrides) -> "BatchOptions":
        """Options used by the benchmark: a one-word answer in at most 10 tokens."""
        values = {
            "max_tokens": 10,
            "system_prompt": load_prompt("benchmark", "single_word"),
        }
        values.update(overrides)
        return cls(**values)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000.0


class Settings(BaseModel):
    """User preferences stored alongside the API keys in the settings file."""

    auto_sync: bool = Field(default=False, alias="autoSync", description="Sync the model catalog when the API server starts")
    default_model_count: int = Field(default=5, ge=1, alias="defaultModelCount")
    response_timeout_ms: int = Field(default=30000, ge=1, alias="responseTimeout")
    save_history: bool = Field(default=True, alias="saveHistory")
    similarity_threshold: float = Field(
        default=0.8, ge=0, le=1, alias="similarityThreshold",
        description="Minimum normalized Levenshtein similarity for two answers to share a group",
    )

    model_config = ConfigDict(populate_by_name=True)

    def batch_options(self) -> BatchOptions:
        """Single-word batch options honouring the configured timeout."""
        return BatchOptions.single_word(timeout_ms=self.response_timeout_ms)
