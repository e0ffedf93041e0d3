"""Usage Tracker - Accumulates token usage and estimated cost of completion calls."""

from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Iterable, Optional

from bmark.models.catalog import GatewayModel


@dataclass
class LLMUsage:
    """A single completion call's token usage."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    model: str
    prompt_id: str = ""     # benchmark prompt the call belonged to
    timestamp: str = ""     # ISO 8601

    @classmethod
    def from_response(cls, usage: dict, model: str) -> "LLMUsage":
        """Build a record from the ``usage`` object of a chat completion response."""
        prompt = usage.get("prompt_tokens") or 0
        completion = usage.get("completion_tokens") or 0
        return cls(
            prompt_tokens=prompt,
            completion_tokens=completion,
            total_tokens=usage.get("total_tokens") or prompt + completion,
            model=model,
        )


class UsageTracker:
    """
    Accumulates token usage across completion calls.

    Costs are estimated from per-token prices, which callers load from the
    gateway's model listing with ``set_pricing``.
    """

    def __init__(self):
        self._records: list[LLMUsage] = []
        self._model_pricing: dict[str, dict[str, float]] = {}
        self._current_prompt_id: str = ""

    def set_context(self, prompt_id: str = ""):
        """Label subsequent records with a prompt id unless they carry their own."""
        self._current_prompt_id = prompt_id

    def record(self, usage: LLMUsage):
        if not usage.prompt_id and self._current_prompt_id:
            usage.prompt_id = self._current_prompt_id
        if not usage.timestamp:
            usage.timestamp = datetime.now(timezone.utc).isoformat()
        self._records.append(usage)

    def set_pricing(self, models: Iterable[GatewayModel]):
        """Load per-token prices from gateway model listings that include them."""
        for model in models:
            pricing = model.pricing or {}
            prompt_price = pricing.get("prompt")
            completion_price = pricing.get("completion")
            if prompt_price is None or completion_price is None:
                continue
            self._model_pricing[model.id] = {
                "prompt": float(prompt_price),
                "completion": float(completion_price),
            }

    def records_list(self, prompt_id: Optional[str] = None) -> list[dict]:
        return [
            asdict(r) for r in self._records
            if prompt_id is None or r.prompt_id == prompt_id
        ]

    @property
    def total_prompt_tokens(self) -> int:
        return sum(r.prompt_tokens for r in self._records)

    @property
    def total_completion_tokens(self) -> int:
        return sum(r.completion_tokens for r in self._records)

    @property
    def total_tokens(self) -> int:
        return self.total_prompt_tokens + self.total_completion_tokens

    @property
    def call_count(self) -> int:
        return len(self._records)

    def summary_dict(self) -> dict:
        """
        Return a serializable usage summary.

        Returns:
            Dict with token totals, call count, estimated cost and a
            per-model breakdown. Costs are 0.0 for models without pricing.
        """
        by_model: dict[str, dict] = {}
        total_cost = 0.0

        for record in self._records:
            pricing = self._model_pricing.get(record.model, {})
            call_cost = (
                record.prompt_tokens * pricing.get("prompt", 0.0)
                + record.completion_tokens * pricing.get("completion", 0.0)
            )
            entry = by_model.setdefault(record.model, {
                "prompt_tokens": 0,
                "completion_tokens": 0,
                "total_tokens": 0,
                "cost_usd": 0.0,
                "calls": 0,
            })
            entry["prompt_tokens"] += record.prompt_tokens
            entry["completion_tokens"] += record.completion_tokens
            entry["total_tokens"] += record.prompt_tokens + record.completion_tokens
            entry["cost_usd"] += call_cost
            entry["calls"] += 1
            total_cost += call_cost

        return {
            "prompt_tokens": self.total_prompt_tokens,
            "completion_tokens": self.total_completion_tokens,
            "total_tokens": self.total_tokens,
            "total_calls": self.call_count,
            "estimated_cost_usd": total_cost,
            "by_model": by_model,
        }
