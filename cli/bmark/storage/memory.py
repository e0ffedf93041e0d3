"""In-memory store for the CLI, tests, and development without a database."""

from datetime import datetime, timezone
from itertools import count
from typing import Optional, Sequence

from bmark.errors import StoreError
from bmark.models.catalog import (
    CatalogModel,
    PromptRecord,
    PromptWithResults,
    StoredConsensusGroup,
    StoredResponse,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryStore:
    """
    Process-local implementation of ``ModelStore``.

    Ids are ``mock-<n>`` so records created here are recognisable when they
    reach the API.
    """

    def __init__(self, models: Optional[Sequence[CatalogModel]] = None):
        self._ids = count()
        self._models: dict[str, CatalogModel] = {}
        self._prompts: dict[str, PromptRecord] = {}
        self._responses: list[StoredResponse] = []
        self._groups: list[StoredConsensusGroup] = []
        if models:
            self._upsert(models)

    def _next_id(self) -> str:
        return f"mock-{next(self._ids)}"

    def _upsert(self, models: Sequence[CatalogModel]) -> list[CatalogModel]:
        by_model_id = {m.model_id: m for m in self._models.values()}
        saved = []
        for model in models:
            existing = by_model_id.get(model.model_id)
            now = _now()
            if existing is not None:
                updated = model.model_copy(update={
                    "id": existing.id,
                    "created_at": existing.created_at,
                    "updated_at": now,
                })
            else:
                updated = model.model_copy(update={
                    "id": model.id or self._next_id(),
                    "created_at": now,
                    "updated_at": now,
                })
            self._models[updated.id] = updated
            by_model_id[updated.model_id] = updated
            saved.append(updated)
        return saved

    async def get_models(self) -> list[CatalogModel]:
        return sorted(self._models.values(), key=lambda m: (m.provider, m.name))

    async def upsert_models(self, models: Sequence[CatalogModel]) -> list[CatalogModel]:
        return self._upsert(models)

    async def update_model_enabled(self, id: str, enabled: bool) -> CatalogModel:
        model = self._models.get(id)
        if model is None:
            raise StoreError(f"Failed to update model: no model with id {id}")
        updated = model.model_copy(update={"enabled": enabled, "updated_at": _now()})
        self._models[id] = updated
        return updated

    async def save_prompt(self, text: str) -> PromptRecord:
        prompt = PromptRecord(id=self._next_id(), text=text, created_at=_now())
        self._prompts[prompt.id] = prompt
        return prompt

    async def save_responses(self, responses: Sequence[StoredResponse]) -> list[StoredResponse]:
        saved = [
            response.model_copy(update={
                "id": self._next_id(),
                "created_at": _now(),
                "model": self._models.get(response.model_id),
            })
            for response in responses
        ]
        self._responses.extend(saved)
        return saved

    async def save_consensus_groups(
        self, groups: Sequence[StoredConsensusGroup]
    ) -> list[StoredConsensusGroup]:
        saved = [
            group.model_copy(update={"id": self._next_id(), "created_at": _now()})
            for group in groups
        ]
        self._groups.extend(saved)
        return saved

    async def get_prompt_history(self, limit: int = 50) -> list[PromptRecord]:
        # Insertion order breaks created_at ties
        ordered = list(reversed(self._prompts.values()))
        ordered.sort(key=lambda p: p.created_at, reverse=True)
        return ordered[:limit]

    async def get_prompt_with_results(self, prompt_id: str) -> Optional[PromptWithResults]:
        prompt = self._prompts.get(prompt_id)
        if prompt is None:
            return None
        return PromptWithResults(
            prompt=prompt,
            responses=[r for r in self._responses if r.prompt_id == prompt_id],
            consensus_groups=[g for g in self._groups if g.prompt_id == prompt_id],
        )
