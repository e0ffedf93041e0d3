"""Store interface shared by the Supabase and in-memory backends."""

from typing import Optional, Protocol, Sequence

from bmark.models.catalog import (
    CatalogModel,
    PromptRecord,
    PromptWithResults,
    StoredConsensusGroup,
    StoredResponse,
)


class ModelStore(Protocol):
    """CRUD operations the API and the benchmark executor rely on."""

    async def get_models(self) -> list[CatalogModel]:
        """All catalog models ordered by provider, then name."""
        ...

    async def upsert_models(self, models: Sequence[CatalogModel]) -> list[CatalogModel]:
        """Insert or update models keyed on ``model_id``."""
        ...

    async def update_model_enabled(self, id: str, enabled: bool) -> CatalogModel:
        ...

    async def save_prompt(self, text: str) -> PromptRecord:
        ...

    async def save_responses(self, responses: Sequence[StoredResponse]) -> list[StoredResponse]:
        """Persist responses and return them with ids and their catalog model attached."""
        ...

    async def save_consensus_groups(
        self, groups: Sequence[StoredConsensusGroup]
    ) -> list[StoredConsensusGroup]:
        ...

    async def get_prompt_history(self, limit: int = 50) -> list[PromptRecord]:
        """Most recent prompts first."""
        ...

    async def get_prompt_with_results(self, prompt_id: str) -> Optional[PromptWithResults]:
        ...
