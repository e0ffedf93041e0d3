"""Catalog Models - Rows of the models, prompts, responses and consensus_groups tables."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


class GatewayModel(BaseModel):
    """A model as listed by the completion gateway."""

    id: str
    name: Optional[str] = None
    provider: Optional[str] = None
    description: Optional[str] = None
    context_length: Optional[int] = None
    pricing: Optional[dict] = None  # {prompt, completion} USD per token, as strings

    @property
    def provider_name(self) -> str:
        """Provider label, derived from the id prefix when the gateway omits it."""
        provider = self.provider or self.id.split("/")[0]
        return provider[:1].upper() + provider[1:]

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        parts = self.id.split("/")
        return parts[1] if len(parts) > 1 and parts[1] else self.id


class CatalogModel(BaseModel):
    """A model that users can select for a benchmark."""

    model_config = ConfigDict(protected_namespaces=())

    id: Optional[str] = None
    name: str
    provider: str
    model_id: str = Field(..., description="Gateway model id, e.g. 'openai/gpt-4o'")
    enabled: bool = True
    context_length: int = 4096
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_gateway(cls, model: GatewayModel, enabled: bool = True) -> "CatalogModel":
        return cls(
            name=model.display_name,
            provider=model.provider_name,
            model_id=model.id,
            enabled=enabled,
            context_length=model.context_length or 4096,
        )


class PromptRecord(BaseModel):
    id: str
    text: str
    created_at: datetime = Field(default_factory=_now)


class StoredResponse(BaseModel):
    """A persisted answer; ``model_id`` references ``CatalogModel.id``."""

    model_config = ConfigDict(protected_namespaces=())

    id: Optional[str] = None
    prompt_id: str
    model_id: str
    response_text: str
    response_time_ms: int = 0
    created_at: Optional[datetime] = None
    model: Optional[CatalogModel] = None


class StoredConsensusGroup(BaseModel):
    id: Optional[str] = None
    prompt_id: str
    group_name: str
    count: int
    percentage: float
    color: str
    models: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class PromptWithResults(BaseModel):
    prompt: PromptRecord
    responses: list[StoredResponse] = Field(default_factory=list)
    consensus_groups: list[StoredConsensusGroup] = Field(default_factory=list)
