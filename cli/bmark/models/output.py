"""Output Models - Data structures produced by the fetcher and the consensus analyzer."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ModelRequest(BaseModel):
    """One unit of work for the fetcher."""

    model_config = ConfigDict(protected_namespaces=())

    model_id: str = Field(..., min_length=1)
    prompt: str = Field(..., min_length=1)


class CompletionResult(BaseModel):
    """A successful completion from the gateway."""

    text: str
    elapsed_ms: int = Field(..., ge=0)
    usage: Optional[dict] = None  # {prompt_tokens, completion_tokens, total_tokens}


class BatchOutcome(BaseModel):
    """Per-model outcome of a batch: either a result or an error message, never both."""

    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    result: Optional[CompletionResult] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "BatchOutcome":
        if (self.result is None) == (self.error is None):
            raise ValueError("BatchOutcome needs exactly one of result or error")
        return self

    @classmethod
    def success(cls, model_id: str, result: CompletionResult) -> "BatchOutcome":
        return cls(model_id=model_id, result=result)

    @classmethod
    def failure(cls, model_id: str, error: str) -> "BatchOutcome":
        return cls(model_id=model_id, error=error or "Unknown error")

    @property
    def ok(self) -> bool:
        return self.result is not None


class ResponseRecord(BaseModel):
    """A successful answer handed to the consensus analyzer.

    ``model_name`` and ``provider`` come from the model catalog and are
    optional; provider insights are skipped for records without one.
    """

    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    text: str
    model_name: Optional[str] = None
    provider: Optional[str] = None
    response_time_ms: int = 0
    id: Optional[str] = None  # stored response id, when persisted


class ConsensusGroup(BaseModel):
    """Responses treated as the same answer."""

    display_name: str
    members: list[ResponseRecord] = Field(default_factory=list)
    percentage_of_total: float = 0.0
    color_token: str = ""

    @property
    def count(self) -> int:
        return len(self.members)

    @property
    def models(self) -> list[str]:
        """Display names of the member models, falling back to their ids."""
        return [m.model_name or m.model_id for m in self.members]

    def to_payload(self) -> dict:
        return {
            "groupName": self.display_name,
            "count": self.count,
            "percentage": self.percentage_of_total,
            "color": self.color_token,
            "models": self.models,
            "responses": [m.model_dump() for m in self.members],
        }


class ConsensusAnalysis(BaseModel):
    """Ranked consensus groups plus the metrics derived from them."""

    groups: list[ConsensusGroup] = Field(default_factory=list)
    total_responses: int = 0
    consensus_level: float = 0.0
    diversity_index: float = 0.0
    top_response_name: str = ""


class DistributionEntry(BaseModel):
    name: str
    count: int
    percentage: float


class SummaryStats(BaseModel):
    """Compact view of an analysis for charts and history listings."""

    total_models: int
    unique_response_count: int
    consensus_level: float
    top_response_name: str
    distribution: list[DistributionEntry] = Field(default_factory=list)

    def to_payload(self) -> dict:
        return {
            "totalModels": self.total_models,
            "uniqueResponses": self.unique_response_count,
            "consensusLevel": self.consensus_level,
            "topResponse": self.top_response_name,
            "responseDistribution": [
                {"response": d.name, "count": d.count, "percentage": d.percentage}
                for d in self.distribution
            ],
        }
