"""BMark Models - Pydantic schemas and data models."""

from .config import BatchOptions, Settings
from .output import (
    ModelRequest,
    CompletionResult,
    BatchOutcome,
    ResponseRecord,
    ConsensusGroup,
    ConsensusAnalysis,
    DistributionEntry,
    SummaryStats,
)
from .catalog import (
    GatewayModel,
    CatalogModel,
    PromptRecord,
    StoredResponse,
    StoredConsensusGroup,
    PromptWithResults,
)

__all__ = [
    "BatchOptions",
    "Settings",
    "ModelRequest",
    "CompletionResult",
    "BatchOutcome",
    "ResponseRecord",
    "ConsensusGroup",
    "ConsensusAnalysis",
    "DistributionEntry",
    "SummaryStats",
    "GatewayModel",
    "CatalogModel",
    "PromptRecord",
    "StoredResponse",
    "StoredConsensusGroup",
    "PromptWithResults",
]
