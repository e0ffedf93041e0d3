"""Pipeline Module - Batch fetching, consensus analysis and their orchestration."""

from .batch_engine import BatchEngine
from .consensus import (
    ConsensusAnalyzer,
    analyze_consensus,
    generate_insights,
    get_summary_stats,
)

__all__ = [
    "BatchEngine",
    "ConsensusAnalyzer",
    "analyze_consensus",
    "generate_insights",
    "get_summary_stats",
]
