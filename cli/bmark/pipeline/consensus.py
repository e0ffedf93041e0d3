"""Consensus Analyzer - Groups model answers into consensus clusters.

Answers are normalized and assigned greedily, in input order, to the first
existing group whose representative text is similar enough. The first
qualifying group wins even if a later group would match better, so the
grouping depends on input order.
"""

import re
from typing import Optional, Sequence

from rapidfuzz.distance import Levenshtein

from bmark.logging import get_logger
from bmark.models.output import (
    ConsensusAnalysis,
    ConsensusGroup,
    DistributionEntry,
    ResponseRecord,
    SummaryStats,
)

logger = get_logger("bmark.pipeline.consensus")

SIMILARITY_THRESHOLD = 0.8

# Group colors, assigned by rank
COLORS = [
    "#3B82F6",  # Blue
    "#EF4444",  # Red
    "#10B981",  # Green
    "#F59E0B",  # Amber
    "#8B5CF6",  # Purple
    "#F97316",  # Orange
    "#06B6D4",  # Cyan
    "#84CC16",  # Lime
    "#EC4899",  # Pink
    "#6B7280",  # Gray
]

NO_RESPONSES_INSIGHT = "No responses to analyze."
CLOSE_COMPETITION_GAP = 10.0

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Lowercase, trim, drop punctuation and collapse whitespace runs."""
    text = text.lower().strip()
    text = _PUNCTUATION.sub("", text)
    return _WHITESPACE.sub(" ", text)


def levenshtein_distance(a: str, b: str) -> int:
    """Character-level edit distance with unit insert, delete and substitute costs."""
    return Levenshtein.distance(a, b)


def calculate_similarity(a: str, b: str) -> float:
    """
    Normalized Levenshtein similarity of two texts after normalization.

    Returns:
        1 - distance / max(len), in [0, 1]; 1.0 when both are equal or empty
    """
    a = normalize_text(a)
    b = normalize_text(b)
    if a == b:
        return 1.0
    max_length = max(len(a), len(b))
    return 1 - levenshtein_distance(a, b) / max_length


class ConsensusAnalyzer:
    """
    Clusters answers by approximate equality and derives metrics and insights.

    Args:
        similarity_threshold: Minimum similarity (inclusive) to join a group
        palette: Colors assigned to groups by rank, cycled when exhausted
    """

    def __init__(
        self,
        similarity_threshold: float = SIMILARITY_THRESHOLD,
        palette: Optional[Sequence[str]] = None,
    ):
        if not 0 <= similarity_threshold <= 1:
            raise ValueError("similarity_threshold must be between 0 and 1")
        self.similarity_threshold = similarity_threshold
        self.palette = list(COLORS if palette is None else palette)
        if not self.palette:
            raise ValueError("palette must not be empty")

    def analyze(self, responses: Sequence[ResponseRecord]) -> ConsensusAnalysis:
        """
        Group responses and rank the groups.

        Args:
            responses: Successful answers in the order they should be clustered

        Returns:
            ConsensusAnalysis with groups sorted by size (ties keep creation order)
        """
        responses = list(responses)
        if not responses:
            return ConsensusAnalysis()

        total = len(responses)
        groups = self._group_similar_responses(responses)

        # sorted() is stable, so equal-sized groups keep creation order
        groups = sorted(groups, key=lambda g: g.count, reverse=True)
        for index, group in enumerate(groups):
            group.percentage_of_total = group.count / total * 100
            group.color_token = self.palette[index % len(self.palette)]

        analysis = ConsensusAnalysis(
            groups=groups,
            total_responses=total,
            consensus_level=groups[0].percentage_of_total,
            diversity_index=len(groups) / total,
            top_response_name=groups[0].display_name,
        )
        logger.debug(
            "consensus_analyzed",
            responses=total,
            groups=len(groups),
            consensus_level=round(analysis.consensus_level, 1),
        )
        return analysis

    def _group_similar_responses(self, responses: list[ResponseRecord]) -> list[ConsensusGroup]:
        groups: list[ConsensusGroup] = []

        for response in responses:
            normalized = normalize_text(response.text)

            group = next(
                (
                    g for g in groups
                    if calculate_similarity(g.display_name, normalized) >= self.similarity_threshold
                ),
                None,
            )
            if group is None:
                group = ConsensusGroup(display_name=normalized)
                groups.append(group)

            group.members.append(response)

        return groups

    def generate_insights(self, analysis: ConsensusAnalysis) -> list[str]:
        """
        Describe an analysis in a few sentences.

        Covers consensus strength, answer diversity, a close race between the
        top two groups, and provider agreement within the top group.
        """
        if analysis.total_responses == 0:
            return [NO_RESPONSES_INSIGHT]

        insights = []
        level = analysis.consensus_level
        top = analysis.top_response_name

        if level >= 80:
            insights.append(f'Strong consensus: {level:.1f}% of models agreed on "{top}".')
        elif level >= 60:
            insights.append(f'Moderate consensus: {level:.1f}% of models agreed on "{top}".')
        elif level >= 40:
            insights.append(f'Weak consensus: Only {level:.1f}% of models agreed on "{top}".')
        else:
            insights.append(
                "No clear consensus: Responses were highly diverse with the top response "
                f"only getting {level:.1f}% agreement."
            )

        diversity = analysis.diversity_index
        if diversity >= 0.8:
            insights.append("Very high diversity: Most models gave different responses.")
        elif diversity >= 0.6:
            insights.append("High diversity: Many different responses were given.")
        elif diversity >= 0.4:
            insights.append("Moderate diversity: Some variation in responses.")
        else:
            insights.append("Low diversity: Models tended to give similar responses.")

        groups = analysis.groups
        if len(groups) >= 2:
            first, second = groups[0], groups[1]
            if first.percentage_of_total - second.percentage_of_total < CLOSE_COMPETITION_GAP:
                insights.append(
                    f'Close competition: "{first.display_name}" ({first.percentage_of_total:.1f}%) '
                    f'barely edged out "{second.display_name}" ({second.percentage_of_total:.1f}%).'
                )

        if groups:
            top_group = groups[0]
            providers = list(dict.fromkeys(m.provider for m in top_group.members if m.provider))
            if len(providers) == 1:
                insights.append(
                    f'Provider bias: All models agreeing on "{top_group.display_name}" '
                    f"were from {providers[0]}."
                )
            elif len(providers) >= 3:
                insights.append(
                    f"Cross-provider agreement: Models from {len(providers)} different providers "
                    f'agreed on "{top_group.display_name}".'
                )

        return insights

    def summary_stats(self, analysis: ConsensusAnalysis) -> SummaryStats:
        return SummaryStats(
            total_models=analysis.total_responses,
            unique_response_count=len(analysis.groups),
            consensus_level=analysis.consensus_level,
            top_response_name=analysis.top_response_name,
            distribution=[
                DistributionEntry(
                    name=group.display_name,
                    count=group.count,
                    percentage=group.percentage_of_total,
                )
                for group in analysis.groups
            ],
        )


_default_analyzer = ConsensusAnalyzer()


def analyze_consensus(responses: Sequence[ResponseRecord]) -> ConsensusAnalysis:
    return _default_analyzer.analyze(responses)


def generate_insights(analysis: ConsensusAnalysis) -> list[str]:
    return _default_analyzer.generate_insights(analysis)


def get_summary_stats(analysis: ConsensusAnalysis) -> SummaryStats:
    return _default_analyzer.summary_stats(analysis)
