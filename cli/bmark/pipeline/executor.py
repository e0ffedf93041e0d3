"""Benchmark Executor - Runs one prompt through the fetcher and the consensus analyzer."""

from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence

from bmark.errors import NoModelsSelectedError
from bmark.logging import get_logger
from bmark.models.catalog import CatalogModel, PromptRecord, StoredConsensusGroup, StoredResponse
from bmark.models.config import BatchOptions
from bmark.models.output import BatchOutcome, ConsensusAnalysis, ResponseRecord, SummaryStats
from bmark.pipeline.consensus import ConsensusAnalyzer
from bmark.storage.base import ModelStore

logger = get_logger("bmark.pipeline.executor")


class CompletionGateway(Protocol):
    async def batch_completion(
        self,
        model_ids: Sequence[str],
        prompt: str,
        options: Optional[BatchOptions] = None,
    ) -> list[BatchOutcome]:
        ...


@dataclass
class ModelResponse:
    """What one model answered, or why it did not."""

    model: CatalogModel
    response_text: str
    response_time_ms: int = 0
    error: Optional[str] = None
    usage: Optional[dict] = None

    def to_payload(self) -> dict:
        payload = {
            "model": {"id": self.model.id, "name": self.model.name, "provider": self.model.provider},
            "response_text": self.response_text,
            "response_time_ms": self.response_time_ms,
        }
        if self.error is not None:
            payload["error"] = self.error
        if self.usage is not None:
            payload["usage"] = self.usage
        return payload


@dataclass
class BenchmarkResult:
    """Everything produced for one prompt submission."""

    prompt: PromptRecord
    responses: list[ModelResponse]
    analysis: ConsensusAnalysis
    insights: list[str]
    summary: SummaryStats
    saved_groups: list[StoredConsensusGroup] = field(default_factory=list)

    @property
    def total_models(self) -> int:
        return len(self.responses)

    @property
    def successful_responses(self) -> int:
        return sum(1 for r in self.responses if r.error is None)

    @property
    def failed_responses(self) -> int:
        return self.total_models - self.successful_responses

    def to_payload(self) -> dict:
        return {
            "prompt": self.prompt.model_dump(mode="json"),
            "responses": [r.to_payload() for r in self.responses],
            "consensus_groups": [g.to_payload() for g in self.analysis.groups],
            "insights": self.insights,
            "summary": self.summary.to_payload(),
            "total_models": self.total_models,
            "successful_responses": self.successful_responses,
            "failed_responses": self.failed_responses,
        }


class BenchmarkExecutor:
    """
    Orchestrates one benchmark run.

    Resolves the selected catalog models, stores the prompt, fetches one
    completion per model, stores the successful answers, clusters them and
    stores the resulting consensus groups.
    """

    def __init__(
        self,
        client: CompletionGateway,
        store: ModelStore,
        options: Optional[BatchOptions] = None,
        analyzer: Optional[ConsensusAnalyzer] = None,
    ):
        self.client = client
        self.store = store
        self.options = options or BatchOptions.single_word()
        self.analyzer = analyzer or ConsensusAnalyzer()

    async def select_models(self, catalog_ids: Sequence[str]) -> list[CatalogModel]:
        """Catalog models whose id was requested, in catalog order."""
        wanted = set(catalog_ids)
        return [m for m in await self.store.get_models() if m.id in wanted]

    async def run(self, prompt_text: str, catalog_ids: Sequence[str]) -> BenchmarkResult:
        """
        Benchmark a prompt against the selected models.

        Args:
            prompt_text: Prompt sent to every model
            catalog_ids: Ids of catalog models (``CatalogModel.id``)

        Returns:
            BenchmarkResult with per-model answers, groups and insights

        Raises:
            NoModelsSelectedError: If none of the ids is in the catalog
        """
        selected = await self.select_models(catalog_ids)
        if not selected:
            raise NoModelsSelectedError("No valid models selected.")

        prompt = await self.store.save_prompt(prompt_text)
        tracker = getattr(self.client, "usage_tracker", None)
        if tracker is not None:
            tracker.set_context(prompt.id)
        log = logger.bind(prompt_id=prompt.id)
        log.info("benchmark_started", models=len(selected))

        outcomes = await self.client.batch_completion(
            [m.model_id for m in selected], prompt_text, self.options
        )

        responses: list[ModelResponse] = []
        to_save: list[StoredResponse] = []
        for model, outcome in zip(selected, outcomes):
            if outcome.ok:
                result = outcome.result
                responses.append(ModelResponse(
                    model=model,
                    response_text=result.text,
                    response_time_ms=result.elapsed_ms,
                    usage=result.usage,
                ))
                to_save.append(StoredResponse(
                    prompt_id=prompt.id,
                    model_id=model.id,
                    response_text=result.text,
                    response_time_ms=result.elapsed_ms,
                ))
            else:
                responses.append(ModelResponse(model=model, response_text=outcome.error, error=outcome.error))

        saved = await self.store.save_responses(to_save) if to_save else []

        models_by_id = {m.id: m for m in selected}
        records = []
        for response in saved:
            model = response.model or models_by_id.get(response.model_id)
            records.append(ResponseRecord(
                id=response.id,
                model_id=response.model_id,
                text=response.response_text,
                model_name=model.name if model else None,
                provider=model.provider if model else None,
                response_time_ms=response.response_time_ms,
            ))

        analysis = self.analyzer.analyze(records)

        saved_groups = []
        if analysis.groups:
            saved_groups = await self.store.save_consensus_groups([
                StoredConsensusGroup(
                    prompt_id=prompt.id,
                    group_name=group.display_name,
                    count=group.count,
                    percentage=group.percentage_of_total,
                    color=group.color_token,
                    models=group.models,
                )
                for group in analysis.groups
            ])

        result = BenchmarkResult(
            prompt=prompt,
            responses=responses,
            analysis=analysis,
            insights=self.analyzer.generate_insights(analysis),
            summary=self.analyzer.summary_stats(analysis),
            saved_groups=saved_groups,
        )
        log.info(
            "benchmark_completed",
            succeeded=result.successful_responses,
            failed=result.failed_responses,
            groups=len(analysis.groups),
            consensus_level=round(analysis.consensus_level, 1),
        )
        return result
