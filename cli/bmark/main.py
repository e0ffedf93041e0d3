"""BMark CLI - Command-line interface for the LLM consensus benchmark."""

import asyncio
import json
from typing import Optional

import httpx
import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from bmark import __version__
from bmark.config_loader import load_settings
from bmark.errors import BMarkError, GatewayError
from bmark.llm import (
    PREDEFINED_MODELS,
    OpenRouterClient,
    VercelGatewayClient,
    create_gateway_client,
    filter_models_for_benchmark,
)
from bmark.logging import configure_logging
from bmark.models.catalog import CatalogModel, GatewayModel
from bmark.pipeline.consensus import ConsensusAnalyzer
from bmark.pipeline.executor import BenchmarkExecutor, BenchmarkResult
from bmark.storage import MemoryStore

app = typer.Typer(
    name="bmark",
    help="BMark - Send one prompt to many LLMs and measure how much their answers agree",
    add_completion=False,
)
console = Console()


@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    configure_logging(debug=debug)


def _catalog_for(model_ids: list[str]) -> list[CatalogModel]:
    """Catalog entries for the requested gateway ids, predefined metadata when known."""
    known = {m.id: m for m in PREDEFINED_MODELS}
    catalog = []
    for model_id in dict.fromkeys(model_ids):
        gateway_model = known.get(model_id) or GatewayModel(
            id=model_id, name=model_id.split("/")[-1], provider=model_id.split("/")[0]
        )
        catalog.append(CatalogModel.from_gateway(gateway_model))
    return catalog


async def _run_benchmark(
    prompt: str,
    model_ids: list[str],
    timeout_ms: Optional[int],
    concurrency: int,
    max_tokens: int,
    temperature: float,
) -> tuple[BenchmarkResult, dict]:
    settings = load_settings()
    options = settings.batch_options().model_copy(update={
        "timeout_ms": timeout_ms or settings.response_timeout_ms,
        "concurrency": concurrency,
        "max_tokens": max_tokens,
        "temperature": temperature,
    })
    store = MemoryStore(_catalog_for(model_ids))
    catalog_ids = [m.id for m in await store.get_models()]

    async with create_gateway_client() as client:
        executor = BenchmarkExecutor(
            client=client,
            store=store,
            options=options,
            analyzer=ConsensusAnalyzer(similarity_threshold=settings.similarity_threshold),
        )
        result = await executor.run(prompt, catalog_ids)

        tracker = client.usage_tracker
        if tracker.call_count and not isinstance(client, VercelGatewayClient):
            try:
                tracker.set_pricing(await client.get_models())
            except (httpx.HTTPError, GatewayError) as e:
                console.print(f"[dim]Pricing unavailable: {e}[/dim]")
        return result, tracker.summary_dict()


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="Prompt sent to every model"),
    models: Optional[list[str]] = typer.Option(
        None,
        "--model", "-m",
        help="Gateway model id (repeatable). Defaults to the first predefined models.",
    ),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout-ms", min=1, help="Per-request timeout"),
    concurrency: int = typer.Option(5, "--concurrency", "-c", min=1, help="Requests in flight per chunk"),
    max_tokens: int = typer.Option(10, "--max-tokens", min=1, help="Maximum tokens per answer"),
    temperature: float = typer.Option(0.7, "--temperature", min=0.0, max=2.0, help="Sampling temperature"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
):
    """
    Ask every model the same question and report their consensus.

    \b
    Examples:
        bmark ask "What is the capital of France?"
        bmark ask "2+2?" -m openai/gpt-4o -m anthropic/claude-3-5-sonnet
        bmark ask "Best color?" --json
    """
    if not models:
        count = load_settings().default_model_count
        models = [m.id for m in PREDEFINED_MODELS[:count]]

    try:
        result, usage = asyncio.run(
            _run_benchmark(prompt, models, timeout_ms, concurrency, max_tokens, temperature)
        )
    except BMarkError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if as_json:
        payload = result.to_payload()
        payload["usage"] = usage
        console.print_json(json.dumps(payload))
        return

    console.print(Panel.fit(
        f"[bold blue]BMark[/bold blue] {prompt}",
        subtitle=f"{result.successful_responses}/{result.total_models} models answered",
    ))

    responses = Table(title="Responses", show_header=True, header_style="bold")
    responses.add_column("Model")
    responses.add_column("Provider")
    responses.add_column("Answer")
    responses.add_column("Time", justify="right")
    for response in result.responses:
        answer = f"[red]{response.error}[/red]" if response.error else response.response_text
        responses.add_row(
            response.model.name,
            response.model.provider,
            answer,
            f"{response.response_time_ms}ms" if not response.error else "-",
        )
    console.print(responses)

    if result.analysis.groups:
        groups = Table(title="Consensus Groups", show_header=True, header_style="bold")
        groups.add_column("Answer")
        groups.add_column("Count", justify="right")
        groups.add_column("Share", justify="right")
        groups.add_column("Models")
        for group in result.analysis.groups:
            groups.add_row(
                f"[{group.color_token}]{group.display_name}[/]",
                str(group.count),
                f"{group.percentage_of_total:.1f}%",
                ", ".join(group.models),
            )
        console.print(groups)

    console.print("\n[bold]Insights[/bold]")
    for insight in result.insights:
        console.print(f"  - {insight}")

    if usage["total_calls"]:
        console.print(
            f"\n[dim]Tokens: {usage['total_tokens']} over {usage['total_calls']} calls, "
            f"estimated cost ${usage['estimated_cost_usd']:.6f}[/dim]"
        )


@app.command(name="models")
def list_models(
    show_all: bool = typer.Option(False, "--all", help="Include models the benchmark filter drops"),
):
    """List the models the configured gateway offers."""

    async def _fetch() -> list[GatewayModel]:
        async with create_gateway_client() as client:
            return await client.get_models()

    try:
        available = asyncio.run(_fetch())
    except (BMarkError, httpx.HTTPError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    shown = available if show_all else filter_models_for_benchmark(available)

    table = Table(title=f"{len(shown)} models", show_header=True, header_style="bold")
    table.add_column("Id")
    table.add_column("Name")
    table.add_column("Provider")
    table.add_column("Context", justify="right")
    table.add_column("Recommended", justify="center")
    recommended = set(OpenRouterClient.RECOMMENDED_MODEL_IDS)
    for model in sorted(shown, key=lambda m: (m.provider_name, m.display_name)):
        table.add_row(
            model.id,
            model.display_name,
            model.provider_name,
            str(model.context_length) if model.context_length else "-",
            "yes" if model.id in recommended else "",
        )
    console.print(table)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
):
    """Start the API server for the dashboard."""
    import uvicorn

    console.print(Panel.fit(
        f"[bold blue]BMark[/bold blue] API Server v{__version__}",
        subtitle=f"Running on http://{host}:{port}",
    ))

    uvicorn.run(
        "bmark.api:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    app()
