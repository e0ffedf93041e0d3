"""BMark FastAPI Server - HTTP API for the consensus dashboard."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated, Optional

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from bmark import __version__
from bmark.config_loader import get_supabase_credentials, load_settings
from bmark.errors import BMarkError, ConfigurationError, GatewayError, NoModelsSelectedError, StoreError
from bmark.llm import (
    GATEWAY_KEY_HEADER,
    PREDEFINED_MODELS,
    OpenRouterClient,
    create_gateway_client,
    filter_models_for_benchmark,
)
from bmark.logging import bind_request_context, clear_request_context, get_logger
from bmark.models.catalog import CatalogModel
from bmark.pipeline.consensus import ConsensusAnalyzer
from bmark.pipeline.executor import BenchmarkExecutor
from bmark.storage import MemoryStore, ModelStore, SupabaseStore

logger = get_logger("bmark.api")

MAX_MODELS_PER_PROVIDER = 5

# Seed catalog for the in-memory store
DEFAULT_MODELS = [
    CatalogModel(name="GPT-4o", provider="OpenAI", model_id="openai/gpt-4o", context_length=128000),
    CatalogModel(name="Claude 3.5 Sonnet", provider="Anthropic",
                 model_id="anthropic/claude-3-5-sonnet", context_length=200000),
    CatalogModel(name="Gemini Pro 1.5", provider="Google", model_id="google/gemini-pro-1.5",
                 context_length=2000000),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    if load_settings().auto_sync:
        await auto_sync_catalog(app_store(app))
    yield
    store = getattr(app.state, "store", None)
    app.state.store = None
    close = getattr(store, "close", None)
    if close is not None:
        await close()


app = FastAPI(
    title="BMark API",
    description="LLM Consensus Benchmark - API Server",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware for the dashboard
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict to specific origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def bind_log_context(request: Request, call_next):
    clear_request_context()
    bind_request_context(method=request.method, path=request.url.path)
    return await call_next(request)


# ---------- Error handlers ----------

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request data", "details": jsonable_errors(exc)},
    )


@app.exception_handler(NoModelsSelectedError)
async def no_models_handler(request: Request, exc: NoModelsSelectedError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error("configuration_error", error=str(exc))
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", error=str(exc))
    return JSONResponse(status_code=500, content={"error": str(exc) or "Internal server error"})


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors without the non-serializable ``ctx`` payloads."""
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


# ---------- Dependencies ----------

def create_store() -> ModelStore:
    """Supabase when credentials are configured, otherwise an in-memory store."""
    url, key = get_supabase_credentials()
    if url and key:
        return SupabaseStore(url, key)
    logger.warning("supabase_not_configured", fallback="memory")
    return MemoryStore(DEFAULT_MODELS)


def app_store(app: FastAPI) -> ModelStore:
    """The store shared by every request, created on first use."""
    store = getattr(app.state, "store", None)
    if store is None:
        store = create_store()
        app.state.store = store
    return store


def get_store(request: Request) -> ModelStore:
    return app_store(request.app)


async def get_gateway_client(request: Request):
    client = create_gateway_client(request.headers.get(GATEWAY_KEY_HEADER))
    try:
        yield client
    finally:
        await client.close()


StoreDep = Annotated[ModelStore, Depends(get_store)]
GatewayDep = Annotated[OpenRouterClient, Depends(get_gateway_client)]


# ---------- Request models ----------

class PromptRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=1000)
    modelIds: list[Annotated[str, Field(min_length=1)]] = Field(..., min_length=1)


class UpdateModelRequest(BaseModel):
    id: str = Field(..., min_length=1)
    enabled: bool


# ---------- Routes ----------

@app.get("/")
async def root():
    """Health check endpoint."""
    return {
        "name": "BMark API",
        "version": __version__,
        "status": "running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/api/models")
async def list_models(store: StoreDep):
    """Return the model catalog."""
    models = await store.get_models()
    return {"models": [m.model_dump(mode="json") for m in models]}


@app.post("/api/models")
async def sync_models(store: StoreDep, client: GatewayDep):
    """Sync the catalog from the gateway."""
    saved = await sync_catalog(store, client)
    return {
        "message": f"Successfully synced {len(saved)} models.",
        "models": [m.model_dump(mode="json") for m in saved],
    }


async def auto_sync_catalog(store: ModelStore) -> None:
    """Startup sync; a missing key or unreachable gateway leaves the catalog as is."""
    try:
        async with create_gateway_client() as client:
            await sync_catalog(store, client)
    except (BMarkError, httpx.HTTPError) as e:
        logger.warning("auto_sync_skipped", error=str(e))


async def sync_catalog(store: ModelStore, client: OpenRouterClient) -> list[CatalogModel]:
    """
    Refresh the store's catalog from the gateway listing.

    Keeps at most five benchmark-worthy models per provider, always includes
    the predefined models, and preserves the enabled flag of models already
    in the catalog. When the store cannot save, returns unsaved copies with
    ``mock-<n>`` ids.
    """
    try:
        available = await client.get_models()
    except (httpx.HTTPError, GatewayError) as e:
        logger.warning("gateway_models_unavailable", error=str(e), fallback="predefined")
        available = [m.model_copy() for m in PREDEFINED_MODELS]

    per_provider: dict[str, list] = {}
    for model in filter_models_for_benchmark(available):
        bucket = per_provider.setdefault(model.provider_name, [])
        if len(bucket) < MAX_MODELS_PER_PROVIDER:
            bucket.append(model)

    models = [CatalogModel.from_gateway(m) for bucket in per_provider.values() for m in bucket]
    known_ids = {m.model_id for m in models}
    for predefined in PREDEFINED_MODELS:
        if predefined.id not in known_ids:
            models.append(CatalogModel.from_gateway(predefined))
            known_ids.add(predefined.id)

    try:
        existing_enabled = {m.model_id: m.enabled for m in await store.get_models()}
    except StoreError as e:
        logger.warning("existing_models_unavailable", error=str(e))
        existing_enabled = {}

    to_upsert = [
        m.model_copy(update={"enabled": existing_enabled.get(m.model_id, True)})
        for m in models
    ]

    try:
        saved = await store.upsert_models(to_upsert)
    except StoreError as e:
        logger.warning("models_not_saved", error=str(e))
        now = datetime.now(timezone.utc)
        saved = [
            m.model_copy(update={"id": f"mock-{i}", "created_at": now, "updated_at": now})
            for i, m in enumerate(to_upsert)
        ]

    logger.info("models_synced", count=len(saved))
    return saved


@app.put("/api/models")
async def update_model(body: UpdateModelRequest, store: StoreDep):
    """Enable or disable a catalog model."""
    synthetic = {
        "id": body.id,
        "enabled": body.enabled,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }
    if body.id.startswith("mock-") and not isinstance(store, MemoryStore):
        return {"model": synthetic}

    try:
        model = await store.update_model_enabled(body.id, body.enabled)
    except StoreError as e:
        logger.warning("model_update_failed", id=body.id, error=str(e))
        return {"model": synthetic}
    return {"model": model.model_dump(mode="json")}


@app.post("/api/prompt")
async def submit_prompt(body: PromptRequest, store: StoreDep, client: GatewayDep):
    """Send a prompt to the selected models and analyze their consensus."""
    settings = load_settings()
    if not settings.save_history:
        # Results stay in a scratch store seeded with the current catalog
        store = MemoryStore(await store.get_models())
    executor = BenchmarkExecutor(
        client=client,
        store=store,
        options=settings.batch_options(),
        analyzer=ConsensusAnalyzer(similarity_threshold=settings.similarity_threshold),
    )
    result = await executor.run(body.text, body.modelIds)

    payload = result.to_payload()
    tracker = getattr(client, "usage_tracker", None)
    if tracker is not None:
        payload["usage"] = tracker.summary_dict()
    return payload


@app.get("/api/prompt")
async def prompt_history(store: StoreDep, limit: int = 50, id: Optional[str] = None):
    """Prompt history, or one prompt with its responses and groups when ``id`` is given."""
    if id:
        found = await store.get_prompt_with_results(id)
        if found is None:
            return JSONResponse(status_code=404, content={"error": "Prompt not found"})
        return {
            "prompt": found.prompt.model_dump(mode="json"),
            "responses": [r.model_dump(mode="json") for r in found.responses],
            "consensusGroups": [g.model_dump(mode="json") for g in found.consensus_groups],
        }

    prompts = await store.get_prompt_history(limit)
    return {"prompts": [p.model_dump(mode="json") for p in prompts]}
