"""OpenRouter Client - Provider-agnostic completion gateway access."""

import time
from typing import Optional, Sequence

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception

from bmark.errors import CompletionError, ConfigurationError, GatewayError
from bmark.llm.usage import LLMUsage, UsageTracker
from bmark.logging import get_logger
from bmark.models.catalog import GatewayModel
from bmark.models.config import BatchOptions
from bmark.models.output import BatchOutcome, CompletionResult
from bmark.pipeline.batch_engine import BatchEngine

logger = get_logger("bmark.llm.openrouter")

# Substrings of model ids that are not worth benchmarking
_EXCLUDED_ID_MARKERS = (":free", "vision", "preview", "beta")
MIN_BENCHMARK_CONTEXT = 2000


def _is_retryable(exc: BaseException) -> bool:
    """Check if an exception is retryable (429, 500, 502, 503)."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in (429, 500, 502, 503)
    return False


def _error_message(response: httpx.Response) -> str:
    """Pull a readable message out of a gateway error body."""
    text = response.text
    try:
        data = response.json()
    except ValueError:
        return text or "Unknown error"
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict):
            return error.get("message") or str(error)
        if error:
            return str(error)
    return text or "Unknown error"


def filter_models_for_benchmark(models: Sequence[GatewayModel]) -> list[GatewayModel]:
    """Drop free, vision, preview and beta variants and models with a tiny context window."""
    return [
        model for model in models
        if not any(marker in model.id.lower() for marker in _EXCLUDED_ID_MARKERS)
        and (model.context_length or 0) >= MIN_BENCHMARK_CONTEXT
    ]


class OpenRouterClient:
    """
    OpenRouter API Client.

    Speaks the OpenAI-compatible chat completions protocol, so the same
    client serves any gateway exposing it (see ``VercelGatewayClient``).
    The API key is passed in explicitly and sent with every request.
    """

    BASE_URL = "https://openrouter.ai/api/v1"

    RECOMMENDED_MODEL_IDS = [
        "openai/gpt-4o",
        "anthropic/claude-3-5-sonnet",
        "google/gemini-pro-1.5",
        "meta-llama/llama-3.1-70b-instruct",
        "mistralai/mistral-large",
        "cohere/command-r-plus",
    ]

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        site_url: str = "http://localhost:3000",
        site_name: str = "LLM Consensus Benchmark",
        usage_tracker: Optional[UsageTracker] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        if not api_key or not api_key.strip():
            raise ConfigurationError(f"{type(self).__name__} requires an API key")
        self.api_key = api_key
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.site_url = site_url
        self.site_name = site_name
        self.usage_tracker = usage_tracker
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient()

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "HTTP-Referer": self.site_url,
            "X-Title": self.site_name,
            "Content-Type": "application/json",
        }

    async def get_completion(
        self,
        model_id: str,
        prompt: str,
        options: Optional[BatchOptions] = None,
    ) -> CompletionResult:
        """
        Request a single completion.

        Args:
            model_id: Gateway model id (e.g. 'openai/gpt-4o')
            prompt: User prompt
            options: Token limit, temperature, system prompt and timeout

        Returns:
            CompletionResult with stripped text, elapsed time and usage

        Raises:
            CompletionError: On network failure, timeout, non-2xx status,
                a response without choices, or empty text
        """
        options = options or BatchOptions()
        body = {
            "model": model_id,
            "messages": [
                {"role": "system", "content": options.system_prompt},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": options.max_tokens,
            "temperature": options.temperature,
            "stream": False,
        }

        start = time.monotonic()
        try:
            response = await self.client.post(
                f"{self.base_url}/chat/completions",
                headers=self._headers(),
                json=body,
                timeout=options.timeout_seconds,
            )
        except httpx.TimeoutException as e:
            raise CompletionError(
                f"Request timeout after {options.timeout_ms}ms", model_id=model_id
            ) from e
        except httpx.HTTPError as e:
            raise CompletionError(
                f"Failed to get completion: {str(e) or type(e).__name__}", model_id=model_id
            ) from e

        if response.is_error:
            message = _error_message(response)
            logger.error("gateway_error", model=model_id, status=response.status_code, error=message)
            raise CompletionError(
                f"API error ({response.status_code}): {message}",
                model_id=model_id,
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise CompletionError("Invalid JSON in gateway response", model_id=model_id) from e
        if not isinstance(data, dict):
            raise CompletionError("Unexpected gateway response", model_id=model_id)

        choices = data.get("choices") or []
        if not choices:
            # Some upstream failures come back as 200 with an error object
            if data.get("error"):
                error = data["error"]
                message = error.get("message") if isinstance(error, dict) else str(error)
                raise CompletionError(f"API error: {message}", model_id=model_id)
            raise CompletionError("No response choices returned", model_id=model_id)

        message = choices[0].get("message") or {}
        content = (message.get("content") or "").strip()
        if not content:
            raise CompletionError("Empty response from model", model_id=model_id)

        elapsed_ms = int((time.monotonic() - start) * 1000)
        usage = data.get("usage")

        if self.usage_tracker and usage:
            self.usage_tracker.record(LLMUsage.from_response(usage, model=model_id))

        logger.debug("llm_call", model=model_id, elapsed_ms=elapsed_ms, tokens=(usage or {}).get("total_tokens"))

        return CompletionResult(text=content, elapsed_ms=elapsed_ms, usage=usage)

    async def batch_completion(
        self,
        model_ids: Sequence[str],
        prompt: str,
        options: Optional[BatchOptions] = None,
    ) -> list[BatchOutcome]:
        """
        Request a completion from every model, isolating failures per model.

        Args:
            model_ids: Gateway model ids
            prompt: User prompt sent to every model
            options: Shared options; ``concurrency`` and ``batch_delay_ms``
                control chunking, ``timeout_ms`` bounds each request

        Returns:
            One BatchOutcome per model id, in input order

        Raises:
            ValueError: If model_ids is empty
        """
        options = options or BatchOptions()
        engine = BatchEngine(concurrency=options.concurrency, batch_delay_ms=options.batch_delay_ms)

        outcomes = await engine.fetch_all(
            model_ids,
            lambda model_id: self.get_completion(model_id, prompt, options),
            timeout_ms=options.timeout_ms,
        )

        logger.info(
            "batch_completion",
            models=len(outcomes),
            succeeded=sum(1 for o in outcomes if o.ok),
            failed=sum(1 for o in outcomes if not o.ok),
        )
        return outcomes

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        retry=retry_if_exception(_is_retryable),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            "models_fetch_retry",
            attempt=retry_state.attempt_number,
            wait=retry_state.next_action.sleep,
            error=str(retry_state.outcome.exception()),
        ),
    )
    async def get_models(self) -> list[GatewayModel]:
        """
        Fetch the gateway's model listing.

        Returns:
            Models as reported by the gateway

        Raises:
            httpx.HTTPStatusError: If the gateway keeps failing
            GatewayError: If the listing is not a JSON object with a data list
        """
        response = await self.client.get(
            f"{self.base_url}/models",
            headers=self._headers(),
            timeout=30.0,
        )
        response.raise_for_status()
        try:
            payload = response.json()
        except ValueError as e:
            raise GatewayError("Invalid JSON in model listing") from e
        if not isinstance(payload, dict) or not isinstance(payload.get("data", []), list):
            raise GatewayError("Unexpected model listing from gateway")
        return [GatewayModel.model_validate(item) for item in payload.get("data", [])]

    async def close(self):
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
