"""Client factory - Picks a completion gateway from the configured credentials."""

from typing import Optional

from bmark.config_loader import get_gateway_api_key, get_openrouter_api_key
from bmark.errors import ConfigurationError
from bmark.llm.openrouter import OpenRouterClient
from bmark.llm.usage import UsageTracker
from bmark.llm.vercel import VercelGatewayClient

GATEWAY_KEY_HEADER = "X-Vercel-AI-Gateway-Key"


def create_gateway_client(gateway_key: Optional[str] = None) -> OpenRouterClient:
    """
    Build a completion client with a fresh usage tracker.

    OpenRouter is used when its key is configured; otherwise the Vercel AI
    Gateway key from the environment or the settings file, then
    ``gateway_key`` (e.g. from a request header).

    Raises:
        ConfigurationError: If no key is available
    """
    tracker = UsageTracker()
    openrouter_key = get_openrouter_api_key()
    if openrouter_key:
        return OpenRouterClient(openrouter_key, usage_tracker=tracker)

    vercel_key = get_gateway_api_key() or gateway_key
    if vercel_key:
        return VercelGatewayClient(vercel_key, usage_tracker=tracker)

    raise ConfigurationError(
        "No gateway API key is configured. Set OPENROUTER_API_KEY or AI_GATEWAY_API_KEY, "
        f"or send the {GATEWAY_KEY_HEADER} header."
    )
