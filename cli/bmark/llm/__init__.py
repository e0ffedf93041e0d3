"""LLM Module - Completion gateway clients and usage tracking."""

from .openrouter import OpenRouterClient, filter_models_for_benchmark
from .vercel import VercelGatewayClient, PREDEFINED_MODELS
from .usage import LLMUsage, UsageTracker
from .factory import GATEWAY_KEY_HEADER, create_gateway_client

__all__ = [
    "OpenRouterClient",
    "filter_models_for_benchmark",
    "VercelGatewayClient",
    "PREDEFINED_MODELS",
    "LLMUsage",
    "UsageTracker",
    "GATEWAY_KEY_HEADER",
    "create_gateway_client",
]
