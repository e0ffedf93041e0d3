"""Vercel AI Gateway Client - OpenAI-compatible gateway with a fixed model catalog."""

from bmark.llm.openrouter import OpenRouterClient
from bmark.logging import get_logger
from bmark.models.catalog import GatewayModel

logger = get_logger("bmark.llm.vercel")


PREDEFINED_MODELS = [
    GatewayModel(id="openai/gpt-4o", name="GPT-4o", provider="OpenAI",
                 context_length=128000, description="Most capable GPT-4 model"),
    GatewayModel(id="openai/gpt-4o-mini", name="GPT-4o Mini", provider="OpenAI",
                 context_length=128000, description="Faster and cheaper GPT-4o model"),
    GatewayModel(id="openai/gpt-3.5-turbo", name="GPT-3.5 Turbo", provider="OpenAI",
                 context_length=16385, description="Fast and efficient model"),
    GatewayModel(id="anthropic/claude-3-5-sonnet", name="Claude 3.5 Sonnet", provider="Anthropic",
                 context_length=200000, description="Most intelligent Claude model"),
    GatewayModel(id="anthropic/claude-3-haiku", name="Claude 3 Haiku", provider="Anthropic",
                 context_length=200000, description="Fastest Claude model"),
    GatewayModel(id="google/gemini-1.5-pro", name="Gemini 1.5 Pro", provider="Google",
                 context_length=2000000, description="Google's most capable model"),
    GatewayModel(id="google/gemini-1.5-flash", name="Gemini 1.5 Flash", provider="Google",
                 context_length=1000000, description="Fast and efficient Gemini model"),
    GatewayModel(id="meta-llama/llama-3.1-70b-instruct", name="Llama 3.1 70B", provider="Meta",
                 context_length=131072, description="Meta's large language model"),
    GatewayModel(id="meta-llama/llama-3.1-8b-instruct", name="Llama 3.1 8B", provider="Meta",
                 context_length=131072, description="Smaller, faster Llama model"),
    GatewayModel(id="mistralai/mistral-large", name="Mistral Large", provider="Mistral AI",
                 context_length=128000, description="Mistral's most capable model"),
    GatewayModel(id="mistralai/mistral-small", name="Mistral Small", provider="Mistral AI",
                 context_length=32000, description="Efficient Mistral model"),
    GatewayModel(id="cohere/command-r-plus", name="Command R+", provider="Cohere",
                 context_length=128000, description="Cohere's advanced model"),
]


class VercelGatewayClient(OpenRouterClient):
    """
    Vercel AI Gateway client.

    Completions go through the gateway's OpenAI-compatible endpoint. The
    gateway does not list models, so ``get_models`` returns the predefined
    catalog.
    """

    BASE_URL = "https://ai-gateway.vercel.sh/v1"

    async def get_models(self) -> list[GatewayModel]:
        logger.debug("predefined_models", count=len(PREDEFINED_MODELS))
        return [model.model_copy() for model in PREDEFINED_MODELS]
