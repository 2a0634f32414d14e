"""LLM provider implementations."""

from .anthropic import AnthropicProvider
from .base import HTTPProvider, Provider
from .gemini import GeminiProvider
from .ollama import OllamaProvider
from .openai import OpenAIProvider
from .openrouter import OpenRouterProvider
from .registry import (
    ProviderRegistry,
    get_provider,
    list_providers,
    register_provider,
    resolve_provider_id,
)

# Register providers
register_provider(OpenAIProvider)
register_provider(OpenRouterProvider)
register_provider(AnthropicProvider, aliases=("claude",))
register_provider(GeminiProvider, aliases=("google",))
register_provider(OllamaProvider)

__all__ = [
    "Provider",
    "HTTPProvider",
    "ProviderRegistry",
    "OpenAIProvider",
    "OpenRouterProvider",
    "AnthropicProvider",
    "GeminiProvider",
    "OllamaProvider",
    "register_provider",
    "get_provider",
    "resolve_provider_id",
    "list_providers",
]
