"""LLM abstraction layer - pluggable provider system behind one completion contract."""

from .config import ProviderConfig
from .errors import (
    AuthenticationError,
    ConfigurationError,
    LLMError,
    NetworkError,
    NotFoundError,
    ParseError,
    PayloadTooLargeError,
    RateLimitError,
    SafetyBlockError,
    ServerError,
    ValidationError,
)
from .providers import get_provider, list_providers
from .types import Choice, CompletionRequest, CompletionResponse, Message, Usage

__all__ = [
    "ProviderConfig",
    "CompletionRequest",
    "CompletionResponse",
    "Choice",
    "Message",
    "Usage",
    "get_provider",
    "list_providers",
    "LLMError",
    "ConfigurationError",
    "ValidationError",
    "AuthenticationError",
    "RateLimitError",
    "NotFoundError",
    "PayloadTooLargeError",
    "ServerError",
    "SafetyBlockError",
    "NetworkError",
    "ParseError",
]
