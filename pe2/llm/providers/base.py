"""Base provider protocol/interface and shared HTTP plumbing."""

import time
from typing import Any, Protocol, runtime_checkable

import httpx

from pe2.logger import get_logger

from ..config import ProviderConfig
from ..errors import (
    ConfigurationError,
    LLMError,
    NetworkError,
    ParseError,
    ValidationError,
    error_for_status,
    parse_retry_after,
)
from ..types import ALLOWED_ROLES, CompletionRequest, CompletionResponse

logger = get_logger(__name__)

DEFAULT_MAX_TOKENS = 2048


@runtime_checkable
class Provider(Protocol):
    """Protocol for LLM providers."""

    id: str
    config: ProviderConfig

    def validate_config(self, cfg: ProviderConfig) -> None:
        """Validate provider-specific config.

        Args:
            cfg: Provider configuration

        Raises:
            ConfigurationError: If configuration is invalid
        """
        ...

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Execute completion request and return response.

        Args:
            request: Completion request data

        Returns:
            Normalized completion response

        Raises:
            LLMError: One of the shared taxonomy subclasses
        """
        ...


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def validate_request(request: CompletionRequest, provider_id: str) -> None:
    """Reject malformed requests before any network call.

    Raises:
        ValidationError: If model, messages or stream flag are unusable
    """
    if not isinstance(request.model, str) or not request.model.strip():
        raise ValidationError(
            f"{provider_id} model parameter is required and must be a non-empty string",
            provider_id,
        )
    if not request.messages:
        raise ValidationError(
            f"{provider_id} messages parameter must be a non-empty list", provider_id
        )
    for message in request.messages:
        if message.role not in ALLOWED_ROLES:
            raise ValidationError(
                f"Invalid message role: {message.role!r}. "
                f"Must be one of {', '.join(ALLOWED_ROLES)}",
                provider_id,
            )
        if not isinstance(message.content, str) or not message.content:
            raise ValidationError(
                "Message content is required and must be a non-empty string",
                provider_id,
            )
    if request.stream:
        raise ValidationError(
            f"{provider_id} streaming responses are not supported", provider_id
        )


def split_system(request: CompletionRequest) -> tuple[str | None, list]:
    """Split a request into merged system text and the remaining turns."""
    system_parts = [m.content for m in request.messages if m.role == "system"]
    conversation = [m for m in request.messages if m.role != "system"]
    system = "\n\n".join(system_parts) if system_parts else None
    return system, conversation


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class HTTPProvider:
    """Shared request lifecycle for HTTP JSON chat backends.

    Subclasses supply ``endpoint``, ``build_headers``, ``build_payload`` and
    ``parse_response``, and may refine ``check_request`` and
    ``normalize_error`` for backend-specific rules.
    """

    id = "http"
    default_base_url = ""
    requires_api_key = True

    def __init__(
        self,
        config: ProviderConfig,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.validate_config(config)
        self.config = config
        self._http_client = http_client

    def validate_config(self, cfg: ProviderConfig) -> None:
        if self.requires_api_key and not (cfg.api_key and cfg.api_key.strip()):
            raise ConfigurationError(
                f"{self.id} API key is required and must be a non-empty string",
                self.id,
            )
        if cfg.timeout_s <= 0 or cfg.timeout_s > 3600:
            raise ConfigurationError(
                f"Invalid timeout_s: {cfg.timeout_s}. Must be between 1 and 3600 seconds.",
                self.id,
            )

    @property
    def base_url(self) -> str:
        return (self.config.base_url or self.default_base_url).rstrip("/")

    # Hooks -----------------------------------------------------------------

    def check_request(self, request: CompletionRequest) -> None:
        """Backend-specific structural checks; runs after ``validate_request``."""

    def endpoint(self, request: CompletionRequest) -> str:
        raise NotImplementedError

    def build_headers(self) -> dict[str, str]:
        raise NotImplementedError

    def build_payload(self, request: CompletionRequest) -> dict[str, Any]:
        raise NotImplementedError

    def parse_response(
        self, data: dict[str, Any], request: CompletionRequest
    ) -> CompletionResponse:
        raise NotImplementedError

    def error_detail(self, body: Any) -> str:
        """Pull a human-readable message out of an error body."""
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            if isinstance(error, str):
                return error
            if body.get("message"):
                return str(body["message"])
        return ""

    def normalize_error(self, response: httpx.Response) -> LLMError:
        """Convert a non-2xx response into the shared taxonomy."""
        body = _json_or_none(response)
        detail = self.error_detail(body) or response.reason_phrase
        retry_after = parse_retry_after(response.headers.get("retry-after"))
        return error_for_status(response.status_code, self.id, detail, retry_after)

    # Lifecycle -------------------------------------------------------------

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Validate, send and normalize one completion.

        Args:
            request: Completion request data

        Returns:
            Normalized completion response

        Raises:
            ValidationError: Before any network call, for malformed requests
            LLMError: Normalized backend or transport failure
        """
        start_time = time.time()
        try:
            validate_request(request, self.id)
            self.check_request(request)

            logger.info(
                "llm.complete",
                event="llm.complete.start",
                provider=self.id,
                model=request.model,
                message_count=len(request.messages),
                max_tokens=request.max_tokens,
            )

            data = await self._post(
                self.endpoint(request),
                self.build_headers(),
                self.build_payload(request),
            )
            response = self.parse_response(data, request)
        except LLMError as e:
            logger.error(
                "llm.complete.error",
                event="llm.complete.error",
                provider=self.id,
                model=request.model,
                error_type=type(e).__name__,
                error_message=str(e),
                status_code=e.status_code,
                elapsed_ms=int((time.time() - start_time) * 1000),
            )
            raise

        response.provider = self.id
        response.elapsed_ms = int((time.time() - start_time) * 1000)

        logger.info(
            "llm.complete.success",
            event="llm.complete.success",
            provider=self.id,
            model=response.model,
            elapsed_ms=response.elapsed_ms,
            usage={
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            },
        )
        return response

    async def _post(
        self, url: str, headers: dict[str, str], payload: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._request("POST", url, headers, payload)

    async def _get(self, url: str, headers: dict[str, str]) -> dict[str, Any]:
        return await self._request("GET", url, headers)

    async def _request(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        timeout_s = self.config.timeout_s
        try:
            if self._http_client is not None:
                response = await self._http_client.request(
                    method, url, headers=headers, json=payload, timeout=timeout_s
                )
            else:
                async with httpx.AsyncClient(timeout=timeout_s) as client:
                    response = await client.request(method, url, headers=headers, json=payload)
        except httpx.TimeoutException as e:
            raise NetworkError(
                f"{self.id} request timed out (timeout: {timeout_s}s)", self.id
            ) from e
        except httpx.TransportError as e:
            raise NetworkError(
                f"{self.id} network error: {e}. Please check your connection.", self.id
            ) from e

        if response.status_code >= 400:
            raise self.normalize_error(response)

        data = _json_or_none(response)
        if not isinstance(data, dict):
            raise ParseError(
                f"{self.id} returned a response that is not a JSON object",
                self.id,
                response.status_code,
            )
        return data
