"""Anthropic Messages API provider implementation."""

from typing import Any

import httpx

from ..errors import (
    AuthenticationError,
    LLMError,
    NotFoundError,
    PayloadTooLargeError,
    RateLimitError,
    ServerError,
    ValidationError,
    parse_retry_after,
)
from ..types import Choice, CompletionRequest, CompletionResponse, Message, Usage
from .base import DEFAULT_MAX_TOKENS, HTTPProvider, _json_or_none, clamp, split_system

ANTHROPIC_VERSION = "2023-06-01"

# Anthropic error.type -> taxonomy class
_ERROR_TYPES = {
    "invalid_request_error": ValidationError,
    "authentication_error": AuthenticationError,
    "permission_error": AuthenticationError,
    "not_found_error": NotFoundError,
    "request_too_large": PayloadTooLargeError,
    "rate_limit_error": RateLimitError,
    "api_error": ServerError,
    "overloaded_error": ServerError,
}


class AnthropicProvider(HTTPProvider):
    """Anthropic Messages API provider.

    System messages travel in a separate top-level ``system`` field and the
    remaining conversation must open with a user turn.
    """

    id = "anthropic"
    default_base_url = "https://api.anthropic.com/v1"
    max_stop_sequences = 4

    def check_request(self, request: CompletionRequest) -> None:
        _, conversation = split_system(request)
        if not conversation:
            raise ValidationError(
                "Anthropic requires at least one user message besides system messages",
                self.id,
            )
        if conversation[0].role != "user":
            raise ValidationError(
                "Anthropic conversation must start with a user message", self.id
            )

    def endpoint(self, request: CompletionRequest) -> str:
        return f"{self.base_url}/messages"

    def build_headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.config.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
            **self.config.headers,
        }

    def build_payload(self, request: CompletionRequest) -> dict[str, Any]:
        system, conversation = split_system(request)
        payload: dict[str, Any] = {
            "model": request.model,
            "messages": [m.to_dict() for m in conversation],
            "max_tokens": (
                max(1, request.max_tokens)
                if request.max_tokens is not None
                else DEFAULT_MAX_TOKENS
            ),
        }
        if system:
            payload["system"] = system
        if request.temperature is not None:
            payload["temperature"] = clamp(request.temperature, 0, 1)
        if request.top_p is not None:
            payload["top_p"] = clamp(request.top_p, 0, 1)
        if request.top_k is not None:
            payload["top_k"] = max(1, request.top_k)
        if request.stop:
            payload["stop_sequences"] = request.stop[: self.max_stop_sequences]
        return payload

    def parse_response(
        self, data: dict[str, Any], request: CompletionRequest
    ) -> CompletionResponse:
        content = data.get("content")
        if isinstance(content, list):
            text = "".join(
                block.get("text") or ""
                for block in content
                if isinstance(block, dict) and block.get("type") == "text"
            )
        elif isinstance(content, dict):
            text = content.get("text") or ""
        elif isinstance(content, str):
            text = content
        else:
            text = ""

        usage = data.get("usage") or {}
        input_tokens = usage.get("input_tokens", 0) or 0
        output_tokens = usage.get("output_tokens", 0) or 0

        return CompletionResponse(
            choices=[
                Choice(
                    message=Message(role="assistant", content=text),
                    finish_reason=data.get("stop_reason") or "stop",
                )
            ],
            model=data.get("model") or request.model,
            usage=Usage(
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
            ),
            raw=data,
        )

    def normalize_error(self, response: httpx.Response) -> LLMError:
        body = _json_or_none(response)
        error = body.get("error") if isinstance(body, dict) else None
        error_type = error.get("type") if isinstance(error, dict) else None
        error_cls = _ERROR_TYPES.get(error_type)
        if error_cls is None:
            return super().normalize_error(response)

        detail = self.error_detail(body) or response.reason_phrase
        retry_after = parse_retry_after(response.headers.get("retry-after"))
        if error_cls is RateLimitError:
            hint = f", retry after {retry_after:g}s" if retry_after is not None else ""
            return RateLimitError(
                f"Anthropic rate limit exceeded{hint}: {detail}",
                self.id,
                response.status_code,
                retry_after,
            )
        return error_cls(
            f"Anthropic {error_type} (HTTP {response.status_code}): {detail}",
            self.id,
            response.status_code,
        )
