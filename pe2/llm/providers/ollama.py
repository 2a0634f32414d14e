"""Ollama local HTTP provider implementation."""

from typing import Any

import httpx

from ..errors import LLMError, NotFoundError, ParseError
from ..types import Choice, CompletionRequest, CompletionResponse, Message, Usage
from .base import DEFAULT_MAX_TOKENS, HTTPProvider, _json_or_none


class OllamaProvider(HTTPProvider):
    """Local Ollama server provider.

    Ollama needs no credential; the credential slot of the config may carry
    the server URL instead.
    """

    id = "ollama"
    default_base_url = "http://localhost:11434"
    requires_api_key = False

    @property
    def base_url(self) -> str:
        url = self.config.base_url
        if not url and self.config.api_key and self.config.api_key.startswith("http"):
            url = self.config.api_key
        return (url or self.default_base_url).rstrip("/")

    def endpoint(self, request: CompletionRequest) -> str:
        return f"{self.base_url}/api/chat"

    def build_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", **self.config.headers}

    def build_payload(self, request: CompletionRequest) -> dict[str, Any]:
        return {
            "model": request.model,
            "messages": [m.to_dict() for m in request.messages],
            "stream": False,
            "options": {
                "num_predict": (
                    max(1, request.max_tokens)
                    if request.max_tokens is not None
                    else DEFAULT_MAX_TOKENS
                ),
            },
        }

    def parse_response(
        self, data: dict[str, Any], request: CompletionRequest
    ) -> CompletionResponse:
        message = data.get("message")
        if not isinstance(message, dict):
            raise ParseError("No message in Ollama response", self.id)

        return CompletionResponse(
            choices=[
                Choice(
                    message=Message(role="assistant", content=message.get("content") or ""),
                    finish_reason=data.get("done_reason") or "stop",
                )
            ],
            model=data.get("model") or request.model,
            usage=Usage(),
            raw=data,
        )

    def normalize_error(self, response: httpx.Response) -> LLMError:
        detail = self.error_detail(_json_or_none(response))
        # Ollama reports a missing model as {"error": "model 'x' not found"}
        if "not found" in detail and response.status_code in (400, 404):
            return NotFoundError(
                f"Ollama model not found: {detail}. Run 'ollama pull' first.",
                self.id,
                response.status_code,
            )
        return super().normalize_error(response)
