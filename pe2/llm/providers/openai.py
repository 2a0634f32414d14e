"""OpenAI chat-completions HTTP provider implementation."""

from typing import Any

from ..errors import ParseError
from ..types import Choice, CompletionRequest, CompletionResponse, Message, Usage
from .base import DEFAULT_MAX_TOKENS, HTTPProvider, clamp


def extract_text(content: Any) -> str:
    """Flatten a message ``content`` that may be a string or a list of parts."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, dict) and part.get("type", "text") == "text":
                parts.append(part.get("text") or "")
            elif isinstance(part, str):
                parts.append(part)
        return "".join(parts)
    return str(content)


class OpenAIProvider(HTTPProvider):
    """OpenAI-compatible chat completions provider."""

    id = "openai"
    default_base_url = "https://api.openai.com/v1"
    max_stop_sequences = 4

    def endpoint(self, request: CompletionRequest) -> str:
        return f"{self.base_url}/chat/completions"

    def build_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            **self.config.headers,
        }

    def build_payload(self, request: CompletionRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": request.model,
            "messages": [m.to_dict() for m in request.messages],
            "max_tokens": (
                max(1, request.max_tokens)
                if request.max_tokens is not None
                else DEFAULT_MAX_TOKENS
            ),
            "temperature": (
                clamp(request.temperature, 0, 2)
                if request.temperature is not None
                else 0.7
            ),
            "top_p": clamp(request.top_p, 0, 1) if request.top_p is not None else 1,
            "frequency_penalty": (
                clamp(request.frequency_penalty, -2, 2)
                if request.frequency_penalty is not None
                else 0
            ),
            "presence_penalty": (
                clamp(request.presence_penalty, -2, 2)
                if request.presence_penalty is not None
                else 0
            ),
            "stream": False,
        }
        if request.stop:
            payload["stop"] = request.stop[: self.max_stop_sequences]
        return payload

    def parse_usage(self, data: dict[str, Any]) -> Usage:
        usage = data.get("usage") or {}
        prompt_tokens = usage.get("prompt_tokens", 0) or 0
        completion_tokens = usage.get("completion_tokens", 0) or 0
        return Usage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=usage.get("total_tokens") or prompt_tokens + completion_tokens,
        )

    def parse_response(
        self, data: dict[str, Any], request: CompletionRequest
    ) -> CompletionResponse:
        raw_choices = data.get("choices")
        if not isinstance(raw_choices, list) or not raw_choices:
            raise ParseError(f"No choices in {self.id} response", self.id)

        choices = []
        for raw in raw_choices:
            message = raw.get("message") or {}
            choices.append(
                Choice(
                    message=Message(
                        role="assistant",
                        content=extract_text(message.get("content")),
                    ),
                    finish_reason=raw.get("finish_reason") or "stop",
                )
            )

        return CompletionResponse(
            choices=choices,
            model=data.get("model") or request.model,
            usage=self.parse_usage(data),
            raw=data,
        )
