"""Google Gemini generateContent provider implementation."""

from typing import Any

import httpx

from ..errors import (
    AuthenticationError,
    LLMError,
    NotFoundError,
    ParseError,
    RateLimitError,
    SafetyBlockError,
    ValidationError,
    parse_retry_after,
)
from ..types import Choice, CompletionRequest, CompletionResponse, Message, Usage
from .base import DEFAULT_MAX_TOKENS, HTTPProvider, _json_or_none, clamp, split_system

DEFAULT_SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_MEDIUM_AND_ABOVE"},
]

# Candidate finish reasons that mean the output was withheld by a filter
SAFETY_FINISH_REASONS = {"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII"}

ROLE_MAP = {"user": "user", "assistant": "model"}


class GeminiProvider(HTTPProvider):
    """Gemini REST provider.

    The system instruction is sent outside the turn list, assistant turns
    are renamed ``model``, earlier turns form the chat history and the last
    turn is the live input.
    """

    id = "gemini"
    default_base_url = "https://generativelanguage.googleapis.com/v1beta"
    max_stop_sequences = 5

    def check_request(self, request: CompletionRequest) -> None:
        _, conversation = split_system(request)
        if not conversation:
            raise ValidationError(
                "Gemini requires at least one user message besides system messages",
                self.id,
            )

    def endpoint(self, request: CompletionRequest) -> str:
        model = request.model.removeprefix("models/")
        return f"{self.base_url}/models/{model}:generateContent"

    def build_headers(self) -> dict[str, str]:
        return {
            "x-goog-api-key": self.config.api_key,
            "Content-Type": "application/json",
            **self.config.headers,
        }

    def split_turns(
        self, conversation: list[Message]
    ) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        """Return (history, live_turn) in Gemini content format."""
        turns = [
            {"role": ROLE_MAP[m.role], "parts": [{"text": m.content}]}
            for m in conversation
        ]
        return turns[:-1], turns[-1]

    def build_payload(self, request: CompletionRequest) -> dict[str, Any]:
        system, conversation = split_system(request)
        history, live_turn = self.split_turns(conversation)

        generation_config: dict[str, Any] = {
            "maxOutputTokens": (
                max(1, request.max_tokens)
                if request.max_tokens is not None
                else DEFAULT_MAX_TOKENS
            ),
        }
        if request.temperature is not None:
            generation_config["temperature"] = clamp(request.temperature, 0, 2)
        if request.top_p is not None:
            generation_config["topP"] = clamp(request.top_p, 0, 1)
        if request.top_k is not None:
            generation_config["topK"] = int(clamp(request.top_k, 1, 100))
        if request.stop:
            generation_config["stopSequences"] = request.stop[: self.max_stop_sequences]

        payload: dict[str, Any] = {
            "contents": history + [live_turn],
            "generationConfig": generation_config,
            "safetySettings": self.config.safety_settings or DEFAULT_SAFETY_SETTINGS,
        }
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}
        return payload

    def parse_response(
        self, data: dict[str, Any], request: CompletionRequest
    ) -> CompletionResponse:
        feedback = data.get("promptFeedback") or {}
        if feedback.get("blockReason"):
            raise SafetyBlockError(
                f"Gemini content blocked: {feedback['blockReason']}", self.id
            )

        candidates = data.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            raise ParseError("No candidates in Gemini response", self.id)

        choices = []
        for candidate in candidates:
            finish = candidate.get("finishReason") or "STOP"
            if finish in SAFETY_FINISH_REASONS:
                raise SafetyBlockError(
                    f"Gemini content blocked due to safety filters ({finish})", self.id
                )
            parts = (candidate.get("content") or {}).get("parts") or []
            text = "".join(part.get("text", "") for part in parts if part.get("text"))
            choices.append(
                Choice(
                    message=Message(role="assistant", content=text),
                    finish_reason=finish.lower(),
                )
            )

        metadata = data.get("usageMetadata") or {}
        return CompletionResponse(
            choices=choices,
            model=data.get("modelVersion") or request.model,
            usage=Usage(
                prompt_tokens=metadata.get("promptTokenCount", 0),
                completion_tokens=metadata.get("candidatesTokenCount", 0),
                total_tokens=metadata.get("totalTokenCount", 0),
            ),
            raw=data,
        )

    def normalize_error(self, response: httpx.Response) -> LLMError:
        body = _json_or_none(response)
        error = body.get("error") if isinstance(body, dict) else None
        if not isinstance(error, dict):
            return super().normalize_error(response)

        message = str(error.get("message") or "")
        status = str(error.get("status") or "")
        code = response.status_code

        if "API_KEY_INVALID" in message or status in ("UNAUTHENTICATED", "PERMISSION_DENIED"):
            return AuthenticationError(
                f"Gemini authentication failed. Please check your API key: {message}",
                self.id,
                code,
            )
        if status == "RESOURCE_EXHAUSTED" or code == 429:
            retry_after = parse_retry_after(response.headers.get("retry-after"))
            return RateLimitError(
                f"Gemini quota or rate limit exceeded: {message}", self.id, code, retry_after
            )
        if status == "NOT_FOUND":
            return NotFoundError(f"Gemini model not found: {message}", self.id, code)
        if "SAFETY" in message:
            return SafetyBlockError(
                f"Gemini content blocked due to safety filters: {message}", self.id, code
            )
        return super().normalize_error(response)
