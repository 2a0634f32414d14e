"""Shared completion request and response data structures."""

from dataclasses import dataclass, field
from typing import Any

ALLOWED_ROLES = ("system", "user", "assistant")


@dataclass
class Message:
    """One chat message. Order within a request is meaningful."""

    role: str
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class CompletionRequest:
    """Backend-neutral chat completion request.

    Numeric sampling fields are optional; each provider clamps them into
    the range its backend accepts and drops the ones it does not support.
    """

    model: str
    messages: list[Message]
    max_tokens: int | None = None
    temperature: float | None = None
    top_p: float | None = None
    top_k: int | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    stop: list[str] | None = None
    stream: bool = False


@dataclass
class Usage:
    """Token accounting for one completion."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    total_cost: float | None = None

    def __add__(self, other: "Usage") -> "Usage":
        cost = None
        if self.total_cost is not None or other.total_cost is not None:
            cost = (self.total_cost or 0.0) + (other.total_cost or 0.0)
        return Usage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
            total_cost=cost,
        )


@dataclass
class Choice:
    """A single candidate completion."""

    message: Message
    finish_reason: str = "stop"


@dataclass
class CompletionResponse:
    """Backend-neutral completion response."""

    choices: list[Choice]
    model: str
    usage: Usage = field(default_factory=Usage)
    provider: str = ""
    elapsed_ms: int = 0
    raw: dict[str, Any] | None = None

    @property
    def text(self) -> str:
        """Content of the first choice, or an empty string."""
        if not self.choices:
            return ""
        return self.choices[0].message.content
