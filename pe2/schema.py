"""Schema helpers for PE2 prompts and refinement history."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

REQUIRED_FIELDS: tuple[str, ...] = ("context", "role", "task", "constraints", "output")


class PromptValidationError(ValueError):
    """Raised when a PE2 prompt fails validation."""


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def is_filled(value: Any) -> bool:
    """True for a non-empty string, list or dict."""
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, dict)):
        return len(value) > 0
    return False


def normalize_field(name: str, value: Any) -> Any:
    """Coerce a raw field value into one of the shapes a PE2 field allows.

    ``task``/``constraints`` keep lists of strings, ``output`` keeps dicts,
    everything else becomes a string. Returns None for empty values.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value if value.strip() else None
    if isinstance(value, list) and name in ("task", "constraints"):
        items = [item if isinstance(item, str) else str(item) for item in value if item is not None]
        items = [item for item in items if item.strip()]
        return items or None
    if isinstance(value, dict) and name == "output":
        return value or None
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False) if value else None
    return str(value)


@dataclass
class PE2Prompt:
    """The five-field structured prompt."""

    context: str
    role: str
    task: str | list[str]
    constraints: str | list[str]
    output: str | dict[str, Any]

    def __post_init__(self):
        missing = [name for name in REQUIRED_FIELDS if not is_filled(getattr(self, name))]
        if missing:
            raise PromptValidationError(
                f"PE2 prompt fields must be non-empty: {', '.join(missing)}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PE2Prompt:
        """Build from a mapping, normalizing field shapes.

        Raises:
            PromptValidationError: If any required field is missing or empty
        """
        values = {name: normalize_field(name, data.get(name)) for name in REQUIRED_FIELDS}
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in REQUIRED_FIELDS}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


@dataclass
class RefinementHistoryEntry:
    """One entry of the edit history produced by a refinement run."""

    iteration: int
    edits: str
    timestamp: str = field(default_factory=_utc_now)

    def __post_init__(self):
        if self.iteration < 1:
            raise PromptValidationError(f"iteration must be >= 1, got {self.iteration}")
        if not self.edits:
            raise PromptValidationError("edits must be non-empty")

    def to_dict(self) -> dict[str, Any]:
        return {"iteration": self.iteration, "edits": self.edits, "timestamp": self.timestamp}
