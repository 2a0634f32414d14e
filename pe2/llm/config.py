"""Provider configuration."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ProviderConfig:
    """Configuration for one provider instance.

    For the local Ollama backend ``api_key`` may hold the base URL instead
    of a credential; ``base_url`` wins when both are set.
    """

    provider_id: str
    api_key: str | None = None
    model: str | None = None
    base_url: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    timeout_s: float = 120
    safety_settings: list[dict[str, Any]] | None = None

    def redacted(self) -> dict[str, Any]:
        """Config as a dict with the API key masked, for logs and display."""
        key = self.api_key
        if key and not key.startswith("http"):
            key = key[:8] + "..."
        return {
            "provider_id": self.provider_id,
            "api_key": key,
            "model": self.model,
            "base_url": self.base_url,
            "headers": sorted(self.headers),
            "timeout_s": self.timeout_s,
        }
