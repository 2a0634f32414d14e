"""Provider registration and lookup system."""

from typing import Dict

import httpx

from ..config import ProviderConfig
from ..errors import ConfigurationError
from .base import Provider


class ProviderRegistry:
    """Registry mapping provider identifiers to provider classes."""

    def __init__(self):
        self._providers: Dict[str, type] = {}
        self._aliases: Dict[str, str] = {}

    def register(self, provider_cls: type, aliases: tuple[str, ...] = ()) -> None:
        """Register a provider class.

        Args:
            provider_cls: Provider class with an ``id`` attribute
            aliases: Extra identifiers resolving to the same class
        """
        self._providers[provider_cls.id] = provider_cls
        for alias in aliases:
            self._aliases[alias] = provider_cls.id

    def resolve(self, provider_id: str) -> str:
        """Return the canonical identifier for ``provider_id``.

        Raises:
            ConfigurationError: If provider not found
        """
        key = (provider_id or "").strip().lower()
        key = self._aliases.get(key, key)
        if key not in self._providers:
            available = ", ".join(self._providers.keys())
            raise ConfigurationError(
                f"Unsupported provider: '{provider_id}'. "
                f"Available providers: {available or 'none'}",
                provider_id,
            )
        return key

    def get(
        self,
        provider_id: str,
        config: ProviderConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> Provider:
        """Construct a provider by ID.

        Args:
            provider_id: Provider identifier
            config: Credentials, model and endpoint settings
            http_client: Optional shared async HTTP client

        Returns:
            Provider instance

        Raises:
            ConfigurationError: If provider not found or config invalid
        """
        provider_cls = self._providers[self.resolve(provider_id)]
        return provider_cls(config, http_client=http_client)

    def list(self) -> list[str]:
        """List all registered provider IDs.

        Returns:
            List of provider identifiers
        """
        return list(self._providers.keys())


# Global registry instance
_registry = ProviderRegistry()


def register_provider(provider_cls: type, aliases: tuple[str, ...] = ()) -> None:
    """Register a provider in the global registry."""
    _registry.register(provider_cls, aliases)


def get_provider(
    provider_id: str,
    config: ProviderConfig,
    http_client: httpx.AsyncClient | None = None,
) -> Provider:
    """Construct a provider from the global registry."""
    return _registry.get(provider_id, config, http_client)


def resolve_provider_id(provider_id: str) -> str:
    """Canonical provider identifier from the global registry."""
    return _registry.resolve(provider_id)


def list_providers() -> list[str]:
    """List all registered provider IDs."""
    return _registry.list()
