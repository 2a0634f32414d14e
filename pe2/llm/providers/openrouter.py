"""OpenRouter HTTP provider implementation."""

from typing import Any

import httpx

from pe2.logger import get_logger

from ..errors import AuthenticationError, LLMError
from ..types import Usage
from .base import _json_or_none
from .openai import OpenAIProvider

logger = get_logger(__name__)

DEFAULT_REFERER = "https://pe2-cli.local"
DEFAULT_TITLE = "PE2-CLI"


class OpenRouterProvider(OpenAIProvider):
    """OpenRouter HTTP API provider.

    Same request/response shape as OpenAI, plus the two caller
    identification headers OpenRouter requires and its billing errors.
    """

    id = "openrouter"
    default_base_url = "https://openrouter.ai/api/v1"

    def build_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": DEFAULT_REFERER,
            "X-Title": DEFAULT_TITLE,
            **self.config.headers,
        }

    def parse_usage(self, data: dict[str, Any]) -> Usage:
        usage = super().parse_usage(data)
        # Include cost if available
        raw = data.get("usage") or {}
        if "total_cost" in raw:
            usage.total_cost = raw["total_cost"]
        return usage

    def normalize_error(self, response: httpx.Response) -> LLMError:
        if response.status_code == 402:
            return AuthenticationError(
                "OpenRouter insufficient credits. Please check your account balance.",
                self.id,
                402,
            )
        if response.status_code == 403:
            detail = self.error_detail(_json_or_none(response))
            suffix = f": {detail}" if detail else ""
            return AuthenticationError(
                f"OpenRouter access denied. Please check your API key permissions{suffix}",
                self.id,
                403,
            )
        return super().normalize_error(response)

    def _account_headers(self) -> dict[str, str]:
        headers = self.build_headers()
        headers.pop("Content-Type", None)
        return headers

    async def list_models(self) -> list[dict[str, Any]]:
        """Fetch the model catalogue (``GET /models``).

        Returns:
            Model entries as returned by OpenRouter, empty when none are listed

        Raises:
            LLMError: Normalized backend or transport failure
        """
        data = await self._get(f"{self.base_url}/models", self._account_headers())
        models = data.get("data") or []
        logger.info("llm.models", provider=self.id, model_count=len(models))
        return models

    async def account_info(self) -> dict[str, Any]:
        """Fetch key usage and limits for the configured API key (``GET /auth/key``).

        Raises:
            LLMError: Normalized backend or transport failure
        """
        data = await self._get(f"{self.base_url}/auth/key", self._account_headers())
        logger.info("llm.account", provider=self.id)
        return data
