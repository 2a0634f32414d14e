"""User configuration loading, resolution and persistence."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

from pe2.llm.config import ProviderConfig
from pe2.llm.errors import ConfigurationError
from pe2.llm.providers.registry import resolve_provider_id

CONFIG_ENV_VAR = "PE2_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".pe2" / "config.yaml"

DEFAULT_PROVIDER = "openai"

DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-sonnet-20241022",
    "gemini": "gemini-1.5-flash-latest",
    "openrouter": "openai/gpt-4o-mini",
    "ollama": "llama3.2",
}

# Ollama takes its base URL where the others take a key
PROVIDER_ENV_VARS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GOOGLE_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
    "ollama": "OLLAMA_BASE_URL",
}


@dataclass
class Settings:
    """Resolved user settings."""

    provider: str = DEFAULT_PROVIDER
    model: Optional[str] = None
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    timeout_s: float = 120

    def to_provider_config(self) -> ProviderConfig:
        """Build the provider config the registry expects."""
        return ProviderConfig(
            provider_id=self.provider,
            api_key=self.api_key,
            model=self.model or DEFAULT_MODELS.get(self.provider),
            base_url=self.base_url,
            headers=dict(self.headers),
            timeout_s=self.timeout_s,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"provider": self.provider}
        for key in ("model", "api_key", "base_url"):
            value = getattr(self, key)
            if value:
                data[key] = value
        if self.headers:
            data["headers"] = dict(self.headers)
        if self.timeout_s != 120:
            data["timeout_s"] = self.timeout_s
        return data


def _safe_resolve(provider_id: Any) -> Optional[str]:
    try:
        return resolve_provider_id(str(provider_id))
    except ConfigurationError:
        return None


def config_path() -> Path:
    """Config file location, overridable with ``PE2_CONFIG``."""
    override = os.getenv(CONFIG_ENV_VAR)
    return Path(override).expanduser() if override else DEFAULT_CONFIG_PATH


def read_config_file(path: str | Path) -> dict[str, Any]:
    """Load the YAML config file.

    Returns:
        Parsed mapping, empty when the file does not exist

    Raises:
        ConfigurationError: If the file is not a YAML mapping
    """
    path = Path(path)
    if not path.exists():
        return {}

    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Malformed configuration file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")
    return data


def load_settings(
    path: str | Path | None = None,
    overrides: Optional[Mapping[str, Any]] = None,
    env: Optional[Mapping[str, str]] = None,
    use_dotenv: bool = True,
) -> Settings:
    """Resolve settings from file, environment and explicit overrides.

    Precedence, highest first: ``overrides`` (CLI flags), the config file,
    then environment variables for the credential.

    Args:
        path: Config file path (defaults to ``config_path()``)
        overrides: Non-None values replace file values
        env: Environment mapping (defaults to ``os.environ``)
        use_dotenv: Load a ``.env`` file into the environment first

    Returns:
        Resolved settings

    Raises:
        ConfigurationError: If the file is malformed or the provider unknown
    """
    if use_dotenv:
        load_dotenv()
    env = os.environ if env is None else env

    data = read_config_file(path or config_path())
    overrides = {key: value for key, value in (overrides or {}).items() if value is not None}

    provider = resolve_provider_id(
        str(overrides.get("provider") or data.get("provider") or DEFAULT_PROVIDER)
    )
    # Stored model/key/base_url belong to the stored provider only
    if data.get("provider") and _safe_resolve(data["provider"]) != provider:
        for key in ("model", "api_key", "base_url"):
            data.pop(key, None)
    data.update(overrides)

    api_key = data.get("api_key")
    if not api_key:
        api_key = env.get(PROVIDER_ENV_VARS.get(provider, "")) or None

    headers = data.get("headers") or {}
    if not isinstance(headers, dict):
        raise ConfigurationError("'headers' must be a mapping")

    try:
        timeout_s = float(data.get("timeout_s", 120))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid timeout_s: {data.get('timeout_s')!r}") from e

    return Settings(
        provider=provider,
        model=data.get("model") or DEFAULT_MODELS.get(provider),
        api_key=api_key,
        base_url=data.get("base_url"),
        headers={str(k): str(v) for k, v in headers.items()},
        timeout_s=timeout_s,
    )


def save_settings(settings: Settings, path: str | Path | None = None) -> Path:
    """Write settings as YAML, readable by the owner only.

    Returns:
        Path written
    """
    path = Path(path or config_path())
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w") as f:
        yaml.safe_dump(settings.to_dict(), f, default_flow_style=False, sort_keys=False)
    os.chmod(path, 0o600)
    return path
