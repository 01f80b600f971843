"""
Configuration loader for coparrot.

The tool reads a JSON file named ``config.json`` from the ``~/.coparrot/``
directory in the user's home directory. The loader validates the structure
and returns an immutable :class:`AppConfig` which is passed explicitly to
the providers and commands that need it.

If the configuration file is missing, malformed, or missing required
keys, a :class:`ConfigError` is raised.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


CONFIG_FILENAME = "config.json"
API_KEY_ENV = "COPARROT_API_KEY"
SUPPORTED_PROVIDERS = ("openai", "claude", "gemini", "ollama")


class ConfigError(Exception):
    """Raised when the configuration file is missing or invalid."""

    pass


@dataclass(frozen=True)
class AppConfig:
    """Validated settings for one invocation."""

    provider: str
    model: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    request_timeout: float = 60.0
    max_tokens: int = 1024
    language: str = "en"
    commit_convention: str = "conventional"
    branch_naming: str = "gitflow"
    pr_style: str = "detailed"
    review_style: str = "detailed"
    custom_instructions: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


_STRING_KEYS = (
    "api_key",
    "base_url",
    "language",
    "commit_convention",
    "branch_naming",
    "pr_style",
    "review_style",
    "custom_instructions",
)


def _get_config_directory() -> Path:
    """Return the directory holding the coparrot configuration (``~/.coparrot``)."""
    return Path.home() / ".coparrot"


def config_path() -> Path:
    return _get_config_directory() / CONFIG_FILENAME


def parse_config(data: Dict[str, Any]) -> AppConfig:
    """Validate a raw configuration mapping and build an :class:`AppConfig`.

    Raises
    ------
    ConfigError
        If required keys are missing or a value has the wrong type.
    """
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a JSON object")

    required_keys = ["provider", "model"]
    missing = [key for key in required_keys if key not in data]
    if missing:
        logger.error("Configuration file missing required keys: %s", missing)
        raise ConfigError(f"Missing required configuration keys: {', '.join(missing)}")

    if not isinstance(data.get("provider"), str):
        raise ConfigError("'provider' must be a string")
    if not isinstance(data.get("model"), str) or not data["model"].strip():
        raise ConfigError("'model' must be a non-empty string")

    provider = data["provider"].strip().lower()
    if provider not in SUPPORTED_PROVIDERS:
        raise ConfigError(
            f"Unsupported provider '{data['provider']}'. Expected one of: {', '.join(SUPPORTED_PROVIDERS)}"
        )

    for key in _STRING_KEYS:
        if key in data and data[key] is not None and not isinstance(data[key], str):
            raise ConfigError(f"'{key}' must be a string")
    timeout = data.get("request_timeout", 60)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError("'request_timeout' must be a positive number")
    max_tokens = data.get("max_tokens", 1024)
    if isinstance(max_tokens, bool) or not isinstance(max_tokens, int) or max_tokens <= 0:
        raise ConfigError("'max_tokens' must be a positive integer")

    api_key = data.get("api_key") or os.environ.get(API_KEY_ENV)
    if provider != "ollama" and not api_key:
        raise ConfigError(f"'api_key' is required for provider '{provider}' (or set {API_KEY_ENV})")

    return AppConfig(
        provider=provider,
        model=data["model"].strip(),
        api_key=api_key,
        base_url=data.get("base_url"),
        request_timeout=float(timeout),
        max_tokens=max_tokens,
        language=data.get("language") or "en",
        commit_convention=data.get("commit_convention") or "conventional",
        branch_naming=data.get("branch_naming") or "gitflow",
        pr_style=data.get("pr_style") or "detailed",
        review_style=data.get("review_style") or "detailed",
        custom_instructions=data.get("custom_instructions") or "",
    )


def load_config() -> AppConfig:
    """Load the configuration from the user's home directory.

    Raises
    ------
    ConfigError
        If the configuration file is missing, malformed, or invalid.
    """
    path = config_path()
    if not path.exists():
        logger.error("Configuration file '%s' does not exist", path)
        raise ConfigError(
            f"Missing configuration file: {path}. Run 'coparrot setup' to create it."
        )

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Failed to read or parse configuration file: %s", exc)
        raise ConfigError(f"Invalid JSON in {path.name}: {exc}") from exc

    config = parse_config(data)
    logger.debug("Loaded configuration from: %s (provider=%s, model=%s)", path, config.provider, config.model)
    return config


def save_config(config: AppConfig) -> Path:
    """Write ``config`` to the user's configuration file and return its path."""
    path = config_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")
        try:
            os.chmod(path, 0o600)
        except OSError:
            logger.debug("Could not restrict permissions on %s", path)
    except OSError as exc:
        raise ConfigError(f"Could not write configuration file {path}: {exc}") from exc
    logger.debug("Saved configuration to: %s", path)
    return path
