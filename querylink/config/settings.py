"""Link configuration loading and validation."""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, ClassVar, Dict, Literal

import yaml
from pydantic import AnyHttpUrl, Field, PositiveFloat
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_FILE_ENV = "QUERYLINK_CONFIG_FILE"

DEFAULT_CONFIG_LOCATIONS: tuple[Path, ...] = (
    Path("./config/querylink.yaml"),
    Path("./config/querylink.yml"),
    Path("./config/querylink.json"),
)


class LinkSettings(BaseSettings):
    """Validated settings for the HTTP link."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="QUERYLINK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    endpoint: AnyHttpUrl = Field(
        default="http://localhost:4000/graphql",
        description="Query service endpoint.",
    )
    default_headers: Dict[str, str] = Field(
        default_factory=dict,
        description="Headers sent with every request; request context headers win.",
    )
    use_get_for_queries: bool = Field(
        default=False,
        description="Send read-only operations without files as GET requests.",
    )
    follow_redirects: bool = Field(
        default=False,
        description="Follow HTTP redirects returned by the endpoint.",
    )
    timeout_seconds: PositiveFloat | None = Field(
        default=30.0,
        description="Per-request network timeout; None disables it.",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Minimum log level used by the command-line entry point.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        if isinstance(value, str):
            return value.upper()
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[LinkSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Environment and .env values take precedence over the config file.
        return init_settings, env_settings, dotenv_settings, _config_file_source, file_secret_settings


_LOADERS: Dict[str, Callable[[str], Any]] = {
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
    ".json": json.loads,
}


def _config_file_source(settings_cls: type[BaseSettings] | None = None) -> Dict[str, Any]:
    explicit = os.getenv(CONFIG_FILE_ENV)
    if explicit:
        path = Path(explicit).expanduser()
        if path.suffix.lower() not in _LOADERS:
            raise ValueError(f"Unsupported querylink config file type: {path}")
        return _read_config(path) if path.is_file() else {}
    path = next((candidate for candidate in DEFAULT_CONFIG_LOCATIONS if candidate.is_file()), None)
    return _read_config(path) if path is not None else {}


def _read_config(path: Path) -> Dict[str, Any]:
    load = _LOADERS[path.suffix.lower()]
    try:
        raw = load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise RuntimeError(f"Failed to read querylink config file {path}") from exc
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ValueError(f"Invalid querylink config file {path}") from exc
    if not isinstance(raw, (dict, type(None))):
        raise ValueError(f"querylink config file {path} must contain a mapping at top level.")
    return raw or {}


@lru_cache()
def get_settings() -> LinkSettings:
    """Return memoized link settings."""

    return LinkSettings()
