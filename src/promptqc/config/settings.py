"""Runner and logging settings.

Resolution order, highest first: keyword arguments, ``PROMPTQC_*``
environment variables, ``.env``, then a ``promptqc.yaml`` file. The YAML
file is the one named by ``PROMPTQC_CONFIG`` if set, otherwise the first
of ``./promptqc.yaml``, ``./config/promptqc.yaml`` and
``~/.config/promptqc/promptqc.yaml`` that exists.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "PROMPTQC_CONFIG"

_CONFIG_LOCATIONS = (
    Path("promptqc.yaml"),
    Path("config") / "promptqc.yaml",
    Path.home() / ".config" / "promptqc" / "promptqc.yaml",
)

_LOG_FORMATS = ("text", "json")
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def find_config_file() -> Path | None:
    """Locate the YAML settings file, if any."""
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        return Path(explicit)
    return next((p for p in _CONFIG_LOCATIONS if p.is_file()), None)


class Settings(BaseSettings):
    """Settings shared by the CLI and :meth:`QCRunner.from_settings`."""

    model_config = SettingsConfigDict(
        env_prefix="PROMPTQC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field("INFO", description="Root log level")
    log_format: str = Field("text", description="'text' or 'json'")
    sanitize_logs: bool = Field(True, description="Redact API keys and tokens from logs")

    fixture_encoding: str = Field("utf-8", description="Text encoding of fixture files")

    max_concurrency: int | None = Field(
        None,
        ge=1,
        description="Maximum units in flight at once (unset = no limit)",
    )
    offload_sync_callbacks: bool = Field(
        False,
        description="Run synchronous completion/test functions in a thread pool",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        config_file = find_config_file()
        if config_file is None:
            return init_settings, env_settings, dotenv_settings, file_secret_settings

        logger.debug("Reading settings from %s", config_file)
        yaml_settings = YamlConfigSettingsSource(settings_cls, yaml_file=config_file)
        return init_settings, env_settings, dotenv_settings, yaml_settings, file_secret_settings

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return value

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in _LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(_LOG_FORMATS)}")
        return value

    def runner_options(self) -> dict[str, Any]:
        """Keyword arguments for :class:`QCRunner`."""
        return {
            "max_concurrency": self.max_concurrency,
            "offload_sync_callbacks": self.offload_sync_callbacks,
            "fixture_encoding": self.fixture_encoding,
        }


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings, read once."""
    return Settings()
