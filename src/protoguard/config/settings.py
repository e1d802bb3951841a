"""Configuration settings and loading."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from protoguard.errors import ConfigValidationError, ErrorContext

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ProtoguardSettings(BaseSettings):
    """Configuration for protoguard."""

    model_config = SettingsConfigDict(
        env_prefix="PROTOGUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_reachable_states: int = Field(
        default=10_000,
        gt=0,
        description="Bound on the reachable-state closure computed when registering operations",
    )
    max_session_steps: int = Field(
        default=10_000,
        gt=0,
        description="Steps after which run_session aborts a script",
    )
    record_history: bool = Field(
        default=True,
        description="Keep a per-instance history of committed steps",
    )
    log_level: str = "INFO"
    log_json: bool = False

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: Any) -> str:
        if isinstance(v, int):
            v = logging.getLevelName(v)
        level = str(v).upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Valid: {sorted(_LOG_LEVELS)}")
        return level


def load_settings(config_path: str | Path | None = None) -> ProtoguardSettings:
    """Load settings from file and environment.

    Priority: env vars > config file > defaults

    Raises:
        ConfigValidationError: If the file is not a YAML mapping or a value is invalid.
    """
    config_data: dict[str, Any] = {}

    if config_path is not None:
        config_path = Path(config_path)
        if config_path.exists():
            with open(config_path) as f:
                try:
                    loaded = yaml.safe_load(f)
                except yaml.YAMLError as e:
                    raise ConfigValidationError(
                        message=f"Could not parse {config_path}: {e}",
                        context=ErrorContext(extra={"path": str(config_path)}),
                        cause=e,
                    ) from e
            if loaded is not None and not isinstance(loaded, dict):
                raise ConfigValidationError(
                    message=f"{config_path} must contain a mapping of settings",
                    value=loaded,
                    context=ErrorContext(extra={"path": str(config_path)}),
                )
            config_data = loaded or {}

    # Environment wins over the file; init kwargs would otherwise shadow it.
    for key in list(config_data):
        if f"PROTOGUARD_{key.upper()}" in os.environ:
            del config_data[key]

    try:
        return ProtoguardSettings(**config_data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        raise ConfigValidationError(
            message=first.get("msg", "Invalid configuration"),
            field=field or None,
            value=first.get("input"),
            cause=e,
        ) from e
