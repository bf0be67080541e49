"""
Guard configuration loaded from environment variables, and logging setup.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal, Optional

import structlog
from pydantic_settings import BaseSettings, SettingsConfigDict


class GuardSettings(BaseSettings):
    """Access guard configuration."""

    model_config = SettingsConfigDict(env_prefix="GUARD_", env_file=".env", extra="ignore")

    # Request fields carrying the resource identifiers
    organization_header: str = "x-organization-id"
    project_header: str = "x-project-id"
    environment_header: str = "x-environment-id"
    deleted_status_param: str = "deleted-status"

    # Upper bound for each collaborator call; None disables the bound
    lookup_timeout_seconds: Optional[float] = 10.0

    # Logging
    log_level: str = "info"
    log_format: Literal["json", "text"] = "json"


@lru_cache
def get_settings() -> GuardSettings:
    return GuardSettings()


def configure_logging(settings: GuardSettings | None = None) -> None:
    """Route the guard's structlog events per ``log_level`` / ``log_format``."""
    settings = settings or get_settings()
    renderer = (
        structlog.processors.JSONRenderer()
        if settings.log_format == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    min_level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(min_level, int):
        raise ValueError(f"Unknown log level: {settings.log_level}")

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", key="ts"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
    )
