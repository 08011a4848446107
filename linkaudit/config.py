"""Audit configuration built from defaults, environment and explicit overrides."""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, field
from typing import List, Optional

from .checker import UNAVAILABLE_PHRASES, VIDEO_HOSTS
from .fetcher import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT

LOGGER = logging.getLogger(__name__)

DEFAULT_SAMPLE_SIZE = 10
DEFAULT_CONCURRENCY = 1


class ConfigError(Exception):
    """Raised when the audit cannot start because configuration is invalid."""


@dataclass
class AuditConfig:
    """Settings for one audit session."""

    sample_size: int = DEFAULT_SAMPLE_SIZE
    timeout: float = DEFAULT_TIMEOUT
    concurrency: int = DEFAULT_CONCURRENCY
    user_agent: str = DEFAULT_USER_AGENT
    video_hosts: List[str] = field(default_factory=lambda: list(VIDEO_HOSTS))
    unavailable_phrases: List[str] = field(
        default_factory=lambda: list(UNAVAILABLE_PHRASES)
    )


@dataclass
class AuditOverrides:
    """Optional audit overrides (CLI flags, tool arguments)."""

    sample_size: Optional[int] = None
    timeout: Optional[float] = None
    concurrency: Optional[int] = None
    user_agent: Optional[str] = None


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw.strip())
    except ValueError:
        value = None
    if value is None or not math.isfinite(value) or value <= 0:
        LOGGER.warning("Invalid %s '%s'; falling back to %s.", name, raw, default)
        return default
    return value


def _apply_overrides(config: AuditConfig, overrides: AuditOverrides) -> None:
    """Apply optional overrides to an AuditConfig."""
    if overrides.sample_size is not None:
        config.sample_size = overrides.sample_size
    if overrides.timeout is not None:
        config.timeout = overrides.timeout
    if overrides.concurrency is not None:
        config.concurrency = overrides.concurrency
    if overrides.user_agent:
        config.user_agent = overrides.user_agent


def validate_config(config: AuditConfig) -> AuditConfig:
    if config.sample_size < 1:
        raise ConfigError(f"Sample size must be at least 1, got {config.sample_size}")
    if config.concurrency < 1:
        raise ConfigError(f"Concurrency must be at least 1, got {config.concurrency}")
    if not math.isfinite(config.timeout) or config.timeout <= 0:
        raise ConfigError(f"Timeout must be positive, got {config.timeout}")
    return config


def build_audit_config(overrides: Optional[AuditOverrides] = None) -> AuditConfig:
    """AuditConfig from environment variables, then explicit overrides.

    Environment variables are read at call time so late ``.env`` loading and
    test monkeypatching both work.
    """
    config = AuditConfig(
        sample_size=_env_number("LINKAUDIT_SAMPLE_SIZE", DEFAULT_SAMPLE_SIZE, int),
        timeout=_env_number("LINKAUDIT_TIMEOUT", DEFAULT_TIMEOUT, float),
        concurrency=_env_number("LINKAUDIT_CONCURRENCY", DEFAULT_CONCURRENCY, int),
        user_agent=os.getenv("LINKAUDIT_USER_AGENT") or DEFAULT_USER_AGENT,
    )
    if overrides:
        _apply_overrides(config, overrides)
    return validate_config(config)


def mongodb_uri() -> str:
    """Return ``MONGODB_URI`` or raise ConfigError when it is missing."""
    uri = os.getenv("MONGODB_URI")
    if not uri:
        raise ConfigError("MONGODB_URI is not defined (set it in .env.local or .env).")
    return uri
