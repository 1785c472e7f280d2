"""Configuration loading from environment variables."""

from __future__ import annotations

import os

from kubelineage.models.config import FetchConfig, LineageConfig, LogConfig, RenderConfig


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"KUBELINEAGE_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    raw = _env(key, str(default))
    try:
        val = int(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid integer for KUBELINEAGE_{key}: {raw!r}") from exc
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def load_config() -> LineageConfig:
    """Load configuration from KUBELINEAGE_* environment variables."""
    return LineageConfig(
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
        render=RenderConfig(
            show_group=_env_bool("SHOW_GROUP", False),
            max_traversal_depth=_env_int("MAX_TRAVERSAL_DEPTH", 256, min_val=8, max_val=4096),
        ),
        fetch=FetchConfig(
            concurrency=_env_int("FETCH_CONCURRENCY", 8, min_val=1, max_val=64),
            request_timeout=_env_int("REQUEST_TIMEOUT", 30, min_val=1, max_val=300),
        ),
    )
