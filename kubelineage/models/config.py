"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class RenderConfig:
    """Tree renderer configuration."""

    show_group: bool = False
    max_traversal_depth: int = 256


@dataclass
class FetchConfig:
    """Cluster fetch configuration."""

    concurrency: int = 8
    request_timeout: int = 30


@dataclass
class LineageConfig:
    """Top-level kubelineage configuration."""

    log: LogConfig = field(default_factory=LogConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
