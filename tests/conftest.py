"""Shared fixtures for the kubelineage test suite."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
import structlog


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    """Undo any logging configuration a test (or the CLI) installed."""
    yield
    structlog.reset_defaults()
