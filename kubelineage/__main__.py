"""Entry point for `python -m kubelineage`.

Usage:
    python -m kubelineage deploy/my-app -n default
"""

from __future__ import annotations

from kubelineage.cli import cli

cli()
