"""kubelineage command-line interface.

Exposes:
    cli -- Click command entry point (registered as ``kubelineage`` script).
"""

from kubelineage.cli.main import cli

__all__ = ["cli"]
