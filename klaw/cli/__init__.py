"""klaw command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``klaw`` script).
"""

from klaw.cli.main import cli

__all__ = ["cli"]
