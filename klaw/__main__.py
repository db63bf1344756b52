"""Entry point for `python -m klaw`.

Usage:
    python -m klaw serve --config configs/config.yaml
    python -m klaw exec cluster status prod
"""

from __future__ import annotations

from klaw.cli import cli

cli()
