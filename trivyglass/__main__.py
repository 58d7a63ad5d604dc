"""Entry point for `python -m trivyglass`.

Usage:
    python -m trivyglass clusters list
    python -m trivyglass reports vulnerabilityreports --cluster prod
"""

from __future__ import annotations

from trivyglass.cli import cli

cli()
