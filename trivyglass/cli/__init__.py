"""trivyglass command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``trivyglass`` script).
"""

from trivyglass.cli.main import cli

__all__ = ["cli"]
