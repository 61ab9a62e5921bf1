"""Command line interface (`python -m directory_sync.cli`)."""

from .__main__ import main

__all__ = ["main"]
