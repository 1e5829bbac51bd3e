"""Command line interface (``xlsx-indexer`` / ``python -m xlsx_indexer``)."""

from .__main__ import main

__all__ = ["main"]
