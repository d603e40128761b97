from __future__ import annotations


class IngestionError(Exception):
    """An element source could not be read or parsed."""
