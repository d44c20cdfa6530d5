"""Error taxonomy of the meal ingestion pipeline."""
from __future__ import annotations


class MensaError(Exception):
    """Base class for every pipeline failure."""


class FetchError(MensaError):
    """Network, HTTP status or XML parse failure while fetching a venue feed."""

    def __init__(self, location: str, message: str) -> None:
        super().__init__(f"{location}: {message}")
        self.location = location


class StructuralDataError(MensaError):
    """Parsed feed is missing a node the normalizer relies on."""


class StorageError(MensaError):
    """Reading or writing persisted meal rows failed."""
