# catalog/domain/errors.py
from __future__ import annotations
from typing import Any, Optional


class CatalogError(Exception):
    """Base class for every error raised inside the catalog engine."""


class NormalizationError(CatalogError):
    """
    A source record has no primary key of its own.
    The only hard failure of the normalizer; callers drop the record and keep going.
    """
    def __init__(self, message: str, *, source_kind: str, record: Any = None):
        super().__init__(message)
        self.source_kind = source_kind
        self.record = record


class LiveSourceError(CatalogError):
    """
    Any failure of the live backend: network, timeout, bad status, malformed or empty payload.
    Never leaves the orchestrator; it only triggers the static fallback.
    """
    def __init__(self, message: str, *, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class DatasetError(CatalogError):
    """The static dataset could not be loaded (missing file, bad JSON, wrong shape)."""
