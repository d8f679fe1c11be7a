"""Pollable backends: shared contracts plus filesystem, database and S3 adapters."""

from .base import Matchable, SearchTerm, SnapshotFolder, Storage

__all__ = ["SearchTerm", "Matchable", "SnapshotFolder", "Storage"]
