"""Configuration utilities for the verification engine."""

from .policies import (
    DatabasePolicy,
    FileSystemPolicy,
    ObjectStoragePolicy,
    Policies,
    PollingPolicy,
    load_policies,
)
from .settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "Policies",
    "load_policies",
    "PollingPolicy",
    "DatabasePolicy",
    "ObjectStoragePolicy",
    "FileSystemPolicy",
]
