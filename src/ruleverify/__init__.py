"""Top-level package for the ruleverify polling verification engine."""

from __future__ import annotations

from importlib.metadata import version

try:
    __version__ = version("ruleverify")
except Exception:  # pragma: no cover - fallback during local development
    __version__ = "0.1.0"

from .config.settings import Settings, get_settings
from .entities import MetaData
from .exceptions import (
    RuleVerificationError,
    StorageError,
    VerificationFailedError,
)
from .verification import (
    DbVerification,
    FileSystemVerification,
    S3Verification,
    VerificationMode,
)

__all__ = [
    "__version__",
    "Settings",
    "get_settings",
    "MetaData",
    "RuleVerificationError",
    "StorageError",
    "VerificationFailedError",
    "FileSystemVerification",
    "DbVerification",
    "S3Verification",
    "VerificationMode",
]
