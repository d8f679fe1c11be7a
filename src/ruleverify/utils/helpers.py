"""General-purpose helpers shared by storages and rules."""

from __future__ import annotations

import hashlib
import os
import re
from datetime import datetime, timezone
from typing import Any, Iterable, Tuple

_MATCH_ALL = ".*"


def md5_of_parts(parts: Iterable[Tuple[str, Any]]) -> str:
    """Return the MD5 hex digest of ``key`` + ``str(value)`` concatenated in order."""

    digest = hashlib.md5()
    for key, value in parts:
        digest.update(str(key).encode("utf-8"))
        digest.update(str(value).encode("utf-8"))
    return digest.hexdigest()


def normalize_dir_path(path: str) -> str:
    """Return an absolute, normalised directory path ending with a separator."""

    normalized = os.path.normpath(os.path.abspath(os.path.expanduser(path)))
    if not normalized.endswith(os.sep):
        normalized += os.sep
    return normalized


def compile_name_pattern(name: str | None, is_regex: bool) -> re.Pattern[str]:
    """Compile a file or object name filter.

    ``None`` matches every name. Plain names are matched literally and in
    full; regular expressions must also match the whole name.
    """

    if name is None:
        return re.compile(_MATCH_ALL)
    if is_regex:
        return re.compile(name)
    return re.compile(re.escape(name))


def to_naive_utc(value: datetime) -> datetime:
    """Drop tz information after converting aware datetimes to UTC."""

    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def from_epoch_seconds(seconds: float | int | str) -> datetime:
    """Convert a UNIX timestamp (seconds) into a naive UTC datetime."""

    return datetime.fromtimestamp(float(seconds), tz=timezone.utc).replace(tzinfo=None)


__all__ = [
    "md5_of_parts",
    "normalize_dir_path",
    "compile_name_pattern",
    "to_naive_utc",
    "from_epoch_seconds",
]
