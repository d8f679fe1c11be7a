"""Policy models controlling polling and the default backend clients."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Sequence

import yaml
from pydantic import BaseModel, Field, model_validator


class PollingPolicy(BaseModel):
    """Default polling window applied when a driver does not override it.

    All durations are expressed in seconds. ``timeout_seconds`` bounds the
    whole poll loop; ``None`` leaves only ``attempts`` as the limit.
    """

    initial_delay_seconds: float = Field(default=0.0, ge=0.0)
    interval_seconds: float = Field(default=1.0, ge=0.0)
    attempts: int = Field(default=10, ge=1)
    timeout_seconds: float | None = Field(default=30.0, gt=0.0)


class DatabasePolicy(BaseModel):
    """Defaults for the SQLAlchemy-backed database provider."""

    url: str | None = Field(
        default=None,
        description="SQLAlchemy URL used when a driver is created without a provider.",
    )
    echo: bool = False


class ObjectStoragePolicy(BaseModel):
    """Defaults for the boto3-backed S3 client."""

    endpoint_url: str | None = None
    region: str | None = None
    path_style_addressing: bool = True


class FileSystemPolicy(BaseModel):
    """Controls for the local filesystem client."""

    md5_chunk_size: int = Field(default=64 * 1024, ge=1)
    follow_symlinks: bool = True


class Policies(BaseModel):
    """Root policy container."""

    policy_version: str = Field(default="2026-10-01")
    polling: PollingPolicy = Field(default_factory=PollingPolicy)
    database: DatabasePolicy = Field(default_factory=DatabasePolicy)
    object_storage: ObjectStoragePolicy = Field(default_factory=ObjectStoragePolicy)
    filesystem: FileSystemPolicy = Field(default_factory=FileSystemPolicy)

    @model_validator(mode="after")
    def _validate_policy_version(self) -> "Policies":
        if not self.policy_version:
            raise ValueError("policy_version must be provided")
        return self


def _ensure_nested_mapping(
    cursor: MutableMapping[str, Any], part: str, full_path: Sequence[str]
) -> MutableMapping[str, Any]:
    existing = cursor.get(part)
    if existing is None:
        next_cursor: MutableMapping[str, Any] = {}
        cursor[part] = next_cursor
        return next_cursor
    if not isinstance(existing, MutableMapping):
        raise ValueError(
            f"Cannot override policy path '{'/'.join(full_path)}' because segment "
            f"'{part}' resolves to a non-mapping value"
        )
    return existing


def _resolve_env_overrides(raw: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    """Apply RULEVERIFY_POLICY__ environment variable overrides.

    ``RULEVERIFY_POLICY__POLLING__ATTEMPTS=3`` sets ``polling.attempts``. Values
    are JSON-decoded when possible, otherwise kept as raw strings.
    """

    prefix = "RULEVERIFY_POLICY__"
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        parts = [segment.lower() for segment in key[len(prefix) :].split("__") if segment]
        if not parts:
            continue
        cursor: MutableMapping[str, Any] = raw
        for index, part in enumerate(parts[:-1], start=1):
            cursor = _ensure_nested_mapping(cursor, part, parts[: index + 1])
        try:
            parsed = json.loads(value)
        except (TypeError, json.JSONDecodeError):
            parsed = value
        cursor[parts[-1]] = parsed
    return raw


def load_policies(source: os.PathLike[str] | str | Mapping[str, Any] | None = None) -> Policies:
    """Load policies from a mapping or YAML file with environment overrides."""

    if source is None:
        raw: MutableMapping[str, Any] = {}
    elif isinstance(source, Mapping):
        raw = dict(source)
    else:
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Policy file not found: {path}")
        with path.open("r", encoding="utf-8") as handle:
            loaded = yaml.safe_load(handle)
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, MutableMapping):
            raise ValueError(f"Policy file '{path}' must contain a mapping at the top level")
        raw = dict(loaded)
    hydrated = _resolve_env_overrides(raw)
    return Policies.model_validate(hydrated)


__all__ = [
    "Policies",
    "PollingPolicy",
    "DatabasePolicy",
    "ObjectStoragePolicy",
    "FileSystemPolicy",
    "load_policies",
]
