"""Shared helpers used across the ruleverify CLI commands."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Sequence, Tuple

import typer
from rich.console import Console
from rich.table import Table

from ruleverify.config.settings import Settings
from ruleverify.entities.core import MetaData
from ruleverify.verification.monitor import PollingParameters
from ruleverify.verification.skeleton import VerificationSkeleton

console = Console()


class CLIError(RuntimeError):
    """Exception raised for user-facing CLI errors."""


class Mode(str, Enum):
    EXISTS = "exists"
    ALWAYS_EXISTS = "always-exists"
    NEVER_EXISTS = "never-exists"
    DOES_NOT_EXIST = "does-not-exist"


@dataclass(slots=True)
class CLIState:
    """State object attached to ``typer.Context`` for downstream commands."""

    settings: Settings
    overrides: Dict[str, Any]
    environment: str
    verbose: bool


def _merge_dict(dest: MutableMapping[str, Any], src: Mapping[str, Any]) -> None:
    for key, value in src.items():
        if isinstance(value, Mapping) and isinstance(dest.get(key), MutableMapping):
            _merge_dict(dest[key], value)  # type: ignore[index]
        elif isinstance(value, Mapping):
            dest[key] = dict(value)
        else:
            dest[key] = value


def parse_override(argument: str) -> Dict[str, Any]:
    """Parse dotted ``key=value`` overrides into nested dictionaries."""

    if "=" not in argument:
        raise typer.BadParameter("Overrides must be expressed as dotted.key=value")
    dotted, value = argument.split("=", 1)
    cursor: MutableMapping[str, Any] = {}
    current = cursor
    segments = [segment.strip() for segment in dotted.split(".") if segment.strip()]
    if not segments:
        raise typer.BadParameter("Override keys must not be empty")
    for segment in segments[:-1]:
        nested: Dict[str, Any] = {}
        current[segment] = nested
        current = nested
    try:
        parsed_value = json.loads(value)
    except json.JSONDecodeError:
        parsed_value = value
    current[segments[-1]] = parsed_value
    return cursor


def merge_overrides(overrides: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Merge override dictionaries using deep semantics."""

    result: Dict[str, Any] = {}
    for override in overrides:
        _merge_dict(result, override)
    return result


def parse_assignment(argument: str, *, option: str) -> Tuple[str, str]:
    """Split ``key=value``; the value is kept verbatim."""

    key, sep, value = argument.partition("=")
    if not sep or not key.strip():
        raise CLIError(f"{option} expects KEY=VALUE, got '{argument}'")
    return key.strip(), value


def parse_column(reference: str, *, option: str) -> Tuple[str, str]:
    """Split ``table.column``; a bare column uses an empty table label."""

    table, sep, column = reference.rpartition(".")
    if not column:
        raise CLIError(f"{option} expects TABLE.COLUMN, got '{reference}'")
    return (table if sep else ""), column


def configure_state(
    ctx: typer.Context,
    *,
    environment: str | None,
    overrides: Iterable[Dict[str, Any]],
    verbose: bool,
) -> None:
    """Populate ``ctx.obj`` with :class:`CLIState`."""

    merged = merge_overrides(overrides)
    payload = dict(merged)
    if environment:
        payload["environment"] = environment
    settings = Settings(**payload)
    ctx.obj = CLIState(
        settings=settings,
        overrides=merged,
        environment=settings.environment,
        verbose=verbose,
    )


def get_state(ctx: typer.Context) -> CLIState:
    """Return the previously configured :class:`CLIState`."""

    if ctx.obj is None:
        raise CLIError("CLI context is not initialised")
    if not isinstance(ctx.obj, CLIState):  # pragma: no cover - defensive guard
        raise CLIError("Unexpected CLI context payload")
    return ctx.obj


def apply_polling(
    driver: VerificationSkeleton,
    *,
    attempts: int | None,
    interval: float | None,
    initial_delay: float | None,
    timeout: float | None,
) -> PollingParameters:
    """Apply command line polling options and validate the resulting window."""

    driver.configure_polling(
        attempts=attempts, interval=interval, initial_delay=initial_delay, timeout=timeout
    )
    try:
        return driver.polling_parameters
    except ValueError as exc:
        raise CLIError(str(exc)) from exc


def render_meta_data(title: str, records: Sequence[MetaData]) -> None:
    """Print matched records as a Rich table, one column per property."""

    if not records:
        console.print(f"[green]{title}:[/green] no matching records")
        return
    columns: List[str] = []
    for record in records:
        for key in record.keys():
            if key not in columns:
                columns.append(key)

    table = Table(title=title)
    for column in columns:
        table.add_column(column or "-", overflow="fold")
    for record in records:
        table.add_row(*(_format(record.get_property(c)) if record.has_property(c) else "" for c in columns))
    console.print(table)


def _format(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    return "" if value is None else str(value)


__all__ = [
    "console",
    "CLIError",
    "CLIState",
    "Mode",
    "parse_override",
    "merge_overrides",
    "parse_assignment",
    "parse_column",
    "configure_state",
    "get_state",
    "apply_polling",
    "render_meta_data",
]
