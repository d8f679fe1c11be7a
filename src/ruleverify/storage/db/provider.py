"""Database access used by the DB folder: records, providers and encryptors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Protocol, runtime_checkable

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError

from ...exceptions import EntityNotFoundError, StorageError
from ...utils.logging import get_logger
from ..base import SearchTerm

_LOGGER = get_logger(component="db.provider")


@dataclass(frozen=True)
class DbSearchTerm(SearchTerm):
    """SQL text with named bind parameters (``:name``) and a table label for keys."""

    query: str
    params: Mapping[str, Any] = field(default_factory=dict)
    table: str = ""


@dataclass(frozen=True)
class DbRecordValue:
    """One column value of a result row."""

    table: str
    column: str
    value: Any


DbRow = List[DbRecordValue]


@runtime_checkable
class DbProvider(Protocol):
    """Runs a search term and returns rows of column values in column order."""

    @property
    def description(self) -> str: ...

    def select(self, search_term: DbSearchTerm) -> List[DbRow]: ...


@runtime_checkable
class DbEncryptor(Protocol):
    """Turns a stored (encrypted) string into the plain value used for comparisons."""

    def decrypt(self, value: str) -> str: ...


class SqlAlchemyDbProvider:
    """Default provider running plain SQL through a SQLAlchemy engine."""

    def __init__(
        self,
        url: str | None = None,
        *,
        engine: Engine | None = None,
        echo: bool = False,
    ) -> None:
        if engine is None:
            if not url:
                raise StorageError("A database URL or an engine is required")
            try:
                engine = create_engine(url, echo=echo)
            except (SQLAlchemyError, ImportError) as exc:
                raise StorageError(f"Unable to create a database engine: {exc}") from exc
        self.engine = engine

    @property
    def description(self) -> str:
        return self.engine.url.render_as_string(hide_password=True)

    def select(self, search_term: DbSearchTerm) -> List[DbRow]:
        try:
            with self.engine.connect() as connection:
                result = connection.execute(text(search_term.query), dict(search_term.params))
                columns = list(result.keys())
                rows = [
                    [
                        DbRecordValue(search_term.table, column, value)
                        for column, value in zip(columns, row)
                    ]
                    for row in result
                ]
        except NoSuchTableError as exc:
            raise EntityNotFoundError(f"Table '{exc}' does not exist") from exc
        except SQLAlchemyError as exc:
            raise StorageError(
                f"Unable to run query '{search_term.query}' on {self.description}: {exc}"
            ) from exc

        _LOGGER.debug(
            "Query returned {count} rows from {target}", count=len(rows), target=self.description
        )
        return rows

    def dispose(self) -> None:
        self.engine.dispose()


__all__ = [
    "DbSearchTerm",
    "DbRecordValue",
    "DbRow",
    "DbProvider",
    "DbEncryptor",
    "SqlAlchemyDbProvider",
]
