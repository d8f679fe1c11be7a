"""Database matchable: re-runs one query per poll and diffs the result rows."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Tuple

from ...entities.core import IdentityStrategy, MetaData
from ...utils.helpers import md5_of_parts
from ..base import SnapshotFolder, Storage
from .provider import DbProvider, DbRow, DbSearchTerm


@dataclass(frozen=True)
class DbMetaDataKey:
    """``table.column.index``; ``index`` tells apart repeated table/column pairs in one row."""

    table: str
    column: str
    index: int = 0

    def __str__(self) -> str:
        return f"{self.table}.{self.column}.{self.index}"


class DbMetaData(MetaData):
    """One result row keyed by :class:`DbMetaDataKey` strings, in column order."""

    @classmethod
    def from_row(cls, row: DbRow) -> "DbMetaData":
        meta_data = cls()
        seen: Counter[Tuple[str, str]] = Counter()
        for record in row:
            pair = (record.table, record.column)
            meta_data.put_property(str(DbMetaDataKey(record.table, record.column, seen[pair])), record.value)
            seen[pair] += 1
        return meta_data


def db_row_identity(meta_data: MetaData) -> str:
    """MD5 of every column key and its string value, in column order."""

    return md5_of_parts(meta_data.items())


class DbFolder(SnapshotFolder):
    """Snapshot folder over the rows returned by a query.

    A missing table is not tolerated: the DB adapter propagates it.
    """

    folder_label = "Database folder"
    entity_label = "rows"
    tolerate_missing = False

    def __init__(
        self,
        search_term: DbSearchTerm,
        provider: DbProvider,
        identity: IdentityStrategy = db_row_identity,
    ) -> None:
        super().__init__(identity)
        self._search_term = search_term
        self._provider = provider

    @property
    def search_term(self) -> DbSearchTerm:
        return self._search_term

    @property
    def provider(self) -> DbProvider:
        return self._provider

    @property
    def description(self) -> str:
        return f"query '{self._search_term.query}' on {self._provider.description}"

    def _poll(self) -> Iterable[MetaData]:
        for row in self._provider.select(self._search_term):
            yield DbMetaData.from_row(row)


class DbStorage(Storage[DbSearchTerm]):
    search_term_type = DbSearchTerm

    def __init__(self, provider: DbProvider) -> None:
        self.provider = provider

    def _create_folder(self, search_term: DbSearchTerm) -> DbFolder:
        return DbFolder(search_term, self.provider)


__all__ = ["DbMetaDataKey", "DbMetaData", "DbFolder", "DbStorage", "db_row_identity"]
