"""Matchable and storage contracts shared by every backend adapter."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar, Dict, Generic, Iterable, List, Type, TypeVar

from ..entities.core import IdentityStrategy, MetaData
from ..exceptions import (
    EntityNotFoundError,
    MatchableAlreadyOpenError,
    MatchableNotOpenError,
    StorageError,
)
from ..utils.logging import get_logger


class SearchTerm:
    """Marker base for backend-specific, immutable query descriptors."""


S = TypeVar("S", bound=SearchTerm)


class Matchable(ABC):
    """A pollable view over one backend target.

    ``CLOSED --open()--> OPEN --close()--> CLOSED``. Data operations require
    the open state.
    """

    @property
    @abstractmethod
    def is_open(self) -> bool: ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Human readable description of the polled target."""

    @abstractmethod
    def open(self) -> None: ...

    @abstractmethod
    def close(self) -> None: ...

    @abstractmethod
    def get_all_meta_data(self) -> List[MetaData]:
        """Poll the backend and return every observed record."""

    @abstractmethod
    def get_new_meta_data(self) -> List[MetaData]:
        """Poll the backend and return records absent from the previous poll."""

    @abstractmethod
    def get_meta_data_counts(self) -> str: ...

    def __enter__(self) -> "Matchable":
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self.is_open:
            self.close()


class SnapshotFolder(Matchable):
    """Matchable that diffs consecutive polls by identity key.

    Subclasses implement :meth:`_poll` to yield one :class:`MetaData` per raw
    backend record; identity keys come from the injected strategy. Only the
    identity map of the latest poll is retained.
    """

    folder_label: ClassVar[str] = "Folder"
    entity_label: ClassVar[str] = "entries"
    tolerate_missing: ClassVar[bool] = False

    def __init__(self, identity: IdentityStrategy) -> None:
        self._identity = identity
        self._is_open = False
        self._all_meta_data: Dict[str, MetaData] = {}
        self._new_meta_data: List[MetaData] = []
        self._logger = get_logger(component=type(self).__name__)

    @property
    def is_open(self) -> bool:
        return self._is_open

    def open(self) -> None:
        if self._is_open:
            raise MatchableAlreadyOpenError(f"{self.folder_label} is already open")
        self._on_open()
        self._all_meta_data = {}
        self._new_meta_data = []
        self._is_open = True
        self._logger.debug("Opened {target}", target=self.description)

    def close(self) -> None:
        self._ensure_open()
        try:
            self._on_close()
        finally:
            self._is_open = False
        self._logger.debug("Closed {target}", target=self.description)

    def get_all_meta_data(self) -> List[MetaData]:
        self._ensure_open()

        new_meta_data: List[MetaData] = []
        snapshot: Dict[str, MetaData] = {}
        for meta_data in self._collect():
            key = self._identity(meta_data)
            if key not in self._all_meta_data and key not in snapshot:
                new_meta_data.append(meta_data)
            snapshot[key] = meta_data

        self._all_meta_data = snapshot
        self._new_meta_data = new_meta_data
        return list(snapshot.values())

    def get_new_meta_data(self) -> List[MetaData]:
        self._ensure_open()
        self.get_all_meta_data()
        return list(self._new_meta_data)

    def get_meta_data_counts(self) -> str:
        self._ensure_open()
        return (
            f"Total {self.entity_label}: {len(self._all_meta_data)}, "
            f"new {self.entity_label}: {len(self._new_meta_data)}"
        )

    # -- internals -----------------------------------------------------------------

    def _ensure_open(self) -> None:
        if not self._is_open:
            raise MatchableNotOpenError(f"{self.folder_label} is not open")

    def _collect(self) -> List[MetaData]:
        try:
            return list(self._poll())
        except EntityNotFoundError as exc:
            if not self.tolerate_missing:
                raise
            self._logger.warning(
                "{target} does not exist, skipping to next poll attempt ({reason})",
                target=self.description,
                reason=str(exc),
            )
            return []
        except StorageError:
            raise
        except Exception as exc:
            raise StorageError(f"Unable to list the contents of {self.description}: {exc}") from exc

    def _on_open(self) -> None:
        """Hook for backend preparation when the folder is opened."""

    def _on_close(self) -> None:
        """Hook for backend cleanup when the folder is closed."""

    @abstractmethod
    def _poll(self) -> Iterable[MetaData]:
        """Query the backend once and yield freshly built meta data."""


class Storage(ABC, Generic[S]):
    """Factory turning a backend-specific search term into a matchable."""

    search_term_type: ClassVar[Type[SearchTerm]] = SearchTerm

    def get_folder(self, search_term: S) -> Matchable:
        if not isinstance(search_term, self.search_term_type):
            raise StorageError(
                f"{type(self).__name__} expects a {self.search_term_type.__name__}, "
                f"got {type(search_term).__name__}"
            )
        return self._create_folder(search_term)

    @abstractmethod
    def _create_folder(self, search_term: S) -> Matchable: ...


__all__ = ["SearchTerm", "Matchable", "SnapshotFolder", "Storage"]
