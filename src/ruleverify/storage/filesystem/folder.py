"""Filesystem matchable: polls a directory for entries matching a name filter."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Iterable

from ...config.settings import Settings, get_settings
from ...entities.core import IdentityStrategy, MetaData
from ...exceptions import EntityNotFoundError
from ...utils.helpers import compile_name_pattern, normalize_dir_path
from ..base import SearchTerm, SnapshotFolder, Storage
from .operations import FileInfo, FileSystemOperations


class FileSystemMetaData(MetaData):
    """Meta data describing one file or folder."""

    PATH: ClassVar[str] = "path"
    NAME: ClassVar[str] = "name"
    SIZE: ClassVar[str] = "size"
    MODIFICATION_TIME: ClassVar[str] = "modification_time"
    UID: ClassVar[str] = "uid"
    GID: ClassVar[str] = "gid"
    PERMISSIONS: ClassVar[str] = "permissions"
    OWNER: ClassVar[str] = "owner"
    GROUP: ClassVar[str] = "group"
    IS_FILE: ClassVar[str] = "is_file"
    IS_DIRECTORY: ClassVar[str] = "is_directory"

    def __init__(self, file_info: FileInfo, operations: FileSystemOperations) -> None:
        super().__init__()
        self._file_info = file_info
        self._operations = operations
        self.put_property(self.PATH, file_info.path)
        self.put_property(self.NAME, file_info.name)
        self.put_property(self.SIZE, file_info.size)
        self.put_property(self.MODIFICATION_TIME, file_info.modification_time)
        self.put_property(self.UID, file_info.uid)
        self.put_property(self.GID, file_info.gid)
        self.put_property(self.PERMISSIONS, file_info.permissions)
        self.put_property(self.OWNER, file_info.owner)
        self.put_property(self.GROUP, file_info.group)
        self.put_property(self.IS_FILE, file_info.is_file)
        self.put_property(self.IS_DIRECTORY, file_info.is_directory)

    @property
    def file_info(self) -> FileInfo:
        return self._file_info

    def md5(self, binary_mode: bool = True) -> str:
        return self._operations.compute_md5(self._file_info.path, binary_mode)

    def contents(self) -> str:
        return self._operations.read_text(self._file_info.path)


def filesystem_identity(meta_data: MetaData) -> str:
    """``path.mtime.uid.gid``: a touched or re-owned file counts as new."""

    return ".".join(
        str(meta_data.get_property(key))
        for key in (
            FileSystemMetaData.PATH,
            FileSystemMetaData.MODIFICATION_TIME,
            FileSystemMetaData.UID,
            FileSystemMetaData.GID,
        )
    )


@dataclass(frozen=True)
class FileSystemSearchTerm(SearchTerm):
    directory: str
    name: str | None = None
    is_regex: bool = False
    recursive: bool = False


class FileSystemFolder(SnapshotFolder):
    """Snapshot folder over a local directory.

    A missing directory yields an empty poll with a warning; files removed
    between listing and stat are skipped.
    """

    folder_label = "File system folder"
    entity_label = "files"
    tolerate_missing = True

    def __init__(
        self,
        search_term: FileSystemSearchTerm,
        operations: FileSystemOperations,
        identity: IdentityStrategy = filesystem_identity,
    ) -> None:
        super().__init__(identity)
        self._search_term = search_term
        self._operations = operations
        self._directory = normalize_dir_path(search_term.directory)
        self._pattern = compile_name_pattern(search_term.name, search_term.is_regex)

    @property
    def search_term(self) -> FileSystemSearchTerm:
        return self._search_term

    @property
    def description(self) -> str:
        if not self._search_term.name:
            return f"folder '{self._directory}'"
        return f"file '{self._directory}{self._search_term.name}'"

    def _poll(self) -> Iterable[MetaData]:
        paths = self._operations.find_files(
            self._directory, self._pattern, self._search_term.recursive
        )
        for path in paths:
            try:
                file_info = self._operations.get_file_info(path)
            except EntityNotFoundError as exc:
                self._logger.warning(
                    "Unable to build up meta data for {path}: {reason}", path=path, reason=str(exc)
                )
                continue
            yield FileSystemMetaData(file_info, self._operations)


class FileSystemStorage(Storage[FileSystemSearchTerm]):
    search_term_type = FileSystemSearchTerm

    def __init__(
        self,
        operations: FileSystemOperations | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        if operations is None:
            policy = (settings or get_settings()).policies.filesystem
            operations = FileSystemOperations(
                md5_chunk_size=policy.md5_chunk_size,
                follow_symlinks=policy.follow_symlinks,
            )
        self.operations = operations

    def _create_folder(self, search_term: FileSystemSearchTerm) -> FileSystemFolder:
        return FileSystemFolder(search_term, self.operations)


__all__ = [
    "FileSystemMetaData",
    "FileSystemSearchTerm",
    "FileSystemFolder",
    "FileSystemStorage",
    "filesystem_identity",
]
