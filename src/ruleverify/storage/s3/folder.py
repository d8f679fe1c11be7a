"""Object storage matchable polling a bucket prefix."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Iterable

from ...config.settings import Settings, get_settings
from ...entities.core import IdentityStrategy, MetaData
from ...utils.helpers import compile_name_pattern
from ..base import SearchTerm, SnapshotFolder, Storage
from .operations import S3ObjectInfo, S3Operations


class S3MetaData(MetaData):
    BUCKET_NAME: ClassVar[str] = "bucket_name"
    FILE_NAME: ClassVar[str] = "file_name"
    SIZE: ClassVar[str] = "size"
    MD5: ClassVar[str] = "md5"
    LAST_MODIFIED: ClassVar[str] = "last_modified"

    def __init__(self, object_info: S3ObjectInfo) -> None:
        super().__init__()
        self._object_info = object_info
        self.put_property(self.BUCKET_NAME, object_info.bucket_name)
        self.put_property(self.FILE_NAME, object_info.key)
        self.put_property(self.SIZE, object_info.size)
        self.put_property(self.MD5, object_info.md5)
        self.put_property(self.LAST_MODIFIED, object_info.last_modified)

    @property
    def object_info(self) -> S3ObjectInfo:
        return self._object_info


def s3_identity(meta_data: MetaData) -> str:
    last_modified = meta_data.get_property(S3MetaData.LAST_MODIFIED)
    return f"{meta_data.get_property(S3MetaData.FILE_NAME)}{last_modified.isoformat()}"


@dataclass(frozen=True)
class S3SearchTerm(SearchTerm):
    bucket_name: str
    directory: str = ""
    object_name: str | None = None
    is_regex: bool = False
    recursive: bool = False
    endpoint: str | None = None
    access_key: str | None = None
    secret_key: str | None = field(default=None, repr=False)
    region: str | None = None


class S3Folder(SnapshotFolder):
    """Snapshot folder over the objects below a prefix; a missing bucket polls as empty."""

    folder_label = "S3 folder"
    entity_label = "objects"
    tolerate_missing = True

    def __init__(
        self,
        search_term: S3SearchTerm,
        operations: S3Operations,
        identity: IdentityStrategy = s3_identity,
    ) -> None:
        super().__init__(identity)
        self._search_term = search_term
        self._operations = operations
        self._pattern = compile_name_pattern(search_term.object_name, search_term.is_regex)

    @property
    def search_term(self) -> S3SearchTerm:
        return self._search_term

    @property
    def description(self) -> str:
        target = f"{self._search_term.directory}{self._search_term.object_name or ''}"
        return f"object '{target}' in {self._operations.description}"

    def _poll(self) -> Iterable[MetaData]:
        objects = self._operations.list_objects(
            self._search_term.directory, self._pattern, self._search_term.recursive
        )
        for object_info in objects:
            yield S3MetaData(object_info)


OperationsFactory = Callable[[S3SearchTerm], S3Operations]


class S3Storage(Storage[S3SearchTerm]):
    """Creates :class:`S3Folder` instances; endpoint and region default to configuration."""

    search_term_type = S3SearchTerm

    def __init__(
        self,
        operations_factory: OperationsFactory | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        self._operations_factory = operations_factory
        self._settings = settings

    def _create_folder(self, search_term: S3SearchTerm) -> S3Folder:
        if self._operations_factory is not None:
            operations = self._operations_factory(search_term)
        else:
            operations = self._default_operations(search_term)
        return S3Folder(search_term, operations)

    def _default_operations(self, search_term: S3SearchTerm) -> S3Operations:
        policy = (self._settings or get_settings()).policies.object_storage
        options: dict[str, Any] = {
            "endpoint": search_term.endpoint or policy.endpoint_url,
            "access_key": search_term.access_key,
            "secret_key": search_term.secret_key,
            "region": search_term.region or policy.region,
            "path_style_addressing": policy.path_style_addressing,
        }
        return S3Operations(search_term.bucket_name, **options)


__all__ = ["S3MetaData", "S3SearchTerm", "S3Folder", "S3Storage", "s3_identity"]
