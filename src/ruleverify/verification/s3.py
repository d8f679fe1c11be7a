"""Verification driver for objects in an S3-compatible bucket."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List

from ..config.settings import Settings
from ..entities.core import MetaData
from ..storage.s3 import (
    FileFolderS3Rule,
    FileMd5S3Rule,
    FileModtimeS3Rule,
    FileSizeS3Rule,
    S3MetaData,
    S3ObjectInfo,
    S3SearchTerm,
    S3Storage,
)
from .skeleton import VerificationSkeleton


class S3Verification(VerificationSkeleton):
    """Verify objects below ``directory`` whose last key segment matches ``object_name``.

    Only objects (keys not ending with ``/``) are considered by the
    ``verify_object_*`` calls.
    """

    def __init__(
        self,
        bucket_name: str,
        directory: str = "",
        object_name: str | None = None,
        is_regex: bool = False,
        *,
        recursive: bool = False,
        endpoint: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        region: str | None = None,
        storage: S3Storage | None = None,
        settings: Settings | None = None,
        **kwargs: Any,
    ) -> None:
        self.search_term = S3SearchTerm(
            bucket_name=bucket_name,
            directory=directory,
            object_name=object_name,
            is_regex=is_regex,
            recursive=recursive,
            endpoint=endpoint,
            access_key=access_key,
            secret_key=secret_key,
            region=region,
        )
        self.storage = storage or S3Storage(settings=settings)
        super().__init__(self.storage.get_folder(self.search_term), settings=settings, **kwargs)

    @property
    def monitor_name(self) -> str:
        return f"s3_monitor_{self.search_term.bucket_name}"

    def check_size(self, size: int) -> None:
        self.add_rule(FileSizeS3Rule(size, "checkSize", True, id_generator=self.id_generator))

    def check_size_different(self, size: int) -> None:
        self.add_rule(FileSizeS3Rule(size, "checkSizeDifferent", False, id_generator=self.id_generator))

    def check_modification_time(self, modification_time: datetime | int | float) -> None:
        """``modification_time`` is a datetime or UNIX seconds."""

        self.add_rule(
            FileModtimeS3Rule(
                modification_time, "checkModificationTime", True, id_generator=self.id_generator
            )
        )

    def check_modification_time_different(self, modification_time: datetime | int | float) -> None:
        self.add_rule(
            FileModtimeS3Rule(
                modification_time, "checkModificationTimeDifferent", False, id_generator=self.id_generator
            )
        )

    def check_md5(self, md5: str) -> None:
        self.add_rule(FileMd5S3Rule(md5, "checkMd5", True, id_generator=self.id_generator))

    def check_md5_different(self, md5: str) -> None:
        self.add_rule(FileMd5S3Rule(md5, "checkMd5Different", False, id_generator=self.id_generator))

    def verify_object_exists(self, only_new: bool = False) -> List[S3ObjectInfo]:
        return _object_infos(self.verify_exists(only_new))

    def verify_object_always_exists(self) -> List[S3ObjectInfo]:
        return _object_infos(self.verify_always_exists())

    def verify_object_never_exists(self) -> None:
        self.verify_never_exists()

    def verify_object_does_not_exist(self) -> None:
        self.verify_does_not_exist()

    def _entity_rule(self) -> FileFolderS3Rule:
        return FileFolderS3Rule(True, "checkIsFile", id_generator=self.id_generator)


def _object_infos(meta_data: List[MetaData]) -> List[S3ObjectInfo]:
    return [item.object_info for item in meta_data if isinstance(item, S3MetaData)]


__all__ = ["S3Verification"]
