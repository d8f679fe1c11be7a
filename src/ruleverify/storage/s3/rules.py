"""Rules evaluating :class:`S3MetaData`."""

from __future__ import annotations

from datetime import datetime
from typing import List

from ...rules.base import DEFAULT_PRIORITY, HIGHEST_PRIORITY, AbstractRule, RuleIdGenerator
from ...utils.helpers import from_epoch_seconds, to_naive_utc
from .folder import S3MetaData


class S3Rule(AbstractRule[S3MetaData]):
    meta_data_type = S3MetaData


class FileSizeS3Rule(S3Rule):
    def __init__(
        self,
        size: int,
        name: str,
        expected_result: bool = True,
        priority: int = DEFAULT_PRIORITY,
        *,
        id_generator: RuleIdGenerator | None = None,
    ) -> None:
        super().__init__(name, expected_result, priority, id_generator=id_generator)
        self.size = size

    def perform_match(self, meta_data: S3MetaData) -> bool:
        return meta_data.get_property(S3MetaData.SIZE) == self.size

    def get_rule_description(self) -> str:
        return f"size {self.size}"

    def get_meta_data_keys(self) -> List[str]:
        return [S3MetaData.SIZE]


class FileMd5S3Rule(S3Rule):
    """Compares with the object ETag, which is the MD5 for single-part uploads."""

    def __init__(
        self,
        md5: str,
        name: str,
        expected_result: bool = True,
        priority: int = DEFAULT_PRIORITY,
        *,
        id_generator: RuleIdGenerator | None = None,
    ) -> None:
        super().__init__(name, expected_result, priority, id_generator=id_generator)
        self.md5 = md5.lower()

    def perform_match(self, meta_data: S3MetaData) -> bool:
        return str(meta_data.get_property(S3MetaData.MD5)).lower() == self.md5

    def get_rule_description(self) -> str:
        return f"md5 '{self.md5}'"

    def get_meta_data_keys(self) -> List[str]:
        return [S3MetaData.MD5]


class FileModtimeS3Rule(S3Rule):
    """Last-modified equality; accepts a datetime or UNIX seconds, compared at second precision."""

    def __init__(
        self,
        modification_time: datetime | int | float,
        name: str,
        expected_result: bool = True,
        priority: int = DEFAULT_PRIORITY,
        *,
        id_generator: RuleIdGenerator | None = None,
    ) -> None:
        super().__init__(name, expected_result, priority, id_generator=id_generator)
        if isinstance(modification_time, datetime):
            modification_time = to_naive_utc(modification_time)
        else:
            modification_time = from_epoch_seconds(modification_time)
        self.modification_time = modification_time.replace(microsecond=0)

    def perform_match(self, meta_data: S3MetaData) -> bool:
        actual = to_naive_utc(meta_data.get_property(S3MetaData.LAST_MODIFIED))
        return actual.replace(microsecond=0) == self.modification_time

    def get_rule_description(self) -> str:
        return f"modification time {self.modification_time.isoformat()}"

    def get_meta_data_keys(self) -> List[str]:
        return [S3MetaData.LAST_MODIFIED]


class FileFolderS3Rule(S3Rule):
    """Entity-kind rule: keys ending with ``/`` are folders, everything else is a file."""

    def __init__(
        self,
        is_file: bool = True,
        name: str = "checkIsFile",
        expected_result: bool = True,
        priority: int = HIGHEST_PRIORITY,
        *,
        id_generator: RuleIdGenerator | None = None,
    ) -> None:
        super().__init__(name, expected_result, priority, id_generator=id_generator)
        self.is_file = is_file

    def perform_match(self, meta_data: S3MetaData) -> bool:
        is_folder = str(meta_data.get_property(S3MetaData.FILE_NAME)).endswith("/")
        return is_folder != self.is_file

    def get_rule_description(self) -> str:
        return "is a file" if self.is_file else "is a folder"

    def get_meta_data_keys(self) -> List[str]:
        return [S3MetaData.FILE_NAME]


__all__ = ["S3Rule", "FileSizeS3Rule", "FileMd5S3Rule", "FileModtimeS3Rule", "FileFolderS3Rule"]
