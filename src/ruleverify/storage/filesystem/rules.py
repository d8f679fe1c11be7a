"""Rules evaluating :class:`FileSystemMetaData`."""

from __future__ import annotations

import os
import re
from typing import Any, ClassVar, List

from ...exceptions import EntityNotFoundError, MetaDataIncorrectError
from ...rules.base import DEFAULT_PRIORITY, HIGHEST_PRIORITY, AbstractRule, RuleIdGenerator
from ...utils.logging import get_logger
from .folder import FileSystemMetaData
from .operations import FileSystemOperations

_LOGGER = get_logger(component="filesystem.rules")


class FileSystemRule(AbstractRule[FileSystemMetaData]):
    meta_data_type = FileSystemMetaData

    def _vanished(self, meta_data: FileSystemMetaData, exc: EntityNotFoundError) -> bool:
        # A file removed after listing never satisfies the rule, negated or not.
        _LOGGER.warning(
            "Unable to evaluate {rule} on {path}: {reason}",
            rule=self.name,
            path=meta_data.file_info.path,
            reason=str(exc),
        )
        return not self.expected_result


class FilePathRule(FileSystemRule):
    """Match the absolute path, or a directory plus a file name expression."""

    def __init__(
        self,
        path: str | None,
        name: str,
        expected_result: bool = True,
        priority: int = DEFAULT_PRIORITY,
        *,
        file_pattern: str | None = None,
        id_generator: RuleIdGenerator | None = None,
    ) -> None:
        super().__init__(name, expected_result, priority, id_generator=id_generator)
        self.path = os.path.abspath(path) if path is not None else None
        self.file_pattern = re.compile(file_pattern) if file_pattern is not None else None

    def perform_match(self, meta_data: FileSystemMetaData) -> bool:
        actual_path = meta_data.get_property(FileSystemMetaData.PATH)
        if self.path is None or actual_path is None:
            return False
        if self.file_pattern is None:
            return actual_path == self.path
        directory, file_name = os.path.split(actual_path)
        return directory == self.path.rstrip(os.sep) and bool(self.file_pattern.fullmatch(file_name))

    def get_rule_description(self) -> str:
        if self.file_pattern is None:
            return f"path '{self.path}'"
        return f"path '{self.path}' and name matching '{self.file_pattern.pattern}'"

    def get_meta_data_keys(self) -> List[str]:
        return [FileSystemMetaData.PATH]


class FileFolderRule(FileSystemRule):
    """Entity-kind rule: the entry is a regular file (or a folder)."""

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

    def perform_match(self, meta_data: FileSystemMetaData) -> bool:
        key = FileSystemMetaData.IS_FILE if self.is_file else FileSystemMetaData.IS_DIRECTORY
        return bool(meta_data.get_property(key))

    def get_rule_description(self) -> str:
        return "is a file" if self.is_file else "is a folder"

    def get_meta_data_keys(self) -> List[str]:
        return [FileSystemMetaData.IS_FILE, FileSystemMetaData.IS_DIRECTORY]


class FileAttributeRule(FileSystemRule):
    """Equality check on one numeric attribute of the file.

    Subclasses only name the attribute; the expected value can be given
    directly or read from a source file via :meth:`from_source_file`.
    """

    attribute_key: ClassVar[str]
    label: ClassVar[str]

    def __init__(
        self,
        value: Any,
        name: str,
        expected_result: bool = True,
        priority: int = DEFAULT_PRIORITY,
        *,
        id_generator: RuleIdGenerator | None = None,
    ) -> None:
        super().__init__(name, expected_result, priority, id_generator=id_generator)
        self.value = value

    @classmethod
    def from_source_file(
        cls,
        source_path: str,
        name: str,
        expected_result: bool = True,
        priority: int = DEFAULT_PRIORITY,
        *,
        operations: FileSystemOperations | None = None,
        id_generator: RuleIdGenerator | None = None,
    ):
        info = (operations or FileSystemOperations()).get_file_info(source_path)
        return cls(
            getattr(info, cls.attribute_key),
            name,
            expected_result,
            priority,
            id_generator=id_generator,
        )

    def perform_match(self, meta_data: FileSystemMetaData) -> bool:
        return meta_data.get_property(self.attribute_key) == self.value

    def get_rule_description(self) -> str:
        return f"{self.label} {self._format_value()}"

    def _format_value(self) -> str:
        return str(self.value)

    def get_meta_data_keys(self) -> List[str]:
        return [self.attribute_key]


class FileSizeRule(FileAttributeRule):
    attribute_key = FileSystemMetaData.SIZE
    label = "size"


class FileModtimeRule(FileAttributeRule):
    """Modification time in milliseconds since the epoch."""

    attribute_key = FileSystemMetaData.MODIFICATION_TIME
    label = "modification time"


class FileUidRule(FileAttributeRule):
    attribute_key = FileSystemMetaData.UID
    label = "uid"


class FileGidRule(FileAttributeRule):
    attribute_key = FileSystemMetaData.GID
    label = "gid"


class FilePermissionsRule(FileAttributeRule):
    """Permission bits; accepts an int (``0o644``) or an octal string (``"644"``)."""

    attribute_key = FileSystemMetaData.PERMISSIONS
    label = "permissions"

    def __init__(self, value: Any, *args: Any, **kwargs: Any) -> None:
        if isinstance(value, str):
            value = int(value, 8)
        super().__init__(value, *args, **kwargs)

    def _format_value(self) -> str:
        return format(self.value, "o")


class FileOwnerNameRule(FileAttributeRule):
    attribute_key = FileSystemMetaData.OWNER
    label = "owner"


class FileGroupNameRule(FileAttributeRule):
    attribute_key = FileSystemMetaData.GROUP
    label = "group"


class FileMd5Rule(FileSystemRule):
    def __init__(
        self,
        md5: str,
        name: str,
        expected_result: bool = True,
        priority: int = DEFAULT_PRIORITY,
        *,
        binary_mode: bool = True,
        id_generator: RuleIdGenerator | None = None,
    ) -> None:
        super().__init__(name, expected_result, priority, id_generator=id_generator)
        self.md5 = md5.lower()
        self.binary_mode = binary_mode

    @classmethod
    def from_source_file(
        cls,
        source_path: str,
        name: str,
        expected_result: bool = True,
        priority: int = DEFAULT_PRIORITY,
        *,
        binary_mode: bool = True,
        operations: FileSystemOperations | None = None,
        id_generator: RuleIdGenerator | None = None,
    ) -> "FileMd5Rule":
        md5 = (operations or FileSystemOperations()).compute_md5(source_path, binary_mode)
        return cls(
            md5, name, expected_result, priority, binary_mode=binary_mode, id_generator=id_generator
        )

    def perform_match(self, meta_data: FileSystemMetaData) -> bool:
        if not meta_data.file_info.is_file:
            return False
        try:
            return meta_data.md5(self.binary_mode) == self.md5
        except EntityNotFoundError as exc:
            return self._vanished(meta_data, exc)

    def get_rule_description(self) -> str:
        mode = "binary" if self.binary_mode else "text"
        return f"md5 '{self.md5}' ({mode} mode)"

    def get_meta_data_keys(self) -> List[str]:
        return [FileSystemMetaData.PATH]


class FileContentRule(FileSystemRule):
    """The file contains ``expression`` (literal text or a regular expression)."""

    def __init__(
        self,
        expression: str,
        name: str,
        is_regex: bool = False,
        expected_result: bool = True,
        priority: int = DEFAULT_PRIORITY,
        *,
        id_generator: RuleIdGenerator | None = None,
    ) -> None:
        super().__init__(name, expected_result, priority, id_generator=id_generator)
        if not expression:
            raise ValueError("Content expression must not be empty")
        self.expression = expression
        self.is_regex = is_regex
        self._pattern = re.compile(expression, re.MULTILINE) if is_regex else None

    def perform_match(self, meta_data: FileSystemMetaData) -> bool:
        if not meta_data.file_info.is_file:
            raise MetaDataIncorrectError(
                f"Cannot search the contents of folder '{meta_data.file_info.path}'"
            )
        try:
            contents = meta_data.contents()
        except EntityNotFoundError as exc:
            return self._vanished(meta_data, exc)
        if self._pattern is not None:
            return self._pattern.search(contents) is not None
        return self.expression in contents

    def get_rule_description(self) -> str:
        kind = "expression" if self.is_regex else "text"
        return f"contents with {kind} '{self.expression}'"

    def get_meta_data_keys(self) -> List[str]:
        return [FileSystemMetaData.PATH]


__all__ = [
    "FileSystemRule",
    "FilePathRule",
    "FileFolderRule",
    "FileAttributeRule",
    "FileSizeRule",
    "FileModtimeRule",
    "FileUidRule",
    "FileGidRule",
    "FilePermissionsRule",
    "FileOwnerNameRule",
    "FileGroupNameRule",
    "FileMd5Rule",
    "FileContentRule",
]
