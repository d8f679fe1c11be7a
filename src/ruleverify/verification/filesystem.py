"""Verification driver for files and folders on the local host."""

from __future__ import annotations

import os
from typing import Any, List, Type

from ..config.settings import Settings
from ..storage.filesystem import (
    FileAttributeRule,
    FileContentRule,
    FileFolderRule,
    FileGidRule,
    FileGroupNameRule,
    FileInfo,
    FileMd5Rule,
    FileModtimeRule,
    FileOwnerNameRule,
    FilePermissionsRule,
    FileSizeRule,
    FileSystemMetaData,
    FileSystemSearchTerm,
    FileSystemStorage,
    FileUidRule,
)
from .monitor import VerificationMode
from .skeleton import VerificationSkeleton

_ASCII_ARMOR_BEGIN = "-----BEGIN PGP MESSAGE-----"
_ASCII_ARMOR_END = "-----END PGP MESSAGE-----"
_ASCII_ARMOR_MAX_LINE = 64


class FileSystemVerification(VerificationSkeleton):
    """Verify files or folders in ``directory`` whose name matches ``name``.

    ``name`` of ``None`` selects every entry. Checks taking a ``source_file``
    read the expected value from that file when the check is added.
    """

    def __init__(
        self,
        directory: str,
        name: str | None = None,
        is_regex: bool = False,
        *,
        recursive: bool = False,
        storage: FileSystemStorage | None = None,
        settings: Settings | None = None,
        **kwargs: Any,
    ) -> None:
        self.storage = storage or FileSystemStorage(settings=settings)
        self.search_term = FileSystemSearchTerm(directory, name, is_regex, recursive)
        super().__init__(self.storage.get_folder(self.search_term), settings=settings, **kwargs)

    @classmethod
    def for_path(cls, path: str, **kwargs: Any) -> "FileSystemVerification":
        """Driver for a single file or folder given by its full path."""

        directory, name = os.path.split(os.path.abspath(path))
        return cls(directory, name, False, **kwargs)

    @property
    def monitor_name(self) -> str:
        return "file_system_monitor"

    @property
    def _operations(self):
        return self.storage.operations

    # -- checks ----------------------------------------------------------------

    def check_size(self, size: int | None = None, *, source_file: str | None = None) -> None:
        self._add_attribute_rule(FileSizeRule, size, source_file, "checkSize", True)

    def check_size_different(self, size: int | None = None, *, source_file: str | None = None) -> None:
        self._add_attribute_rule(FileSizeRule, size, source_file, "checkSizeDifferent", False)

    def check_modification_time(
        self, modification_time: int | None = None, *, source_file: str | None = None
    ) -> None:
        """Modification time in milliseconds since the epoch."""

        self._add_attribute_rule(
            FileModtimeRule, modification_time, source_file, "checkModificationTime", True
        )

    def check_modification_time_different(
        self, modification_time: int | None = None, *, source_file: str | None = None
    ) -> None:
        self._add_attribute_rule(
            FileModtimeRule, modification_time, source_file, "checkModificationTimeDifferent", False
        )

    def check_uid(self, uid: int | None = None, *, source_file: str | None = None) -> None:
        self._add_attribute_rule(FileUidRule, uid, source_file, "checkUID", True)

    def check_uid_different(self, uid: int | None = None, *, source_file: str | None = None) -> None:
        self._add_attribute_rule(FileUidRule, uid, source_file, "checkUIDDifferent", False)

    def check_gid(self, gid: int | None = None, *, source_file: str | None = None) -> None:
        self._add_attribute_rule(FileGidRule, gid, source_file, "checkGID", True)

    def check_gid_different(self, gid: int | None = None, *, source_file: str | None = None) -> None:
        self._add_attribute_rule(FileGidRule, gid, source_file, "checkGIDDifferent", False)

    def check_permissions(
        self, permissions: int | str | None = None, *, source_file: str | None = None
    ) -> None:
        self._add_attribute_rule(FilePermissionsRule, permissions, source_file, "checkPermissions", True)

    def check_permissions_different(
        self, permissions: int | str | None = None, *, source_file: str | None = None
    ) -> None:
        self._add_attribute_rule(
            FilePermissionsRule, permissions, source_file, "checkPermissionsDifferent", False
        )

    def check_owner_name(self, owner: str) -> None:
        self.add_rule(FileOwnerNameRule(owner, "checkOwnerName", True, id_generator=self.id_generator))

    def check_group_name(self, group: str) -> None:
        self.add_rule(FileGroupNameRule(group, "checkGroupName", True, id_generator=self.id_generator))

    def check_md5(
        self,
        md5: str | None = None,
        *,
        source_file: str | None = None,
        binary_mode: bool = True,
    ) -> None:
        self._add_md5_rule(md5, source_file, binary_mode, "checkMd5", True)

    def check_md5_different(
        self,
        md5: str | None = None,
        *,
        source_file: str | None = None,
        binary_mode: bool = True,
    ) -> None:
        self._add_md5_rule(md5, source_file, binary_mode, "checkMd5Different", False)

    def check_contents(self, expression: str, is_regex: bool = False, expected_result: bool = True) -> None:
        self.add_rule(
            FileContentRule(
                expression, "checkContents", is_regex, expected_result, id_generator=self.id_generator
            )
        )

    def check_ascii_armor(self, is_ascii_armor: bool = True) -> None:
        """PGP ASCII armor: begin/end markers present and no line longer than 64 characters."""

        self.check_contents(_ASCII_ARMOR_BEGIN, False, is_ascii_armor)
        self.check_contents(f"^.{{{_ASCII_ARMOR_MAX_LINE + 1},}}$", True, not is_ascii_armor)
        self.check_contents(_ASCII_ARMOR_END, False, is_ascii_armor)

    # -- verifications ---------------------------------------------------------

    def verify_file_exists(self, only_new: bool = False) -> List[FileInfo]:
        matched = self._verify(VerificationMode.EXISTS, only_new=only_new, kind_rule=self._kind(True))
        return self._file_infos(matched)

    def verify_file_always_exists(self) -> List[FileInfo]:
        return self._file_infos(self._verify(VerificationMode.ALWAYS_EXISTS, kind_rule=self._kind(True)))

    def verify_file_never_exists(self) -> None:
        self._verify(VerificationMode.NEVER_EXISTS, kind_rule=self._kind(True))

    def verify_file_does_not_exist(self) -> None:
        self._verify(VerificationMode.DOES_NOT_EXIST, kind_rule=self._kind(True))

    def verify_folder_exists(self, only_new: bool = False) -> List[FileInfo]:
        matched = self._verify(VerificationMode.EXISTS, only_new=only_new, kind_rule=self._kind(False))
        return self._file_infos(matched)

    def verify_folder_always_exists(self) -> List[FileInfo]:
        return self._file_infos(self._verify(VerificationMode.ALWAYS_EXISTS, kind_rule=self._kind(False)))

    def verify_folder_never_exists(self) -> None:
        self._verify(VerificationMode.NEVER_EXISTS, kind_rule=self._kind(False))

    def verify_folder_does_not_exist(self) -> None:
        self._verify(VerificationMode.DOES_NOT_EXIST, kind_rule=self._kind(False))

    # -- helpers ---------------------------------------------------------------

    def _entity_rule(self) -> FileFolderRule:
        return self._kind(True)

    def _kind(self, is_file: bool) -> FileFolderRule:
        name = "checkIsFile" if is_file else "checkIsFolder"
        return FileFolderRule(is_file, name, id_generator=self.id_generator)

    def _add_attribute_rule(
        self,
        rule_type: Type[FileAttributeRule],
        value: Any,
        source_file: str | None,
        name: str,
        expected_result: bool,
    ) -> None:
        if (value is None) == (source_file is None):
            raise ValueError("Provide either an expected value or a source file")
        if source_file is not None:
            rule = rule_type.from_source_file(
                source_file,
                name,
                expected_result,
                operations=self._operations,
                id_generator=self.id_generator,
            )
        else:
            rule = rule_type(value, name, expected_result, id_generator=self.id_generator)
        self.add_rule(rule)

    def _add_md5_rule(
        self,
        md5: str | None,
        source_file: str | None,
        binary_mode: bool,
        name: str,
        expected_result: bool,
    ) -> None:
        if (md5 is None) == (source_file is None):
            raise ValueError("Provide either an expected md5 or a source file")
        if source_file is not None:
            rule = FileMd5Rule.from_source_file(
                source_file,
                name,
                expected_result,
                binary_mode=binary_mode,
                operations=self._operations,
                id_generator=self.id_generator,
            )
        else:
            rule = FileMd5Rule(
                md5, name, expected_result, binary_mode=binary_mode, id_generator=self.id_generator
            )
        self.add_rule(rule)

    @staticmethod
    def _file_infos(meta_data) -> List[FileInfo]:
        return [item.file_info for item in meta_data if isinstance(item, FileSystemMetaData)]


__all__ = ["FileSystemVerification"]
