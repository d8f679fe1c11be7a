"""Local filesystem backend."""

from .folder import (
    FileSystemFolder,
    FileSystemMetaData,
    FileSystemSearchTerm,
    FileSystemStorage,
    filesystem_identity,
)
from .operations import FileInfo, FileSystemOperations
from .rules import (
    FileAttributeRule,
    FileContentRule,
    FileFolderRule,
    FileGidRule,
    FileGroupNameRule,
    FileMd5Rule,
    FileModtimeRule,
    FileOwnerNameRule,
    FilePathRule,
    FilePermissionsRule,
    FileSizeRule,
    FileSystemRule,
    FileUidRule,
)

__all__ = [
    "FileInfo",
    "FileSystemOperations",
    "FileSystemMetaData",
    "FileSystemSearchTerm",
    "FileSystemFolder",
    "FileSystemStorage",
    "filesystem_identity",
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
