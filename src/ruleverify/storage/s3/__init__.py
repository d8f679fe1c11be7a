"""S3-compatible object storage backend."""

from .folder import S3Folder, S3MetaData, S3SearchTerm, S3Storage, s3_identity
from .operations import S3ObjectInfo, S3Operations
from .rules import FileFolderS3Rule, FileMd5S3Rule, FileModtimeS3Rule, FileSizeS3Rule, S3Rule

__all__ = [
    "S3ObjectInfo",
    "S3Operations",
    "S3MetaData",
    "S3SearchTerm",
    "S3Folder",
    "S3Storage",
    "s3_identity",
    "S3Rule",
    "FileSizeS3Rule",
    "FileMd5S3Rule",
    "FileModtimeS3Rule",
    "FileFolderS3Rule",
]
