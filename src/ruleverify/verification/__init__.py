"""Verification drivers, executors and the poll loop."""

from .db import DbVerification
from .executors import Executor, MetaExecutor, SnapshotChange, SnapshotExecutor
from .filesystem import FileSystemVerification
from .monitor import Monitor, MonitorResult, PollingParameters, VerificationMode
from .s3 import S3Verification
from .skeleton import VerificationSkeleton

__all__ = [
    "Executor",
    "MetaExecutor",
    "SnapshotChange",
    "SnapshotExecutor",
    "PollingParameters",
    "VerificationMode",
    "MonitorResult",
    "Monitor",
    "VerificationSkeleton",
    "DbVerification",
    "FileSystemVerification",
    "S3Verification",
]
