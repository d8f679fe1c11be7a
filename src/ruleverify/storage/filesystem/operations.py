"""Local filesystem client used by the filesystem folder and rules."""

from __future__ import annotations

import hashlib
import os
import re
import stat
from dataclasses import dataclass
from typing import List

from ...exceptions import EntityNotFoundError, StorageError

try:  # POSIX only
    import grp
    import pwd
except ImportError:  # pragma: no cover - platform dependent
    grp = None  # type: ignore[assignment]
    pwd = None  # type: ignore[assignment]


@dataclass(frozen=True)
class FileInfo:
    """Attributes of one file or folder captured during a poll."""

    path: str
    name: str
    size: int
    modification_time: int
    uid: int
    gid: int
    permissions: int
    owner: str | None
    group: str | None
    is_file: bool
    is_directory: bool


class FileSystemOperations:
    """Thin wrapper around :mod:`os` returning plain values and raising domain errors."""

    def __init__(self, *, md5_chunk_size: int = 64 * 1024, follow_symlinks: bool = True) -> None:
        self.md5_chunk_size = md5_chunk_size
        self.follow_symlinks = follow_symlinks

    def find_files(self, directory: str, pattern: re.Pattern[str], recursive: bool = False) -> List[str]:
        """Return absolute paths of entries (files and folders) whose name fully matches ``pattern``."""

        if not os.path.isdir(directory):
            raise EntityNotFoundError(f"'{directory}' does not exist or is not a folder")

        found: List[str] = []
        try:
            if recursive:
                for root, dirs, files in os.walk(directory, followlinks=self.follow_symlinks):
                    dirs.sort()
                    for name in sorted(dirs + files):
                        if pattern.fullmatch(name):
                            found.append(os.path.join(root, name))
            else:
                with os.scandir(directory) as entries:
                    for entry in entries:
                        if pattern.fullmatch(entry.name):
                            found.append(entry.path)
        except FileNotFoundError as exc:
            raise EntityNotFoundError(f"'{directory}' does not exist or is not a folder") from exc
        except OSError as exc:
            raise StorageError(f"Unable to list the contents of '{directory}': {exc}") from exc
        return sorted(found)

    def get_file_info(self, path: str) -> FileInfo:
        try:
            st = os.stat(path, follow_symlinks=self.follow_symlinks)
        except FileNotFoundError as exc:
            raise EntityNotFoundError(f"'{path}' does not exist") from exc
        except OSError as exc:
            raise StorageError(f"Unable to read the attributes of '{path}': {exc}") from exc

        return FileInfo(
            path=os.path.abspath(path),
            name=os.path.basename(path),
            size=st.st_size,
            modification_time=st.st_mtime_ns // 1_000_000,
            uid=st.st_uid,
            gid=st.st_gid,
            permissions=stat.S_IMODE(st.st_mode),
            owner=_owner_name(st.st_uid),
            group=_group_name(st.st_gid),
            is_file=stat.S_ISREG(st.st_mode),
            is_directory=stat.S_ISDIR(st.st_mode),
        )

    def compute_md5(self, path: str, binary_mode: bool = True) -> str:
        """MD5 of the file; text mode ignores differences in line endings."""

        digest = hashlib.md5()
        try:
            if binary_mode:
                with open(path, "rb") as handle:
                    for chunk in iter(lambda: handle.read(self.md5_chunk_size), b""):
                        digest.update(chunk)
            else:
                with open(path, "r", encoding="utf-8", errors="replace", newline=None) as handle:
                    for line in handle:
                        digest.update(line.encode("utf-8"))
        except FileNotFoundError as exc:
            raise EntityNotFoundError(f"'{path}' does not exist") from exc
        except OSError as exc:
            raise StorageError(f"Unable to read '{path}': {exc}") from exc
        return digest.hexdigest()

    def read_text(self, path: str) -> str:
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as handle:
                return handle.read()
        except FileNotFoundError as exc:
            raise EntityNotFoundError(f"'{path}' does not exist") from exc
        except OSError as exc:
            raise StorageError(f"Unable to read '{path}': {exc}") from exc


def _owner_name(uid: int) -> str | None:
    if pwd is None:
        return None
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return None


def _group_name(gid: int) -> str | None:
    if grp is None:
        return None
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return None


__all__ = ["FileInfo", "FileSystemOperations"]
