"""Exception hierarchy shared by storages, rules and verification drivers."""

from __future__ import annotations

from typing import Any, List, Sequence


class RuleVerificationError(Exception):
    """Base exception for every failure raised by the verification engine."""


class StorageError(RuleVerificationError):
    """Raised when a backend cannot be listed or queried."""


class MatchableNotOpenError(StorageError):
    """Raised when a data operation is attempted on a closed matchable."""


class MatchableAlreadyOpenError(StorageError):
    """Raised when ``open()`` is called on a matchable that is already open."""


class EntityNotFoundError(StorageError):
    """Raised by backend clients when the polled target does not exist (yet)."""


class MetaDataIncorrectError(RuleVerificationError):
    """Raised when a rule receives meta data it cannot evaluate."""


class NoSuchMetaDataKeyError(RuleVerificationError):
    """Raised when a meta data property is requested but was never stored."""

    def __init__(self, key: str) -> None:
        super().__init__(f"No meta data property with key '{key}'")
        self.key = key


class VerificationFailedError(RuleVerificationError):
    """Raised when the verified state did not occur within the polling window.

    Distinct from :class:`StorageError` so callers can tell a false assertion
    apart from an unreachable system under test.
    """

    def __init__(
        self,
        message: str,
        *,
        rule_description: str | None = None,
        matched: Sequence[Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.rule_description = rule_description
        self.matched: List[Any] = list(matched or [])


__all__ = [
    "RuleVerificationError",
    "StorageError",
    "MatchableNotOpenError",
    "MatchableAlreadyOpenError",
    "EntityNotFoundError",
    "MetaDataIncorrectError",
    "NoSuchMetaDataKeyError",
    "VerificationFailedError",
]
