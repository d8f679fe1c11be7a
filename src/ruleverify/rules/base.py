"""Atomic rule contract and the abstract base for backend-specific rules."""

from __future__ import annotations

import itertools
import threading
from abc import ABC, abstractmethod
from typing import ClassVar, Generic, List, Tuple, Type, TypeVar
from uuid import uuid4

from ..entities.core import MetaData
from ..exceptions import MetaDataIncorrectError
from ..utils.logging import get_logger

HIGHEST_PRIORITY = -(2**31)
LOWEST_PRIORITY = 2**31 - 1
DEFAULT_PRIORITY = LOWEST_PRIORITY

M = TypeVar("M", bound=MetaData)

_LOGGER = get_logger(component="rules")


class RuleIdGenerator:
    """Thread-safe counter handing out rule identifiers.

    A verification driver owns one generator and passes it to every rule it
    builds, so ids are unique (and ordered) within that driver.
    """

    def __init__(self, start: int = 0) -> None:
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            return str(next(self._counter))


class Rule(ABC):
    """Boolean predicate evaluated against one :class:`MetaData` instance."""

    def __init__(
        self,
        name: str,
        expected_result: bool = True,
        priority: int = DEFAULT_PRIORITY,
        *,
        id_generator: RuleIdGenerator | None = None,
    ) -> None:
        self._name = name
        self._expected_result = expected_result
        self._priority = priority
        self._unique_id = id_generator.next_id() if id_generator is not None else uuid4().hex

    @property
    def name(self) -> str:
        return self._name

    @property
    def expected_result(self) -> bool:
        return self._expected_result

    @property
    def priority(self) -> int:
        return self._priority

    @property
    def unique_id(self) -> str:
        return self._unique_id

    @property
    def sort_key(self) -> Tuple[int, str]:
        """Ordering used by composite rules: priority, then name + unique id."""

        return (self.priority, f"{self._name}{self._unique_id}")

    @abstractmethod
    def is_match(self, meta_data: MetaData) -> bool:
        """Return True when the rule holds for ``meta_data``."""

    @abstractmethod
    def get_meta_data_keys(self) -> List[str]:
        """Return the meta data keys inspected by this rule."""

    @abstractmethod
    def describe(self) -> str:
        """Return a human readable description used in failure reports."""

    def __str__(self) -> str:
        return self.describe()


class AbstractRule(Rule, Generic[M]):
    """Base class for atomic rules bound to one meta data type.

    Subclasses set :attr:`meta_data_type`, implement :meth:`perform_match`
    (the raw predicate) and :meth:`get_rule_description`. The outcome of the
    predicate is compared with ``expected_result``, so the same predicate
    serves as a positive ("must equal") and a negative ("must differ") check.
    """

    meta_data_type: ClassVar[Type[MetaData]] = MetaData

    def is_match(self, meta_data: MetaData) -> bool:
        if meta_data is None:
            raise MetaDataIncorrectError(f"Rule '{self.name}' received no meta data")
        if not isinstance(meta_data, self.meta_data_type):
            raise MetaDataIncorrectError(
                f"Rule '{self.name}' expects {self.meta_data_type.__name__}, "
                f"got {type(meta_data).__name__}"
            )

        actual_result = self.perform_match(meta_data)  # type: ignore[arg-type]
        matched = actual_result == self.expected_result
        _LOGGER.opt(lazy=True).debug(
            "{rule}: actual result {actual}, expected {expected} -> {verdict}",
            rule=self.describe,
            actual=lambda: actual_result,
            expected=lambda: self.expected_result,
            verdict=lambda: "match" if matched else "no match",
        )
        return matched

    @abstractmethod
    def perform_match(self, meta_data: M) -> bool:
        """Evaluate the raw predicate (before applying ``expected_result``)."""

    @abstractmethod
    def get_rule_description(self) -> str:
        """Describe what the predicate checks, e.g. ``"size 10"``."""

    def describe(self) -> str:
        prefix = "expected" if self.expected_result else "not expected"
        return f"{self.name} ({prefix}: {self.get_rule_description()})"


__all__ = [
    "HIGHEST_PRIORITY",
    "LOWEST_PRIORITY",
    "DEFAULT_PRIORITY",
    "Rule",
    "AbstractRule",
    "RuleIdGenerator",
]
