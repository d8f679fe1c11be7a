"""Executors turn one poll's meta data into the list of matching records."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, List, Sequence

from ..entities.core import MetaData
from ..rules.base import Rule
from ..rules.operations import RuleOperation
from ..utils.logging import get_logger

_LOGGER = get_logger(component="executor")


class Executor(ABC):
    """Evaluates a root rule against one poll."""

    def __init__(self) -> None:
        self._root_rule: Rule | None = None
        self.last_rule_description: str | None = None

    @property
    def root_rule(self) -> Rule | None:
        return self._root_rule

    def set_root_rule(self, rule: Rule | None) -> None:
        self._root_rule = rule
        self.last_rule_description = None

    @abstractmethod
    def evaluate(self, meta_data: Sequence[MetaData]) -> List[MetaData]:
        """Return the matching records; an empty list means no match."""

    def _remember_failure(self, rule: Rule) -> None:
        if isinstance(rule, RuleOperation):
            self.last_rule_description = rule.failure_description() or rule.describe()
        else:
            self.last_rule_description = rule.describe()


class MetaExecutor(Executor):
    """Keeps every record the root rule matches (all records without a root rule)."""

    def evaluate(self, meta_data: Sequence[MetaData]) -> List[MetaData]:
        rule = self._root_rule
        if rule is None:
            return list(meta_data)

        matched: List[MetaData] = []
        for item in meta_data:
            if rule.is_match(item):
                matched.append(item)
            else:
                self._remember_failure(rule)
        if matched:
            self.last_rule_description = rule.describe()
        return matched


@dataclass(frozen=True)
class SnapshotChange:
    """Records selected by ``key_rule`` must satisfy ``matching_rule``.

    The keys inspected by ``matching_rule`` are the expected differences and
    are skipped when the record is compared with the snapshot.
    """

    key_rule: Rule
    matching_rule: Rule


class SnapshotExecutor(Executor):
    """Compare new data with a snapshot taken before an action.

    Every new record must correspond to one snapshot entry, either unchanged
    or changed exactly as one of the registered :class:`SnapshotChange`
    pairs describes, and every snapshot entry must be accounted for. Each
    evaluation works on a fresh copy of the snapshot.
    """

    def __init__(self, snapshot: Iterable[MetaData]) -> None:
        super().__init__()
        self._snapshot: List[MetaData] = list(snapshot)
        self._changes: List[SnapshotChange] = []
        self._excluded_keys: List[str] = []

    def add_rule(self, key_rule: Rule, matching_rule: Rule) -> None:
        if key_rule is None or matching_rule is None:
            raise ValueError("Neither the key, nor the matching rule can be empty")
        self._changes.append(SnapshotChange(key_rule, matching_rule))

    def exclude_keys(self, keys: Iterable[str]) -> None:
        for key in keys:
            if key not in self._excluded_keys:
                self._excluded_keys.append(key)

    def evaluate(self, meta_data: Sequence[MetaData]) -> List[MetaData]:
        _LOGGER.debug("Starting meta data snapshot evaluation of {count} records", count=len(meta_data))
        remaining = list(self._snapshot)

        for item in meta_data:
            if not self._match(item, remaining):
                self.last_rule_description = f"snapshot match of {item!r}"
                return []

        if remaining:
            _LOGGER.debug(
                "Match not successful, {count} snapshot entries were not found in the new data",
                count=len(remaining),
            )
            self.last_rule_description = f"{len(remaining)} snapshot entries missing from the new data"
            return []

        return list(meta_data)

    def _match(self, item: MetaData, remaining: List[MetaData]) -> bool:
        for change in self._changes:
            if change.key_rule.is_match(item):
                if not change.matching_rule.is_match(item):
                    return False
                return _consume(item, remaining, self._skipped(change.matching_rule.get_meta_data_keys()))

        root = self._root_rule
        if root is None:
            return _consume(item, remaining, self._skipped([]))
        return root.is_match(item) and _consume(item, remaining, self._skipped(root.get_meta_data_keys()))

    def _skipped(self, keys: Iterable[str]) -> set[str]:
        return set(self._excluded_keys).union(keys)


def _consume(item: MetaData, remaining: List[MetaData], skipped: set[str]) -> bool:
    """Remove the first snapshot entry equal to ``item`` outside ``skipped`` keys."""

    item_keys = set(item.keys())
    for index, candidate in enumerate(remaining):
        if set(candidate.keys()) != item_keys:
            continue
        if all(
            candidate.get_property(key) == item.get_property(key)
            for key in candidate.keys()
            if key not in skipped
        ):
            del remaining[index]
            _LOGGER.debug("Matched meta data {meta}", meta=candidate)
            return True

    _LOGGER.debug("Unable to verify {meta} against the snapshot contents", meta=item)
    return False


__all__ = ["Executor", "MetaExecutor", "SnapshotChange", "SnapshotExecutor"]
