"""Composite rules combining child rules with AND/OR semantics."""

from __future__ import annotations

from abc import abstractmethod
from typing import Iterable, List, Tuple

from ..entities.core import MetaData
from .base import LOWEST_PRIORITY, Rule, RuleIdGenerator


class RuleOperation(Rule):
    """A rule that owns an ordered collection of child rules.

    Children are kept sorted by ``(priority, name + unique_id)`` so evaluation
    runs the most important checks first and stays deterministic when
    priorities collide. The operation's own priority is the minimum priority
    of its children.
    """

    def __init__(
        self,
        rules: Iterable[Rule] = (),
        name: str | None = None,
        *,
        id_generator: RuleIdGenerator | None = None,
    ) -> None:
        super().__init__(
            name or type(self).__name__,
            expected_result=True,
            priority=LOWEST_PRIORITY,
            id_generator=id_generator,
        )
        self._rules: List[Rule] = []
        self._last_failed_rule: Rule | None = None
        self.add_rules(rules)

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return tuple(self._rules)

    @property
    def last_failed_rule(self) -> Rule | None:
        """The child that decided the last non-matching evaluation, if any."""

        return self._last_failed_rule

    def add_rule(self, rule: Rule) -> None:
        if rule is None:
            raise ValueError("Cannot add an empty rule")
        if rule is self:
            raise ValueError("A rule operation cannot contain itself")
        self._rules.append(rule)
        self._rules.sort(key=lambda item: item.sort_key)
        self._priority = min(self._priority, rule.priority)

    def add_rules(self, rules: Iterable[Rule]) -> None:
        for rule in rules:
            self.add_rule(rule)

    def clear_rules(self) -> None:
        self._rules.clear()
        self._last_failed_rule = None
        self._priority = LOWEST_PRIORITY

    def get_meta_data_keys(self) -> List[str]:
        keys: List[str] = []
        for rule in self._rules:
            for key in rule.get_meta_data_keys():
                if key not in keys:
                    keys.append(key)
        return keys

    def failure_description(self) -> str | None:
        """Describe the innermost child responsible for the last failure."""

        failed = self._last_failed_rule
        if failed is None:
            return None
        if isinstance(failed, RuleOperation):
            return failed.failure_description() or failed.describe()
        return failed.describe()

    def is_match(self, meta_data: MetaData) -> bool:
        self._last_failed_rule = None
        return self._evaluate(meta_data)

    @abstractmethod
    def _evaluate(self, meta_data: MetaData) -> bool:
        """Combine the children's verdicts for ``meta_data``."""

    def __len__(self) -> int:
        return len(self._rules)


class AndRuleOperation(RuleOperation):
    """Matches when every child matches; stops at the first non-match."""

    def _evaluate(self, meta_data: MetaData) -> bool:
        for rule in self._rules:
            if not rule.is_match(meta_data):
                self._last_failed_rule = rule
                return False
        return True

    def describe(self) -> str:
        if not self._rules:
            return "AND()"
        return "AND(" + "; ".join(rule.describe() for rule in self._rules) + ")"


class OrRuleOperation(RuleOperation):
    """Matches when at least one child matches; stops at the first match."""

    def _evaluate(self, meta_data: MetaData) -> bool:
        for rule in self._rules:
            if rule.is_match(meta_data):
                return True
        if self._rules:
            self._last_failed_rule = self._rules[-1]
        return False

    def describe(self) -> str:
        if not self._rules:
            return "OR()"
        return "OR(" + " | ".join(rule.describe() for rule in self._rules) + ")"


__all__ = ["RuleOperation", "AndRuleOperation", "OrRuleOperation"]
