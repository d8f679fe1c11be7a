"""Rule algebra: atomic rules and their AND/OR composition."""

from .base import (
    DEFAULT_PRIORITY,
    HIGHEST_PRIORITY,
    LOWEST_PRIORITY,
    AbstractRule,
    Rule,
    RuleIdGenerator,
)
from .operations import AndRuleOperation, OrRuleOperation, RuleOperation

__all__ = [
    "HIGHEST_PRIORITY",
    "LOWEST_PRIORITY",
    "DEFAULT_PRIORITY",
    "Rule",
    "AbstractRule",
    "RuleIdGenerator",
    "RuleOperation",
    "AndRuleOperation",
    "OrRuleOperation",
]
