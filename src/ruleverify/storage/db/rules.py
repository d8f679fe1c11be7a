"""Column value rules evaluating :class:`DbMetaData`."""

from __future__ import annotations

import re
from abc import abstractmethod
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, List

from ...exceptions import MetaDataIncorrectError
from ...rules.base import DEFAULT_PRIORITY, AbstractRule, RuleIdGenerator
from ...utils.helpers import from_epoch_seconds, to_naive_utc
from .folder import DbMetaData, DbMetaDataKey
from .provider import DbEncryptor


class DbFieldsRule(AbstractRule[DbMetaData]):
    """Base for rules comparing one column of a row with an expected value.

    ``None`` handling is shared: a ``None`` expectation matches only a
    ``None`` (SQL ``NULL``) actual value, and a ``NULL`` actual value never
    matches a concrete expectation.
    """

    meta_data_type = DbMetaData

    def __init__(
        self,
        table: str,
        column: str,
        expected_value: Any,
        name: str,
        expected_result: bool = True,
        priority: int = DEFAULT_PRIORITY,
        *,
        index: int = 0,
        id_generator: RuleIdGenerator | None = None,
    ) -> None:
        super().__init__(name, expected_result, priority, id_generator=id_generator)
        self.expected_key = DbMetaDataKey(table, column, index)
        self.expected_value = expected_value

    def perform_match(self, meta_data: DbMetaData) -> bool:
        actual_value = meta_data.get_property(self._resolve_key(meta_data))
        if self.expected_value is None:
            return actual_value is None
        if actual_value is None:
            return False
        return self.compare(actual_value)

    def _resolve_key(self, meta_data: DbMetaData) -> str:
        key = str(self.expected_key)
        if meta_data.has_property(key):
            return key
        # Rows of a query without a table label carry an empty table.
        unlabelled = str(DbMetaDataKey("", self.expected_key.column, self.expected_key.index))
        if meta_data.has_property(unlabelled):
            return unlabelled
        raise MetaDataIncorrectError(
            f"Meta data is incorrect - no column '{key}', available: {', '.join(meta_data.keys())}"
        )

    @abstractmethod
    def compare(self, actual_value: Any) -> bool:
        """Compare a non-null actual value with the (non-null) expected value."""

    def get_rule_description(self) -> str:
        return (
            f"on table '{self.expected_key.table}', column '{self.expected_key.column}', "
            f"expected value '{self.expected_value}'{self._relation_suffix()}"
        )

    def _relation_suffix(self) -> str:
        return ""

    def get_meta_data_keys(self) -> List[str]:
        return [str(self.expected_key)]


class StringRelation(str, Enum):
    EQUALS = "equals"
    CONTAINS = "contains"
    REGEX_MATCH = "regex_match"


class DbStringFieldRule(DbFieldsRule):
    def __init__(
        self,
        table: str,
        column: str,
        expected_value: str | None,
        relation: StringRelation,
        name: str,
        expected_result: bool = True,
        priority: int = DEFAULT_PRIORITY,
        *,
        encryptor: DbEncryptor | None = None,
        index: int = 0,
        id_generator: RuleIdGenerator | None = None,
    ) -> None:
        super().__init__(
            table,
            column,
            expected_value,
            name,
            expected_result,
            priority,
            index=index,
            id_generator=id_generator,
        )
        self.relation = StringRelation(relation)
        self.encryptor = encryptor
        self._pattern = (
            re.compile(expected_value)
            if self.relation is StringRelation.REGEX_MATCH and expected_value is not None
            else None
        )

    def compare(self, actual_value: Any) -> bool:
        if not isinstance(actual_value, str):
            raise MetaDataIncorrectError(
                f"Meta data is incorrect - expected a string for '{self.expected_key}', "
                f"got {type(actual_value).__name__}"
            )
        if self.encryptor is not None:
            actual_value = self.encryptor.decrypt(actual_value)

        if self.relation is StringRelation.EQUALS:
            return actual_value == self.expected_value
        if self.relation is StringRelation.CONTAINS:
            return self.expected_value in actual_value
        return self._pattern.search(actual_value) is not None

    def _relation_suffix(self) -> str:
        return f", with match relation '{self.relation.name}'"


class DbNumericFieldRule(DbFieldsRule):
    """Numeric equality, insensitive to the driver's int/float/Decimal choice."""

    def compare(self, actual_value: Any) -> bool:
        return _to_decimal(actual_value, self.expected_key) == _to_decimal(
            self.expected_value, self.expected_key
        )


class DbBinaryFieldRule(DbFieldsRule):
    def compare(self, actual_value: Any) -> bool:
        if not isinstance(actual_value, (bytes, bytearray, memoryview)):
            raise MetaDataIncorrectError(
                f"Meta data is incorrect - expected binary data for '{self.expected_key}'"
            )
        return bytes(actual_value) == bytes(self.expected_value)

    def get_rule_description(self) -> str:
        return (
            f"on table '{self.expected_key.table}', column '{self.expected_key.column}', "
            f"expected value '{bytes(self.expected_value).hex()}'"
        )


class DbBooleanFieldRule(DbFieldsRule):
    """Booleans stored natively, as ``0``/``1`` numbers or as ``"0"``/``"1"``/``"true"``/``"false"``."""

    _TRUE = {"1", "true"}
    _FALSE = {"0", "false"}

    def compare(self, actual_value: Any) -> bool:
        return self._to_bool(actual_value) == bool(self.expected_value)

    def _to_bool(self, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, Decimal)) and value in (0, 1):
            return bool(value)
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in self._TRUE:
                return True
            if lowered in self._FALSE:
                return False
        raise MetaDataIncorrectError(
            f"Meta data is incorrect - '{value}' in '{self.expected_key}' is not a boolean"
        )


class DateRelation(str, Enum):
    BEFORE_DATE = "before_date"
    AFTER_DATE = "after_date"
    EXACT = "exact"


class DbDateFieldRule(DbFieldsRule):
    """Compare a date column with a point in time.

    The expectation is a :class:`datetime` or a UNIX timestamp in seconds.
    String columns are parsed with ``actual_value_pattern`` (``strptime``
    syntax). ``BEFORE_DATE`` holds when the expected point lies before the
    actual value, ``AFTER_DATE`` when it lies after it. All values are
    compared as naive UTC.
    """

    def __init__(
        self,
        table: str,
        column: str,
        expected_value: datetime | int | str | None,
        relation: DateRelation,
        name: str,
        expected_result: bool = True,
        priority: int = DEFAULT_PRIORITY,
        *,
        actual_value_pattern: str | None = None,
        index: int = 0,
        id_generator: RuleIdGenerator | None = None,
    ) -> None:
        super().__init__(
            table,
            column,
            expected_value,
            name,
            expected_result,
            priority,
            index=index,
            id_generator=id_generator,
        )
        self.relation = DateRelation(relation)
        self.actual_value_pattern = actual_value_pattern
        self._expected_date = self._expected_as_datetime(expected_value)

    def _expected_as_datetime(self, value: Any) -> datetime | None:
        if value is None:
            return None
        if isinstance(value, datetime):
            return to_naive_utc(value)
        try:
            return from_epoch_seconds(value)
        except (TypeError, ValueError, OverflowError) as exc:
            raise ValueError(f"Expected value '{value}' cannot be converted to UNIX timestamp") from exc

    def compare(self, actual_value: Any) -> bool:
        actual = self._actual_as_datetime(actual_value)
        expected = self._expected_date
        if self.relation is DateRelation.BEFORE_DATE:
            return expected < actual
        if self.relation is DateRelation.AFTER_DATE:
            return expected > actual
        return expected == actual

    def _actual_as_datetime(self, value: Any) -> datetime:
        if isinstance(value, datetime):
            return to_naive_utc(value)
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        if isinstance(value, str):
            if not self.actual_value_pattern:
                raise MetaDataIncorrectError(
                    f"No date pattern given to parse '{value}' in '{self.expected_key}'"
                )
            try:
                return to_naive_utc(datetime.strptime(value, self.actual_value_pattern))
            except ValueError as exc:
                raise MetaDataIncorrectError(
                    f"Actual value '{value}' cannot be converted to a date"
                ) from exc
        raise MetaDataIncorrectError(
            f"Meta data is incorrect - expected a date for '{self.expected_key}', "
            f"got {type(value).__name__}"
        )

    def _relation_suffix(self) -> str:
        return f", with match relation '{self.relation.name}'"


def _to_decimal(value: Any, key: DbMetaDataKey) -> Decimal:
    if isinstance(value, bool):
        raise MetaDataIncorrectError(f"Meta data is incorrect - expected a number for '{key}'")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise MetaDataIncorrectError(
            f"Meta data is incorrect - '{value}' in '{key}' is not a number"
        ) from exc


__all__ = [
    "DbFieldsRule",
    "StringRelation",
    "DbStringFieldRule",
    "DbNumericFieldRule",
    "DbBinaryFieldRule",
    "DbBooleanFieldRule",
    "DateRelation",
    "DbDateFieldRule",
]
