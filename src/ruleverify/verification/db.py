"""Verification driver for rows returned by a database query."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, List

from ..config.settings import Settings, get_settings
from ..entities.core import MetaData
from ..storage.db import (
    DateRelation,
    DbBinaryFieldRule,
    DbBooleanFieldRule,
    DbDateFieldRule,
    DbEncryptor,
    DbFieldsRule,
    DbNumericFieldRule,
    DbProvider,
    DbSearchTerm,
    DbStorage,
    DbStringFieldRule,
    SqlAlchemyDbProvider,
    StringRelation,
)
from .skeleton import VerificationSkeleton


class DbVerification(VerificationSkeleton):
    """Verify the rows returned by ``search_term``.

    String checks pick up the encryptor active when they are added; call
    :meth:`set_db_encryptor` with ``None`` to stop decrypting for later
    checks.
    """

    def __init__(
        self,
        search_term: DbSearchTerm,
        provider: DbProvider,
        *,
        settings: Settings | None = None,
        **kwargs: Any,
    ) -> None:
        self.search_term = search_term
        self.provider = provider
        self.db_encryptor: DbEncryptor | None = None
        storage = DbStorage(provider)
        super().__init__(storage.get_folder(search_term), settings=settings, **kwargs)

    @classmethod
    def for_table(cls, table: str, provider: DbProvider, **kwargs: Any) -> "DbVerification":
        return cls(DbSearchTerm(f"SELECT * FROM {table}", table=table), provider, **kwargs)

    @classmethod
    def from_url(
        cls,
        search_term: DbSearchTerm,
        url: str | None = None,
        *,
        settings: Settings | None = None,
        **kwargs: Any,
    ) -> "DbVerification":
        """Build a driver over a SQLAlchemy engine; ``url`` defaults to the configured one."""

        policy = (settings or get_settings()).policies.database
        provider = SqlAlchemyDbProvider(url or policy.url, echo=policy.echo)
        return cls(search_term, provider, settings=settings, **kwargs)

    @property
    def monitor_name(self) -> str:
        return f"db_monitor_{self.provider.description}"

    def set_db_encryptor(self, encryptor: DbEncryptor | None) -> None:
        self.db_encryptor = encryptor

    # -- checks ----------------------------------------------------------------

    def check_field_value_equals(self, table: str, column: str, value: Any) -> None:
        """Dispatches on the type of ``value``: str, bool, number, bytes or datetime."""

        self._add(self._equality_rule(table, column, value, "checkFieldValueEquals", True))

    def check_field_value_does_not_equal(self, table: str, column: str, value: Any) -> None:
        self._add(self._equality_rule(table, column, value, "checkFieldValueDoesNotEqual", False))

    def check_field_value_regex(self, table: str, column: str, regex: str) -> None:
        self._add(
            self._string_rule(table, column, regex, StringRelation.REGEX_MATCH, "checkFieldValueRegex", True)
        )

    def check_field_value_regex_does_not_match(self, table: str, column: str, regex: str) -> None:
        self._add(
            self._string_rule(
                table, column, regex, StringRelation.REGEX_MATCH, "checkFieldValueRegexDoesNotMatch", False
            )
        )

    def check_field_value_contains(self, table: str, column: str, value: str) -> None:
        self._add(
            self._string_rule(table, column, value, StringRelation.CONTAINS, "checkFieldValueContains", True)
        )

    def check_field_value_does_not_contain(self, table: str, column: str, value: str) -> None:
        self._add(
            self._string_rule(
                table, column, value, StringRelation.CONTAINS, "checkFieldValueDoesNotContain", False
            )
        )

    def check_field_value_date_before(
        self, table: str, column: str, timestamp: int, date_pattern: str | None = None
    ) -> None:
        """The UNIX ``timestamp`` (seconds) lies before the column value."""

        self._add(
            DbDateFieldRule(
                table,
                column,
                timestamp,
                DateRelation.BEFORE_DATE,
                "checkFieldValueDateBefore",
                True,
                actual_value_pattern=date_pattern,
                id_generator=self.id_generator,
            )
        )

    def check_field_value_date_after(
        self, table: str, column: str, timestamp: int, date_pattern: str | None = None
    ) -> None:
        """The UNIX ``timestamp`` (seconds) lies after the column value."""

        self._add(
            DbDateFieldRule(
                table,
                column,
                timestamp,
                DateRelation.AFTER_DATE,
                "checkFieldValueDateAfter",
                True,
                actual_value_pattern=date_pattern,
                id_generator=self.id_generator,
            )
        )

    # -- verifications ---------------------------------------------------------

    def verify_db_data_exists(self, only_new: bool = False) -> List[MetaData]:
        return self.verify_exists(only_new)

    def verify_db_data_always_exists(self) -> List[MetaData]:
        return self.verify_always_exists()

    def verify_db_data_never_exists(self) -> None:
        self.verify_never_exists()

    def verify_db_data_does_not_exist(self) -> None:
        self.verify_does_not_exist()

    # -- helpers ---------------------------------------------------------------

    def _add(self, rule: DbFieldsRule) -> None:
        self.add_rule(rule)

    def _string_rule(
        self,
        table: str,
        column: str,
        value: str | None,
        relation: StringRelation,
        name: str,
        expected_result: bool,
    ) -> DbStringFieldRule:
        return DbStringFieldRule(
            table,
            column,
            value,
            relation,
            name,
            expected_result,
            encryptor=self.db_encryptor,
            id_generator=self.id_generator,
        )

    def _equality_rule(
        self, table: str, column: str, value: Any, name: str, expected_result: bool
    ) -> DbFieldsRule:
        ids = self.id_generator
        if value is None or isinstance(value, str):
            return self._string_rule(table, column, value, StringRelation.EQUALS, name, expected_result)
        if isinstance(value, bool):
            return DbBooleanFieldRule(table, column, value, name, expected_result, id_generator=ids)
        if isinstance(value, (int, float, Decimal)):
            return DbNumericFieldRule(table, column, value, name, expected_result, id_generator=ids)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return DbBinaryFieldRule(
                table, column, bytes(value), name, expected_result, id_generator=self.id_generator
            )
        if isinstance(value, datetime):
            return DbDateFieldRule(
                table,
                column,
                value,
                DateRelation.EXACT,
                name,
                expected_result,
                id_generator=self.id_generator,
            )
        raise TypeError(f"Unsupported value type {type(value).__name__} for column '{table}.{column}'")


__all__ = ["DbVerification"]
