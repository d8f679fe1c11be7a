"""Tests for the database folder, its column rules and the database driver."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List

import pytest
from sqlalchemy import create_engine, text

from ruleverify.exceptions import (
    EntityNotFoundError,
    MetaDataIncorrectError,
    StorageError,
    VerificationFailedError,
)
from ruleverify.storage.db import (
    DateRelation,
    DbDateFieldRule,
    DbMetaData,
    DbRecordValue,
    DbRow,
    DbSearchTerm,
    DbStorage,
    SqlAlchemyDbProvider,
)
from ruleverify.verification import DbVerification

TODAY = datetime(2026, 10, 19, 12, 0, 0)


class MockDbProvider:
    """Returns two fixed rows; ``seed`` changes the string values between instances."""

    def __init__(self, seed: int = 0, rows: int = 2) -> None:
        self.seed = seed
        self.rows = rows
        self.calls = 0

    @property
    def description(self) -> str:
        return "mock"

    def select(self, search_term: DbSearchTerm) -> List[DbRow]:
        self.calls += 1
        return [self._row(index) for index in range(self.rows)]

    def _row(self, index: int) -> DbRow:
        return [
            DbRecordValue("asd", "key0", f"value{index}{self.seed}"),
            DbRecordValue("", "key1", f"value{index}{self.seed}"),
            DbRecordValue("", "key2", f"value{index}{self.seed}"),
            DbRecordValue("numeric", "key", index),
            DbRecordValue("binary", "key", bytes([1, 2, index])),
            DbRecordValue("boolean", "keyString", "0"),
            DbRecordValue("boolean", "keyNumber", 1),
            DbRecordValue("Date", "today", TODAY),
            DbRecordValue("", "test_key", "test_value"),
        ]


class UpperCaseEncryptor:
    def decrypt(self, value: str) -> str:
        return value.upper()


class MissingTableProvider(MockDbProvider):
    def select(self, search_term: DbSearchTerm) -> List[DbRow]:
        raise EntityNotFoundError("Table 'missing' does not exist")


@pytest.fixture
def provider() -> MockDbProvider:
    return MockDbProvider()


@pytest.fixture
def driver(provider: MockDbProvider, settings, clock) -> DbVerification:
    verification = DbVerification(
        DbSearchTerm("SELECT * FROM asd"), provider, settings=settings, clock=clock, sleep=clock.sleep
    )
    verification.configure_polling(attempts=2)
    return verification


# -- meta data -----------------------------------------------------------------


def test_repeated_columns_get_increasing_indexes() -> None:
    meta = DbMetaData.from_row(
        [
            DbRecordValue("t", "c", 1),
            DbRecordValue("t", "c", 2),
            DbRecordValue("t", "other", 3),
        ]
    )
    assert meta.keys() == ["t.c.0", "t.c.1", "t.other.0"]
    assert meta.get_property("t.c.1") == 2


def test_folder_diffs_rows(provider: MockDbProvider) -> None:
    folder = DbStorage(provider).get_folder(DbSearchTerm("SELECT * FROM asd"))
    with folder:
        assert len(folder.get_new_meta_data()) == 2
        assert folder.get_new_meta_data() == []
        provider.rows = 3
        new = folder.get_new_meta_data()
        assert [item.get_property("numeric.key.0") for item in new] == [2]
        assert folder.get_meta_data_counts() == "Total rows: 3, new rows: 1"


def test_missing_table_is_not_tolerated() -> None:
    folder = DbStorage(MissingTableProvider()).get_folder(DbSearchTerm("SELECT * FROM missing"))
    with folder, pytest.raises(EntityNotFoundError):
        folder.get_all_meta_data()
    assert not folder.is_open


# -- driver checks -------------------------------------------------------------


def test_clear_rules(driver: DbVerification) -> None:
    driver.check_field_value_equals("asd", "key0", "wrongValue")
    with pytest.raises(VerificationFailedError):
        driver.verify_db_data_exists()

    driver.clear_rules()
    driver.check_field_value_equals("asd", "key0", "value00")
    assert len(driver.verify_db_data_exists()) == 1


def test_string_equals(driver: DbVerification) -> None:
    driver.check_field_value_equals("asd", "key0", "value10")
    matched = driver.verify_db_data_exists()
    assert [item.get_property("asd.key0.0") for item in matched] == ["value10"]


def test_string_equals_fails(driver: DbVerification, clock) -> None:
    driver.check_field_value_equals("asd", "key0", "value")
    with pytest.raises(VerificationFailedError) as excinfo:
        driver.verify_db_data_exists()
    assert "checkFieldValueEquals" in excinfo.value.rule_description
    assert clock.sleeps == [1.0]


def test_string_does_not_equal(driver: DbVerification) -> None:
    driver.check_field_value_does_not_equal("asd", "key0", "value00")
    assert [item.get_property("asd.key0.0") for item in driver.verify_db_data_exists()] == ["value10"]


def test_encryptor_applies_to_checks_added_after_it(driver: DbVerification) -> None:
    driver.set_db_encryptor(UpperCaseEncryptor())
    driver.check_field_value_equals("asd", "key0", "VALUE00")
    assert len(driver.verify_db_data_exists()) == 1

    driver.clear_rules()
    driver.check_field_value_equals("asd", "key0", "VaLUE00")
    with pytest.raises(VerificationFailedError):
        driver.verify_db_data_exists()


def test_encryptor_is_captured_when_check_is_added(driver: DbVerification) -> None:
    driver.check_field_value_equals("asd", "key0", "value00")
    driver.set_db_encryptor(UpperCaseEncryptor())
    assert len(driver.verify_db_data_exists()) == 1


def test_numeric_equals(driver: DbVerification) -> None:
    driver.check_field_value_equals("numeric", "key", 0)
    assert len(driver.verify_db_data_exists()) == 1


def test_numeric_equals_fails(driver: DbVerification) -> None:
    driver.check_field_value_equals("numeric", "key", 23)
    with pytest.raises(VerificationFailedError):
        driver.verify_db_data_exists()


def test_numeric_equality_ignores_representation(driver: DbVerification) -> None:
    driver.check_field_value_equals("numeric", "key", 1.0)
    assert len(driver.verify_db_data_exists()) == 1


def test_binary_equals(driver: DbVerification) -> None:
    driver.check_field_value_equals("binary", "key", bytes([1, 2, 0]))
    assert len(driver.verify_db_data_exists()) == 1


def test_binary_equals_fails(driver: DbVerification) -> None:
    driver.check_field_value_equals("binary", "key", bytes([1]))
    with pytest.raises(VerificationFailedError):
        driver.verify_db_data_exists()


def test_boolean_equals(driver: DbVerification) -> None:
    driver.check_field_value_equals("boolean", "keyString", False)
    driver.check_field_value_equals("boolean", "keyNumber", True)
    assert len(driver.verify_db_data_exists()) == 2


def test_regex_and_contains(driver: DbVerification) -> None:
    driver.check_field_value_regex("asd", "key0", "val.*")
    driver.check_field_value_contains("", "test_key", "value")
    driver.check_field_value_does_not_contain("", "key1", "value1")
    driver.check_field_value_regex_does_not_match("", "key2", "^value1")
    assert [item.get_property("asd.key0.0") for item in driver.verify_db_data_exists()] == ["value00"]


def test_date_checks(driver: DbVerification) -> None:
    yesterday = int((TODAY - timedelta(days=1)).timestamp())
    tomorrow = int((TODAY + timedelta(days=1)).timestamp())
    driver.check_field_value_date_before("Date", "today", yesterday)
    driver.check_field_value_date_after("Date", "today", tomorrow)
    assert len(driver.verify_db_data_exists()) == 2


def test_string_check_on_numeric_column_raises(driver: DbVerification) -> None:
    driver.check_field_value_equals("numeric", "key", "0")
    with pytest.raises(MetaDataIncorrectError):
        driver.verify_db_data_exists()


def test_unsupported_value_type(driver: DbVerification) -> None:
    with pytest.raises(TypeError):
        driver.check_field_value_equals("asd", "key0", object())


def test_verify_db_data_never_exists(driver: DbVerification, provider: MockDbProvider) -> None:
    driver.check_field_value_equals("asd", "key0", "absent")
    driver.verify_db_data_never_exists()
    assert provider.calls == 2


def test_verify_db_data_does_not_exist_fails_on_match(driver: DbVerification) -> None:
    driver.check_field_value_equals("asd", "key0", "value00")
    with pytest.raises(VerificationFailedError) as excinfo:
        driver.verify_db_data_does_not_exist()
    assert "Expected to not find" in str(excinfo.value)


def test_monitor_name_uses_provider_description(driver: DbVerification) -> None:
    assert driver.monitor_name == "db_monitor_mock"


# -- date rule -----------------------------------------------------------------


def test_date_rule_parses_string_values_with_pattern() -> None:
    meta = DbMetaData.from_row([DbRecordValue("t", "created", "2026-10-19 12:00:00")])
    rule = DbDateFieldRule(
        "t", "created", TODAY, DateRelation.EXACT, "checkDate", actual_value_pattern="%Y-%m-%d %H:%M:%S"
    )
    assert rule.is_match(meta)


def test_date_rule_without_pattern_rejects_strings() -> None:
    meta = DbMetaData.from_row([DbRecordValue("t", "created", "2026-10-19")])
    rule = DbDateFieldRule("t", "created", TODAY, DateRelation.EXACT, "checkDate")
    with pytest.raises(MetaDataIncorrectError):
        rule.is_match(meta)


def test_null_expectation_matches_only_null() -> None:
    meta = DbMetaData.from_row([DbRecordValue("t", "c", None)])
    rule = DbDateFieldRule("t", "c", None, DateRelation.EXACT, "checkDate")
    assert rule.is_match(meta)


# -- SQLAlchemy provider ---------------------------------------------------------


@pytest.fixture
def sqlite_provider(tmp_path) -> SqlAlchemyDbProvider:
    engine = create_engine(f"sqlite:///{tmp_path / 'rules.db'}")
    with engine.begin() as connection:
        connection.execute(text("CREATE TABLE jobs (id INTEGER PRIMARY KEY, status TEXT)"))
        connection.execute(text("INSERT INTO jobs (id, status) VALUES (1, 'done'), (2, 'running')"))
    provider = SqlAlchemyDbProvider(engine=engine)
    yield provider
    provider.dispose()


def test_sqlalchemy_provider_binds_parameters(sqlite_provider: SqlAlchemyDbProvider) -> None:
    rows = sqlite_provider.select(
        DbSearchTerm("SELECT id, status FROM jobs WHERE status = :status", {"status": "done"}, table="jobs")
    )
    assert rows == [[DbRecordValue("jobs", "id", 1), DbRecordValue("jobs", "status", "done")]]


def test_sqlalchemy_provider_wraps_errors(sqlite_provider: SqlAlchemyDbProvider) -> None:
    with pytest.raises(StorageError):
        sqlite_provider.select(DbSearchTerm("SELECT * FROM missing"))


def test_driver_over_sqlalchemy(sqlite_provider: SqlAlchemyDbProvider, settings, clock) -> None:
    driver = DbVerification.for_table(
        "jobs", sqlite_provider, settings=settings, clock=clock, sleep=clock.sleep
    )
    driver.check_field_value_equals("jobs", "status", "running")
    driver.check_field_value_equals("jobs", "id", 2)
    assert len(driver.verify_db_data_exists()) == 1


def test_unlabelled_query_matches_table_qualified_checks(
    sqlite_provider: SqlAlchemyDbProvider, settings, clock
) -> None:
    driver = DbVerification(
        DbSearchTerm("SELECT id, status FROM jobs"),
        sqlite_provider,
        settings=settings,
        clock=clock,
        sleep=clock.sleep,
    )
    driver.check_field_value_equals("jobs", "status", "done")
    assert [item.get_property(".id.0") for item in driver.verify_db_data_exists()] == [1]

    driver.clear_rules()
    driver.check_field_value_equals("jobs", "status", "cancelled")
    with pytest.raises(VerificationFailedError):
        driver.verify_db_data_exists()


def test_unknown_column_names_available_keys() -> None:
    meta = DbMetaData.from_row([DbRecordValue("jobs", "status", "done")])
    rule = DbDateFieldRule("people", "created", TODAY, DateRelation.EXACT, "checkDate")
    with pytest.raises(MetaDataIncorrectError, match=r"jobs\.status\.0"):
        rule.is_match(meta)
