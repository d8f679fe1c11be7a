"""Relational database backend."""

from .folder import DbFolder, DbMetaData, DbMetaDataKey, DbStorage, db_row_identity
from .provider import (
    DbEncryptor,
    DbProvider,
    DbRecordValue,
    DbRow,
    DbSearchTerm,
    SqlAlchemyDbProvider,
)
from .rules import (
    DateRelation,
    DbBinaryFieldRule,
    DbBooleanFieldRule,
    DbDateFieldRule,
    DbFieldsRule,
    DbNumericFieldRule,
    DbStringFieldRule,
    StringRelation,
)

__all__ = [
    "DbSearchTerm",
    "DbRecordValue",
    "DbRow",
    "DbProvider",
    "DbEncryptor",
    "SqlAlchemyDbProvider",
    "DbMetaDataKey",
    "DbMetaData",
    "DbFolder",
    "DbStorage",
    "db_row_identity",
    "DbFieldsRule",
    "StringRelation",
    "DbStringFieldRule",
    "DbNumericFieldRule",
    "DbBinaryFieldRule",
    "DbBooleanFieldRule",
    "DateRelation",
    "DbDateFieldRule",
]
