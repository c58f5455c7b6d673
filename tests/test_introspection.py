"""Tests for schema introspection."""

import pytest

from dbmigrator.introspection import (
    SchemaIntrospector,
    build_column,
    map_native_type,
    parse_boolean,
    split_native_type,
)
from dbmigrator.schema import Column, ColumnProperty, ColumnType

from conftest import OracleCatalog


class TestTypeMapping:
    """Tests for native type to semantic type mapping."""

    def test_small_integral_number_is_int16(self):
        assert map_native_type("NUMBER", 5, 0) == ColumnType.INT16
        assert map_native_type("NUMBER", 10, 0) == ColumnType.INT16

    def test_large_integral_number_is_int64(self):
        assert map_native_type("NUMBER", 19, 0) == ColumnType.INT64

    def test_scaled_number_is_decimal(self):
        assert map_native_type("NUMBER", 19, 5) == ColumnType.DECIMAL

    def test_unconstrained_number_is_decimal(self):
        assert map_native_type("NUMBER") == ColumnType.DECIMAL

    def test_float_family_is_double(self):
        assert map_native_type("BINARY_DOUBLE") == ColumnType.DOUBLE
        assert map_native_type("double precision") == ColumnType.DOUBLE

    def test_temporal_types_are_datetime(self):
        assert map_native_type("DATE") == ColumnType.DATETIME
        assert map_native_type("TIMESTAMP(4)") == ColumnType.DATETIME

    def test_unknown_type_is_string(self):
        assert map_native_type("NVARCHAR2") == ColumnType.STRING
        assert map_native_type("XMLTYPE") == ColumnType.STRING

    def test_split_native_type(self):
        assert split_native_type("NUMERIC(10,2)") == ("NUMERIC", 10, 2)
        assert split_native_type("VARCHAR(255)") == ("VARCHAR", 255, None)
        assert split_native_type("TEXT") == ("TEXT", None, None)


class TestParseBoolean:
    """Tests for catalog boolean parsing."""

    @pytest.mark.parametrize("value", ["Y", "y", "YES", "1", 1, True])
    def test_true_values(self, value):
        assert parse_boolean(value) is True

    @pytest.mark.parametrize("value", ["N", "no", "0", 0, False])
    def test_false_values(self, value):
        assert parse_boolean(value) is False

    def test_garbage_rejected(self):
        with pytest.raises(ValueError):
            parse_boolean("maybe")

    def test_build_column_nullability(self):
        """Catalog nullability maps to explicit NULL / NOT_NULL flags."""
        nullable = build_column("name", "NVARCHAR2", 100, None, None, "Y")
        required = build_column("id", "NUMBER", 22, 19, 0, "N")
        assert nullable.properties == ColumnProperty.NULL
        assert nullable.size == 100
        assert required.is_not_null
        assert required.type == ColumnType.INT64


class TestSqliteIntrospection:
    """Catalog lookups against a real SQLite database."""

    @pytest.fixture
    def users(self, provider):
        provider.add_table(
            "users",
            Column("id", ColumnType.INT32, properties=ColumnProperty.PRIMARY_KEY_WITH_IDENTITY),
            Column("email", ColumnType.STRING, 120, properties=ColumnProperty.NOT_NULL),
        )
        provider.add_index("ix_users_email", "users", "email")
        return provider

    def test_table_exists_is_case_insensitive(self, users):
        assert users.table_exists("users")
        assert users.table_exists("USERS")
        assert not users.table_exists("orders")

    def test_column_exists(self, users):
        assert users.column_exists("users", "Email")
        assert not users.column_exists("users", "phone")
        assert not users.column_exists("orders", "email")

    def test_index_exists(self, users):
        assert users.index_exists("users", "ix_users_email")
        assert not users.index_exists("users", "ix_missing")

    def test_get_tables_excludes_internal_tables(self, users):
        """sqlite_sequence (created by AUTOINCREMENT) is not listed."""
        assert users.get_tables() == ["users"]

    def test_get_columns(self, users):
        columns = users.get_columns("users")
        assert [c.name for c in columns] == ["id", "email"]
        email = users.get_column("users", "EMAIL")
        assert email.type == ColumnType.STRING
        assert email.size == 120
        assert email.is_not_null

    def test_sequences_not_supported(self, users):
        assert not users.sequence_exists("users_SEQUENCE")


class TestOracleIntrospection:
    """Oracle catalog queries issued through the override registry."""

    def test_table_exists_uses_user_tables(self, recording_oracle):
        provider, database = recording_oracle(OracleCatalog(tables=["users"]))
        assert provider.table_exists("USERS")
        assert database.queries == [
            "SELECT COUNT(table_name) FROM user_tables WHERE lower(table_name) = 'users'"
        ]

    def test_default_schema_uses_all_tables(self, recording_oracle):
        provider, database = recording_oracle(OracleCatalog(tables=["users"]), default_schema="APP")
        provider.table_exists("users")
        assert database.queries[0] == (
            "SELECT COUNT(table_name) FROM all_tables "
            "WHERE lower(table_name) = 'users' AND lower(owner) = 'app'"
        )

    def test_column_exists_short_circuits_on_missing_table(self, recording_oracle):
        provider, database = recording_oracle(OracleCatalog())
        assert not provider.column_exists("users", "email")
        assert len(database.queries) == 1

    def test_get_columns_parses_nullable_flags(self, recording_oracle):
        catalog = OracleCatalog(
            column_rows={
                "users": [
                    ("ID", "NUMBER", 22, 10, 0, "N"),
                    ("NAME", "NVARCHAR2", 200, None, None, "Y"),
                ]
            }
        )
        provider, _ = recording_oracle(catalog)
        id_column, name_column = provider.get_columns("users")
        assert id_column.type == ColumnType.INT16
        assert id_column.is_not_null
        assert name_column.is_nullable

    def test_literals_are_escaped(self, recording_oracle):
        provider, database = recording_oracle(OracleCatalog())
        provider.table_exists("o'brien")
        assert "'o''brien'" in database.queries[0]

    def test_introspector_without_overrides_uses_information_schema(self):
        from dbmigrator import get_dialect

        from conftest import RecordingDatabase

        database = RecordingDatabase(lambda sql: 1)
        introspector = SchemaIntrospector(database, get_dialect("postgresql"))
        assert introspector.table_exists("public.users")
        assert database.queries[0] == (
            "SELECT COUNT(*) FROM information_schema.tables "
            "WHERE lower(table_name) = 'users' AND lower(table_schema) = 'public'"
        )
