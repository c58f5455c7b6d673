"""Statement generation for PostgreSQL and MySQL."""

import pytest

from dbmigrator import Column, ColumnProperty, ColumnType, TransformationProvider, get_dialect

from conftest import RecordingDatabase


def recording_provider(dialect, responder=lambda sql: 1):
    database = RecordingDatabase(responder)
    return TransformationProvider(database, get_dialect(dialect)), database


class TestPostgreSQL:
    def test_change_column_alters_type_in_place(self):
        provider, database = recording_provider("postgresql")
        provider.change_column(
            "users",
            Column("name", ColumnType.STRING, 200, properties=ColumnProperty.NOT_NULL, default="anon"),
        )
        assert database.statements == [
            "ALTER TABLE users ALTER COLUMN name TYPE VARCHAR(200) USING name::VARCHAR(200)",
            "ALTER TABLE users ALTER COLUMN name SET NOT NULL",
            "ALTER TABLE users ALTER COLUMN name SET DEFAULT 'anon'",
        ]

    def test_change_missing_column_is_noop(self):
        provider, database = recording_provider("postgresql", lambda sql: 0)
        provider.change_column("users", Column("name", ColumnType.STRING, 200))
        assert database.statements == []

    def test_identity_is_native(self):
        provider, database = recording_provider("postgresql", lambda sql: 0)
        provider.add_table(
            "users", Column("id", ColumnType.INT64, properties=ColumnProperty.PRIMARY_KEY_WITH_IDENTITY)
        )
        assert database.statements == [
            "CREATE TABLE users (id BIGINT NOT NULL GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY)"
        ]


class TestMySQL:
    def test_modify_column(self):
        provider, database = recording_provider("mysql")
        provider.modify_column("users", "name VARCHAR(200) NOT NULL")
        assert database.statements == ["ALTER TABLE users MODIFY COLUMN name VARCHAR(200) NOT NULL"]

    def test_remove_index_names_table(self):
        provider, database = recording_provider("mysql")
        provider.remove_index("users", "ix_users_email")
        assert database.statements == ["DROP INDEX ix_users_email ON users"]

    @pytest.mark.parametrize(
        "kind, expected",
        [
            ("FOREIGN KEY", "ALTER TABLE orders DROP FOREIGN KEY fk_orders"),
            ("PRIMARY KEY", "ALTER TABLE orders DROP PRIMARY KEY"),
            ("UNIQUE", "ALTER TABLE orders DROP INDEX fk_orders"),
        ],
    )
    def test_remove_constraint_by_kind(self, kind, expected):
        provider, database = recording_provider("mysql", lambda sql: [(kind,)])
        provider.remove_constraint("orders", "fk_orders")
        assert database.statements == [expected]
