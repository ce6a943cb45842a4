"""Tests for database configuration."""

from ecosort.db.connection import DatabaseConfig
from ecosort.db.init import SCHEMA_SQL


def test_connection_string_from_parts() -> None:
    config = DatabaseConfig({"host": "db", "port": 6543, "database": "eco", "user": "app", "password": "pw"})
    assert config.connection_string == "postgresql://app:pw@db:6543/eco"


def test_dsn_wins() -> None:
    config = DatabaseConfig({"host": "db", "dsn": "postgresql://postgres@supabase.example:5432/postgres"})
    assert config.connection_string == "postgresql://postgres@supabase.example:5432/postgres"


def test_missing_password_is_empty() -> None:
    config = DatabaseConfig({"password": None})
    assert config.connection_string == "postgresql://ecosort:@localhost:5432/ecosort"


def test_schema_is_idempotent_and_keyed() -> None:
    assert "UNIQUE (location, item_pattern)" in SCHEMA_SQL
    for statement in ("CREATE TABLE", "CREATE INDEX"):
        assert f"{statement} IF NOT EXISTS" in SCHEMA_SQL
        assert SCHEMA_SQL.count(statement) == SCHEMA_SQL.count(f"{statement} IF NOT EXISTS")
