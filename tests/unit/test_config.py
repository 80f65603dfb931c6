"""Unit Tests for configuration models

Validates:
- Dialect normalization and rejection of unknown dialects
- ConnectionConfig URL building and password masking
- Parsing connections from URLs and the JSON connections file
- ServerSettings environment handling
"""

import json
from pathlib import Path

import pydantic
import pytest

from multidb_mcp.models.config import (
    ConnectionConfig,
    Dialect,
    ServerSettings,
    load_connections_file,
)


class TestDialect:
    """Test dialect parsing."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("postgres", Dialect.POSTGRES),
            ("PostgreSQL", Dialect.POSTGRES),
            ("postgresql+asyncpg", Dialect.POSTGRES),
            ("pg", Dialect.POSTGRES),
            ("mysql", Dialect.MYSQL),
            ("mysql+aiomysql", Dialect.MYSQL),
            ("MariaDB", Dialect.MYSQL),
        ],
    )
    def test_parse_variations(self, name: str, expected: Dialect):
        """Test that common spellings map to a supported dialect."""
        assert Dialect.parse(name) is expected

    def test_parse_unknown_raises(self):
        """Test that an unsupported dialect raises ValueError."""
        with pytest.raises(ValueError, match="Unsupported database dialect"):
            Dialect.parse("oracle")

    def test_default_ports(self):
        """Test the default port of each dialect."""
        assert Dialect.POSTGRES.default_port == 5432
        assert Dialect.MYSQL.default_port == 3306


class TestConnectionConfig:
    """Test connection configuration model."""

    def test_fields_from_aliases(self):
        """Test that the file field names (type, name) populate the model."""
        config = ConnectionConfig(
            id="pg1", type="postgresql", host="db", user="u", password="p", name="shop"
        )

        assert config.dialect is Dialect.POSTGRES
        assert config.catalog_name == "shop"
        assert config.effective_port == 5432

    def test_url_uses_async_driver(self):
        """Test that the SQLAlchemy URL selects the async driver."""
        config = ConnectionConfig(
            id="my1", type="mysql", host="db", port=3307, user="u", password="p", name="crm"
        )

        assert config.url == "mysql+aiomysql://u:p@db:3307/crm"

    def test_password_hidden(self):
        """Test that the password never appears in repr or the sanitized URL."""
        config = ConnectionConfig(id="pg1", type="postgres", user="u", password="hunter2")

        assert "hunter2" not in repr(config)
        assert "hunter2" not in config.sanitized_url
        assert "hunter2" in config.url

    def test_frozen(self):
        """Test that configurations are immutable."""
        config = ConnectionConfig(id="pg1", type="postgres")

        with pytest.raises(pydantic.ValidationError):
            config.host = "elsewhere"  # type: ignore[misc]

    def test_unknown_dialect_rejected(self):
        """Test that an unsupported type fails validation."""
        with pytest.raises(pydantic.ValidationError):
            ConnectionConfig(id="x", type="sqlite")

    def test_from_url(self):
        """Test parsing a connection from a URL."""
        config = ConnectionConfig.from_url(
            "default", "postgresql://app:pw@db.example.com:6543/orders"
        )

        assert config.id == "default"
        assert config.dialect is Dialect.POSTGRES
        assert config.host == "db.example.com"
        assert config.port == 6543
        assert config.user == "app"
        assert config.password == "pw"
        assert config.catalog_name == "orders"

    def test_from_jdbc_url(self):
        """Test that a jdbc: prefix is stripped."""
        config = ConnectionConfig.from_url("j", "jdbc:mysql://u:p@host/db")

        assert config.dialect is Dialect.MYSQL
        assert config.catalog_name == "db"


class TestConnectionsFile:
    """Test loading connections from JSON."""

    def test_load_file(self, tmp_path: Path):
        """Test loading a connections file preserves order and fields."""
        path = tmp_path / "connections.json"
        path.write_text(
            json.dumps(
                {
                    "connections": [
                        {
                            "id": "pg1",
                            "type": "postgres",
                            "host": "localhost",
                            "port": 5432,
                            "user": "postgres",
                            "password": "pw",
                            "name": "app",
                            "description": "Primary",
                        },
                        {"id": "my1", "type": "mysql", "name": "crm"},
                    ]
                }
            )
        )

        connections = load_connections_file(path)

        assert [c.id for c in connections] == ["pg1", "my1"]
        assert connections[0].description == "Primary"
        assert connections[1].effective_port == 3306

    def test_malformed_file(self, tmp_path: Path):
        """Test that a connection without an ID is rejected."""
        path = tmp_path / "connections.json"
        path.write_text(json.dumps({"connections": [{"type": "postgres"}]}))

        with pytest.raises(pydantic.ValidationError):
            load_connections_file(path)


class TestServerSettings:
    """Test environment-driven settings."""

    def test_defaults(self):
        """Test settings with an empty environment."""
        settings = ServerSettings.from_env({})

        assert settings.config_path is None
        assert settings.database_url is None
        assert settings.log_level == "INFO"
        assert settings.call_timeout is None
        assert settings.fail_on_all_statement_errors is False
        assert settings.load_connections() == []

    def test_values_from_environment(self):
        """Test parsing of every supported variable."""
        settings = ServerSettings.from_env(
            {
                "MULTIDB_LOG_LEVEL": "debug",
                "MULTIDB_CALL_TIMEOUT": "2.5",
                "MULTIDB_FAIL_ON_ALL_STATEMENT_ERRORS": "true",
            }
        )

        assert settings.log_level == "DEBUG"
        assert settings.call_timeout == 2.5
        assert settings.fail_on_all_statement_errors is True

    def test_invalid_log_level(self):
        """Test that an unknown log level is rejected."""
        with pytest.raises(pydantic.ValidationError):
            ServerSettings.from_env({"MULTIDB_LOG_LEVEL": "chatty"})

    def test_database_url_registers_default(self):
        """Test that DATABASE_URL adds a connection named 'default'."""
        settings = ServerSettings.from_env(
            {"DATABASE_URL": "mysql://u:p@host:3306/db"}
        )

        connections = settings.load_connections()

        assert len(connections) == 1
        assert connections[0].id == "default"
        assert connections[0].dialect is Dialect.MYSQL

    def test_file_takes_precedence_for_default(self, tmp_path: Path):
        """Test that a 'default' entry in the file wins over DATABASE_URL."""
        path = tmp_path / "connections.json"
        path.write_text(
            json.dumps({"connections": [{"id": "default", "type": "postgres"}]})
        )
        settings = ServerSettings.from_env(
            {"MULTIDB_CONFIG": str(path), "DATABASE_URL": "mysql://u:p@h/db"}
        )

        connections = settings.load_connections()

        assert [c.id for c in connections] == ["default"]
        assert connections[0].dialect is Dialect.POSTGRES
