"""
FluentRoute - Configuration Tests
==================================

What:  Tests for ServerConfig, JWTSettings and check_env.
How:   Environment variables are set per test with pytest's monkeypatch.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from fluentroute.config import JWTSettings, ServerConfig, check_env
from fluentroute.exceptions import ConfigurationError


class TestServerConfig:
    def test_reads_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("FLUENTROUTE_PORT", "9000")
        monkeypatch.setenv("FLUENTROUTE_CORS", "true")
        config = ServerConfig()

        assert config.port == 9000
        assert config.cors is True

    def test_unprefixed_hostname_is_ignored(self, monkeypatch):
        monkeypatch.setenv("HOSTNAME", "container-1234")
        assert ServerConfig().hostname == "0.0.0.0"

    def test_log_level_is_normalized(self):
        assert ServerConfig(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(PydanticValidationError):
            ServerConfig(log_level="chatty")

    @pytest.mark.parametrize("port", [0, 70000])
    def test_port_range(self, port):
        with pytest.raises(PydanticValidationError):
            ServerConfig(port=port)

    def test_timeout_must_be_positive(self):
        with pytest.raises(PydanticValidationError):
            ServerConfig(request_timeout=0)


class TestJWTSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET", raising=False)
        settings = JWTSettings()

        assert settings.secret == ""
        assert settings.expires_in == 3600
        assert settings.algorithm == "HS256"

    def test_rejects_asymmetric_algorithm(self):
        with pytest.raises(PydanticValidationError):
            JWTSettings(secret="x", algorithm="RS256")


class TestCheckEnv:
    def test_all_present(self):
        config = {"database": {"DB_URL": "postgres://db", "DB_USER": "app"}}
        assert check_env(config) is config

    def test_reports_every_missing_key(self):
        config = {
            "database": {"DB_URL": "postgres://db", "DB_USER": ""},
            "auth": {"JWT_SECRET": None},
        }
        with pytest.raises(ConfigurationError) as exc_info:
            check_env(config)

        assert exc_info.value.message == (
            "Missing required environment variables: DB_USER, JWT_SECRET"
        )
        assert exc_info.value.context["missing"] == ["DB_USER", "JWT_SECRET"]

    def test_empty_groups_are_skipped(self):
        assert check_env({"optional": None, "other": {}}) == {"optional": None, "other": {}}
