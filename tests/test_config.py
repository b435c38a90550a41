"""
Config providers: tokens, property bindings, env files, validation, lookup.
"""

import os
from typing import Annotated, Any

import pytest
from pydantic import BaseModel

from strix.config import (
    AbstractConfigProvider,
    ConfigBinding,
    ConfigProperty,
    ConfigProviderAlreadyRegisteredError,
    ConfigProviderNotFoundError,
    ConfigValidationError,
    InvalidConfigTokenError,
    config_bindings,
    config_provider,
    is_env_loaded,
    load_env_files,
    reset_env_loaded,
)
from strix.constants import CONFIG_PROPERTIES, CONFIG_PROVIDER
from strix.di import DuplicateTokenError, Inject, UnresolvedDependencyError
from strix.metadata import store
from strix.utils.naming import config_token_for, to_upper_snake


@pytest.fixture
def env_keys():
    """Names of variables a test loads from .env files; removed afterwards."""
    keys = []
    yield keys
    for key in keys:
        os.environ.pop(key, None)


class DatabaseSchema(BaseModel):
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432


# ============================================================================
# Naming
# ============================================================================

class TestNaming:

    @pytest.mark.parametrize("name,expected", [
        ("dbPort", "DB_PORT"),
        ("db_port", "DB_PORT"),
        ("DbPort", "DB_PORT"),
        ("HTTPServerPort", "HTTP_SERVER_PORT"),
        ("apiV2Key", "API_V2_KEY"),
    ])
    def test_to_upper_snake(self, name, expected):
        assert to_upper_snake(name) == expected

    def test_token_from_class_name(self):
        assert config_token_for("AppConfigProvider") == "APP_CONFIG"
        assert config_token_for("DatabaseConfig") == "DATABASE_CONFIG"


# ============================================================================
# Decorators
# ============================================================================

class TestDecorators:

    def test_derived_token(self):
        @config_provider
        class AppConfigProvider(AbstractConfigProvider):
            pass

        assert store.read(AppConfigProvider, CONFIG_PROVIDER).token == "APP_CONFIG"

    def test_explicit_token(self):
        @config_provider("MAIL_CONFIG")
        class Mail(AbstractConfigProvider):
            pass

        @config_provider(token="CACHE_CONFIG")
        class Cache(AbstractConfigProvider):
            pass

        assert store.read(Mail, CONFIG_PROVIDER).token == "MAIL_CONFIG"
        assert store.read(Cache, CONFIG_PROVIDER).token == "CACHE_CONFIG"

    @pytest.mark.parametrize("token", ["", "lower_case", "Mixed", "1_START"])
    def test_invalid_tokens_are_rejected(self, token):
        with pytest.raises(InvalidConfigTokenError):
            @config_provider(token=token)
            class Bad(AbstractConfigProvider):
                pass

    def test_property_binding_is_computed_once_at_definition(self):
        class Settings(AbstractConfigProvider):
            dbPort = ConfigProperty()
            anything = ConfigProperty("CUSTOM_KEY")

        assert store.read(Settings, CONFIG_PROPERTIES) == [
            ConfigBinding("dbPort", "DB_PORT"),
            ConfigBinding("anything", "CUSTOM_KEY"),
        ]
        assert Settings.dbPort.env_key == "DB_PORT"

    def test_bindings_include_base_classes(self):
        class Base(AbstractConfigProvider):
            host = ConfigProperty("DB_HOST")

        class Child(Base):
            port = ConfigProperty("DB_PORT")

        assert [b.env_key for b in config_bindings(Child)] == ["DB_HOST", "DB_PORT"]


# ============================================================================
# Population
# ============================================================================

class TestPopulation:

    def test_values_come_from_environment(self, monkeypatch):
        monkeypatch.setenv("DB_PORT", "6543")
        monkeypatch.setenv("CUSTOM_KEY", "custom")

        class Settings(AbstractConfigProvider):
            dbPort = ConfigProperty()
            anything = ConfigProperty("CUSTOM_KEY")

        settings = Settings()
        assert settings.dbPort == "6543"
        assert settings.anything == "custom"
        assert settings.get("CUSTOM_KEY") == "custom"

    def test_unset_property_reads_none(self, monkeypatch):
        monkeypatch.delenv("NEVER_SET_KEY", raising=False)

        class Settings(AbstractConfigProvider):
            value = ConfigProperty("NEVER_SET_KEY")

        assert Settings().value is None

    def test_schema_coerces_and_applies_defaults(self, monkeypatch):
        monkeypatch.setenv("DB_PORT", "6543")
        monkeypatch.delenv("DB_HOST", raising=False)

        class DatabaseConfig(AbstractConfigProvider):
            host = ConfigProperty("DB_HOST")
            dbPort = ConfigProperty()

            def schema(self):
                return DatabaseSchema

        config = DatabaseConfig()
        assert config.dbPort == 6543
        assert config.host == "localhost"

    def test_schema_rejection(self, monkeypatch):
        monkeypatch.setenv("DB_PORT", "not-a-port")

        class DatabaseConfig(AbstractConfigProvider):
            dbPort = ConfigProperty()

            def schema(self):
                return DatabaseSchema

        with pytest.raises(ConfigValidationError) as exc_info:
            DatabaseConfig()

        err = exc_info.value
        assert err.class_name == "DatabaseConfig"
        assert err.errors[0]["loc"] == ("DB_PORT",)
        assert "DB_PORT" in err.message
        assert err.__cause__ is not None


# ============================================================================
# .env Files
# ============================================================================

class TestEnvFiles:

    def test_env_file_is_loaded(self, isolated_env, env_keys):
        env_keys.append("STRIX_TEST_BASE")
        (isolated_env / ".env").write_text("STRIX_TEST_BASE=from-file\n")

        load_env_files()
        assert os.environ["STRIX_TEST_BASE"] == "from-file"
        assert is_env_loaded()

    def test_real_environment_wins_over_base_file(self, isolated_env, monkeypatch):
        monkeypatch.setenv("STRIX_TEST_REAL", "real")
        (isolated_env / ".env").write_text("STRIX_TEST_REAL=file\n")

        load_env_files()
        assert os.environ["STRIX_TEST_REAL"] == "real"

    def test_environment_specific_file_overrides(self, isolated_env, env_keys, monkeypatch):
        env_keys.append("STRIX_TEST_MODE")
        monkeypatch.setenv("STRIX_ENV", "staging")
        (isolated_env / ".env").write_text("STRIX_TEST_MODE=base\n")
        (isolated_env / ".env.staging").write_text("STRIX_TEST_MODE=staging\n")
        (isolated_env / ".env.development").write_text("STRIX_TEST_MODE=development\n")

        load_env_files()
        assert os.environ["STRIX_TEST_MODE"] == "staging"

    def test_loaded_once_until_reset(self, isolated_env, env_keys):
        env_keys.append("STRIX_TEST_ONCE")
        load_env_files()
        (isolated_env / ".env").write_text("STRIX_TEST_ONCE=late\n")

        load_env_files()
        assert "STRIX_TEST_ONCE" not in os.environ

        reset_env_loaded()
        load_env_files()
        assert os.environ["STRIX_TEST_ONCE"] == "late"

    def test_provider_sees_env_file_values(self, isolated_env, env_keys):
        env_keys.append("STRIX_TEST_SECRET")
        (isolated_env / ".env").write_text("STRIX_TEST_SECRET=s3cret\n")

        class Settings(AbstractConfigProvider):
            secret = ConfigProperty("STRIX_TEST_SECRET")

        assert Settings().secret == "s3cret"


# ============================================================================
# Container Integration
# ============================================================================

class TestContainerIntegration:

    def test_duplicate_config_token(self, container):
        class First(AbstractConfigProvider):
            pass

        class Second(AbstractConfigProvider):
            pass

        container.register_config_provider("APP_CONFIG", First)
        with pytest.raises(ConfigProviderAlreadyRegisteredError) as exc_info:
            container.register_config_provider("APP_CONFIG", Second)

        err = exc_info.value
        assert isinstance(err, DuplicateTokenError)
        assert err.token == "APP_CONFIG"
        assert "First" in err.existing and "Second" in err.attempted
        assert 'Config provider with token "APP_CONFIG" is already registered.' in err.message

    def test_missing_token_lists_registered_tokens(self, container):
        class AppConfig(AbstractConfigProvider):
            pass

        class DbConfig(AbstractConfigProvider):
            pass

        container.register_config_provider("APP_CONFIG", AppConfig)
        container.register_config_provider("DB_CONFIG", DbConfig)

        with pytest.raises(ConfigProviderNotFoundError) as exc_info:
            container.get_config("MISSING")

        err = exc_info.value
        assert isinstance(err, UnresolvedDependencyError)
        assert err.available_tokens == ["APP_CONFIG", "DB_CONFIG"]
        assert "Available tokens: APP_CONFIG, DB_CONFIG" in err.message

    def test_missing_token_through_resolve(self, container):
        with pytest.raises(ConfigProviderNotFoundError):
            container.resolve("MISSING")

    def test_config_is_a_singleton_and_injectable(self, container, monkeypatch):
        monkeypatch.setenv("APP_NAME", "strix-app")

        class AppConfig(AbstractConfigProvider):
            name = ConfigProperty("APP_NAME")

        class Greeter:
            def __init__(self, config: Annotated[Any, Inject("APP_CONFIG")]):
                self.config = config

        container.register_config_provider("APP_CONFIG", AppConfig)
        container.register_class(Greeter)

        config = container.get_config("APP_CONFIG")
        assert config.name == "strix-app"
        assert container.resolve(Greeter).config is config
        assert container.config_tokens == ["APP_CONFIG"]
