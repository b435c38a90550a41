"""
Config provider decorators.
"""

from dataclasses import dataclass
from typing import Any, Optional

from ..constants import CONFIG_PROPERTIES, CONFIG_PROVIDER, AttachMode
from ..metadata import store
from ..utils.naming import config_token_for, is_config_token, to_upper_snake
from .errors import InvalidConfigTokenError


@dataclass(frozen=True)
class ConfigProviderOptions:
    token: str


@dataclass(frozen=True)
class ConfigBinding:
    """Attribute -> environment variable mapping."""

    attribute: str
    env_key: str


def config_provider(target: Any = None, *, token: Optional[str] = None) -> Any:
    """
    Mark a class as a config provider.

    The token defaults to the class name with any ``Provider`` suffix
    dropped, in UPPER_SNAKE_CASE.

    Example:
        @config_provider
        class DatabaseConfig(AbstractConfigProvider):      # DATABASE_CONFIG
            ...

        @config_provider("APP_SETTINGS_CONFIG")
        class SettingsProvider(AbstractConfigProvider):
            ...

    Raises:
        InvalidConfigTokenError: Empty or non-UPPER_SNAKE token
    """
    if isinstance(target, str):
        token, target = target, None

    def decorator(cls: type) -> type:
        resolved = token if token is not None else config_token_for(cls.__name__)
        if not is_config_token(resolved):
            raise InvalidConfigTokenError(resolved, cls.__name__)
        store.attach(cls, CONFIG_PROVIDER, ConfigProviderOptions(token=resolved))
        return cls

    if target is not None:
        return decorator(target)
    return decorator


class ConfigProperty:
    """
    Bind a config provider attribute to an environment variable.

    Without an explicit key the attribute name is converted to
    UPPER_SNAKE_CASE (``dbPort`` and ``db_port`` both bind ``DB_PORT``).

    Example:
        class DatabaseConfig(AbstractConfigProvider):
            host: str = ConfigProperty("DB_HOST")
            db_port: int = ConfigProperty()
    """

    def __init__(self, env_key: Optional[str] = None):
        self.env_key = env_key
        self.attribute: Optional[str] = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.attribute = name
        if self.env_key is None:
            self.env_key = to_upper_snake(name)
        store.attach(owner, CONFIG_PROPERTIES, ConfigBinding(name, self.env_key), AttachMode.APPEND)

    def __get__(self, instance: Any, owner: type) -> Any:
        if instance is None:
            return self
        return None
