"""
Strix Config

Config providers are singletons registered under UPPER_SNAKE tokens
(``APP_CONFIG``) that read their values from the process environment.
"""

from .decorators import ConfigBinding, ConfigProperty, ConfigProviderOptions, config_provider
from .env import is_env_loaded, load_env_files, reset_env_loaded
from .errors import (
    ConfigProviderAlreadyRegisteredError,
    ConfigProviderNotFoundError,
    ConfigValidationError,
    InvalidConfigTokenError,
)
from .provider import AbstractConfigProvider, config_bindings

__all__ = [
    "AbstractConfigProvider",
    "config_provider",
    "ConfigProperty",
    "ConfigBinding",
    "ConfigProviderOptions",
    "config_bindings",
    "load_env_files",
    "reset_env_loaded",
    "is_env_loaded",
    "ConfigProviderAlreadyRegisteredError",
    "ConfigProviderNotFoundError",
    "ConfigValidationError",
    "InvalidConfigTokenError",
]
