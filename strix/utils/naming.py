"""
Naming helpers for config tokens and environment keys.
"""

import re

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_CONFIG_TOKEN = re.compile(r"^[A-Z][A-Z0-9_]*$")


def to_upper_snake(name: str) -> str:
    """
    Convert camelCase, PascalCase or snake_case to UPPER_SNAKE_CASE.

    Example:
        to_upper_snake("dbPort") -> "DB_PORT"
        to_upper_snake("db_port") -> "DB_PORT"
        to_upper_snake("HTTPServerPort") -> "HTTP_SERVER_PORT"
    """
    spaced = _CAMEL_BOUNDARY.sub("_", name.strip("_"))
    return re.sub(r"_+", "_", spaced).upper()


def is_config_token(token: object) -> bool:
    """Config tokens are non-empty UPPER_SNAKE strings."""
    return isinstance(token, str) and bool(_CONFIG_TOKEN.match(token))


def config_token_for(class_name: str) -> str:
    """
    Derive a config token from a class name.

    A trailing ``Provider`` is dropped before the conversion:
    ``AppConfigProvider`` -> ``APP_CONFIG``, ``DatabaseConfig`` ->
    ``DATABASE_CONFIG``, ``ConfigProvider`` -> ``CONFIG``.
    """
    base = class_name
    if base.endswith("Provider") and base != "Provider":
        base = base[: -len("Provider")]
    return to_upper_snake(base)
