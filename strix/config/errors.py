"""
Config provider faults.
"""

from typing import Any, Iterable, List, Optional

from ..di.errors import DuplicateTokenError, UnresolvedDependencyError
from ..faults.core import Fault, FaultDomain, Severity


class ConfigProviderAlreadyRegisteredError(DuplicateTokenError):
    """A config provider already owns the token."""

    def __init__(self, token: str, existing_name: str, attempted_name: str):
        super().__init__(
            token,
            existing_name,
            attempted_name,
            code="CONFIG_PROVIDER_ALREADY_REGISTERED",
            message=(
                f'Config provider with token "{token}" is already registered.\n'
                f"Existing: {existing_name}\n"
                f"Attempted: {attempted_name}\n"
                f"Use a different token or remove the duplicate registration."
            ),
        )
        self.domain = FaultDomain.CONFIG


class ConfigProviderNotFoundError(UnresolvedDependencyError):
    """No config provider is registered under the token."""

    def __init__(self, token: str, available_tokens: Optional[Iterable[str]] = None, requested_by: Any = None):
        self.available_tokens: List[str] = sorted(available_tokens or [])

        suggestion = ""
        if self.available_tokens:
            suggestion = f"\n\nAvailable tokens: {', '.join(self.available_tokens)}"

        super().__init__(
            token,
            requested_by,
            code="CONFIG_PROVIDER_NOT_FOUND",
            message=(
                f'Config provider with token "{token}" not found.{suggestion}\n'
                f"Make sure the provider class is:\n"
                f"1. Decorated with @config_provider('{token}')\n"
                f"2. Located in a package passed to discovery\n"
                f"3. Importable without errors"
            ),
            metadata={"available_tokens": self.available_tokens},
        )
        self.domain = FaultDomain.CONFIG


class InvalidConfigTokenError(Fault):
    """Config tokens must be non-empty UPPER_SNAKE strings."""

    def __init__(self, token: Any, class_name: str):
        self.token = token
        self.class_name = class_name
        super().__init__(
            code="INVALID_CONFIG_TOKEN",
            message=(
                f"Invalid config token {token!r} on {class_name}: tokens must be "
                f"non-empty UPPER_SNAKE_CASE strings such as 'APP_CONFIG'"
            ),
            domain=FaultDomain.CONFIG,
            severity=Severity.FATAL,
            metadata={"token": token, "class": class_name},
        )


class ConfigValidationError(Fault):
    """Environment values did not satisfy the provider's schema."""

    def __init__(self, class_name: str, errors: List[dict]):
        self.class_name = class_name
        self.errors = errors

        lines = [f"Configuration validation failed for {class_name}:"]
        for err in errors:
            loc = ".".join(str(part) for part in err.get("loc", ())) or "<root>"
            lines.append(f"  - {loc}: {err.get('msg', 'invalid value')}")

        super().__init__(
            code="CONFIG_VALIDATION_FAILED",
            message="\n".join(lines),
            domain=FaultDomain.CONFIG,
            severity=Severity.FATAL,
            metadata={"class": class_name, "errors": errors},
        )
