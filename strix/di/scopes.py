"""
Scope definitions and validation.
"""

from enum import Enum


class Scope(str, Enum):
    """Provider lifetime scopes."""

    SINGLETON = "singleton"  # One instance per container
    TRANSIENT = "transient"  # New instance every resolve
    REQUEST = "request"      # One instance per request scope


def can_inject_into(provider_scope: Scope, consumer_scope: Scope) -> bool:
    """
    Check if a provider of ``provider_scope`` may be held by a consumer.

    Rules:
    - Singleton and transient providers can be injected anywhere
    - Request-scoped providers cannot be held by a singleton
    """
    if provider_scope is Scope.REQUEST:
        return consumer_scope is not Scope.SINGLETON
    return True


def coerce_scope(value: "Scope | str") -> Scope:
    """Accept ``Scope`` members or their string values."""
    if isinstance(value, Scope):
        return value
    try:
        return Scope(str(value).lower())
    except ValueError:
        valid = ", ".join(s.value for s in Scope)
        raise ValueError(f"Unknown scope {value!r}; expected one of: {valid}") from None
