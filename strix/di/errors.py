"""
DI-specific fault types with rich diagnostics.
"""

from typing import Any, List, Optional

from ..faults.core import Fault, FaultDomain, Severity


def token_name(token: Any) -> str:
    """Readable name for a class or string token."""
    if isinstance(token, str):
        return token
    return getattr(token, "__qualname__", None) or getattr(token, "__name__", None) or repr(token)


class DIFault(Fault):
    """Base fault for dependency injection errors."""

    domain = FaultDomain.DI

    def __init__(self, code: str, message: str, *, metadata: Optional[dict] = None):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.DI,
            severity=Severity.FATAL,
            metadata=metadata,
        )


class DuplicateTokenError(DIFault):
    """A provider is already registered for the token."""

    def __init__(self, token: Any, existing: str, attempted: str, *, code: str = "DUPLICATE_TOKEN", message: Optional[str] = None):
        self.token = token
        self.existing = existing
        self.attempted = attempted

        if message is None:
            message = (
                f"Provider for token '{token_name(token)}' is already registered.\n"
                f"Existing: {existing}\n"
                f"Attempted: {attempted}"
            )

        super().__init__(
            code,
            message,
            metadata={"token": token_name(token), "existing": existing, "attempted": attempted},
        )


class CircularDependencyError(DIFault):
    """Circular dependency detected while resolving."""

    def __init__(self, chain: List[Any]):
        self.chain = list(chain)

        msg = "Detected dependency cycle:\n  "
        msg += " -> ".join(token_name(t) for t in self.chain)
        msg += "\n\nSuggested fixes:"
        msg += "\n  - Inject a factory instead of the instance"
        msg += "\n  - Extract the shared part into a third provider"

        super().__init__(
            "CIRCULAR_DEPENDENCY",
            msg,
            metadata={"chain": [token_name(t) for t in self.chain]},
        )


class UnresolvedDependencyError(DIFault):
    """No provider is registered for the requested token."""

    def __init__(
        self,
        token: Any,
        requested_by: Any = None,
        *,
        code: str = "UNRESOLVED_DEPENDENCY",
        message: Optional[str] = None,
        metadata: Optional[dict] = None,
    ):
        self.token = token
        self.requested_by = requested_by

        if message is None:
            message = f"No provider found for token={token_name(token)}"
            if requested_by is not None:
                message += f"\nRequested by: {token_name(requested_by)}"
            message += "\n\nSuggested fixes:"
            message += f"\n  - Register a provider for {token_name(token)}"
            message += "\n  - Mark the dependency optional with Inject(optional=True)"

        meta = {"token": token_name(token)}
        if requested_by is not None:
            meta["requested_by"] = token_name(requested_by)
        meta.update(metadata or {})

        super().__init__(code, message, metadata=meta)


class ProviderInstantiationError(DIFault):
    """A provider's own initializer raised."""

    def __init__(self, token: Any, implementation_name: str, cause: BaseException):
        self.token = token
        self.implementation_name = implementation_name
        self.cause = cause
        super().__init__(
            "PROVIDER_INSTANTIATION_FAILED",
            (
                f"Failed to instantiate '{implementation_name}' "
                f"(token: '{token_name(token)}'): {type(cause).__name__}: {cause}"
            ),
            metadata={"token": token_name(token), "implementation": implementation_name},
        )


class ScopeViolationError(DIFault):
    """Scope rules forbid this resolution."""

    def __init__(self, token: Any, reason: str, *, consumer: Any = None):
        self.token = token
        self.consumer = consumer
        meta = {"token": token_name(token)}
        if consumer is not None:
            meta["consumer"] = token_name(consumer)
        super().__init__("SCOPE_VIOLATION", reason, metadata=meta)


class AsyncResolutionRequiredError(DIFault):
    """Synchronous resolve hit a provider that must be awaited."""

    def __init__(self, token: Any, blocking: Any = None):
        self.token = token
        self.blocking = blocking if blocking is not None else token
        super().__init__(
            "ASYNC_RESOLUTION_REQUIRED",
            (
                f"Resolving '{token_name(token)}' requires awaiting "
                f"'{token_name(self.blocking)}'; use 'await container.resolve_async(...)'"
            ),
            metadata={"token": token_name(token), "blocking": token_name(self.blocking)},
        )


class InvalidProviderError(DIFault):
    """A class or factory cannot be described as a provider."""

    def __init__(self, target: Any, reason: str):
        self.target = target
        super().__init__(
            "INVALID_PROVIDER",
            f"Cannot register {token_name(target)}: {reason}",
            metadata={"target": token_name(target)},
        )
