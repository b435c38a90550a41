"""
Decorators and injection helpers for ergonomic DI usage.
"""

from dataclasses import dataclass
from typing import Any, Optional, Type, TypeVar, Union

from ..constants import AUTOWIRED, INJECTABLE, AttachMode
from ..metadata import store
from .providers import InjectableOptions, PropertyInjection
from .scopes import Scope, coerce_scope


T = TypeVar("T")


@dataclass(frozen=True)
class Inject:
    """
    Injection metadata marker.

    Usage:
        def __init__(self, repo: Annotated[UserRepo, Inject("USER_REPO")]):
            ...
    """

    token: Any = None
    optional: bool = False


def inject(token: Any = None, *, optional: bool = False) -> Inject:
    """
    Create injection metadata.

    Args:
        token: Optional explicit token (inferred from type hint if None)
        optional: If True, inject None if provider not found

    Example:
        def __init__(
            self,
            cache: Annotated[Cache, inject(optional=True)],
            config: Annotated[dict, inject("APP_CONFIG")],
        ):
            ...
    """
    return Inject(token=token, optional=optional)


def injectable(
    cls: Optional[Type[T]] = None,
    *,
    scope: Union[Scope, str] = Scope.SINGLETON,
    token: Any = None,
) -> Any:
    """
    Mark a class as an injectable provider.

    Usable bare (``@injectable``) or with options
    (``@injectable(scope="request")``).
    """
    options = InjectableOptions(scope=coerce_scope(scope), token=token)

    def decorator(target: Type[T]) -> Type[T]:
        store.attach(target, INJECTABLE, options)
        return target

    if cls is not None:
        return decorator(cls)
    return decorator


class Autowired:
    """
    Property injection marker.

    The attribute is filled right after construction, before the instance
    is handed to anyone.

    Example:
        @injectable
        class ReportService:
            mailer: Mailer = Autowired()
            settings = Autowired("APP_CONFIG")
    """

    def __init__(self, token: Any = None, *, optional: bool = False):
        self.token = token
        self.optional = optional
        self.name: Optional[str] = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        store.attach(
            owner,
            AUTOWIRED,
            PropertyInjection(attribute=name, token=self.token, optional=self.optional),
            AttachMode.APPEND,
        )

    def __get__(self, instance: Any, owner: type) -> Any:
        if instance is None:
            return self
        raise AttributeError(
            f"'{owner.__name__}.{self.name}' has not been injected; "
            "resolve the instance through the container"
        )
