"""
DI Container - registers provider descriptors and resolves them by token.

Resolution is async-first: ``resolve_async`` awaits async factories and
async ``on_init`` hooks. ``resolve`` drives the same code synchronously and
refuses graphs that would have to wait.
"""

import inspect
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, TypeVar, Union

from ..faults.core import Fault
from ..utils.naming import is_config_token
from .errors import (
    AsyncResolutionRequiredError,
    CircularDependencyError,
    DuplicateTokenError,
    ProviderInstantiationError,
    ScopeViolationError,
    UnresolvedDependencyError,
    token_name,
)
from .providers import (
    ProviderDescriptor,
    ProviderKind,
    describe_class,
    describe_factory,
    describe_value,
)
from .request_scope import current_request_cache, request_scope
from .scopes import Scope, can_inject_into


logger = logging.getLogger("strix.di")

T = TypeVar("T")

_MISSING = object()


class ResolveCtx:
    """
    Context for one resolution call.

    Tracks the in-progress stack for cycle detection and scope checks.
    """
    __slots__ = ("stack", "scopes")

    def __init__(self):
        self.stack: List[Any] = []
        self.scopes: List[Scope] = []

    def push(self, token: Any, scope: Scope) -> None:
        self.stack.append(token)
        self.scopes.append(scope)

    def pop(self) -> None:
        self.stack.pop()
        self.scopes.pop()

    def in_cycle(self, token: Any) -> bool:
        return token in self.stack

    def held_by_singleton(self) -> Optional[Any]:
        """Token of the nearest singleton under construction, if any."""
        for token, scope in zip(reversed(self.stack), reversed(self.scopes)):
            if scope is Scope.SINGLETON:
                return token
        return None


class Container:
    """
    DI Container - owns provider descriptors and singleton instances.

    Exactly one descriptor per token; a second registration is an error,
    never an overwrite.

    Example:
        ```python
        container = Container()
        container.register_class(UserRepository)
        container.register_value("API_KEY", "secret")
        repo = await container.resolve_async(UserRepository)
        ```
    """

    def __init__(self):
        self._providers: Dict[Any, ProviderDescriptor] = {}
        self._singletons: Dict[Any, Any] = {}
        self._created: List[Tuple[Any, Any]] = []  # construction order, for LIFO shutdown
        self._config_tokens: Dict[str, str] = {}  # token -> provider class name

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, descriptor: ProviderDescriptor) -> None:
        """
        Register a provider descriptor.

        Raises:
            DuplicateTokenError: If the token is already bound
        """
        token = descriptor.token
        existing = self._providers.get(token)
        if existing is not None:
            raise DuplicateTokenError(
                token,
                existing.implementation_name,
                descriptor.implementation_name,
            )

        self._providers[token] = descriptor
        logger.debug(
            "Registered %s (%s, %s)",
            token_name(token), descriptor.implementation_name, descriptor.scope.value,
        )

    def register_class(
        self,
        cls: type,
        *,
        token: Any = None,
        scope: Optional[Union[Scope, str]] = None,
    ) -> ProviderDescriptor:
        """Describe ``cls`` and register it."""
        descriptor = describe_class(cls, token=token, scope=scope)
        self.register(descriptor)
        return descriptor

    def register_value(self, token: Any, value: Any) -> None:
        """Bind a pre-built value to ``token``."""
        self.register(describe_value(token, value))

    def register_factory(
        self,
        token: Any,
        factory: Any,
        dependencies: Optional[Sequence[Any]] = None,
        scope: Union[Scope, str] = Scope.SINGLETON,
    ) -> None:
        """
        Bind a (sync or async) factory to ``token``.

        Args:
            token: Token the factory provides
            factory: Callable producing the instance
            dependencies: Tokens passed positionally; read from the
                factory's annotations when omitted
            scope: Lifetime of the produced instance
        """
        self.register(describe_factory(token, factory, dependencies, scope))

    def register_config_provider(self, token: str, cls: type) -> None:
        """
        Register a config provider class under its UPPER_SNAKE token.

        Raises:
            ConfigProviderAlreadyRegisteredError: If the token is bound
        """
        from ..config.errors import ConfigProviderAlreadyRegisteredError

        existing = self._providers.get(token)
        if existing is not None:
            raise ConfigProviderAlreadyRegisteredError(
                token, existing.implementation_name, cls.__name__,
            )

        self.register(describe_class(cls, token=token, scope=Scope.SINGLETON))
        self._config_tokens[token] = cls.__name__

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def is_registered(self, token: Any) -> bool:
        return token in self._providers

    def descriptor(self, token: Any) -> Optional[ProviderDescriptor]:
        return self._providers.get(token)

    @property
    def tokens(self) -> List[Any]:
        return list(self._providers)

    @property
    def config_tokens(self) -> List[str]:
        return sorted(self._config_tokens)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def get_config(self, token: str) -> Any:
        """
        Resolve a config provider by token.

        Raises:
            ConfigProviderNotFoundError: Listing every registered config token
        """
        if token not in self._config_tokens:
            from ..config.errors import ConfigProviderNotFoundError
            raise ConfigProviderNotFoundError(token, self.config_tokens)
        return self.resolve(token)

    async def get_config_async(self, token: str) -> Any:
        if token not in self._config_tokens:
            from ..config.errors import ConfigProviderNotFoundError
            raise ConfigProviderNotFoundError(token, self.config_tokens)
        return await self.resolve_async(token)

    def resolve(self, token: Any, *, optional: bool = False) -> Any:
        """
        Resolve synchronously.

        Raises:
            AsyncResolutionRequiredError: If anything in the graph must be awaited
        """
        blocking = self._find_async(token, set())
        if blocking is not None:
            raise AsyncResolutionRequiredError(token, blocking)

        coro = self.resolve_async(token, optional=optional)
        try:
            coro.send(None)
        except StopIteration as done:
            return done.value
        coro.close()
        raise AsyncResolutionRequiredError(token)

    async def resolve_async(self, token: Any, *, optional: bool = False) -> Any:
        """
        Async resolve (primary resolution path).

        Args:
            token: Class or string token
            optional: Return None instead of raising when unregistered

        Returns:
            The resolved instance
        """
        return await self._resolve(token, ResolveCtx(), optional=optional)

    async def _resolve(
        self,
        token: Any,
        ctx: ResolveCtx,
        *,
        optional: bool = False,
        requested_by: Any = None,
    ) -> Any:
        descriptor = self._providers.get(token)
        if descriptor is None:
            if optional:
                return None
            self._raise_not_found(token, requested_by)

        scope = descriptor.scope

        if scope is Scope.SINGLETON:
            cached = self._singletons.get(token, _MISSING)
            if cached is not _MISSING:
                return cached
        elif scope is Scope.REQUEST:
            holder = ctx.held_by_singleton()
            if holder is not None and not can_inject_into(scope, Scope.SINGLETON):
                raise ScopeViolationError(
                    token,
                    (
                        f"Singleton '{token_name(holder)}' cannot depend on "
                        f"request-scoped '{token_name(token)}'"
                    ),
                    consumer=holder,
                )
            cache = current_request_cache()
            if cache is None:
                raise ScopeViolationError(
                    token,
                    f"Request-scoped '{token_name(token)}' resolved outside a request scope",
                )
            cached = cache.get(token, _MISSING)
            if cached is not _MISSING:
                return cached

        if ctx.in_cycle(token):
            raise CircularDependencyError(ctx.stack + [token])

        ctx.push(token, scope)
        try:
            instance = await self._instantiate(descriptor, ctx)
        finally:
            ctx.pop()

        if scope is Scope.SINGLETON:
            # A concurrent resolution may have finished first; keep its instance.
            cached = self._singletons.get(token, _MISSING)
            if cached is not _MISSING:
                return cached
            self._singletons[token] = instance
            if descriptor.kind != ProviderKind.VALUE:
                self._created.append((token, instance))
        elif scope is Scope.REQUEST:
            current_request_cache()[token] = instance

        return instance

    async def _resolve_dependencies(self, descriptor: ProviderDescriptor, ctx: ResolveCtx) -> Tuple[list, dict]:
        args: list = []
        kwargs: dict = {}
        for dep in descriptor.dependencies:
            value = await self._resolve(
                dep.token, ctx, optional=dep.optional, requested_by=descriptor.token,
            )
            if dep.name is None:
                args.append(value)
            elif value is None and dep.has_default and not self.is_registered(dep.token):
                continue
            else:
                kwargs[dep.name] = value
        return args, kwargs

    async def _instantiate(self, descriptor: ProviderDescriptor, ctx: ResolveCtx) -> Any:
        if descriptor.kind == ProviderKind.VALUE:
            return descriptor.implementation

        args, kwargs = await self._resolve_dependencies(descriptor, ctx)

        if descriptor.kind == ProviderKind.FACTORY:
            result = await self._call_initializer(descriptor, descriptor.implementation, *args, **kwargs)
            if inspect.isawaitable(result):
                result = await self._await_initializer(descriptor, result)
            return result

        instance = await self._call_initializer(descriptor, descriptor.implementation, *args, **kwargs)

        for prop in descriptor.properties:
            value = await self._resolve(
                prop.token, ctx, optional=prop.optional, requested_by=descriptor.token,
            )
            setattr(instance, prop.attribute, value)

        on_init = getattr(instance, "on_init", None)
        if callable(on_init):
            result = await self._call_initializer(descriptor, on_init)
            if inspect.isawaitable(result):
                await self._await_initializer(descriptor, result)

        return instance

    async def _call_initializer(self, descriptor: ProviderDescriptor, fn: Any, *args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except Fault:
            raise
        except Exception as exc:
            raise ProviderInstantiationError(
                descriptor.token, descriptor.implementation_name, exc,
            ) from exc

    async def _await_initializer(self, descriptor: ProviderDescriptor, awaitable: Any) -> Any:
        try:
            return await awaitable
        except Fault:
            raise
        except Exception as exc:
            raise ProviderInstantiationError(
                descriptor.token, descriptor.implementation_name, exc,
            ) from exc

    def _find_async(self, token: Any, seen: set) -> Optional[Any]:
        """First token in the unbuilt part of the graph that must be awaited."""
        if token in seen or token in self._singletons:
            return None
        seen.add(token)

        descriptor = self._providers.get(token)
        if descriptor is None:
            return None
        if descriptor.is_async:
            return token

        for dep in descriptor.dependencies:
            found = self._find_async(dep.token, seen)
            if found is not None:
                return found
        for prop in descriptor.properties:
            found = self._find_async(prop.token, seen)
            if found is not None:
                return found
        return None

    def _raise_not_found(self, token: Any, requested_by: Any) -> None:
        if is_config_token(token):
            from ..config.errors import ConfigProviderNotFoundError
            raise ConfigProviderNotFoundError(token, self.config_tokens, requested_by)
        raise UnresolvedDependencyError(token, requested_by)

    # ------------------------------------------------------------------
    # Scopes & lifecycle
    # ------------------------------------------------------------------

    @contextmanager
    def request_scope(self) -> Iterator[Dict[Any, Any]]:
        """Open a fresh request-scoped cache for the enclosed block."""
        with request_scope() as cache:
            yield cache

    async def shutdown(self) -> None:
        """
        Run ``on_shutdown``/``close`` hooks of constructed singletons in LIFO order.

        Hook failures are logged, not raised.
        """
        for token, instance in reversed(self._created):
            hook = getattr(instance, "on_shutdown", None) or getattr(instance, "close", None)
            if not callable(hook):
                continue
            try:
                result = hook()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Shutdown hook failed for %s", token_name(token))

        self._created.clear()
        self._singletons.clear()
