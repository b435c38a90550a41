"""
Provider descriptors.

A descriptor is built once, when a class, factory or value is registered,
and carries everything the container needs: token, implementation, scope
and the ordered dependency list. The container never inspects classes at
resolve time.
"""

import inspect
import types
from dataclasses import dataclass
from typing import (
    Annotated,
    Any,
    Callable,
    Dict,
    Optional,
    Sequence,
    Tuple,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from ..constants import AUTOWIRED, INJECTABLE
from ..metadata import store
from .errors import InvalidProviderError
from .scopes import Scope, coerce_scope


class ProviderKind:
    CLASS = "class"
    FACTORY = "factory"
    VALUE = "value"


@dataclass(frozen=True)
class InjectableOptions:
    """Options recorded by ``@injectable``."""

    scope: Scope = Scope.SINGLETON
    token: Any = None


@dataclass(frozen=True)
class Dependency:
    """
    One constructor or factory dependency.

    Attributes:
        token: Token to resolve
        name: Keyword name; None means positional
        optional: Inject None (or keep the default) when unregistered
        has_default: The parameter declares a default value
    """

    token: Any
    name: Optional[str] = None
    optional: bool = False
    has_default: bool = False


@dataclass(frozen=True)
class PropertyInjection:
    """An ``Autowired`` attribute filled right after construction."""

    attribute: str
    token: Any = None
    optional: bool = False


@dataclass(frozen=True)
class ProviderDescriptor:
    """Everything needed to build one token."""

    token: Any
    implementation: Any
    scope: Scope = Scope.SINGLETON
    dependencies: Tuple[Dependency, ...] = ()
    properties: Tuple[PropertyInjection, ...] = ()
    kind: str = ProviderKind.CLASS
    is_async: bool = False

    @property
    def implementation_name(self) -> str:
        if self.kind == ProviderKind.VALUE:
            return f"value<{type(self.implementation).__name__}>"
        impl = self.implementation
        return getattr(impl, "__qualname__", None) or getattr(impl, "__name__", repr(impl))


# ============================================================================
# Annotation parsing
# ============================================================================

def _hints_for(target: Callable) -> Dict[str, Any]:
    """Resolved hints with extras, falling back to raw annotations."""
    try:
        return get_type_hints(target, include_extras=True)
    except Exception:
        return dict(getattr(target, "__annotations__", {}) or {})


def _strip_optional(annotation: Any) -> Tuple[Any, bool]:
    """``Optional[T]`` -> (T, True)."""
    if get_origin(annotation) in (Union, types.UnionType):
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) == 1 and len(get_args(annotation)) == 2:
            return args[0], True
    return annotation, False


def parse_annotation(annotation: Any) -> Tuple[Any, bool]:
    """
    Parse a parameter annotation into (token, optional).

    Understands ``Annotated[T, Inject(...)]`` and ``Optional[T]``.
    """
    from .decorators import Inject

    optional = False
    if get_origin(annotation) is Annotated:
        args = get_args(annotation)
        token, optional = _strip_optional(args[0])
        for meta in args[1:]:
            if isinstance(meta, Inject):
                if meta.token is not None:
                    token = meta.token
                optional = optional or meta.optional
        return token, optional

    return _strip_optional(annotation)


def _signature_dependencies(target: Callable, owner: Any) -> Tuple[Dependency, ...]:
    try:
        sig = inspect.signature(target)
    except (TypeError, ValueError):
        return ()

    hints = _hints_for(target)
    deps = []

    for param_name, param in sig.parameters.items():
        if param_name in ("self", "cls"):
            continue
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue

        has_default = param.default is not inspect.Parameter.empty
        annotation = hints.get(param_name, param.annotation)

        if annotation is inspect.Parameter.empty:
            if has_default:
                continue
            raise InvalidProviderError(
                owner,
                f"missing type annotation for parameter '{param_name}'",
            )

        token, optional = parse_annotation(annotation)
        deps.append(Dependency(
            token=token,
            name=param_name,
            optional=optional or has_default,
            has_default=has_default,
        ))

    return tuple(deps)


def _class_properties(cls: type) -> Tuple[PropertyInjection, ...]:
    hints = None
    props: Dict[str, PropertyInjection] = {}

    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for prop in store.read(klass, AUTOWIRED):
            if prop.token is None:
                if hints is None:
                    hints = _hints_for(cls)
                annotation = hints.get(prop.attribute)
                if annotation is None:
                    raise InvalidProviderError(
                        cls,
                        f"Autowired attribute '{prop.attribute}' needs a token or a class annotation",
                    )
                token, optional = parse_annotation(annotation)
                prop = PropertyInjection(prop.attribute, token, prop.optional or optional)
            props[prop.attribute] = prop

    return tuple(props.values())


# ============================================================================
# Descriptor builders
# ============================================================================

def describe_class(
    cls: type,
    *,
    token: Any = None,
    scope: Optional[Union[Scope, str]] = None,
) -> ProviderDescriptor:
    """
    Build a descriptor for a class.

    Token and scope default to the ``@injectable`` options, then to the
    class itself and singleton scope.
    """
    if not isinstance(cls, type):
        raise InvalidProviderError(cls, "expected a class")

    options: InjectableOptions = store.read(cls, INJECTABLE) or InjectableOptions()

    if cls.__init__ is object.__init__:
        dependencies: Tuple[Dependency, ...] = ()
    else:
        dependencies = _signature_dependencies(cls.__init__, cls)

    on_init = getattr(cls, "on_init", None)

    return ProviderDescriptor(
        token=token if token is not None else (options.token if options.token is not None else cls),
        implementation=cls,
        scope=coerce_scope(scope) if scope is not None else options.scope,
        dependencies=dependencies,
        properties=_class_properties(cls),
        kind=ProviderKind.CLASS,
        is_async=inspect.iscoroutinefunction(on_init),
    )


def describe_factory(
    token: Any,
    factory: Callable,
    dependencies: Optional[Sequence[Any]] = None,
    scope: Union[Scope, str] = Scope.SINGLETON,
) -> ProviderDescriptor:
    """
    Build a descriptor for a factory function.

    ``dependencies`` lists tokens passed positionally, in order. When
    omitted, they are read from the factory's annotations.
    """
    if dependencies is None:
        deps = _signature_dependencies(factory, factory)
    else:
        deps = tuple(
            d if isinstance(d, Dependency) else Dependency(token=d)
            for d in dependencies
        )

    return ProviderDescriptor(
        token=token,
        implementation=factory,
        scope=coerce_scope(scope),
        dependencies=deps,
        kind=ProviderKind.FACTORY,
        is_async=inspect.iscoroutinefunction(factory),
    )


def describe_value(token: Any, value: Any) -> ProviderDescriptor:
    """Build a descriptor for a pre-built value."""
    return ProviderDescriptor(
        token=token,
        implementation=value,
        scope=Scope.SINGLETON,
        kind=ProviderKind.VALUE,
    )
