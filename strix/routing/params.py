"""
Handler parameter markers, descriptors and extraction.

Parameters are declared with ``Annotated``:

    @GET("/:id")
    async def get(self, id: Annotated[str, Param("id")], q: Annotated[dict, Query()]):
        ...

Markers are collected once, when the route decorator runs, and stored as
``ParamDescriptor`` metadata per parameter index. At compile time each
descriptor is turned into one extraction function chosen by its source.
"""

import inspect
from dataclasses import dataclass
from enum import Enum
from typing import (
    Annotated,
    Any,
    Callable,
    List,
    Optional,
    Sequence,
    Tuple,
    get_args,
    get_origin,
    get_type_hints,
)

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..constants import PARAM
from ..faults.domains import ValidationError
from ..metadata import store


class ParamSource(str, Enum):
    """Where a handler argument comes from."""

    BODY = "body"
    QUERY = "query"
    PARAM = "param"
    HEADERS = "headers"
    REQUEST = "request"
    REPLY = "reply"
    CONTEXT = "context"


_EMPTY = inspect.Parameter.empty


# ============================================================================
# Markers
# ============================================================================

class ParamMarker:
    """
    Base parameter marker.

    Args:
        key: Field to pick from the source; None takes the whole source
        validator: pydantic model/type or a plain callable
    """

    source: ParamSource

    def __init__(self, key: Optional[str] = None, validator: Any = None):
        self.key = key
        self.validator = validator

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.key!r})"


class Body(ParamMarker):
    """Parsed request body, or one field of it."""
    source = ParamSource.BODY


class Query(ParamMarker):
    """Query string mapping, or one value."""
    source = ParamSource.QUERY


class Param(ParamMarker):
    """Path parameter mapping, or one value."""
    source = ParamSource.PARAM


class Headers(ParamMarker):
    """Request headers, or one header (case-insensitive)."""
    source = ParamSource.HEADERS


class Req(ParamMarker):
    """The raw request object."""
    source = ParamSource.REQUEST

    def __init__(self):
        super().__init__()


class Res(ParamMarker):
    """The reply object; the handler becomes responsible for sending."""
    source = ParamSource.REPLY

    def __init__(self):
        super().__init__()


class Ctx(ParamMarker):
    """The execution context, or one of its attributes."""
    source = ParamSource.CONTEXT

    def __init__(self, key: Optional[str] = None):
        super().__init__(key)


@dataclass(frozen=True)
class ParamDescriptor:
    """One marked handler parameter (index excludes ``self``)."""

    index: int
    name: str
    source: ParamSource
    key: Optional[str] = None
    validator: Any = None


# ============================================================================
# Collection (decoration time)
# ============================================================================

def _handler_parameters(func: Callable) -> List[inspect.Parameter]:
    params = list(inspect.signature(func).parameters.values())
    if params and params[0].name in ("self", "cls"):
        params = params[1:]
    return [
        p for p in params
        if p.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
    ]


def _is_model(annotation: Any) -> bool:
    return isinstance(annotation, type) and issubclass(annotation, BaseModel)


def collect_params(func: Callable) -> Tuple[ParamDescriptor, ...]:
    """
    Record a ParamDescriptor for every marked parameter of ``func``.

    Idempotent: stacked route decorators collect only once. A pydantic
    model annotation on a Body/Query/Param/Headers parameter becomes its
    validator when none is given explicitly.
    """
    existing = store.indexes(func, PARAM)
    if existing:
        return tuple(store.read(func, PARAM, index=i) for i in existing)

    try:
        hints = get_type_hints(func, include_extras=True)
    except Exception:
        hints = dict(getattr(func, "__annotations__", {}) or {})

    collected = []
    for index, param in enumerate(_handler_parameters(func)):
        annotation = hints.get(param.name, param.annotation)
        if get_origin(annotation) is not Annotated:
            continue

        base, *extras = get_args(annotation)
        marker = next((m for m in extras if isinstance(m, ParamMarker)), None)
        if marker is None:
            continue

        validator = marker.validator
        if validator is None and _is_model(base) and marker.source in (
            ParamSource.BODY, ParamSource.QUERY, ParamSource.PARAM, ParamSource.HEADERS,
        ):
            validator = base

        descriptor = ParamDescriptor(
            index=index,
            name=param.name,
            source=marker.source,
            key=marker.key,
            validator=validator,
        )
        store.attach(func, PARAM, descriptor, index=index)
        collected.append(descriptor)

    return tuple(collected)


def read_params(func: Callable) -> Tuple[ParamDescriptor, ...]:
    return tuple(store.read(func, PARAM, index=i) for i in store.indexes(func, PARAM))


# ============================================================================
# Extraction (compile time)
# ============================================================================

def _pydantic_detail(exc: PydanticValidationError) -> List[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors(include_url=False)
    ]


def compile_validator(validator: Any, param: ParamDescriptor) -> Optional[Callable[[Any], Any]]:
    """
    Convert a validator into a validate/transform function, once.

    pydantic models and other types go through a ``TypeAdapter``; plain
    callables are called and may raise ``ValueError``/``TypeError``. A
    callable returning a ``bool`` is a predicate: ``False`` rejects the value
    and ``True`` keeps it unchanged. Any other return value replaces the
    value.
    """
    if validator is None:
        return None

    source = param.source.value

    if isinstance(validator, type) or get_origin(validator) is not None:
        adapter = TypeAdapter(validator)

        def validate_with_adapter(value: Any) -> Any:
            try:
                return adapter.validate_python(value)
            except PydanticValidationError as exc:
                raise ValidationError(param.name, _pydantic_detail(exc), source=source) from exc

        return validate_with_adapter

    if callable(validator):
        def validate_with_callable(value: Any) -> Any:
            try:
                result = validator(value)
            except (ValueError, TypeError) as exc:
                raise ValidationError(param.name, str(exc), source=source) from exc
            if isinstance(result, bool):
                if not result:
                    raise ValidationError(param.name, "rejected by validator", source=source)
                return value
            return result

        return validate_with_callable

    raise TypeError(f"Unsupported validator for parameter '{param.name}': {validator!r}")


def _pick(mapping: Any, key: Optional[str]) -> Any:
    if key is None:
        return mapping
    if isinstance(mapping, dict):
        return mapping.get(key)
    return None


def _source_getter(param: ParamDescriptor) -> Callable[[Any], Any]:
    """One extraction function per source, chosen here and never again."""
    key = param.key
    source = param.source

    if source is ParamSource.BODY:
        return lambda ctx: _pick(ctx.request.body, key)
    if source is ParamSource.QUERY:
        return lambda ctx: _pick(ctx.request.query, key)
    if source is ParamSource.PARAM:
        return lambda ctx: _pick(ctx.request.path_params, key)
    if source is ParamSource.HEADERS:
        lowered = key.lower() if key else None
        return lambda ctx: _pick(ctx.request.headers, lowered)
    if source is ParamSource.REQUEST:
        return lambda ctx: ctx.request
    if source is ParamSource.REPLY:
        return lambda ctx: ctx.reply
    if source is ParamSource.CONTEXT:
        if key is None:
            return lambda ctx: ctx
        return lambda ctx: getattr(ctx, key, None)
    raise ValueError(f"Unknown parameter source: {source!r}")


class ArgumentExtractor:
    """
    Builds the positional argument list for a handler.

    Unmarked parameters receive their declared default, or None.
    """

    __slots__ = ("_slots", "_arity")

    def __init__(self, handler: Callable, params: Sequence[ParamDescriptor]):
        signature_params = _handler_parameters(handler)
        by_index = {p.index: p for p in params}
        self._arity = len(signature_params)
        self._slots: List[Tuple[bool, Any]] = []

        for index, sig_param in enumerate(signature_params):
            descriptor = by_index.get(index)
            if descriptor is None:
                default = None if sig_param.default is _EMPTY else sig_param.default
                self._slots.append((False, default))
                continue

            getter = _source_getter(descriptor)
            validate = compile_validator(descriptor.validator, descriptor)
            if validate is not None:
                self._slots.append((True, self._chain(getter, validate)))
            else:
                self._slots.append((True, getter))

    @staticmethod
    def _chain(getter: Callable, validate: Callable) -> Callable:
        return lambda ctx: validate(getter(ctx))

    @property
    def arity(self) -> int:
        return self._arity

    def extract(self, ctx: Any) -> List[Any]:
        """Extract arguments in declaration order; raises ValidationError."""
        return [fn(ctx) if dynamic else fn for dynamic, fn in self._slots]
