"""
Metadata Store

Decorators write declarative markers here; the scanner, container and route
compiler read them back during bootstrap. Entries live on the subject objects
themselves (classes keep them in their own ``__dict__`` so subclasses do not
inherit roles), which makes the store a stateless accessor: two stores always
observe the same entries.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from .constants import AttachMode, MetadataKey
from .faults.domains import MetadataConflictError


_ATTR = "__strix_metadata__"

_Slot = Tuple[str, Optional[int]]


class SubjectKind:
    CLASS = "class"
    METHOD = "method"
    PARAMETER = "parameter"


@dataclass(frozen=True)
class MetadataEntry:
    """A single (subject, key, value) record."""

    kind: str
    subject: Any
    key: str
    value: Any
    index: Optional[int] = None


def _unwrap(subject: Any) -> Any:
    if isinstance(subject, (staticmethod, classmethod)):
        return subject.__func__
    if inspect.ismethod(subject):
        return subject.__func__
    return subject


def _entries(subject: Any, create: bool) -> Optional[Dict[_Slot, Any]]:
    target = _unwrap(subject)

    if isinstance(target, type):
        entries = target.__dict__.get(_ATTR)
        if entries is None and create:
            entries = {}
            setattr(target, _ATTR, entries)
        return entries

    if not callable(target):
        raise TypeError(
            f"Metadata subjects must be classes or functions, got {type(target).__name__}"
        )

    entries = getattr(target, _ATTR, None)
    if entries is None and create:
        entries = {}
        setattr(target, _ATTR, entries)
    return entries


class MetadataStore:
    """
    Accessor for declarative metadata.

    Example:
        ```python
        store = MetadataStore()
        store.attach(UsersController, CONTROLLER, {"prefix": "/users"})
        store.attach(handler, GUARDS, AuthGuard, AttachMode.APPEND)
        store.read(UsersController, CONTROLLER)
        ```
    """

    def attach(
        self,
        subject: Any,
        key: MetadataKey,
        value: Any,
        mode: AttachMode = AttachMode.REPLACE,
        *,
        index: Optional[int] = None,
    ) -> None:
        """
        Attach a value to a class, function or (function, parameter index).

        Raises:
            MetadataConflictError: Second write of a unique key
            TypeError: Mode does not match the key's accumulation style
        """
        if mode is AttachMode.APPEND and not key.accumulating:
            raise TypeError(f"Metadata key '{key.name}' does not accumulate; use REPLACE")
        if mode is AttachMode.REPLACE and key.accumulating:
            raise TypeError(f"Metadata key '{key.name}' accumulates; use APPEND")

        entries = _entries(subject, create=True)
        slot = (key.name, index)

        if mode is AttachMode.APPEND:
            entries.setdefault(slot, []).append(value)
            return

        if key.unique and slot in entries:
            raise MetadataConflictError(_unwrap(subject), key.name, entries[slot], value)
        entries[slot] = value

    def read(
        self,
        subject: Any,
        key: MetadataKey,
        *,
        member: Optional[str] = None,
        index: Optional[int] = None,
        default: Any = None,
    ) -> Any:
        """
        Read a value.

        ``member`` reads from a method of ``subject`` instead of the class.
        Accumulating keys return a fresh list (empty when unset).
        """
        if member is not None:
            subject = getattr(subject, member)

        entries = _entries(subject, create=False) or {}
        slot = (key.name, index)

        if key.accumulating:
            if slot not in entries:
                return list(default) if default is not None else []
            return list(entries[slot])
        return entries.get(slot, default)

    def has(self, subject: Any, key: MetadataKey, *, index: Optional[int] = None) -> bool:
        entries = _entries(subject, create=False) or {}
        return (key.name, index) in entries

    def indexes(self, subject: Any, key: MetadataKey) -> List[int]:
        """Parameter indexes of ``subject`` that carry ``key``, ascending."""
        entries = _entries(subject, create=False) or {}
        return sorted(i for (name, i) in entries if name == key.name and i is not None)

    def methods_with(self, cls: type, key: MetadataKey) -> List[Tuple[str, Callable]]:
        """
        Methods of ``cls`` (inherited ones included) that carry ``key``.

        Returned in declaration order, base classes first; an override keeps
        the position of the method it replaces.
        """
        members: Dict[str, Callable] = {}
        for klass in reversed(cls.__mro__):
            if klass is object:
                continue
            for name, attr in vars(klass).items():
                fn = _unwrap(attr)
                if inspect.isfunction(fn):
                    members[name] = fn

        return [(name, fn) for name, fn in members.items() if self.has(fn, key)]

    def entries(self, subject: Any) -> Iterator[MetadataEntry]:
        """Every entry attached to ``subject``, for diagnostics."""
        target = _unwrap(subject)
        stored = _entries(target, create=False) or {}
        base_kind = SubjectKind.CLASS if isinstance(target, type) else SubjectKind.METHOD
        for (name, index), value in stored.items():
            kind = SubjectKind.PARAMETER if index is not None else base_kind
            yield MetadataEntry(kind, target, name, value, index)


# Decorators are plain functions; they share one accessor instance.
store = MetadataStore()
