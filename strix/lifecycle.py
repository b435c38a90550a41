"""
Lifecycle events - the application's in-process event bus.

``Strix`` emits an event at each bootstrap and shutdown step. Providers and
plugins subscribe through the ``EventBus`` (it is registered in the
container), optionally tagging listeners with an owner so they can all be
removed together with ``remove_by_owner``.
"""

import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union


logger = logging.getLogger("strix.lifecycle")


class LifecycleEvent(str, Enum):
    """Events emitted by ``Strix``."""

    BOOTSTRAP = "app:bootstrap"
    DISCOVERED = "app:discovered"
    PROVIDERS_REGISTERED = "app:providers"
    ROUTE_REGISTERED = "app:route"
    READY = "app:ready"
    SHUTDOWN = "app:shutdown"


Listener = Callable[[Any], Union[None, Awaitable[None]]]


@dataclass(eq=False)
class _Subscription:
    event: str
    listener: Listener
    owner: Optional[str] = None
    once: bool = False
    active: bool = field(default=True)


def _event_name(event: Union[str, LifecycleEvent]) -> str:
    return event.value if isinstance(event, LifecycleEvent) else event


class EventBus:
    """
    Ordered publish/subscribe by event name.

    Listeners may be sync or async; ``emit`` awaits them one at a time in
    subscription order. A failing listener is logged and the remaining
    listeners still run.

    Example:
        ```python
        @injectable
        class AuditLog:
            def __init__(self, events: EventBus):
                events.on(LifecycleEvent.READY, self.started, owner="AuditLog")
        ```
    """

    def __init__(self):
        self._subscriptions: Dict[str, List[_Subscription]] = {}

    # ------------------------------------------------------------------
    # Subscribing
    # ------------------------------------------------------------------

    def on(
        self,
        event: Union[str, LifecycleEvent],
        listener: Listener,
        owner: Optional[str] = None,
    ) -> Callable[[], None]:
        """Subscribe ``listener``; returns an unsubscribe function."""
        return self._add(_Subscription(_event_name(event), listener, owner))

    def once(
        self,
        event: Union[str, LifecycleEvent],
        listener: Listener,
        owner: Optional[str] = None,
    ) -> Callable[[], None]:
        """Subscribe for the next emission only."""
        return self._add(_Subscription(_event_name(event), listener, owner, once=True))

    def _add(self, subscription: _Subscription) -> Callable[[], None]:
        self._subscriptions.setdefault(subscription.event, []).append(subscription)

        def unsubscribe() -> None:
            self._discard(subscription)

        return unsubscribe

    def _discard(self, subscription: _Subscription) -> None:
        subscription.active = False
        listeners = self._subscriptions.get(subscription.event)
        if listeners and subscription in listeners:
            listeners.remove(subscription)
            if not listeners:
                del self._subscriptions[subscription.event]

    def off(self, event: Union[str, LifecycleEvent], listener: Listener) -> None:
        """Remove every subscription of ``listener`` to ``event``."""
        for subscription in list(self._subscriptions.get(_event_name(event), ())):
            if subscription.listener == listener:
                self._discard(subscription)

    def remove_by_owner(self, owner: str) -> int:
        """Remove all listeners registered by ``owner``; returns how many."""
        removed = 0
        for listeners in list(self._subscriptions.values()):
            for subscription in list(listeners):
                if subscription.owner == owner:
                    self._discard(subscription)
                    removed += 1
        if removed:
            logger.debug("Removed %d listener(s) owned by %s", removed, owner)
        return removed

    def clear(self) -> None:
        for listeners in self._subscriptions.values():
            for subscription in listeners:
                subscription.active = False
        self._subscriptions.clear()

    # ------------------------------------------------------------------
    # Emitting
    # ------------------------------------------------------------------

    async def emit(self, event: Union[str, LifecycleEvent], payload: Any = None) -> None:
        name = _event_name(event)
        for subscription in list(self._subscriptions.get(name, ())):
            if not subscription.active:
                continue
            if subscription.once:
                self._discard(subscription)
            try:
                result = subscription.listener(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Listener for %s failed", name)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def listener_count(self, event: Union[str, LifecycleEvent]) -> int:
        return len(self._subscriptions.get(_event_name(event), ()))

    def listener_count_by_owner(self, owner: str) -> int:
        return sum(
            1
            for listeners in self._subscriptions.values()
            for subscription in listeners
            if subscription.owner == owner
        )

    def total_listener_count(self) -> int:
        return sum(len(listeners) for listeners in self._subscriptions.values())

    def owners(self) -> List[str]:
        """Distinct owners, in first-subscription order."""
        seen: Dict[str, None] = {}
        for listeners in self._subscriptions.values():
            for subscription in listeners:
                if subscription.owner is not None:
                    seen.setdefault(subscription.owner, None)
        return list(seen)
