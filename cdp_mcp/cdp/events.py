"""
Event bus for inbound CDP events.

Handlers are kept per event name in registration order and invoked
synchronously with the event's params. A failing handler is logged and does
not stop the remaining handlers of the same dispatch. A handler that returns
a coroutine has it scheduled as a task; its failure is logged when it ends.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

EventHandler = Callable[[dict[str, Any]], Any]
EventPredicate = Callable[[dict[str, Any]], bool]


@dataclass(eq=False)
class Subscription:
    """Token returned by ``EventBus.on``/``EventBus.once``.

    Cancelling a subscription removes exactly this registration, leaving any
    other registration of the same handler or event untouched.
    """

    event: str
    handler: EventHandler
    once: bool = False
    active: bool = True
    _bus: Optional["EventBus"] = field(default=None, repr=False)

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        if self._bus is not None:
            self._bus._remove(self)


class EventBus:
    """Ordered pub/sub fan-out for CDP events.

    Example:
        bus = EventBus()
        bus.on("Page.loadEventFired", lambda params: print(params))
        bus.emit("Page.loadEventFired", {"timestamp": 1.0})
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Subscription]] = {}
        self._tasks: set[asyncio.Future[Any]] = set()

    def on(self, event: str, handler: EventHandler) -> Subscription:
        """Register a handler. Registering the same handler twice yields two calls."""
        subscription = Subscription(event=event, handler=handler, _bus=self)
        self._handlers.setdefault(event, []).append(subscription)
        return subscription

    def once(self, event: str, handler: EventHandler) -> Subscription:
        """Register a handler that unsubscribes itself on first delivery."""
        subscription = Subscription(event=event, handler=handler, once=True, _bus=self)
        self._handlers.setdefault(event, []).append(subscription)
        return subscription

    def off(self, event: str, handler: Optional[EventHandler] = None) -> None:
        """Remove registrations of ``handler`` for ``event``, or all of them."""
        for subscription in list(self._handlers.get(event, [])):
            if handler is None or subscription.handler == handler:
                subscription.cancel()

    def replace(self, event: str, handlers: list[EventHandler]) -> list[Subscription]:
        """Replace the whole handler list for an event name."""
        self.off(event)
        return [self.on(event, handler) for handler in handlers]

    def emit(self, event: str, params: Optional[dict[str, Any]] = None) -> int:
        """Dispatch an event to its handlers in registration order.

        Returns:
            Number of handlers invoked.
        """
        params = params if params is not None else {}
        subscriptions = list(self._handlers.get(event, []))
        called = 0

        for subscription in subscriptions:
            if not subscription.active:
                continue
            if subscription.once:
                subscription.cancel()

            try:
                result = subscription.handler(params)
                if asyncio.iscoroutine(result):
                    self._track(event, asyncio.ensure_future(result))
            except Exception as e:
                logger.exception(f"Error in CDP event handler for {event}: {e}")
            called += 1

        if called:
            logger.debug(f"Dispatched {event} to {called} handler(s)")
        return called

    def _track(self, event: str, task: asyncio.Future[Any]) -> None:
        self._tasks.add(task)

        def done(task: asyncio.Future[Any]) -> None:
            self._tasks.discard(task)
            if not task.cancelled() and task.exception() is not None:
                logger.error(f"Error in async CDP event handler for {event}", exc_info=task.exception())

        task.add_done_callback(done)

    async def wait_for(
        self,
        event: str,
        *,
        timeout: Optional[float] = None,
        predicate: Optional[EventPredicate] = None,
    ) -> dict[str, Any]:
        """Wait for the next matching event.

        Returns:
            The event params.

        Raises:
            asyncio.TimeoutError: If no matching event arrives in time.
        """
        waiter = self.expect(event, predicate=predicate)
        return await waiter.wait(timeout)

    def expect(
        self,
        event: str,
        *,
        predicate: Optional[EventPredicate] = None,
    ) -> "EventWaiter":
        """Subscribe now and return a waiter that can be awaited later.

        Use this when the event may fire before the triggering command returns.
        """
        return EventWaiter(self, event, predicate)

    def listener_count(self, event: str) -> int:
        return len(self._handlers.get(event, []))

    def event_names(self) -> list[str]:
        return [name for name, subs in self._handlers.items() if subs]

    def clear(self) -> None:
        """Drop every registration."""
        for subscriptions in self._handlers.values():
            for subscription in subscriptions:
                subscription.active = False
        self._handlers.clear()

    def _remove(self, subscription: Subscription) -> None:
        subscriptions = self._handlers.get(subscription.event)
        if not subscriptions:
            return
        try:
            subscriptions.remove(subscription)
        except ValueError:
            return
        if not subscriptions:
            del self._handlers[subscription.event]


class EventWaiter:
    """One-shot future bound to its own subscription token."""

    def __init__(
        self,
        bus: EventBus,
        event: str,
        predicate: Optional[EventPredicate] = None,
    ) -> None:
        self.event = event
        self._predicate = predicate
        self._future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._subscription = bus.on(event, self._deliver)

    @property
    def done(self) -> bool:
        return self._future.done()

    def _deliver(self, params: dict[str, Any]) -> None:
        if self._future.done():
            return
        if self._predicate is not None:
            try:
                if not self._predicate(params):
                    return
            except Exception:
                logger.debug(f"Predicate for {self.event} raised, ignoring event")
                return
        self._subscription.cancel()
        self._future.set_result(params)

    async def wait(self, timeout: Optional[float] = None) -> dict[str, Any]:
        try:
            return await asyncio.wait_for(self._future, timeout=timeout)
        finally:
            self.cancel()

    def cancel(self) -> None:
        self._subscription.cancel()
        if not self._future.done():
            self._future.cancel()
