"""
Event bus for in-process publish/subscribe.

Provides:
- Named topics with handlers invoked in registration order
- Subscription handles for precise unsubscribe
- One-shot subscriptions
- Configurable handler failure policy with dead letters
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from eventchannel.config import BusConfig, ErrorPolicy
from eventchannel.logging_config import get_logger

logger = get_logger(__name__)


# =============================================================================
# Types
# =============================================================================


Handler = Callable[..., Any]


def _handler_name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


@dataclass(eq=False)
class Subscription:
    """
    Handle returned by subscribe.

    Subscriptions compare by identity, so the same handler subscribed twice
    yields two distinct handles.

    Attributes:
        topic: Topic the handler is registered on
        handler: The registered callable
        once: Remove after the first invocation
        id: Unique subscription ID
        active: False once removed from the bus
    """

    topic: str
    handler: Handler
    once: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    active: bool = True
    _bus: EventBus | None = field(default=None, repr=False)

    def cancel(self) -> bool:
        """Unsubscribe this handle. Returns False if already removed."""
        if self._bus is None or not self.active:
            return False
        return self._bus.unsubscribe(self.topic, self)


@dataclass
class DeadLetter:
    """A handler failure recorded under the continue policy."""

    topic: str
    args: tuple[Any, ...]
    kwargs: dict[str, Any]
    handler: str
    error: Exception
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "topic": self.topic,
            "args": list(self.args),
            "kwargs": self.kwargs,
            "handler": self.handler,
            "error": f"{type(self.error).__name__}: {self.error}",
            "timestamp": self.timestamp.isoformat(),
        }


# =============================================================================
# Event Bus
# =============================================================================


class EventBus:
    """
    Topic-based publish/subscribe bus.

    Handlers run synchronously on the publisher's thread, in the order they
    were subscribed. Publishing iterates over a snapshot taken when publish
    is called: handlers subscribed during dispatch wait for the next publish,
    and handlers cancelled during dispatch are skipped.
    """

    def __init__(
        self,
        error_policy: ErrorPolicy | str = ErrorPolicy.RAISE,
        max_dead_letters: int = 1000,
    ):
        """
        Initialize event bus.

        Args:
            error_policy: What to do when a handler raises
            max_dead_letters: Maximum failures kept under the continue policy
        """
        if max_dead_letters < 0:
            raise ValueError("max_dead_letters must be >= 0")

        self._error_policy = ErrorPolicy(error_policy)
        self._max_dead_letters = max_dead_letters
        self._subscriptions: dict[str, list[Subscription]] = {}
        self._dead_letters: list[DeadLetter] = []
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: BusConfig) -> EventBus:
        return cls(
            error_policy=config.error_policy,
            max_dead_letters=config.max_dead_letters,
        )

    @property
    def error_policy(self) -> ErrorPolicy:
        return self._error_policy

    # -------------------------------------------------------------------------
    # Subscription
    # -------------------------------------------------------------------------

    def subscribe(self, topic: str, handler: Handler, *, once: bool = False) -> Subscription:
        """
        Subscribe a handler to a topic.

        The same handler may be subscribed more than once; it is then invoked
        once per subscription.

        Args:
            topic: Topic name
            handler: Callable invoked with the published arguments
            once: Unsubscribe after the first invocation

        Returns:
            Subscription handle, accepted by unsubscribe

        Examples:
            sub = bus.subscribe("orders", on_order)
            bus.unsubscribe("orders", sub)
        """
        if not callable(handler):
            raise TypeError(f"handler must be callable, got {type(handler).__name__}")

        subscription = Subscription(topic=topic, handler=handler, once=once, _bus=self)
        with self._lock:
            self._subscriptions.setdefault(topic, []).append(subscription)

        logger.debug(
            "event_subscribed",
            topic=topic,
            handler=_handler_name(handler),
            once=once,
        )
        return subscription

    def subscribe_many(self, topic: str, *handlers: Handler) -> list[Subscription]:
        """Subscribe several handlers to a topic, in argument order."""
        return [self.subscribe(topic, handler) for handler in handlers]

    def once(self, topic: str, handler: Handler) -> Subscription:
        """Subscribe a handler that is removed after its first invocation."""
        return self.subscribe(topic, handler, once=True)

    def on(self, topic: str, *, once: bool = False) -> Callable[[Handler], Handler]:
        """
        Decorator form of subscribe.

        Usage:
            @bus.on("orders")
            def on_order(action, order_id):
                ...
        """

        def decorator(fn: Handler) -> Handler:
            self.subscribe(topic, fn, once=once)
            return fn

        return decorator

    def unsubscribe(self, topic: str, handler: Handler | Subscription | None = None) -> bool:
        """
        Unsubscribe from a topic.

        Args:
            topic: Topic name
            handler: Subscription handle or handler callable. A callable is
                matched by identity and only its first subscription is
                removed. None removes the whole topic.

        Returns:
            True if anything was removed
        """
        with self._lock:
            if handler is None:
                removed = self._subscriptions.pop(topic, None)
                if removed is None:
                    return False
                for sub in removed:
                    sub.active = False
                logger.debug("event_topic_removed", topic=topic, handlers=len(removed))
                return True

            subs = self._subscriptions.get(topic)
            if not subs:
                return False

            index = self._find(subs, handler)
            if index is None:
                return False

            sub = subs.pop(index)
            sub.active = False
            if not subs:
                del self._subscriptions[topic]

        logger.debug("event_unsubscribed", topic=topic, handler=_handler_name(sub.handler))
        return True

    @staticmethod
    def _find(subs: list[Subscription], handler: Handler | Subscription) -> int | None:
        if isinstance(handler, Subscription):
            for i, sub in enumerate(subs):
                if sub is handler:
                    return i
            return None
        for i, sub in enumerate(subs):
            if sub.handler is handler:
                return i
        return None

    def clear(self):
        """Remove every subscription on every topic."""
        with self._lock:
            for subs in self._subscriptions.values():
                for sub in subs:
                    sub.active = False
            self._subscriptions.clear()

    # -------------------------------------------------------------------------
    # Publishing
    # -------------------------------------------------------------------------

    def publish(self, topic: str, *args: Any, **kwargs: Any) -> list[Any]:
        """
        Publish to a topic.

        Every handler registered when publish is called is invoked with
        ``*args`` and ``**kwargs``, in subscription order.

        Args:
            topic: Topic name
            *args: Positional arguments passed to each handler
            **kwargs: Keyword arguments passed to each handler

        Returns:
            Handler return values in invocation order. Empty for a topic
            with no subscribers.
        """
        with self._lock:
            snapshot = list(self._subscriptions.get(topic, ()))

        if not snapshot:
            logger.debug("event_no_subscribers", topic=topic)
            return []

        logger.debug("event_publishing", topic=topic, handlers=len(snapshot))

        results: list[Any] = []
        for position, sub in enumerate(snapshot):
            if not sub.active:
                continue
            if sub.once and not self.unsubscribe(topic, sub):
                continue

            try:
                results.append(sub.handler(*args, **kwargs))
            except Exception as e:
                if self._error_policy is ErrorPolicy.RAISE:
                    logger.warning(
                        "event_dispatch_aborted",
                        topic=topic,
                        handler=_handler_name(sub.handler),
                        error=str(e),
                        skipped=len(snapshot) - position - 1,
                    )
                    raise
                logger.exception(
                    "event_handler_error",
                    topic=topic,
                    handler=_handler_name(sub.handler),
                )
                self._record_dead_letter(
                    DeadLetter(
                        topic=topic,
                        args=args,
                        kwargs=dict(kwargs),
                        handler=_handler_name(sub.handler),
                        error=e,
                    )
                )

        logger.debug("event_published", topic=topic, results=len(results))
        return results

    # -------------------------------------------------------------------------
    # Dead Letters
    # -------------------------------------------------------------------------

    def _record_dead_letter(self, letter: DeadLetter):
        if self._max_dead_letters == 0:
            return
        with self._lock:
            self._dead_letters.append(letter)
            if len(self._dead_letters) > self._max_dead_letters:
                self._dead_letters = self._dead_letters[-self._max_dead_letters:]

    def get_dead_letters(self, limit: int = 100) -> list[DeadLetter]:
        """Get the most recent handler failures, oldest first."""
        with self._lock:
            return self._dead_letters[-limit:] if limit > 0 else []

    def clear_dead_letters(self) -> int:
        """Drop recorded failures. Returns how many were dropped."""
        with self._lock:
            count = len(self._dead_letters)
            self._dead_letters.clear()
        return count

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def topics(self) -> list[str]:
        """Topics with at least one subscriber, in creation order."""
        with self._lock:
            return list(self._subscriptions)

    def handlers(self, topic: str) -> list[Handler]:
        """Handlers registered on a topic, in invocation order."""
        with self._lock:
            return [sub.handler for sub in self._subscriptions.get(topic, ())]

    def has_subscribers(self, topic: str) -> bool:
        with self._lock:
            return topic in self._subscriptions

    def subscriber_count(self, topic: str | None = None) -> int:
        with self._lock:
            if topic is not None:
                return len(self._subscriptions.get(topic, ()))
            return sum(len(subs) for subs in self._subscriptions.values())

    def get_stats(self) -> dict[str, Any]:
        """Get event bus statistics."""
        with self._lock:
            return {
                "topics": len(self._subscriptions),
                "total_subscriptions": sum(len(s) for s in self._subscriptions.values()),
                "dead_letters": len(self._dead_letters),
                "error_policy": self._error_policy.value,
            }


# =============================================================================
# Global Instance
# =============================================================================

_event_bus: EventBus | None = None
_event_bus_lock = threading.Lock()


def get_event_bus() -> EventBus:
    """Get or create the global event bus, configured from the environment."""
    global _event_bus
    with _event_bus_lock:
        if _event_bus is None:
            _event_bus = EventBus.from_config(BusConfig.from_env())
        return _event_bus


def reset_event_bus() -> None:
    """Discard the global event bus. The next get_event_bus() builds a new one."""
    global _event_bus
    with _event_bus_lock:
        if _event_bus is not None:
            _event_bus.clear()
        _event_bus = None


# =============================================================================
# Convenience Functions
# =============================================================================


def subscribe(topic: str, handler: Handler | None = None, *, once: bool = False):
    """
    Subscribe on the global bus (can be used as decorator).

    Usage:
        @subscribe("orders")
        def on_order(action, order_id):
            ...

        # Or:
        subscribe("orders", handler)
    """
    bus = get_event_bus()

    if handler is not None:
        return bus.subscribe(topic, handler, once=once)

    return bus.on(topic, once=once)


def unsubscribe(topic: str, handler: Handler | Subscription | None = None) -> bool:
    """Unsubscribe on the global bus."""
    return get_event_bus().unsubscribe(topic, handler)


def publish(topic: str, *args: Any, **kwargs: Any) -> list[Any]:
    """Publish on the global bus."""
    return get_event_bus().publish(topic, *args, **kwargs)
