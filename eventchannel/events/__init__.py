"""
Event channel module.

Provides a pub/sub event bus for decoupled communication between components.
"""

from eventchannel.events.bus import (
    DeadLetter,
    EventBus,
    Handler,
    Subscription,
    get_event_bus,
    publish,
    reset_event_bus,
    subscribe,
    unsubscribe,
)

__all__ = [
    "DeadLetter",
    "EventBus",
    "Handler",
    "Subscription",
    "get_event_bus",
    "publish",
    "reset_event_bus",
    "subscribe",
    "unsubscribe",
]
