"""
eventchannel package.

In-process publish/subscribe over named topics:
- Events (topic registry, publish, subscribe, unsubscribe)
- Config (environment-driven bus settings)
- Logging (structlog setup)
"""

from eventchannel.config import BusConfig, ErrorPolicy
from eventchannel.events import EventBus, Subscription

__version__ = "0.1.0"

__all__ = ["BusConfig", "ErrorPolicy", "EventBus", "Subscription", "__version__"]
