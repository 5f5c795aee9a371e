"""Pytest configuration and shared fixtures."""
import pytest

from eventchannel.events import reset_event_bus
from eventchannel.logging_config import configure_logging


def pytest_configure(config):
    """Configure pytest markers and quiet logging."""
    config.addinivalue_line("markers", "slow: mark test as slow running")
    configure_logging(level="WARNING", colors=False)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    """Drop EVENTCHANNEL_* settings and the global bus between tests."""
    for name in (
        "EVENTCHANNEL_ERROR_POLICY",
        "EVENTCHANNEL_MAX_DEAD_LETTERS",
        "EVENTCHANNEL_LOG_LEVEL",
        "EVENTCHANNEL_LOG_JSON",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_event_bus()
    yield
    reset_event_bus()


@pytest.fixture
def bus():
    from eventchannel.events import EventBus

    return EventBus()


@pytest.fixture
def recorder():
    """Handler that records the args it receives."""

    class Recorder:
        def __init__(self):
            self.calls = []

        def __call__(self, *args, **kwargs):
            self.calls.append((args, kwargs))
            return len(self.calls)

    return Recorder()
