import pytest

from lifeboard.adapters.store.in_memory import InMemoryBoardStore
from lifeboard.common.messaging import bus as messaging_bus
from lifeboard.runtime.bus import MessageBus
from lifeboard.runtime.engine import Engine
from lifeboard.testing import CountingStore, SpySubscriber


@pytest.fixture(autouse=True)
def reset_messaging_renderer():
    yield
    messaging_bus.set_renderer(None)


@pytest.fixture
def bus_and_spy():
    """Provides a MessageBus instance and an attached SpySubscriber."""
    bus = MessageBus()
    spy = SpySubscriber(bus)
    return bus, spy


@pytest.fixture
def store():
    return CountingStore(InMemoryBoardStore())


@pytest.fixture
def engine(store, bus_and_spy):
    bus, _ = bus_and_spy
    return Engine(store=store, bus=bus)
