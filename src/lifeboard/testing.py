from typing import List

from lifeboard.runtime.bus import MessageBus
from lifeboard.runtime.events import Event


class SpySubscriber:
    """A test utility to collect events from a MessageBus."""

    def __init__(self, bus: MessageBus):
        self.events: List[Event] = []
        bus.subscribe(Event, self.collect)

    def collect(self, event: Event):
        self.events.append(event)

    def events_of_type(self, event_type):
        """Returns a list of all events of a specific type."""
        return [e for e in self.events if isinstance(e, event_type)]


class CountingStore:
    """Wraps a BoardStore and records which write operations were called."""

    def __init__(self, inner):
        self.inner = inner
        self.saves = 0
        self.creates = 0
        self.disconnects = 0

    async def load(self, board_id):
        return await self.inner.load(board_id)

    async def save(self, board):
        self.saves += 1
        await self.inner.save(board)

    async def create(self, board):
        self.creates += 1
        await self.inner.create(board)

    async def delete(self, board_id):
        await self.inner.delete(board_id)

    async def list_boards(self):
        return await self.inner.list_boards()

    async def disconnect(self):
        self.disconnects += 1
        disconnect = getattr(self.inner, "disconnect", None)
        if disconnect is not None:
            await disconnect()
