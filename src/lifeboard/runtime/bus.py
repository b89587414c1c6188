from collections import defaultdict
from typing import Callable, Dict, List, Optional, Tuple, Type

from .events import BoardEvent, Event

Handler = Callable[[Event], None]


class MessageBus:
    """
    An in-process bus for engine events.

    A handler subscribed to an event class receives instances of that class
    and of its subclasses, so subscribing to `Event` or `BoardEvent` sees
    every engine event. A subscription can be narrowed to a single board.
    """

    def __init__(self):
        self._handlers: Dict[Type[Event], List[Tuple[Optional[str], Handler]]] = (
            defaultdict(list)
        )

    def subscribe(
        self,
        event_type: Type[Event],
        handler: Handler,
        board_id: Optional[str] = None,
    ):
        """Register a handler, optionally only for events about `board_id`."""
        self._handlers[event_type].append((board_id, handler))

    def publish(self, event: Event):
        """Dispatch to handlers of the event's own class first, then of its bases."""
        event_board = event.board_id if isinstance(event, BoardEvent) else None
        for event_type in type(event).__mro__:
            for board_id, handler in self._handlers.get(event_type, ()):
                if board_id is None or board_id == event_board:
                    handler(event)
