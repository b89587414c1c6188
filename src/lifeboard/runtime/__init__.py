from .bus import MessageBus
from .events import Event
from .subscribers import HumanReadableLogSubscriber

__all__ = ["MessageBus", "Event", "HumanReadableLogSubscriber"]
