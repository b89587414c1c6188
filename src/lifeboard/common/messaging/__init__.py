import json
import logging
from importlib.resources import files
from typing import Any, Dict, Optional

from . import protocols

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en"

LOG_LEVELS = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
}


def level_value(level: str) -> int:
    return LOG_LEVELS.get(level.upper(), LOG_LEVELS["INFO"])


class MessageStore:
    """
    Resolves message ids (e.g. "engine.advance.finished") to the templates
    shipped in the lifeboard package under locales/<locale>/*.json.

    An unknown locale falls back to English, so board and CLI messages are
    never rendered as bare ids just because of a locale setting.
    """

    def __init__(self, locale: str = DEFAULT_LOCALE):
        self._messages: Dict[str, str] = {}
        self.locale = locale
        self._load_messages()

    def _catalog_dir(self, locale: str):
        locale_dir = files("lifeboard") / "locales" / locale
        return locale_dir if locale_dir.is_dir() else None

    def _load_messages(self):
        catalog_dir = self._catalog_dir(self.locale)
        if catalog_dir is None and self.locale != DEFAULT_LOCALE:
            logger.warning(
                f"No messages for locale '{self.locale}', using '{DEFAULT_LOCALE}'."
            )
            self.locale = DEFAULT_LOCALE
            catalog_dir = self._catalog_dir(DEFAULT_LOCALE)
        if catalog_dir is None:
            logger.error("Message catalogs not found in the lifeboard package.")
            return

        catalogs = sorted(
            (entry for entry in catalog_dir.iterdir() if entry.name.endswith(".json")),
            key=lambda entry: entry.name,
        )
        for catalog in catalogs:
            try:
                messages = json.loads(catalog.read_text(encoding="utf-8"))
            except (json.JSONDecodeError, OSError) as e:
                logger.error(f"Failed to load message catalog {catalog.name}: {e}")
                continue
            for msg_id in messages.keys() & self._messages.keys():
                logger.warning(f"Message '{msg_id}' redefined in {catalog.name}.")
            self._messages.update(messages)

    def get(self, msg_id: str, default: str = "", **kwargs) -> str:
        template = self._messages.get(msg_id, default or f"<{msg_id}>")
        try:
            return template.format(**kwargs)
        except KeyError as e:
            return f"<Formatting error for '{msg_id}': missing key {e}>"


class MessageBus:
    """
    Dispatches semantic, user-facing messages to the active renderer.
    Without a renderer, messages are dropped.
    """

    def __init__(self, store: MessageStore):
        self._store = store
        self._renderer: Optional[protocols.Renderer] = None

    @property
    def store(self) -> MessageStore:
        return self._store

    @property
    def renderer(self) -> Optional[protocols.Renderer]:
        return self._renderer

    def set_renderer(self, renderer: Optional[protocols.Renderer]):
        self._renderer = renderer

    def log(self, level: str, msg_id: str, **kwargs: Any) -> None:
        if level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown message level '{level}'")
        if self._renderer is not None:
            self._renderer.render(msg_id, level.lower(), **kwargs)

    def debug(self, msg_id: str, **kwargs: Any) -> None:
        self.log("debug", msg_id, **kwargs)

    def info(self, msg_id: str, **kwargs: Any) -> None:
        self.log("info", msg_id, **kwargs)

    def warning(self, msg_id: str, **kwargs: Any) -> None:
        self.log("warning", msg_id, **kwargs)

    def error(self, msg_id: str, **kwargs: Any) -> None:
        self.log("error", msg_id, **kwargs)


bus = MessageBus(store=MessageStore(locale=DEFAULT_LOCALE))

__all__ = [
    "LOG_LEVELS",
    "MessageStore",
    "MessageBus",
    "bus",
    "level_value",
    "protocols",
]
