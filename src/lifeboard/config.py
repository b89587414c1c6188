import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, TextIO, Union

import yaml

from lifeboard.adapters.executors.local import EXECUTOR_MODES, create_executor
from lifeboard.adapters.store.in_memory import InMemoryBoardStore
from lifeboard.adapters.store.sqlite import DEFAULT_DB_URL, SqliteBoardStore
from lifeboard.common.messaging import LOG_LEVELS, bus as messaging_bus
from lifeboard.common.renderers import create_renderer
from lifeboard.runtime.bus import MessageBus
from lifeboard.runtime.engine import DEFAULT_MAX_GENERATIONS, Engine
from lifeboard.runtime.exceptions import ConfigError
from lifeboard.runtime.subscribers import HumanReadableLogSubscriber
from lifeboard.runtime.transition import DEFAULT_TILE_SIZE

CONFIG_ENV_VAR = "LIFEBOARD_CONFIG"

# Settings field -> dotted key in the YAML document
_KEYS = {
    "store_url": "store.url",
    "tile_size": "engine.tile_size",
    "executor": "engine.executor",
    "workers": "engine.workers",
    "max_generations": "engine.max_generations",
    "log_level": "logging.level",
    "log_format": "logging.format",
    "host": "server.host",
    "port": "server.port",
}

_INT_FIELDS = {"tile_size", "workers", "max_generations", "port"}
_OPTIONAL_FIELDS = {"workers"}


@dataclass
class Settings:
    store_url: str = DEFAULT_DB_URL
    tile_size: int = DEFAULT_TILE_SIZE
    executor: str = "serial"
    workers: Optional[int] = None
    max_generations: int = DEFAULT_MAX_GENERATIONS
    log_level: str = "INFO"
    log_format: str = "human"
    host: str = "127.0.0.1"
    port: int = 8080

    def validate(self) -> "Settings":
        if self.tile_size <= 0:
            raise ConfigError(f"engine.tile_size must be positive, got {self.tile_size}")
        if self.executor not in EXECUTOR_MODES:
            raise ConfigError(
                f"engine.executor must be one of {', '.join(EXECUTOR_MODES)}, got '{self.executor}'"
            )
        if self.workers is not None and self.workers <= 0:
            raise ConfigError(f"engine.workers must be positive, got {self.workers}")
        if self.max_generations <= 0:
            raise ConfigError(
                f"engine.max_generations must be positive, got {self.max_generations}"
            )
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"Unknown logging.level '{self.log_level}'")
        if self.log_format not in ("human", "json"):
            raise ConfigError(f"logging.format must be 'human' or 'json', got '{self.log_format}'")
        return self


def lookup(source: Dict[str, Any], key: str) -> Any:
    """Resolves a dotted key ("engine.tile_size") in nested mappings."""
    current: Any = source
    for part in key.split("."):
        if not isinstance(current, dict):
            raise KeyError(
                f"Cannot access segment '{part}' on non-mapping type '{type(current).__name__}' at path: {key}"
            )
        if part not in current:
            raise KeyError(f"Configuration key segment '{part}' not found in path: {key}")
        current = current[part]
    return current


def settings_from_mapping(data: Optional[Dict[str, Any]]) -> Settings:
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigError("Configuration document must be a mapping")

    values: Dict[str, Any] = {}
    for name, key in _KEYS.items():
        try:
            raw = lookup(data, key)
        except KeyError:
            continue
        values[name] = _coerce(name, key, raw)
    return Settings(**values).validate()


def _coerce(name: str, key: str, raw: Any) -> Any:
    if raw is None and name in _OPTIONAL_FIELDS:
        return None
    if name in _INT_FIELDS:
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ConfigError(f"{key} must be an integer, got {raw!r}")
        return raw
    if not isinstance(raw, str):
        raise ConfigError(f"{key} must be a string, got {raw!r}")
    return raw


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """
    Loads settings from a YAML file. Without an explicit path the
    LIFEBOARD_CONFIG environment variable is used; without either, defaults.
    """
    path = path or os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return Settings().validate()

    config_path = Path(path).expanduser()
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    settings = settings_from_mapping(data)
    messaging_bus.debug("config.loaded", path=str(config_path))
    return settings


def configure_logging(settings: Settings, stream: Optional[TextIO] = None) -> None:
    messaging_bus.set_renderer(
        create_renderer(
            messaging_bus.store,
            log_format=settings.log_format,
            min_level=settings.log_level,
            stream=stream,
        )
    )


def build_store(settings: Settings):
    if settings.store_url == "memory://":
        return InMemoryBoardStore()
    return SqliteBoardStore(url=settings.store_url)


def build_engine(settings: Settings, bus: Optional[MessageBus] = None) -> Engine:
    """Wires store, tile executor and event bus according to settings."""
    event_bus = bus or MessageBus()
    HumanReadableLogSubscriber(event_bus)
    return Engine(
        store=build_store(settings),
        executor=create_executor(settings.executor, settings.workers),
        bus=event_bus,
        tile_size=settings.tile_size,
    )
