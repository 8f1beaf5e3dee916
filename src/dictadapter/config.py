"""
Package-level configuration for dictionary adapters.

Holds the defaults new adapters and stores read at construction time:

- multi_level_edit: whether begin_edit() may nest inside an open edit session
- value_separator: how NameValueStore joins a slot holding several values

The process-wide default is set with set_adapter_config(). A block of code can
override it without touching the global with adapter_config():

    >>> with adapter_config(multi_level_edit=True):
    ...     person = get_adapter(IPerson, row)
    >>> person.supports_multi_level_edit
    True
"""

import contextvars
import dataclasses
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdapterConfig:
    """Defaults applied to newly created adapters and stores."""
    multi_level_edit: bool = False
    value_separator: str = ","


_base_config: AdapterConfig = AdapterConfig()

# Scoped override stacked on top of _base_config by adapter_config()
_current_config: contextvars.ContextVar[Optional[AdapterConfig]] = contextvars.ContextVar(
    '_current_config', default=None
)


def set_adapter_config(config: AdapterConfig) -> None:
    """Replace the process-wide default configuration."""
    global _base_config
    _base_config = config
    logger.debug(f"Adapter config set: {config}")


def get_adapter_config() -> AdapterConfig:
    """Get the configuration in effect for the current context."""
    scoped = _current_config.get()
    return scoped if scoped is not None else _base_config


def reset_adapter_config() -> None:
    """Restore the built-in defaults."""
    set_adapter_config(AdapterConfig())


@contextmanager
def adapter_config(**overrides):
    """Override configuration fields for the duration of a with-block.

    Args:
        **overrides: AdapterConfig field values to change

    Raises:
        TypeError: If an override names a field AdapterConfig does not have
    """
    config = dataclasses.replace(get_adapter_config(), **overrides)
    token = _current_config.set(config)
    try:
        yield config
    finally:
        _current_config.reset(token)
