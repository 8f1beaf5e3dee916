"""
Store backends consumed by dictionary adapters.

An adapter only needs four operations over string keys: get, set, remove and
contains. Two backends are provided:

- MappingStore: any MutableMapping (plain dicts, row maps, ...). Values are
  stored as given.
- NameValueStore: a textual multi-value collection such as parsed query
  strings or form posts. Each key holds a list of strings; values are
  rendered to text on write and joined with the configured separator on read.

Both wrap the caller's container by reference, never copying it, so writes
through an adapter are visible in the original object.
"""

from typing import Any, Iterable, List, Mapping, MutableMapping, Optional, Protocol, Tuple, runtime_checkable

from dictadapter.config import get_adapter_config
from dictadapter.conversion import to_text


@runtime_checkable
class Store(Protocol):
    """Minimal capability an adapter needs from its backing store."""

    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def remove(self, key: str) -> None: ...

    def contains(self, key: str) -> bool: ...


class MappingStore:
    """Store over a generic string-keyed mapping."""

    def __init__(self, mapping: Optional[MutableMapping[str, Any]] = None):
        self.mapping = mapping if mapping is not None else {}

    def __repr__(self) -> str:
        return f"MappingStore({self.mapping!r})"

    def get(self, key: str) -> Any:
        return self.mapping.get(key)

    def set(self, key: str, value: Any) -> None:
        self.mapping[key] = value

    def remove(self, key: str) -> None:
        self.mapping.pop(key, None)

    def contains(self, key: str) -> bool:
        return key in self.mapping


class NameValueStore:
    """Store over a textual multi-value collection.

    The backing mapping holds lists of strings. Reads return the single value
    of a slot, or all values joined with AdapterConfig.value_separator when a
    slot holds more than one. Writes replace the slot with the value rendered
    as text; lists and tuples become one entry per element.

    Example:
        >>> store = NameValueStore.from_pairs([("Legs", "4"), ("Tag", "a"), ("Tag", "b")])
        >>> store.get("Tag")
        'a,b'
        >>> store.set("Legs", 2)
        >>> store.get_all("Legs")
        ['2']
    """

    def __init__(self, values: Optional[MutableMapping[str, List[str]]] = None):
        self.values = values if values is not None else {}

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, Any]]) -> 'NameValueStore':
        """Build a store from (key, value) pairs, keeping repeated keys."""
        store = cls()
        for key, value in pairs:
            store.add(key, value)
        return store

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> 'NameValueStore':
        """Build a store from a single-valued mapping."""
        store = cls()
        for key, value in mapping.items():
            store.set(key, value)
        return store

    def __repr__(self) -> str:
        return f"NameValueStore({self.values!r})"

    def get(self, key: str) -> Optional[str]:
        slot = self.values.get(key)
        if not slot:
            return None
        if len(slot) == 1:
            return slot[0]
        return get_adapter_config().value_separator.join(slot)

    def get_all(self, key: str) -> List[str]:
        return list(self.values.get(key) or [])

    def set(self, key: str, value: Any) -> None:
        if value is None:
            self.remove(key)
            return
        if isinstance(value, (list, tuple)):
            self.values[key] = [to_text(item) for item in value if item is not None]
        else:
            self.values[key] = [to_text(value)]

    def add(self, key: str, value: Any) -> None:
        if value is None:
            return
        self.values.setdefault(key, []).append(to_text(value))

    def remove(self, key: str) -> None:
        self.values.pop(key, None)

    def contains(self, key: str) -> bool:
        return bool(self.values.get(key))


def as_store(source: Any) -> Store:
    """Wrap a raw container in the matching store backend.

    Args:
        source: An existing Store, or a MutableMapping to wrap

    Returns:
        A Store sharing (not copying) the given container

    Raises:
        TypeError: If source is neither a Store nor a MutableMapping
    """
    if isinstance(source, (MappingStore, NameValueStore)):
        return source
    if isinstance(source, MutableMapping):
        return MappingStore(source)
    if isinstance(source, Store):
        return source
    raise TypeError(f"Cannot use {type(source).__name__} as a dictionary store")
