"""
Adapter core: typed access to a key-value store through resolved behavior chains.

A DictionaryAdapter binds one MetaDescriptor to one store. Every read or
write of a contract property goes through get_property()/set_property(),
which compute the store key, consult the open edit session, run the
property's getters or setters and raise notifications.

Capabilities (editing, notification, validation) are switched on once at
construction from the contract's marker protocols; the corresponding
surfaces exist on every adapter but stay inert when switched off.

Not thread-safe: one adapter must not be mutated from several threads.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from dictadapter.config import get_adapter_config
from dictadapter.contracts import Editable
from dictadapter.descriptors import MetaDescriptor, PropertyDescriptor
from dictadapter.edit import EditMixin
from dictadapter.notify import NotifyMixin
from dictadapter.stores import Store, as_store
from dictadapter.validate import ValidateMixin

if TYPE_CHECKING:
    from dictadapter.factory import DictionaryAdapterFactory

logger = logging.getLogger(__name__)


class DictionaryAdapter(EditMixin, NotifyMixin, ValidateMixin):
    """
    Runtime object exposing a store through a resolved contract.

    Generated contract implementations subclass this and route each contract
    property to get_property()/set_property(). Contract property names shadow
    adapter members of the same name on the generated class.

    Attributes:
        meta: Resolved contract metadata (shared by all adapters of the contract)
        store: Backing store (shared reference, never copied)
        descriptor: Enclosing property descriptor for nested adapters
        factory: Factory that created the adapter; used to build components
        extended_properties: Per-instance values owned by behaviors
    """

    def __init__(
        self,
        meta: MetaDescriptor,
        store: Any,
        descriptor: Optional[PropertyDescriptor] = None,
        factory: Optional['DictionaryAdapterFactory'] = None,
    ):
        self._meta = meta
        self._store: Store = as_store(store)
        self._descriptor = descriptor
        self._factory = factory
        self._extended_properties: Dict[str, Any] = {}

        self._init_edit(meta.editable, get_adapter_config().multi_level_edit)
        self._init_notify(meta.notifying)
        self._init_validate(meta.validating)

        self._initialize()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} over {self._store!r}>"

    @property
    def meta(self) -> MetaDescriptor:
        return self._meta

    @property
    def store(self) -> Store:
        return self._store

    @property
    def descriptor(self) -> Optional[PropertyDescriptor]:
        return self._descriptor

    @property
    def factory(self) -> 'DictionaryAdapterFactory':
        if self._factory is None:
            from dictadapter.factory import default_factory
            self._factory = default_factory
        return self._factory

    @property
    def extended_properties(self) -> Dict[str, Any]:
        return self._extended_properties

    # ========== READ PATH ==========

    def get_key(self, descriptor: PropertyDescriptor) -> str:
        """Compute the store key; recomputed on every access, never cached."""
        return descriptor.get_key(self, None, self._descriptor)

    def get_property(self, name: str) -> Any:
        """Read a contract property.

        Pending values of an open edit session win over the store. Otherwise
        the getter chain runs over the raw store value.

        Returns:
            The property value, or None for unknown properties

        Raises:
            ConversionError: If the stored value cannot be coerced to the declared type
        """
        descriptor = self._meta.get(name)
        if descriptor is None:
            return None

        found, value = self._get_edited_property(name)
        if not found:
            key = self.get_key(descriptor)
            value = descriptor.get_property_value(self, key, self.read_property(key))

        if isinstance(value, Editable):
            self._add_edit_dependency(value)
        self._compose_child_notifications(name, value)
        return value

    def read_property(self, key: str) -> Any:
        """Raw store read."""
        return self._store.get(key)

    # ========== WRITE PATH ==========

    def set_property(self, name: str, value: Any) -> bool:
        """Write a contract property.

        Returns:
            True if the value was stored or buffered, False for unknown
            properties and vetoed writes

        Raises:
            ConversionError: If value cannot be coerced to the declared type
        """
        descriptor = self._meta.get(name)
        if descriptor is None:
            return False

        value = descriptor.coerce(value)
        key = self.get_key(descriptor)

        if self._edit_property(name, value):
            return True

        if not self.should_notify:
            self._write(descriptor, key, value)
            return True

        existing = self.get_property(name)
        if not self._notify_property_changing(name, existing, value):
            return False

        self._write(descriptor, key, value)
        self._notify_property_changed(name, existing, value)
        self._notify_is_valid_changed()
        return True

    def _write(self, descriptor: PropertyDescriptor, key: str, value: Any) -> None:
        if not descriptor.set_property_value(self, key, value):
            self.store_property(descriptor, key, value)

    def store_property(self, descriptor: Optional[PropertyDescriptor], key: str, value: Any) -> None:
        """Raw store write."""
        self._store.set(key, value)

    # ========== CONSTRUCTION ==========

    def _initialize(self) -> None:
        for initializer in self._meta.initializers:
            initializer.initialize(self, self._meta.behaviors)

        for descriptor in self._meta:
            if descriptor.fetch:
                self.get_property(descriptor.name)
