"""
Behavior capabilities and the built-in behavior library.

A behavior is a policy object attached to a contract (type scope) or to one
of its properties (property scope). What it contributes is decided by the
capability base classes it derives from:

- KeyBuilder: rewrites the store key of a property
- PropertyGetter: produces a value when a property is read
- PropertySetter: takes over writing a value to the store
- Initializer: runs against every new adapter instance
- PropertyDescriptorInitializer: shapes property metadata during resolution
- FetchBehavior: controls eager reading at construction
- GroupBehavior: tags properties for grouped validation

Behaviors run in ascending execution_order; equal ranks keep declaration order.
A single class may derive from several capabilities.
"""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Optional, Sequence, Tuple

from dictadapter.conversion import TypeConverter, to_text, unwrap_optional

if TYPE_CHECKING:
    from dictadapter.adapter import DictionaryAdapter
    from dictadapter.descriptors import PropertyDescriptor, PropertyDraft

logger = logging.getLogger(__name__)


# =============================================================================
# CAPABILITIES
# =============================================================================

class DictionaryBehavior(ABC):
    """Base class for every behavior; carries the execution-order rank."""

    execution_order: int = 0

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class KeyBuilder(DictionaryBehavior):
    """Contributes to the store key computed for a property."""

    @abstractmethod
    def get_key(self, adapter: 'DictionaryAdapter', key: str,
                descriptor: 'PropertyDescriptor') -> str:
        """Return the key after this builder's transformation."""


class PropertyGetter(DictionaryBehavior):
    """Produces a property value on read."""

    @abstractmethod
    def get_property_value(self, adapter: 'DictionaryAdapter', key: str, stored_value: Any,
                           descriptor: 'PropertyDescriptor') -> Any:
        """Return a value for the property, or None to defer to the next getter."""


class PropertySetter(DictionaryBehavior):
    """Takes over writing a property value."""

    @abstractmethod
    def set_property_value(self, adapter: 'DictionaryAdapter', key: str, value: Any,
                           descriptor: 'PropertyDescriptor') -> bool:
        """Write the value; return True if handled so the store is not written again."""


class Initializer(DictionaryBehavior):
    """Runs once against each newly constructed adapter."""

    @abstractmethod
    def initialize(self, adapter: 'DictionaryAdapter', behaviors: Sequence[DictionaryBehavior]) -> None:
        """Prepare the adapter; behaviors are the contract's type-scope behaviors."""


class PropertyDescriptorInitializer(DictionaryBehavior):
    """Shapes a property's metadata while it is being resolved."""

    @abstractmethod
    def initialize_descriptor(self, draft: 'PropertyDraft',
                              behaviors: Sequence[DictionaryBehavior]) -> None:
        """Mutate the draft; behaviors are the property's own behaviors."""


class FetchBehavior(DictionaryBehavior):
    """Marks a property (or every property of a contract) for eager reading."""

    def __init__(self, fetch: bool = True):
        self.fetch = fetch

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.fetch!r})"


class GroupBehavior(DictionaryBehavior):
    """Tags a property with one or more validation groups."""

    def __init__(self, *groups: str):
        self.groups: Tuple[str, ...] = groups

    def __repr__(self) -> str:
        return f"{type(self).__name__}{self.groups!r}"


# =============================================================================
# KEY BUILDERS
# =============================================================================

class KeySubstitution(KeyBuilder):
    """Substitutes part of the key with another string.

    KeySubstitution("_", ".") maps property Address_City to key Address.City.
    """

    def __init__(self, old_value: str, new_value: str, execution_order: int = 0):
        self.old_value = old_value
        self.new_value = new_value
        self.execution_order = execution_order

    def __repr__(self) -> str:
        return f"KeySubstitution({self.old_value!r}, {self.new_value!r})"

    def get_key(self, adapter, key, descriptor):
        return key.replace(self.old_value, self.new_value)


class KeyPrefix(KeyBuilder):
    """Prepends a fixed prefix to the key."""

    def __init__(self, prefix: str, execution_order: int = 0):
        self.prefix = prefix
        self.execution_order = execution_order

    def __repr__(self) -> str:
        return f"KeyPrefix({self.prefix!r})"

    def get_key(self, adapter, key, descriptor):
        return f"{self.prefix}{key}"


class TypeKeyPrefix(KeyBuilder):
    """Prepends the contract name, giving keys like IPerson#name."""

    def __init__(self, execution_order: int = 0):
        self.execution_order = execution_order

    def get_key(self, adapter, key, descriptor):
        return f"{adapter.meta.contract.__name__}#{key}"


class Key(PropertyDescriptorInitializer):
    """Overrides the store key of a property."""

    def __init__(self, key: str, execution_order: int = 0):
        self.key = key
        self.execution_order = execution_order

    def __repr__(self) -> str:
        return f"Key({self.key!r})"

    def initialize_descriptor(self, draft, behaviors):
        draft.key = self.key


# =============================================================================
# GETTERS
# =============================================================================

class DefaultPropertyGetter(PropertyGetter):
    """Coerces raw store values to the declared type.

    Appended by the resolver as the last getter of every property whose type
    has a text representation.
    """

    def __init__(self, converter: TypeConverter):
        self.converter = converter

    def __repr__(self) -> str:
        return f"DefaultPropertyGetter({self.converter!r})"

    def get_property_value(self, adapter, key, stored_value, descriptor):
        if stored_value is None:
            return None
        return self.converter.convert_from(stored_value)


class Default(PropertyGetter):
    """Supplies a value when the store holds nothing for the property."""

    def __init__(self, value: Any, execution_order: int = 0):
        self.value = value
        self.execution_order = execution_order

    def __repr__(self) -> str:
        return f"Default({self.value!r})"

    def get_property_value(self, adapter, key, stored_value, descriptor):
        if stored_value is None:
            return self.value
        return None


class Component(PropertyGetter):
    """Exposes a contract-typed property as a nested adapter over the same store.

    Keys of the nested adapter are prefixed with prefix, or with the property
    name followed by an underscore when no prefix is given. The nested adapter
    is created once per parent adapter and reused afterwards.
    """

    def __init__(self, prefix: Optional[str] = None, execution_order: int = 0):
        self.prefix = prefix
        self.execution_order = execution_order

    def __repr__(self) -> str:
        return f"Component({self.prefix!r})"

    def get_property_value(self, adapter, key, stored_value, descriptor):
        component = adapter.extended_properties.get(descriptor.name)
        if component is None:
            prefix = self.prefix if self.prefix is not None else f"{descriptor.name}_"
            component_descriptor = descriptor.for_component(KeyPrefix(prefix), adapter.descriptor)
            contract = unwrap_optional(descriptor.property_type)
            component = adapter.factory.get_adapter(contract, adapter.store, component_descriptor)
            adapter.extended_properties[descriptor.name] = component
            logger.debug(f"Created component {descriptor.name!r} with key prefix {prefix!r}")
        return component


# =============================================================================
# SETTERS
# =============================================================================

class StringValues(PropertySetter):
    """Stores values as text regardless of the backing store."""

    def __init__(self, execution_order: int = 0):
        self.execution_order = execution_order

    def set_property_value(self, adapter, key, value, descriptor):
        adapter.store_property(descriptor, key, to_text(value))
        return True


class RemoveIfEmpty(PropertySetter):
    """Removes the key instead of storing None or an empty value."""

    def __init__(self, execution_order: int = 0):
        self.execution_order = execution_order

    @staticmethod
    def is_empty(value: Any) -> bool:
        if value is None:
            return True
        try:
            return len(value) == 0
        except TypeError:
            return False

    def set_property_value(self, adapter, key, value, descriptor):
        if self.is_empty(value):
            adapter.store.remove(key)
            return True
        return False


# =============================================================================
# FETCH / GROUPING
# =============================================================================

class Fetch(FetchBehavior):
    """Reads the property (or every property of the contract) at construction."""


class Group(GroupBehavior):
    """Places the property in the named validation groups."""


# =============================================================================
# INITIALIZERS
# =============================================================================

class MultiLevelEdit(Initializer):
    """Lets begin_edit() open nested edit levels on the adapter."""

    def __init__(self, execution_order: int = 0):
        self.execution_order = execution_order

    def initialize(self, adapter, behaviors):
        adapter.supports_multi_level_edit = True


class AddValidator(Initializer):
    """Attaches a validator to every adapter of the contract."""

    def __init__(self, validator: Any, execution_order: int = 0):
        self.validator = validator
        self.execution_order = execution_order

    def __repr__(self) -> str:
        return f"AddValidator({self.validator!r})"

    def initialize(self, adapter, behaviors):
        adapter.add_validator(self.validator)
