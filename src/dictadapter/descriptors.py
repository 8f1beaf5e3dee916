"""
Resolved metadata for contracts and their properties.

PropertyDescriptor and MetaDescriptor are produced by the resolver and never
change afterwards (frozen dataclasses). PropertyDraft is the mutable form a
property takes while descriptor initializers run.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterator, List, Mapping, Optional, Tuple

from dictadapter.behaviors import (
    DictionaryBehavior,
    GroupBehavior,
    Initializer,
    KeyBuilder,
    PropertyGetter,
    PropertySetter,
)
from dictadapter.conversion import TypeConverter

if TYPE_CHECKING:
    from dictadapter.adapter import DictionaryAdapter

logger = logging.getLogger(__name__)


@dataclass
class PropertyDraft:
    """Mutable property metadata handed to PropertyDescriptorInitializer behaviors."""
    name: str
    property_type: Any
    can_read: bool = True
    can_write: bool = True
    key: Optional[str] = None
    fetch: Optional[bool] = None
    behaviors: List[DictionaryBehavior] = field(default_factory=list)

    def __post_init__(self):
        if self.key is None:
            self.key = self.name


@dataclass(frozen=True, eq=False)
class PropertyDescriptor:
    """Resolved metadata and behavior chains for one property."""
    name: str
    property_type: Any
    key: str
    can_read: bool = True
    can_write: bool = True
    key_builders: Tuple[KeyBuilder, ...] = ()
    getters: Tuple[PropertyGetter, ...] = ()
    setters: Tuple[PropertySetter, ...] = ()
    fetch: bool = False
    behaviors: Tuple[DictionaryBehavior, ...] = ()
    converter: Optional[TypeConverter] = None
    # Enclosing descriptor when this one only carries keys for a component
    parent: Optional['PropertyDescriptor'] = None

    def __repr__(self) -> str:
        return f"PropertyDescriptor({self.name!r}, key={self.key!r})"

    @property
    def groups(self) -> Tuple[str, ...]:
        """Validation group tags declared on this property."""
        tags: List[str] = []
        for behavior in self.behaviors:
            if isinstance(behavior, GroupBehavior):
                tags.extend(behavior.groups)
        return tuple(tags)

    def get_key(self, adapter: 'DictionaryAdapter', key: Optional[str] = None,
                enclosing: Optional['PropertyDescriptor'] = None) -> str:
        """Compute the store key.

        Runs this descriptor's key builders over key (default: self.key), then
        hands the result to the enclosing descriptor, if any, so nested
        adapters inherit their parent's key shaping.
        """
        key = self.key if key is None else key
        for builder in self.key_builders:
            key = builder.get_key(adapter, key, self)
        if enclosing is not None:
            key = enclosing.get_key(adapter, key, enclosing.parent)
        return key

    def get_property_value(self, adapter: 'DictionaryAdapter', key: str, stored_value: Any) -> Any:
        """Run the getter chain; the first getter returning a value wins."""
        for getter in self.getters:
            value = getter.get_property_value(adapter, key, stored_value, self)
            if value is not None:
                return value
        return stored_value

    def set_property_value(self, adapter: 'DictionaryAdapter', key: str, value: Any) -> bool:
        """Run the setter chain.

        Returns:
            True if a setter handled the write, False if the store still needs it
        """
        for setter in self.setters:
            if setter.set_property_value(adapter, key, value, self):
                return True
        return False

    def coerce(self, value: Any) -> Any:
        """Coerce a value to the declared type when a converter is available."""
        if self.converter is None:
            return value
        return self.converter.convert_from(value)

    def for_component(self, key_builder: KeyBuilder,
                      enclosing: Optional['PropertyDescriptor']) -> 'PropertyDescriptor':
        """Derive the enclosing descriptor handed to a nested adapter."""
        return dataclasses.replace(
            self,
            key_builders=(key_builder,),
            getters=(),
            setters=(),
            fetch=False,
            parent=enclosing,
        )


@dataclass(frozen=True, eq=False)
class MetaDescriptor:
    """Resolved metadata for one contract, shared by all of its adapters."""
    contract: type
    initializers: Tuple[Initializer, ...]
    behaviors: Tuple[DictionaryBehavior, ...]
    properties: Mapping[str, PropertyDescriptor]
    editable: bool = False
    change_tracking: bool = False
    notifying: bool = False
    validating: bool = False

    def __repr__(self) -> str:
        return f"MetaDescriptor({self.contract.__name__}, properties={list(self.properties)})"

    def __iter__(self) -> Iterator[PropertyDescriptor]:
        return iter(self.properties.values())

    @property
    def property_names(self) -> Tuple[str, ...]:
        return tuple(self.properties)

    def get(self, name: str) -> Optional[PropertyDescriptor]:
        return self.properties.get(name)
