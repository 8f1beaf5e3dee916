"""
Contract implementation generator.

Builds, once per contract, a concrete class deriving from DictionaryAdapter
and from the contract itself, with one Python property per resolved
PropertyDescriptor. Instances of that class are the typed objects handed to
client code:

    class IFurniture(Protocol):
        type_name: str
        legs: Optional[int]

    furniture = get_adapter(IFurniture, NameValueStore())
    furniture.legs = 2              # store holds ["2"]
    furniture.legs                  # 2

Generation happens strictly downstream of resolution: the generator only
reads the MetaDescriptor and never participates in behavior resolution.
"""

import logging
import threading
import types
from typing import Any, Dict, Optional, Type, TypeVar

from dictadapter.adapter import DictionaryAdapter
from dictadapter.descriptors import MetaDescriptor, PropertyDescriptor
from dictadapter.resolver import clear_meta_cache, get_meta

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Process-wide, append-only: contract -> generated adapter class
_adapter_types: Dict[type, type] = {}
_adapter_types_lock = threading.Lock()


def _make_property(descriptor: PropertyDescriptor) -> property:
    """Create the accessor routing one contract property to the adapter core."""
    name = descriptor.name

    def fget(self):
        return self.get_property(name)

    def fset(self, value):
        self.set_property(name, value)

    return property(
        fget if descriptor.can_read else None,
        fset if descriptor.can_write else None,
        doc=f"{name} (key {descriptor.key!r})",
    )


def build_adapter_type(meta: MetaDescriptor) -> type:
    """Generate the concrete adapter class for a resolved contract."""
    contract = meta.contract
    namespace: Dict[str, Any] = {
        '__module__': contract.__module__,
        '__qualname__': f"{contract.__qualname__}DictionaryAdapter",
        '__meta__': meta,
    }
    for descriptor in meta:
        namespace[descriptor.name] = _make_property(descriptor)

    # new_class picks the contract's protocol metaclass
    adapter_type = types.new_class(
        f"{contract.__name__}DictionaryAdapter",
        (DictionaryAdapter, contract),
        exec_body=lambda ns: ns.update(namespace),
    )
    logger.debug(f"Generated {adapter_type.__qualname__} with properties {list(meta.properties)}")
    return adapter_type


class DictionaryAdapterFactory:
    """Creates typed adapters over stores."""

    def get_meta(self, contract: type) -> MetaDescriptor:
        """Resolved metadata for a contract.

        Raises:
            InvalidContractError: If contract is not a protocol class
        """
        return get_meta(contract)

    def get_adapter_type(self, contract: type) -> type:
        """Get the generated class for a contract, building it on first use."""
        adapter_type = _adapter_types.get(contract)
        if adapter_type is not None:
            return adapter_type

        meta = self.get_meta(contract)
        with _adapter_types_lock:
            adapter_type = _adapter_types.get(contract)
            if adapter_type is None:
                adapter_type = build_adapter_type(meta)
                _adapter_types[contract] = adapter_type
        return adapter_type

    def get_adapter(self, contract: Type[T], store: Any,
                    descriptor: Optional[PropertyDescriptor] = None) -> T:
        """Get a typed adapter bound to a store.

        Args:
            contract: Protocol class describing the typed surface
            store: A Store, or a MutableMapping to wrap (shared, not copied)
            descriptor: Enclosing property descriptor when adapting a nested component

        Returns:
            An instance of the generated class implementing contract

        Raises:
            InvalidContractError: If contract is not a protocol class
        """
        adapter_type = self.get_adapter_type(contract)
        return adapter_type(adapter_type.__meta__, store, descriptor, self)


default_factory = DictionaryAdapterFactory()


def get_adapter(contract: Type[T], store: Any, descriptor: Optional[PropertyDescriptor] = None) -> T:
    """Get a typed adapter from the default factory."""
    return default_factory.get_adapter(contract, store, descriptor)


def clear_adapter_cache() -> None:
    """Drop generated classes and resolved metadata (test hook)."""
    with _adapter_types_lock:
        _adapter_types.clear()
    clear_meta_cache()
