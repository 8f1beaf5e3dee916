"""
Behavior chain resolver.

Turns a flattened contract hierarchy plus its declared behaviors into a
MetaDescriptor: one PropertyDescriptor per property, each carrying its
ordered key-builder, getter and setter chains.

resolve_meta() is a pure function of its inputs. get_meta() adds the
process-wide cache: a contract is resolved at most once, guarded by an
unlocked fast read followed by a locked second check.
"""

import logging
import threading
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Optional, Sequence, Type, TypeVar

from dictadapter.behaviors import (
    DefaultPropertyGetter,
    DictionaryBehavior,
    FetchBehavior,
    Initializer,
    KeyBuilder,
    PropertyDescriptorInitializer,
    PropertyGetter,
    PropertySetter,
)
from dictadapter.contracts import (
    ChangeTracking,
    ContractDeclaration,
    Editable,
    Notifying,
    PropertyInfo,
    Validating,
    flatten_contract,
    has_capability,
)
from dictadapter.conversion import get_converter
from dictadapter.descriptors import MetaDescriptor, PropertyDescriptor, PropertyDraft
from dictadapter.errors import InvalidContractError

logger = logging.getLogger(__name__)

B = TypeVar('B', bound=DictionaryBehavior)

# Process-wide, append-only: contract -> resolved metadata
_meta_cache: Dict[type, MetaDescriptor] = {}
_meta_cache_lock = threading.Lock()


def _execution_order(behavior: DictionaryBehavior) -> int:
    return behavior.execution_order


def order_behaviors(behaviors: Iterable[DictionaryBehavior]) -> List[DictionaryBehavior]:
    """Sort by execution order; sorted() is stable so ties keep declaration order."""
    return sorted(behaviors, key=_execution_order)


def behaviors_of(behaviors: Iterable[DictionaryBehavior], capability: Type[B]) -> List[B]:
    """Ordered behaviors implementing one capability."""
    return order_behaviors(b for b in behaviors if isinstance(b, capability))


def _first_fetch(behaviors: Iterable[DictionaryBehavior]) -> Optional[bool]:
    for behavior in behaviors:
        if isinstance(behavior, FetchBehavior):
            return behavior.fetch
    return None


def _is_read_write(item: Any) -> bool:
    return item.can_read and item.can_write


def resolve_property(
    info: PropertyInfo,
    property_behaviors: Sequence[DictionaryBehavior],
    declaring_behaviors: Sequence[DictionaryBehavior],
    type_getters: Sequence[PropertyGetter],
    type_setters: Sequence[PropertySetter],
    default_fetch: bool,
) -> PropertyDescriptor:
    """Resolve one property declaration into a descriptor.

    Args:
        info: The property as declared
        property_behaviors: Behaviors attached to this property
        declaring_behaviors: Type-scope behaviors of the contract declaring the
            property; only its key builders apply to the property's key
        type_getters: Ordered type-scope getters of the whole hierarchy
        type_setters: Ordered type-scope setters of the whole hierarchy
        default_fetch: Contract-wide eager fetch default

    Returns:
        The frozen PropertyDescriptor
    """
    behaviors = order_behaviors(property_behaviors)
    draft = PropertyDraft(
        name=info.name,
        property_type=info.property_type,
        can_read=info.can_read,
        can_write=info.can_write,
        behaviors=list(behaviors),
    )

    # Descriptor initializers run first; they may rewrite key, type or behaviors
    for initializer in behaviors_of(behaviors, PropertyDescriptorInitializer):
        initializer.initialize_descriptor(draft, behaviors)

    own = order_behaviors(draft.behaviors)
    converter = get_converter(draft.property_type)

    getters: List[PropertyGetter] = behaviors_of(own, PropertyGetter) + list(type_getters)
    if converter is not None:
        getters.append(DefaultPropertyGetter(converter))

    fetch = draft.fetch
    if fetch is None:
        fetch = _first_fetch(own)
    if fetch is None:
        fetch = default_fetch

    return PropertyDescriptor(
        name=draft.name,
        property_type=draft.property_type,
        key=draft.key,
        can_read=draft.can_read,
        can_write=draft.can_write,
        key_builders=tuple(behaviors_of(own, KeyBuilder) + behaviors_of(declaring_behaviors, KeyBuilder)),
        getters=tuple(getters),
        setters=tuple(behaviors_of(own, PropertySetter) + list(type_setters)),
        fetch=bool(fetch),
        behaviors=tuple(own),
        converter=converter,
    )


def resolve_meta(contract: type, declarations: Sequence[ContractDeclaration]) -> MetaDescriptor:
    """Resolve a flattened contract hierarchy into a MetaDescriptor.

    ALGORITHM:
      1. Gather type-scope behaviors of all declarations, own contract first,
         and order them by execution order
      2. Partition into initializers, getters, setters and the fetch default
      3. Resolve every declared property in declaration order
      4. On duplicate names keep the first declaration, unless a later one is
         read/write and the earlier one is not

    Args:
        contract: The contract being adapted
        declarations: Output of flatten_contract(contract)

    Returns:
        MetaDescriptor with properties in declaration order
    """
    type_behaviors = order_behaviors(b for d in declarations for b in d.behaviors)
    initializers = behaviors_of(type_behaviors, Initializer)
    type_getters = behaviors_of(type_behaviors, PropertyGetter)
    type_setters = behaviors_of(type_behaviors, PropertySetter)
    default_fetch = bool(_first_fetch(type_behaviors))

    properties: Dict[str, PropertyDescriptor] = {}
    for declaration in declarations:
        for info in declaration.properties:
            descriptor = resolve_property(
                info,
                declaration.behaviors_for(info.name),
                declaration.behaviors,
                type_getters,
                type_setters,
                default_fetch,
            )

            existing = properties.get(info.name)
            if existing is None:
                properties[info.name] = descriptor
            elif _is_read_write(descriptor) and not _is_read_write(existing):
                # Assignment keeps the original position in declaration order
                properties[info.name] = descriptor
            elif _is_read_write(descriptor) and existing.property_type != descriptor.property_type:
                logger.warning(
                    f"Ambiguous declaration of {contract.__name__}.{info.name}: "
                    f"{existing.property_type!r} kept, {descriptor.property_type!r} "
                    f"from {declaration.contract.__name__} ignored"
                )

    meta = MetaDescriptor(
        contract=contract,
        initializers=tuple(initializers),
        behaviors=tuple(type_behaviors),
        properties=MappingProxyType(properties),
        editable=has_capability(contract, Editable),
        change_tracking=has_capability(contract, ChangeTracking),
        notifying=has_capability(contract, Notifying),
        validating=has_capability(contract, Validating),
    )
    logger.debug(f"Resolved {meta}")
    return meta


def get_meta(contract: Any) -> MetaDescriptor:
    """Get the cached MetaDescriptor for a contract, resolving it on first use.

    Raises:
        InvalidContractError: If contract is not a protocol class
    """
    if not isinstance(contract, type):
        raise InvalidContractError(contract)

    meta = _meta_cache.get(contract)
    if meta is not None:
        return meta

    with _meta_cache_lock:
        meta = _meta_cache.get(contract)
        if meta is None:
            meta = resolve_meta(contract, flatten_contract(contract))
            _meta_cache[contract] = meta
    return meta


def is_resolved(contract: type) -> bool:
    return contract in _meta_cache


def clear_meta_cache() -> None:
    """Drop every resolved contract (test hook; the cache is otherwise never evicted)."""
    with _meta_cache_lock:
        _meta_cache.clear()
