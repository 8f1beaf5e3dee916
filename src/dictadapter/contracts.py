"""
Contract declaration, flattening and behavior registration.

A contract is a typing.Protocol class. Annotated attributes declare read/write
properties; @property members declare read-only properties (read/write when
they define a setter). Contracts opt into adapter capabilities by extending
the infrastructure protocols defined here:

    class IPerson(Editable, Notifying, Protocol):
        name: str
        age: Optional[int]

        @property
        def display_name(self) -> str: ...

Behaviors are attached by explicit registration, either with
register_behaviors() or with the @with_behaviors decorator:

    @with_behaviors(KeySubstitution("_", "."))
    @with_behaviors(Key("Years"), property_name="age")
    class IPerson(Protocol):
        ...

flatten_contract() walks a contract and its extended contracts and returns
the ordered declarations the resolver consumes.
"""

import inspect
import logging
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    Generic,
    List,
    Mapping,
    Optional,
    Protocol,
    Tuple,
    get_origin,
    runtime_checkable,
)

from dictadapter.behaviors import DictionaryBehavior
from dictadapter.errors import InvalidContractError

logger = logging.getLogger(__name__)


# =============================================================================
# INFRASTRUCTURE PROTOCOLS
# =============================================================================

@runtime_checkable
class Editable(Protocol):
    """Objects supporting begin/cancel/end edit sessions."""

    def begin_edit(self) -> None: ...

    def cancel_edit(self) -> None: ...

    def end_edit(self) -> None: ...


@runtime_checkable
class ChangeTracking(Protocol):
    """Objects reporting whether they hold uncommitted changes."""

    @property
    def is_changed(self) -> bool: ...

    def accept_changes(self) -> None: ...

    def reject_changes(self) -> None: ...


@runtime_checkable
class Notifying(Protocol):
    """Objects raising property changing/changed events."""

    def add_property_changing_listener(self, listener: Callable) -> None: ...

    def add_property_changed_listener(self, listener: Callable) -> None: ...


@runtime_checkable
class Validating(Protocol):
    """Objects reporting validation errors per property."""

    @property
    def is_valid(self) -> bool: ...

    @property
    def error(self) -> str: ...

    def get_error(self, name: str) -> str: ...


# Recognized as capabilities, never walked for data properties
INFRASTRUCTURE_CONTRACTS = frozenset({
    Editable, ChangeTracking, Notifying, Validating, Protocol, Generic, object,
})


# =============================================================================
# DECLARATIONS
# =============================================================================

@dataclass(frozen=True)
class PropertyInfo:
    """One property as declared on one contract."""
    name: str
    property_type: Any
    can_read: bool = True
    can_write: bool = True


@dataclass(frozen=True)
class ContractDeclaration:
    """Everything one contract in a hierarchy declares itself."""
    contract: type
    properties: Tuple[PropertyInfo, ...] = ()
    behaviors: Tuple[DictionaryBehavior, ...] = ()
    property_behaviors: Mapping[str, Tuple[DictionaryBehavior, ...]] = field(default_factory=dict)

    def behaviors_for(self, name: str) -> Tuple[DictionaryBehavior, ...]:
        return self.property_behaviors.get(name, ())


def is_contract(obj: Any) -> bool:
    """Check whether obj is a protocol class usable as a contract."""
    return (
        isinstance(obj, type)
        and obj not in INFRASTRUCTURE_CONTRACTS
        and getattr(obj, '_is_protocol', False)
    )


def has_capability(contract: type, capability: type) -> bool:
    """Nominal check: does the contract extend an infrastructure protocol."""
    return capability in getattr(contract, '__mro__', ())


def _declared_properties(cls: type) -> List[PropertyInfo]:
    """Properties declared directly on cls: annotations first, then @property members."""
    properties: List[PropertyInfo] = []

    for name, annotation in inspect.get_annotations(cls, eval_str=True).items():
        if name.startswith('_') or get_origin(annotation) is ClassVar or annotation is ClassVar:
            continue
        properties.append(PropertyInfo(name, annotation))

    for name, member in cls.__dict__.items():
        if name.startswith('_') or not isinstance(member, property):
            continue
        property_type = Any
        if member.fget is not None:
            property_type = inspect.get_annotations(member.fget, eval_str=True).get('return', Any)
        properties.append(PropertyInfo(
            name,
            property_type,
            can_read=member.fget is not None,
            can_write=member.fset is not None,
        ))

    return properties


# =============================================================================
# BEHAVIOR REGISTRY
# =============================================================================

# contract -> type-scope behaviors, in registration order
_type_behaviors: Dict[type, List[DictionaryBehavior]] = {}

# (contract, property name) -> property-scope behaviors, in registration order
_property_behaviors: Dict[Tuple[type, str], List[DictionaryBehavior]] = {}


def register_behaviors(contract: type, *behaviors: DictionaryBehavior,
                       property_name: Optional[str] = None) -> None:
    """Attach behaviors to a contract or to one of its properties.

    Registration must happen before the contract is first adapted; resolved
    contracts are cached and do not pick up later registrations.

    Args:
        contract: The protocol class the behaviors belong to
        *behaviors: Behavior instances, in declaration order
        property_name: Property to attach to; None attaches to the contract itself

    Raises:
        TypeError: If an argument is not a DictionaryBehavior
    """
    for behavior in behaviors:
        if not isinstance(behavior, DictionaryBehavior):
            raise TypeError(f"{behavior!r} is not a DictionaryBehavior")

    if property_name is None:
        _type_behaviors.setdefault(contract, []).extend(behaviors)
    else:
        _property_behaviors.setdefault((contract, property_name), []).extend(behaviors)
    logger.debug(f"Registered {behaviors} on {contract.__name__}"
                 + (f".{property_name}" if property_name else ""))


def with_behaviors(*behaviors: DictionaryBehavior, property_name: Optional[str] = None):
    """Class decorator form of register_behaviors().

    Stacked decorators apply bottom-up, so write them in the order the
    behaviors should be declared from the bottom.
    """
    def decorator(cls: type) -> type:
        register_behaviors(cls, *behaviors, property_name=property_name)
        return cls
    return decorator


def get_registered_behaviors(contract: type, property_name: Optional[str] = None) -> Tuple[DictionaryBehavior, ...]:
    if property_name is None:
        return tuple(_type_behaviors.get(contract, ()))
    return tuple(_property_behaviors.get((contract, property_name), ()))


# =============================================================================
# FLATTENING
# =============================================================================

def flatten_contract(contract: Any) -> List[ContractDeclaration]:
    """Walk a contract hierarchy into ordered declarations.

    The contract comes first, followed by the contracts it extends in method
    resolution order. Infrastructure protocols are skipped.

    Raises:
        InvalidContractError: If contract is not a protocol class
    """
    if not is_contract(contract):
        raise InvalidContractError(contract)

    declarations = []
    for cls in contract.__mro__:
        if cls in INFRASTRUCTURE_CONTRACTS or not getattr(cls, '_is_protocol', False):
            continue
        properties = _declared_properties(cls)
        declarations.append(ContractDeclaration(
            contract=cls,
            properties=tuple(properties),
            behaviors=get_registered_behaviors(cls),
            property_behaviors={
                p.name: get_registered_behaviors(cls, p.name) for p in properties
            },
        ))
    return declarations
