"""
Validation for dictionary adapters.

Validators report per-property error strings; an empty string means valid.
Contracts extending Validating aggregate every attached validator:

    adapter.is_valid           # True when no validator reports an error
    adapter.error              # newline-joined errors of all validators
    adapter.get_error("name")  # errors for one property

An adapter without validators reports no errors. Results are computed on
every access: the store may be shared with other adapters or written by
nested components, so nothing is cached.

ValidationGroup narrows validation to properties tagged with Group(...):

    group = adapter.validate_groups("address")
    group.error                # only errors of properties in group "address"
"""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

from dictadapter.errors import OperationNotSupportedError
from dictadapter.notify import ChangedListener, PropertyChangedEvent

if TYPE_CHECKING:
    from dictadapter.adapter import DictionaryAdapter

logger = logging.getLogger(__name__)

ERROR_SEPARATOR = "\n"


def join_errors(errors: Iterable[Optional[str]]) -> str:
    """Join the non-empty messages with newlines."""
    return ERROR_SEPARATOR.join(error for error in errors if error)


# =============================================================================
# VALIDATORS
# =============================================================================

class DictionaryValidator(ABC):
    """Base class for adapter validators."""

    @abstractmethod
    def validate_property(self, adapter: 'DictionaryAdapter', name: str) -> str:
        """Return the error message for one property, or an empty string."""

    def validate(self, adapter: 'DictionaryAdapter') -> str:
        """Return all error messages for the adapter, in declaration order."""
        return join_errors(self.validate_property(adapter, name) for name in adapter.meta.properties)

    def is_valid(self, adapter: 'DictionaryAdapter') -> bool:
        return not self.validate(adapter)


Rule = Callable[[Any], Optional[str]]


class RuleValidator(DictionaryValidator):
    """Validator built from per-property rule callables.

    Each rule receives the current property value and returns an error
    message, or None/"" when the value is acceptable.

    Example:
        RuleValidator({
            "name": [lambda v: None if v else "Name is required"],
            "age": [lambda v: "Age must be positive" if v is not None and v < 0 else None],
        })
    """

    def __init__(self, rules: Mapping[str, Sequence[Rule]]):
        self.rules = {name: tuple(checks) for name, checks in rules.items()}

    def __repr__(self) -> str:
        return f"RuleValidator({list(self.rules)})"

    def validate_property(self, adapter, name):
        checks = self.rules.get(name)
        if not checks:
            return ""
        value = adapter.get_property(name)
        return join_errors(check(value) for check in checks)


# =============================================================================
# ADAPTER LAYER
# =============================================================================

class ValidateMixin:
    """Validation layer of DictionaryAdapter."""

    def _init_validate(self, can_validate: bool) -> None:
        self.can_validate = can_validate
        self._validators: List[DictionaryValidator] = []

    @property
    def validators(self) -> Tuple[DictionaryValidator, ...]:
        return tuple(self._validators)

    def add_validator(self, validator: DictionaryValidator) -> None:
        if validator not in self._validators:
            self._validators.append(validator)

    @property
    def is_valid(self) -> bool:
        if not self.can_validate or not self._validators:
            return True
        return all(validator.is_valid(self) for validator in self._validators)

    @property
    def error(self) -> str:
        if not self.can_validate or not self._validators:
            return ""
        return join_errors(validator.validate(self) for validator in self._validators)

    def get_error(self, name: str) -> str:
        if not self.can_validate or not self._validators:
            return ""
        return join_errors(validator.validate_property(self, name) for validator in self._validators)

    def validate_groups(self, *groups: str) -> 'ValidationGroup':
        """Compose a validation view over the properties tagged with any of groups."""
        return ValidationGroup(groups, self)

    def _notify_is_valid_changed(self) -> None:
        if self.can_validate and self.should_notify:
            self._notify_property_changed('is_valid')


class ValidationGroup:
    """Validation view over the properties of an adapter tagged with given groups.

    Errors come from the underlying adapter's validators; the group cannot
    hold validators of its own. "changed" events of the adapter are forwarded
    unfiltered while the group has listeners; the group subscribes to the
    adapter on its first listener and unsubscribes after its last one.
    """

    def __init__(self, groups: Iterable[str], adapter: 'DictionaryAdapter'):
        self._groups: Tuple[str, ...] = tuple(dict.fromkeys(groups))
        self._adapter = adapter
        self._property_names: Tuple[str, ...] = tuple(
            descriptor.name for descriptor in adapter.meta
            if any(tag in self._groups for tag in descriptor.groups)
        )
        self._changed_listeners: List[ChangedListener] = []

    def __repr__(self) -> str:
        return f"ValidationGroup({self._groups}, properties={self._property_names})"

    @property
    def groups(self) -> Tuple[str, ...]:
        return self._groups

    @property
    def property_names(self) -> Tuple[str, ...]:
        return self._property_names

    @property
    def can_validate(self) -> bool:
        return self._adapter.can_validate

    @can_validate.setter
    def can_validate(self, value: bool) -> None:
        self._adapter.can_validate = value

    @property
    def is_valid(self) -> bool:
        return not self.error

    @property
    def error(self) -> str:
        return join_errors(self._adapter.get_error(name) for name in self._property_names)

    def get_error(self, name: str) -> str:
        if name in self._property_names:
            return self._adapter.get_error(name)
        return ""

    def validate_groups(self, *groups: str) -> 'ValidationGroup':
        """Return a new group over the union of this group's tags and groups."""
        return ValidationGroup(self._groups + groups, self._adapter)

    @property
    def validators(self) -> Tuple[DictionaryValidator, ...]:
        return self._adapter.validators

    def add_validator(self, validator: DictionaryValidator) -> None:
        raise OperationNotSupportedError(
            "Validators cannot be added to a validation group; add them to the adapter"
        )

    def add_property_changed_listener(self, listener: ChangedListener) -> None:
        if listener in self._changed_listeners:
            return
        self._changed_listeners.append(listener)
        if len(self._changed_listeners) == 1 and self._property_names and self._adapter.can_notify:
            self._adapter.add_property_changed_listener(self._forward_property_changed)

    def remove_property_changed_listener(self, listener: ChangedListener) -> None:
        if listener not in self._changed_listeners:
            return
        self._changed_listeners.remove(listener)
        if not self._changed_listeners:
            self._adapter.remove_property_changed_listener(self._forward_property_changed)

    def _forward_property_changed(self, sender: Any, event: PropertyChangedEvent) -> None:
        for listener in list(self._changed_listeners):
            try:
                listener(self, event)
            except Exception as e:
                logger.warning(f"Error in validation group listener for {event.name!r}: {e}")
