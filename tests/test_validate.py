"""
Tests for validation and validation groups.

Tests cover:
- Aggregated errors over attached validators
- Validation computed from the current store state
- Validation groups composed from Group tags
"""

from typing import Optional, Protocol

import pytest

from dictadapter import (
    AddValidator,
    Component,
    DictionaryValidator,
    Group,
    Notifying,
    OperationNotSupportedError,
    RuleValidator,
    Validating,
    ValidationGroup,
    get_adapter,
    register_behaviors,
)


class IForm(Validating, Notifying, Protocol):
    a: Optional[int]
    b: Optional[int]
    c: Optional[int]


register_behaviors(IForm, Group("x"), property_name='a')
register_behaviors(IForm, Group("y"), property_name='b')


def required(value):
    return None if value is not None else "required"


class CountingValidator(DictionaryValidator):
    """Reports 'bad' for every property listed in invalid; counts calls."""

    def __init__(self, *invalid):
        self.invalid = set(invalid)
        self.calls = []

    def validate_property(self, adapter, name):
        self.calls.append(name)
        return "bad" if name in self.invalid else ""


class TestAdapterValidation:
    """Errors aggregated from every validator on the adapter."""

    def test_validator_less_adapter_is_valid(self, row):
        form = get_adapter(IForm, row)

        assert form.is_valid
        assert form.error == ""
        assert form.get_error("a") == ""

    def test_errors_in_declaration_order(self, row):
        form = get_adapter(IForm, row)
        form.add_validator(RuleValidator({"c": [required], "a": [required]}))

        assert not form.is_valid
        assert form.error == "required\nrequired"
        assert form.get_error("a") == "required"
        assert form.get_error("b") == ""

    def test_errors_of_all_validators_joined(self, row):
        form = get_adapter(IForm, row)
        form.add_validator(CountingValidator("a"))
        form.add_validator(RuleValidator({"a": [lambda v: "too small" if (v or 0) < 10 else None]}))

        assert form.get_error("a") == "bad\ntoo small"

    def test_validity_follows_writes(self, row):
        form = get_adapter(IForm, row)
        form.add_validator(RuleValidator({"a": [required]}))
        assert not form.is_valid

        form.a = 1
        assert form.is_valid
        assert form.error == ""

    def test_validation_recomputed_per_access(self, row):
        form = get_adapter(IForm, row)
        validator = CountingValidator()
        form.add_validator(validator)

        form.error
        form.error
        form.get_error("a")

        assert validator.calls == ["a", "b", "c", "a", "b", "c", "a"]

    def test_added_validator_applies_immediately(self, row):
        form = get_adapter(IForm, row)
        assert form.is_valid

        form.add_validator(CountingValidator("b"))
        assert not form.is_valid

    def test_writes_through_another_adapter_seen(self, row):
        first = get_adapter(IForm, row)
        second = get_adapter(IForm, row)
        first.add_validator(RuleValidator({"a": [required]}))
        assert not first.is_valid

        second.a = 7

        assert first.a == 7
        assert first.error == ""
        assert first.is_valid

    def test_writes_through_component_seen(self, row):
        class IAddress(Notifying, Protocol):
            City: Optional[str]

        class ICustomer(Validating, Notifying, Protocol):
            Address: IAddress

        register_behaviors(ICustomer, Component(), property_name="Address")
        customer = get_adapter(ICustomer, row)
        customer.add_validator(RuleValidator({
            "Address": [lambda address: None if address.City else "city required"],
        }))
        assert customer.error == "city required"

        customer.Address.City = "Lyon"

        assert row == {"Address_City": "Lyon"}
        assert customer.is_valid
        assert customer.error == ""

    def test_is_valid_agrees_with_error(self, row):
        form = get_adapter(IForm, row)
        form.add_validator(RuleValidator({"b": [required]}))

        for value in (None, 1, None):
            form.b = value
            assert form.is_valid == (form.error == "")

    def test_same_validator_added_once(self, row):
        form = get_adapter(IForm, row)
        validator = CountingValidator()
        form.add_validator(validator)
        form.add_validator(validator)

        assert form.validators == (validator,)

    def test_disabled_validation_reports_no_errors(self, row):
        form = get_adapter(IForm, row)
        form.add_validator(CountingValidator("a"))
        form.can_validate = False

        assert form.is_valid
        assert form.error == ""

    def test_non_validating_contract(self, row):
        class IPlain(Protocol):
            a: Optional[int]

        plain = get_adapter(IPlain, row)
        plain.add_validator(CountingValidator("a"))

        assert plain.is_valid

    def test_add_validator_behavior(self, row):
        class IChecked(Validating, Protocol):
            name: Optional[str]

        register_behaviors(IChecked, AddValidator(RuleValidator({"name": [required]})))

        first = get_adapter(IChecked, row)
        second = get_adapter(IChecked, {"name": "Ada"})

        assert first.error == "required"
        assert second.is_valid


class TestValidationGroups:
    """Validation narrowed to tagged properties."""

    def test_group_example(self, row):
        form = get_adapter(IForm, row)
        form.add_validator(CountingValidator("a"))

        group_x = form.validate_groups("x")
        assert not group_x.is_valid
        assert group_x.error == "bad"

        group_xy = form.validate_groups("x", "y")
        assert group_xy.error == "bad"

    def test_group_excludes_other_properties(self, row):
        form = get_adapter(IForm, row)
        form.add_validator(CountingValidator("a", "c"))

        group = form.validate_groups("y")
        assert group.is_valid
        assert group.get_error("a") == ""
        assert group.get_error("b") == ""

    def test_group_properties_in_declaration_order(self, row):
        form = get_adapter(IForm, row)
        assert form.validate_groups("y", "x").property_names == ("a", "b")

    def test_expanding_returns_new_group(self, row):
        form = get_adapter(IForm, row)
        group_x = form.validate_groups("x")

        group_xy = group_x.validate_groups("y")

        assert group_xy is not group_x
        assert isinstance(group_xy, ValidationGroup)
        assert group_x.groups == ("x",)
        assert group_xy.groups == ("x", "y")
        assert group_x.property_names == ("a",)
        assert group_xy.property_names == ("a", "b")

    def test_validator_less_group_is_valid(self, row):
        form = get_adapter(IForm, row)
        group = form.validate_groups("x", "y")

        assert group.is_valid
        assert group.error == ""

    def test_add_validator_rejected(self, row):
        group = get_adapter(IForm, row).validate_groups("x")

        with pytest.raises(OperationNotSupportedError):
            group.add_validator(CountingValidator())
        with pytest.raises(NotImplementedError):
            group.add_validator(CountingValidator())

    def test_validators_come_from_adapter(self, row):
        form = get_adapter(IForm, row)
        validator = CountingValidator()
        form.add_validator(validator)

        assert form.validate_groups("x").validators == (validator,)

    def test_changed_events_forwarded_unfiltered(self, row):
        form = get_adapter(IForm, row)
        group = form.validate_groups("x")
        received = []
        group.add_property_changed_listener(lambda sender, event: received.append((sender, event.name)))

        form.c = 3

        assert received == [(group, "c"), (group, "is_valid")]

    def test_empty_group_forwards_nothing(self, row):
        form = get_adapter(IForm, row)
        group = form.validate_groups("missing")
        received = []
        group.add_property_changed_listener(lambda sender, event: received.append(event.name))

        form.a = 1

        assert group.property_names == ()
        assert received == []

    def test_group_reflects_writes(self, row):
        form = get_adapter(IForm, row)
        form.add_validator(RuleValidator({"a": [required]}))
        group = form.validate_groups("x")
        assert group.error == "required"

        form.a = 5
        assert group.is_valid

    def test_groups_without_listeners_leave_adapter_untouched(self, row):
        form = get_adapter(IForm, row)
        before = list(form._changed_listeners)

        for _ in range(3):
            form.validate_groups("x", "y").error

        assert form._changed_listeners == before

    def test_group_subscribes_while_listened(self, row):
        form = get_adapter(IForm, row)
        before = len(form._changed_listeners)
        group = form.validate_groups("x")
        first = lambda sender, event: None
        second = lambda sender, event: None

        group.add_property_changed_listener(first)
        group.add_property_changed_listener(second)
        assert len(form._changed_listeners) == before + 1

        group.remove_property_changed_listener(first)
        assert len(form._changed_listeners) == before + 1

        group.remove_property_changed_listener(second)
        assert len(form._changed_listeners) == before
