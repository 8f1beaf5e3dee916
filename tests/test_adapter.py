"""
Tests for typed reads and writes through generated adapters.

Tests cover:
- Generated classes and their cache
- Coercion between stored text and declared types
- Key shaping behaviors
- Getter and setter chains
- Nested components
"""

from typing import Optional, Protocol

import pytest

from dictadapter import (
    Component,
    ConversionError,
    Default,
    DictionaryAdapter,
    Fetch,
    Key,
    KeySubstitution,
    NameValueStore,
    PropertyGetter,
    PropertySetter,
    RemoveIfEmpty,
    StringValues,
    TypeKeyPrefix,
    get_adapter,
    register_behaviors,
    with_behaviors,
)
from dictadapter.factory import default_factory


class IFurniture(Protocol):
    TypeName: str
    Legs: Optional[int]


@with_behaviors(KeySubstitution("_", "."))
class IAddress(Protocol):
    Address_City: str
    Address_Zip: Optional[int]


class IStreet(Protocol):
    City: str
    Street: str


class ICustomer(Protocol):
    Name: str
    Address: IStreet


register_behaviors(ICustomer, Component(), property_name='Address')


class RecordingSetter(PropertySetter):
    def __init__(self, handled, execution_order=0):
        self.handled = handled
        self.calls = []
        self.execution_order = execution_order

    def set_property_value(self, adapter, key, value, descriptor):
        self.calls.append((key, value))
        return self.handled


class CountingGetter(PropertyGetter):
    def __init__(self):
        self.calls = 0

    def get_property_value(self, adapter, key, stored_value, descriptor):
        self.calls += 1
        return None


class TestGeneratedClass:
    """Shape and caching of generated contract implementations."""

    def test_implements_contract(self, row):
        furniture = get_adapter(IFurniture, row)

        assert IFurniture in type(furniture).__mro__
        assert isinstance(furniture, DictionaryAdapter)
        assert type(furniture).__name__ == 'IFurnitureDictionaryAdapter'

    def test_class_generated_once(self, row):
        first = get_adapter(IFurniture, row)
        second = get_adapter(IFurniture, {})

        assert type(first) is type(second)
        assert first.meta is second.meta

    def test_adapters_over_same_store_share_state(self, row):
        first = get_adapter(IFurniture, row)
        second = get_adapter(IFurniture, row)

        first.Legs = 3
        assert second.Legs == 3

    def test_factory_type_cache(self):
        assert default_factory.get_adapter_type(IFurniture) is default_factory.get_adapter_type(IFurniture)

    def test_store_is_not_copied(self, row):
        furniture = get_adapter(IFurniture, row)
        furniture.TypeName = "Chair"

        assert row == {"TypeName": "Chair"}
        assert furniture.store.mapping is row

    def test_unsupported_store_rejected(self):
        with pytest.raises(TypeError):
            get_adapter(IFurniture, ["not", "a", "store"])


class TestTypedAccess:
    """Reads and writes coerce between stored values and declared types."""

    def test_name_value_store_round_trip(self, name_values):
        furniture = get_adapter(IFurniture, name_values)
        furniture.Legs = 2

        assert name_values.get_all("Legs") == ["2"]
        assert furniture.Legs == 2

    def test_stored_text_coerced_on_read(self):
        furniture = get_adapter(IFurniture, {"Legs": "4", "TypeName": "Table"})

        assert furniture.Legs == 4
        assert furniture.TypeName == "Table"

    def test_text_coerced_on_write(self, row):
        furniture = get_adapter(IFurniture, row)
        furniture.Legs = "3"

        assert row == {"Legs": 3}

    def test_missing_value_reads_none(self, row):
        assert get_adapter(IFurniture, row).Legs is None

    def test_unparsable_stored_value(self):
        furniture = get_adapter(IFurniture, {"Legs": "four"})

        with pytest.raises(ConversionError):
            furniture.Legs

    def test_unconvertible_write(self, row):
        furniture = get_adapter(IFurniture, row)

        with pytest.raises(ConversionError):
            furniture.Legs = "four"
        assert row == {}

    def test_unknown_property(self, row):
        furniture = get_adapter(IFurniture, row)

        assert furniture.get_property("Color") is None
        assert furniture.set_property("Color", "red") is False
        assert row == {}

    def test_read_only_property(self):
        class IReadOnly(Protocol):
            @property
            def Name(self) -> str: ...

        adapter = get_adapter(IReadOnly, {"Name": "fixed"})

        assert adapter.Name == "fixed"
        with pytest.raises(AttributeError):
            adapter.Name = "other"


class TestKeys:
    """Store keys computed by key builders and descriptor initializers."""

    def test_key_substitution(self, row):
        address = get_adapter(IAddress, row)
        address.Address_City = "Lyon"

        assert row == {"Address.City": "Lyon"}

    def test_key_substitution_on_read(self):
        address = get_adapter(IAddress, {"Address.Zip": "69001"})
        assert address.Address_Zip == 69001

    def test_key_override(self, row):
        class IPerson(Protocol):
            age: int

        register_behaviors(IPerson, Key("Years"), property_name='age')
        get_adapter(IPerson, row).age = 30

        assert row == {"Years": 30}

    def test_type_key_prefix(self, row):
        class IPrefixed(Protocol):
            value: int

        register_behaviors(IPrefixed, TypeKeyPrefix())
        get_adapter(IPrefixed, row).value = 1

        assert row == {"IPrefixed#value": 1}

    def test_key_recomputed_per_access(self, row):
        class Switchable(KeySubstitution):
            def get_key(self, adapter, key, descriptor):
                return key + adapter.extended_properties.get('suffix', '')

        class ISwitch(Protocol):
            value: int

        register_behaviors(ISwitch, Switchable("", ""))
        adapter = get_adapter(ISwitch, row)

        adapter.value = 1
        adapter.extended_properties['suffix'] = '_2'
        adapter.value = 2

        assert row == {"value": 1, "value_2": 2}


class TestGetters:
    """Getter chains and defaults."""

    def test_default_when_missing(self, row):
        class IDefaulted(Protocol):
            Legs: Optional[int]

        register_behaviors(IDefaulted, Default(4), property_name='Legs')

        assert get_adapter(IDefaulted, row).Legs == 4
        assert get_adapter(IDefaulted, {"Legs": "2"}).Legs == 2

    def test_no_getter_value_falls_back_to_stored(self):
        class IRaw(Protocol):
            payload: dict

        counter = CountingGetter()
        register_behaviors(IRaw, counter, property_name='payload')
        payload = {"a": 1}

        assert get_adapter(IRaw, {"payload": payload}).payload is payload
        assert counter.calls == 1


class TestSetters:
    """Setter chains and store writes."""

    def test_string_values(self, row):
        class IText(Protocol):
            Legs: Optional[int]

        register_behaviors(IText, StringValues())
        adapter = get_adapter(IText, row)
        adapter.Legs = 2

        assert row == {"Legs": "2"}
        assert adapter.Legs == 2

    def test_remove_if_empty(self):
        class IName(Protocol):
            Name: Optional[str]

        register_behaviors(IName, RemoveIfEmpty(), property_name='Name')
        row = {"Name": "Ada", "Other": "x"}
        adapter = get_adapter(IName, row)

        adapter.Name = ""
        assert row == {"Other": "x"}

        adapter.Name = "Grace"
        assert row == {"Name": "Grace", "Other": "x"}

        adapter.Name = None
        assert row == {"Other": "x"}

    def test_handled_setter_short_circuits(self, row):
        class IHandled(Protocol):
            value: int

        first = RecordingSetter(handled=True)
        second = RecordingSetter(handled=True)
        register_behaviors(IHandled, first, second, property_name='value')

        get_adapter(IHandled, row).value = 5

        assert first.calls == [("value", 5)]
        assert second.calls == []
        assert row == {}

    def test_unhandled_setters_fall_through_to_store(self, row):
        class IPassThrough(Protocol):
            value: int

        setter = RecordingSetter(handled=False)
        register_behaviors(IPassThrough, setter)

        get_adapter(IPassThrough, row).value = 5

        assert setter.calls == [("value", 5)]
        assert row == {"value": 5}


class TestComponents:
    """Nested adapters over the same store."""

    def test_component_keys_prefixed(self, row):
        customer = get_adapter(ICustomer, row)
        customer.Name = "Ada"
        customer.Address.City = "Lyon"

        assert row == {"Name": "Ada", "Address_City": "Lyon"}

    def test_component_reads_parent_store(self):
        customer = get_adapter(ICustomer, {"Address_Street": "Main"})
        assert customer.Address.Street == "Main"

    def test_component_created_once(self, row):
        customer = get_adapter(ICustomer, row)
        assert customer.Address is customer.Address

    def test_component_implements_nested_contract(self, row):
        address = get_adapter(ICustomer, row).Address
        assert IStreet in type(address).__mro__

    def test_explicit_component_prefix(self, row):
        class IOrder(Protocol):
            Shipping: IStreet

        register_behaviors(IOrder, Component("Ship."), property_name='Shipping')
        get_adapter(IOrder, row).Shipping.City = "Nice"

        assert row == {"Ship.City": "Nice"}

    def test_nested_components_chain_prefixes(self, row):
        class IInner(Protocol):
            Value: int

        class IMiddle(Protocol):
            Inner: IInner

        class IOuter(Protocol):
            Middle: IMiddle

        register_behaviors(IMiddle, Component(), property_name='Inner')
        register_behaviors(IOuter, Component(), property_name='Middle')

        get_adapter(IOuter, row).Middle.Inner.Value = 7

        assert row == {"Middle_Inner_Value": 7}


class TestFetch:
    """Eager reads at construction."""

    def test_fetched_property_read_at_construction(self, row):
        class IEager(Protocol):
            eager: int
            lazy: int

        eager_counter = CountingGetter()
        lazy_counter = CountingGetter()
        register_behaviors(IEager, Fetch(), eager_counter, property_name='eager')
        register_behaviors(IEager, lazy_counter, property_name='lazy')

        get_adapter(IEager, row)

        assert eager_counter.calls == 1
        assert lazy_counter.calls == 0

    def test_conversion_failure_surfaces_at_construction(self):
        class IEager(Protocol):
            count: int

        register_behaviors(IEager, Fetch())

        with pytest.raises(ConversionError):
            get_adapter(IEager, {"count": "many"})


class TestNameValueStore:
    """Adapters over textual multi-value stores."""

    def test_multi_values_joined(self):
        class ITags(Protocol):
            Tag: str

        store = NameValueStore.from_pairs([("Tag", "a"), ("Tag", "b")])
        assert get_adapter(ITags, store).Tag == "a,b"

    def test_none_removes_slot(self):
        store = NameValueStore.from_mapping({"Legs": "4"})
        furniture = get_adapter(IFurniture, store)

        furniture.Legs = None
        assert not store.contains("Legs")
        assert furniture.Legs is None
