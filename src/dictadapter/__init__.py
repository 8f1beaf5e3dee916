"""
Typed adapters over generic key-value stores.

Declare a contract as a Protocol class and get back an object implementing it
whose properties read and write a plain string-keyed store: request
parameters, row maps, parsed query strings and the like.

Key Features:
- Behavior chains per property: key shaping, typed coercion, defaults, setters
- Process-wide cache of resolved contracts (resolved at most once)
- Multi-level edit sessions with commit/rollback across nested components
- Vetoable change notification
- Per-property validation and validation groups

Quick Start:
    >>> from typing import Optional, Protocol
    >>> from dictadapter import Editable, KeySubstitution, get_adapter, with_behaviors
    >>>
    >>> @with_behaviors(KeySubstitution("_", "."))
    ... class IAddress(Editable, Protocol):
    ...     Address_City: str
    ...     Zip: Optional[int]
    >>>
    >>> row = {"Address.City": "Lyon", "Zip": "69001"}
    >>> address = get_adapter(IAddress, row)
    >>> address.Zip
    69001
    >>> address.begin_edit()
    >>> address.Address_City = "Paris"
    >>> address.cancel_edit()
    >>> row["Address.City"]
    'Lyon'

Architecture:
    contract + behaviors -> resolver -> cached MetaDescriptor
        -> DictionaryAdapter (one per store) -> generated contract class

Modules:
    - contracts: infrastructure protocols, flattening, behavior registration
    - behaviors: capability base classes and built-in behaviors
    - resolver: behavior chain resolution and the contract cache
    - adapter: adapter core (read/write paths)
    - edit / notify / validate: edit sessions, notifications, validation
    - factory: contract implementation generator
    - stores: MappingStore and NameValueStore backends
    - conversion: text <-> typed value conversion
    - config: package defaults
"""

# Errors
from dictadapter.errors import (
    DictionaryAdapterError,
    InvalidContractError,
    ConversionError,
    OperationNotSupportedError,
)

# Configuration
from dictadapter.config import (
    AdapterConfig,
    adapter_config,
    get_adapter_config,
    set_adapter_config,
    reset_adapter_config,
)

# Conversion
from dictadapter.conversion import TypeConverter, get_converter, register_converter, to_text

# Stores
from dictadapter.stores import Store, MappingStore, NameValueStore, as_store

# Behaviors
from dictadapter.behaviors import (
    DictionaryBehavior,
    KeyBuilder,
    PropertyGetter,
    PropertySetter,
    Initializer,
    PropertyDescriptorInitializer,
    FetchBehavior,
    GroupBehavior,
    # Built-ins
    KeySubstitution,
    KeyPrefix,
    TypeKeyPrefix,
    Key,
    Default,
    DefaultPropertyGetter,
    Component,
    StringValues,
    RemoveIfEmpty,
    Fetch,
    Group,
    MultiLevelEdit,
    AddValidator,
)

# Contracts
from dictadapter.contracts import (
    Editable,
    ChangeTracking,
    Notifying,
    Validating,
    PropertyInfo,
    ContractDeclaration,
    flatten_contract,
    register_behaviors,
    with_behaviors,
)

# Resolution
from dictadapter.descriptors import MetaDescriptor, PropertyDescriptor, PropertyDraft
from dictadapter.resolver import get_meta, resolve_meta

# Adapters
from dictadapter.adapter import DictionaryAdapter
from dictadapter.notify import PropertyChangingEvent, PropertyChangedEvent
from dictadapter.validate import DictionaryValidator, RuleValidator, ValidationGroup
from dictadapter.factory import DictionaryAdapterFactory, default_factory, get_adapter, clear_adapter_cache

__all__ = [
    # Errors
    'DictionaryAdapterError',
    'InvalidContractError',
    'ConversionError',
    'OperationNotSupportedError',
    # Configuration
    'AdapterConfig',
    'adapter_config',
    'get_adapter_config',
    'set_adapter_config',
    'reset_adapter_config',
    # Conversion
    'TypeConverter',
    'get_converter',
    'register_converter',
    'to_text',
    # Stores
    'Store',
    'MappingStore',
    'NameValueStore',
    'as_store',
    # Behaviors
    'DictionaryBehavior',
    'KeyBuilder',
    'PropertyGetter',
    'PropertySetter',
    'Initializer',
    'PropertyDescriptorInitializer',
    'FetchBehavior',
    'GroupBehavior',
    'KeySubstitution',
    'KeyPrefix',
    'TypeKeyPrefix',
    'Key',
    'Default',
    'DefaultPropertyGetter',
    'Component',
    'StringValues',
    'RemoveIfEmpty',
    'Fetch',
    'Group',
    'MultiLevelEdit',
    'AddValidator',
    # Contracts
    'Editable',
    'ChangeTracking',
    'Notifying',
    'Validating',
    'PropertyInfo',
    'ContractDeclaration',
    'flatten_contract',
    'register_behaviors',
    'with_behaviors',
    # Resolution
    'MetaDescriptor',
    'PropertyDescriptor',
    'PropertyDraft',
    'get_meta',
    'resolve_meta',
    # Adapters
    'DictionaryAdapter',
    'PropertyChangingEvent',
    'PropertyChangedEvent',
    'DictionaryValidator',
    'RuleValidator',
    'ValidationGroup',
    'DictionaryAdapterFactory',
    'default_factory',
    'get_adapter',
    'clear_adapter_cache',
]

__version__ = '1.0.0'
__description__ = 'Typed adapters over generic key-value stores'
