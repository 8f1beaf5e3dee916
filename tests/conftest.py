"""Pytest configuration and shared fixtures."""
import pytest

import dictadapter.contracts as contracts_module
from dictadapter import NameValueStore, clear_adapter_cache, reset_adapter_config


@pytest.fixture(autouse=True)
def reset_adapter_state():
    """Give each test fresh caches while keeping module-level registrations."""
    # Store original registrations (test modules register at import time)
    original_type_behaviors = {k: list(v) for k, v in contracts_module._type_behaviors.items()}
    original_property_behaviors = {k: list(v) for k, v in contracts_module._property_behaviors.items()}

    clear_adapter_cache()
    reset_adapter_config()

    yield

    # Drop anything registered during the test
    contracts_module._type_behaviors.clear()
    contracts_module._type_behaviors.update(original_type_behaviors)
    contracts_module._property_behaviors.clear()
    contracts_module._property_behaviors.update(original_property_behaviors)

    clear_adapter_cache()
    reset_adapter_config()


@pytest.fixture
def row():
    """Provide an empty plain-dict store."""
    return {}


@pytest.fixture
def name_values():
    """Provide an empty textual multi-value store."""
    return NameValueStore()
