"""
Exception hierarchy for dictionary adapters.

All errors raised by the package derive from DictionaryAdapterError and also
from the closest builtin exception, so callers can catch either.
"""


class DictionaryAdapterError(Exception):
    """Base class for all dictionary adapter errors."""


class InvalidContractError(DictionaryAdapterError, TypeError):
    """Raised when a type that is not a protocol class is used as a contract."""

    def __init__(self, contract):
        self.contract = contract
        name = getattr(contract, '__qualname__', repr(contract))
        super().__init__(f"Only protocol classes can be adapted, got {name}")


class ConversionError(DictionaryAdapterError, ValueError):
    """Raised when a value cannot be coerced to a property's declared type."""

    def __init__(self, value, target_type, reason: str = ""):
        self.value = value
        self.target_type = target_type
        type_name = getattr(target_type, '__name__', str(target_type))
        message = f"Cannot convert {value!r} to {type_name}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class OperationNotSupportedError(DictionaryAdapterError, NotImplementedError):
    """Raised by surfaces that deliberately reject an operation."""
