"""
Primitive type conversion between text and typed property values.

Stores such as query strings or form posts hold everything as text. A
property whose declared type can be parsed from text gets a TypeConverter,
which the resolver wraps in the default coercion getter and which textual
stores use to render values back to text.

Supported out of the box: str, int, float, bool, Decimal, UUID, date,
datetime, Path and Enum subclasses, plus Optional[...] of any of these.
Additional types can be plugged in with register_converter().
"""

import logging
import types
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union, get_args, get_origin
from uuid import UUID

from dictadapter.errors import ConversionError

logger = logging.getLogger(__name__)

_TRUE_TEXT = frozenset({'true', '1', 'yes', 'on'})
_FALSE_TEXT = frozenset({'false', '0', 'no', 'off'})


def _parse_bool(text: str) -> bool:
    lowered = text.lower()
    if lowered in _TRUE_TEXT:
        return True
    if lowered in _FALSE_TEXT:
        return False
    raise ValueError(f"not a boolean literal: {text!r}")


def _parse_decimal(text: str) -> Decimal:
    try:
        return Decimal(text)
    except InvalidOperation as e:
        raise ValueError(f"not a decimal literal: {text!r}") from e


# Parsers keyed by exact type. Enum subclasses are handled separately.
_parsers: Dict[type, Callable[[str], Any]] = {
    str: str,
    int: lambda text: int(text, 10),
    float: float,
    bool: _parse_bool,
    Decimal: _parse_decimal,
    UUID: UUID,
    date: date.fromisoformat,
    datetime: datetime.fromisoformat,
    Path: Path,
}

_renderers: Dict[type, Callable[[Any], str]] = {}

_converter_cache: Dict[Any, Optional['TypeConverter']] = {}


def register_converter(target_type: type, parse: Callable[[str], Any],
                       render: Optional[Callable[[Any], str]] = None) -> None:
    """Register text conversion for an additional type.

    Args:
        target_type: The declared property type to support
        parse: Callable turning text into a target_type value
        render: Optional callable turning a value back into text (default: str)
    """
    _parsers[target_type] = parse
    if render is not None:
        _renderers[target_type] = render
    _converter_cache.clear()


def unwrap_optional(tp: Any) -> Any:
    """Return X for Optional[X] / X | None, otherwise tp unchanged."""
    origin = get_origin(tp)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(tp) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return tp


def to_text(value: Any) -> Optional[str]:
    """Render a value the way textual stores keep it."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    renderer = _renderers.get(type(value))
    if renderer is not None:
        return renderer(value)
    return str(value)


class TypeConverter:
    """Converts raw store values to one declared type."""

    def __init__(self, target_type: type, parse: Callable[[str], Any]):
        self.target_type = target_type
        self._parse = parse

    def __repr__(self) -> str:
        return f"TypeConverter({self.target_type.__name__})"

    def is_instance(self, value: Any) -> bool:
        # bool is an int subclass but must not satisfy an int property
        if self.target_type is int and isinstance(value, bool):
            return False
        # likewise datetime for a date property
        if self.target_type is date and isinstance(value, datetime):
            return False
        return isinstance(value, self.target_type)

    def convert_from(self, value: Any) -> Any:
        """Coerce value to the target type.

        Text is parsed; other values are passed through the target type's
        constructor. Empty text means "no value" for every type except str.

        Raises:
            ConversionError: If the value cannot be represented as the target type
        """
        if value is None or self.is_instance(value):
            return value

        if isinstance(value, str):
            text = value.strip()
            if not text:
                return None
            try:
                return self._parse(text)
            except (ValueError, TypeError, KeyError) as e:
                raise ConversionError(value, self.target_type, str(e)) from e

        if self.target_type is str:
            return to_text(value)

        if self.target_type is date and isinstance(value, datetime):
            return value.date()

        if self.target_type is bool:
            if isinstance(value, (int, float)):
                return bool(value)
            raise ConversionError(value, self.target_type)

        try:
            converted = self.target_type(value)
        except (ValueError, TypeError, ArithmeticError) as e:
            raise ConversionError(value, self.target_type, str(e)) from e

        # Reject lossy numeric narrowing such as 2.5 -> 2
        if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
            if isinstance(converted, (int, float, Decimal)) and converted != value:
                raise ConversionError(value, self.target_type, "lossy conversion")
        return converted


def _make_enum_parser(enum_type: type) -> Callable[[str], Any]:
    def parse(text: str):
        if text in enum_type.__members__:
            return enum_type[text]
        for member in enum_type:
            if str(member.value) == text:
                return member
        raise ValueError(f"{text!r} is not a member of {enum_type.__name__}")
    return parse


def get_converter(tp: Any) -> Optional[TypeConverter]:
    """Get the converter for a declared type, or None if it is not textual.

    Args:
        tp: Declared property type (may be Optional[...])

    Returns:
        A cached TypeConverter, or None for types with no text representation
        (contracts, collections, Any, ...)
    """
    try:
        return _converter_cache[tp]
    except KeyError:
        pass
    except TypeError:
        # Unhashable annotation
        return None

    target = unwrap_optional(tp)
    converter = None
    if isinstance(target, type):
        if issubclass(target, Enum):
            converter = TypeConverter(target, _make_enum_parser(target))
        elif target in _parsers:
            converter = TypeConverter(target, _parsers[target])

    _converter_cache[tp] = converter
    return converter
