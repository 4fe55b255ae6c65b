"""
Shared helpers for the snapshot models

Models are frozen dataclasses hydrated from JSON payloads. They are
never mutated; transitions build new instances with dataclasses.replace.
"""
from enum import Enum
from typing import Any, Dict, Optional, Type, TypeVar

from turnofacil.error_handlers.exceptions import ValidationException

E = TypeVar('E', bound=Enum)


def coerce_enum(enum_cls: Type[E], value: Any, field_name: str, default: Optional[E] = None) -> E:
    """
    Read an enum member from its value.

    Raises:
        ValidationException: If the value is missing without default or unknown
    """
    if isinstance(value, enum_cls):
        return value
    if value is None:
        if default is None:
            raise ValidationException(f"{field_name} is required")
        return default
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ', '.join(member.value for member in enum_cls)
        raise ValidationException(f"Invalid {field_name} '{value}'. Allowed: {allowed}")


def require_str(data: Dict[str, Any], key: str) -> str:
    """Fetch a mandatory non-empty identifier-like field."""
    value = data.get(key)
    if value is None or value == '':
        raise ValidationException(f"Missing required fields: {key}")
    return str(value)


def optional_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    return None if value is None else str(value)
