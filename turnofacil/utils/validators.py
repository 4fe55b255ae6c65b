"""
Validation utilities for payload parsing

Small reusable parsers for the JSON snapshots the API receives.
All of them raise ValidationException so @handle_errors renders a 400.
"""
import re
from datetime import datetime, date, timezone
from typing import Any, Dict, List, Optional

from turnofacil.error_handlers.exceptions import ValidationException

# 24-hour HH:mm, single-digit hours accepted
TIME_PATTERN = re.compile(r'^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$')


def is_valid_time(value: Any) -> bool:
    """Return True if value is a 24-hour HH:mm string"""
    return isinstance(value, str) and TIME_PATTERN.match(value) is not None


def time_to_minutes(value: str) -> int:
    """
    Convert an HH:mm string into minutes after midnight.

    Raises:
        ValidationException: If the string is not a valid 24-hour time

    Examples:
        >>> time_to_minutes('06:30')
        390
    """
    if not is_valid_time(value):
        raise ValidationException(f"Invalid time '{value}'. Use HH:mm (e.g., 08:00)")
    hours, minutes = value.split(':')
    return int(hours) * 60 + int(minutes)


def validate_date_param(value: Any, param_name: str = 'date') -> date:
    """
    Validate and parse a date value.

    Accepts date objects, datetimes (truncated) and YYYY-MM-DD strings.

    Raises:
        ValidationException: If the value cannot be read as a date

    Examples:
        >>> validate_date_param('2024-01-15')
        datetime.date(2024, 1, 15)
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.strptime(value[:10], '%Y-%m-%d').date()
        except ValueError:
            pass
    raise ValidationException(
        f"Invalid {param_name} format. Use YYYY-MM-DD (e.g., 2024-01-15)"
    )


def validate_optional_date(value: Any, param_name: str) -> Optional[date]:
    """Like validate_date_param but None and '' pass through as None"""
    if value in (None, ''):
        return None
    return validate_date_param(value, param_name)


def validate_datetime_param(value: Any, param_name: str = 'timestamp') -> datetime:
    """
    Parse an ISO-8601 timestamp. Naive values are taken as UTC.

    Raises:
        ValidationException: If the value is not an ISO timestamp
    """
    parsed = None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            pass
    if parsed is None:
        raise ValidationException(f"Invalid {param_name}. Use an ISO-8601 timestamp")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def validate_list_param(data: Dict[str, Any], name: str, required: bool = True) -> List[Any]:
    """
    Fetch a list-valued field from a payload.

    Returns an empty list for optional missing fields.

    Raises:
        ValidationException: If the field is missing (when required) or not a list
    """
    value = data.get(name)
    if value is None:
        if required:
            raise ValidationException(f"Missing required fields: {name}")
        return []
    if not isinstance(value, list):
        raise ValidationException(f"{name} must be a list")
    return value


def validate_number_param(value: Any, param_name: str, default: Optional[float] = None) -> float:
    """
    Read a numeric payload value.

    Raises:
        ValidationException: If the value is neither a number nor None
    """
    if value is None:
        if default is None:
            raise ValidationException(f"{param_name} is required")
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationException(f"{param_name} must be a number")
    return float(value)


def sanitize_request_data(data: str) -> str:
    """
    Remove sensitive data from request strings for safe logging.

    Examples:
        >>> sanitize_request_data('{"token": "abc"}')
        '{"token": "[REDACTED]"}'
    """
    for key in ('password', 'token', 'api_key', 'secret', 'credential'):
        data = re.sub(
            rf'("{key}"\s*:\s*")[^"]*(")', r'\1[REDACTED]\2', data, flags=re.IGNORECASE
        )
    return data
