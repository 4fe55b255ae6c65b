"""
Scheduling snapshot models
Employees, their weekly availability, shifts and rest days
"""
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from turnofacil.error_handlers.exceptions import ValidationException
from turnofacil.utils import time_utils
from turnofacil.utils.validators import is_valid_time, validate_date_param
from .base import coerce_enum, optional_str, require_str


class ShiftType(str, Enum):
    """Pay classification of a shift"""
    REGULAR = "regular"
    OVERTIME = "overtime"
    NIGHT = "night"
    HOLIDAY = "holiday"


class ShiftStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


@dataclass(frozen=True)
class DayAvailability:
    """
    One weekday entry of an employee's declared availability

    Attributes:
        day: Weekday index, 0 = Sunday through 6 = Saturday
        available: Whether the employee works that weekday at all
        start_time: Optional HH:mm window start
        end_time: Optional HH:mm window end
    """
    day: int
    available: bool = True
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    @property
    def has_window(self) -> bool:
        return is_valid_time(self.start_time) and is_valid_time(self.end_time)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DayAvailability':
        day = data.get('day')
        if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6:
            raise ValidationException('availability day must be an integer 0-6 (0 = Sunday)')
        return cls(
            day=day,
            available=bool(data.get('available', True)),
            start_time=optional_str(data, 'start_time'),
            end_time=optional_str(data, 'end_time'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'day': self.day,
            'available': self.available,
            'start_time': self.start_time,
            'end_time': self.end_time,
        }


@dataclass(frozen=True)
class Employee:
    """
    Schedulable staff member

    max_weekly_hours of None falls back to the configured legal ceiling.
    """
    id: str
    name: str
    position: str = ''
    location_id: Optional[str] = None
    max_weekly_hours: Optional[float] = None
    hourly_rate: float = 0.0
    availability: Tuple[DayAvailability, ...] = ()

    def availability_for(self, day: int) -> Optional[DayAvailability]:
        """Return the availability entry for a weekday index (0 = Sunday)."""
        for entry in self.availability:
            if entry.day == day:
                return entry
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Employee':
        max_hours = data.get('max_weekly_hours')
        return cls(
            id=require_str(data, 'id'),
            name=str(data.get('name') or ''),
            position=str(data.get('position') or ''),
            location_id=optional_str(data, 'location_id'),
            max_weekly_hours=float(max_hours) if max_hours else None,
            hourly_rate=float(data.get('hourly_rate') or 0),
            availability=tuple(
                DayAvailability.from_dict(entry) for entry in data.get('availability') or []
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'position': self.position,
            'location_id': self.location_id,
            'max_weekly_hours': self.max_weekly_hours,
            'hourly_rate': self.hourly_rate,
            'availability': [entry.to_dict() for entry in self.availability],
        }


@dataclass(frozen=True)
class ScheduleShift:
    """
    A work interval for one employee on one calendar date

    start_time and end_time are kept as given so a malformed draft can
    still be validated and reported. An end at or before the start means
    the shift runs past midnight.
    """
    id: str
    employee_id: str
    location_id: Optional[str]
    date: date
    start_time: str
    end_time: str
    duration: float = 0.0
    type: ShiftType = ShiftType.REGULAR
    cost: float = 0.0
    status: ShiftStatus = ShiftStatus.DRAFT
    notes: Optional[str] = None
    employee_name: Optional[str] = None

    @property
    def has_valid_times(self) -> bool:
        return is_valid_time(self.start_time) and is_valid_time(self.end_time)

    @property
    def crosses_midnight(self) -> bool:
        return self.has_valid_times and time_utils.crosses_midnight(self.start_time, self.end_time)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScheduleShift':
        start_time = str(data.get('start_time') or '')
        end_time = str(data.get('end_time') or '')
        duration = data.get('duration')
        if duration is None:
            if is_valid_time(start_time) and is_valid_time(end_time):
                duration = time_utils.shift_duration_hours(start_time, end_time)
            else:
                duration = 0.0
        return cls(
            id=str(data.get('id') or ''),
            employee_id=require_str(data, 'employee_id'),
            location_id=optional_str(data, 'location_id'),
            date=validate_date_param(data.get('date'), 'date'),
            start_time=start_time,
            end_time=end_time,
            duration=float(duration),
            type=coerce_enum(ShiftType, data.get('type'), 'shift type', ShiftType.REGULAR),
            cost=float(data.get('cost') or 0),
            status=coerce_enum(ShiftStatus, data.get('status'), 'shift status', ShiftStatus.DRAFT),
            notes=optional_str(data, 'notes'),
            employee_name=optional_str(data, 'employee_name'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'employee_id': self.employee_id,
            'employee_name': self.employee_name,
            'location_id': self.location_id,
            'date': self.date.isoformat(),
            'start_time': self.start_time,
            'end_time': self.end_time,
            'duration': self.duration,
            'crosses_midnight': self.crosses_midnight,
            'type': self.type.value,
            'cost': self.cost,
            'status': self.status.value,
            'notes': self.notes,
        }


@dataclass(frozen=True)
class RestDay:
    """A calendar day on which the employee must not be scheduled"""
    employee_id: str
    date: date

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RestDay':
        return cls(
            employee_id=require_str(data, 'employee_id'),
            date=validate_date_param(data.get('date'), 'date'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'employee_id': self.employee_id, 'date': self.date.isoformat()}
