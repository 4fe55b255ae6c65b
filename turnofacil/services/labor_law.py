"""
Colombian labour law helpers

Holiday calendar (Ley Emiliani), night-work detection, shift pay
classification and surcharge-based shift cost, plus weekly rest-day
compliance checks.
"""
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Tuple

from turnofacil.models import Employee, RestDay, ScheduleShift, ShiftType
from turnofacil.utils.time_utils import MINUTES_PER_DAY, shift_minutes
from . import constants

# Night windows in minutes from the shift's own midnight. A shift lasts
# less than 24h, so it can touch at most these three.
_NIGHT_WINDOWS = (
    (0, constants.NIGHT_END_HOUR * 60),
    (constants.NIGHT_START_HOUR * 60, MINUTES_PER_DAY + constants.NIGHT_END_HOUR * 60),
    (MINUTES_PER_DAY + constants.NIGHT_START_HOUR * 60, 2 * MINUTES_PER_DAY + constants.NIGHT_END_HOUR * 60),
)

# Holidays celebrated on their date
_FIXED_HOLIDAYS = ((1, 1), (5, 1), (7, 20), (8, 7), (12, 8), (12, 25))

# Holidays moved to the following Monday
_MOVABLE_HOLIDAYS = ((1, 6), (3, 19), (6, 29), (8, 15), (10, 12), (11, 1), (11, 11))

# Easter offsets: (days, moved to Monday)
_EASTER_HOLIDAYS = ((-3, False), (-2, False), (39, True), (60, True), (68, True))


def easter_date(year: int) -> date:
    """Gregorian Easter Sunday (anonymous algorithm)."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    weekday = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * weekday) // 451
    month, day = divmod(h + weekday - 7 * m + 114, 31)
    return date(year, month, day + 1)


def _next_monday(value: date) -> date:
    return value + timedelta(days=(7 - value.weekday()) % 7)


@lru_cache(maxsize=32)
def colombian_holidays(year: int) -> Tuple[date, ...]:
    """All public holidays of a year, sorted."""
    holidays = [date(year, month, day) for month, day in _FIXED_HOLIDAYS]
    holidays.extend(_next_monday(date(year, month, day)) for month, day in _MOVABLE_HOLIDAYS)

    easter = easter_date(year)
    for offset, moved in _EASTER_HOLIDAYS:
        holiday = easter + timedelta(days=offset)
        holidays.append(_next_monday(holiday) if moved else holiday)

    return tuple(sorted(holidays))


def is_colombian_holiday(value: date) -> bool:
    return value in colombian_holidays(value.year)


def is_sunday(value: date) -> bool:
    return value.weekday() == 6


def is_night_hour(hour: int) -> bool:
    """Night work runs from 21:00 until 06:00."""
    return hour >= constants.NIGHT_START_HOUR or hour < constants.NIGHT_END_HOUR


def night_hours(start_time: str, end_time: str) -> float:
    """Hours of a shift that fall inside the night window."""
    start, end = shift_minutes(start_time, end_time)
    minutes = 0
    for window_start, window_end in _NIGHT_WINDOWS:
        overlap = min(end, window_end) - max(start, window_start)
        if overlap > 0:
            minutes += overlap
    return minutes / 60


def classify_shift(shift_date: date, start_time: str, end_time: str,
                   duration: Optional[float] = None) -> ShiftType:
    """
    Pay classification of a shift

    Holiday wins, then mostly-night, then anything over the ordinary
    daily hours counts as overtime.
    """
    if duration is None:
        start, end = shift_minutes(start_time, end_time)
        duration = (end - start) / 60

    if is_colombian_holiday(shift_date):
        return ShiftType.HOLIDAY
    if night_hours(start_time, end_time) > duration / 2:
        return ShiftType.NIGHT
    if duration > constants.REGULAR_HOURS_PER_DAY:
        return ShiftType.OVERTIME
    return ShiftType.REGULAR


def shift_cost(shift_date: date, start_time: str, end_time: str, hourly_rate: float,
               duration: Optional[float] = None) -> float:
    """
    Labour cost of a shift with legal surcharges applied

    Holidays and Sundays pay a flat day/night surcharge. Ordinary days
    split the shift into regular and overtime hours, day and night.
    """
    if duration is None:
        start, end = shift_minutes(start_time, end_time)
        duration = (end - start) / 60

    night = night_hours(start_time, end_time)
    day = duration - night

    if is_colombian_holiday(shift_date):
        return (day * hourly_rate * (1 + constants.HOLIDAY_SURCHARGE)
                + night * hourly_rate * (1 + constants.HOLIDAY_NIGHT_SURCHARGE))
    if is_sunday(shift_date):
        return (day * hourly_rate * (1 + constants.SUNDAY_SURCHARGE)
                + night * hourly_rate * (1 + constants.SUNDAY_NIGHT_SURCHARGE))

    regular_day = min(day, constants.REGULAR_HOURS_PER_DAY)
    overtime_day = max(0.0, day - constants.REGULAR_HOURS_PER_DAY)
    regular_night = min(night, max(0.0, constants.REGULAR_HOURS_PER_DAY - day))
    overtime_night = max(0.0, night - regular_night)

    return (regular_day * hourly_rate
            + regular_night * hourly_rate * (1 + constants.NIGHT_SURCHARGE)
            + overtime_day * hourly_rate * (1 + constants.OVERTIME_SURCHARGE)
            + overtime_night * hourly_rate * (1 + constants.OVERTIME_NIGHT_SURCHARGE))


def build_shift(draft: ScheduleShift, employee: Optional[Employee] = None) -> ScheduleShift:
    """
    Fill in duration, type and cost of a draft with valid times.

    Drafts with malformed times are returned untouched so validation can
    report them.
    """
    if not draft.has_valid_times:
        return draft
    start, end = shift_minutes(draft.start_time, draft.end_time)
    duration = (end - start) / 60
    hourly_rate = employee.hourly_rate if employee else 0.0
    return replace(
        draft,
        duration=duration,
        type=classify_shift(draft.date, draft.start_time, draft.end_time, duration),
        cost=round(shift_cost(draft.date, draft.start_time, draft.end_time, hourly_rate, duration), 2),
        employee_name=draft.employee_name or (employee.name if employee else None),
    )


def sunday_work_type(sundays_worked_in_month: int) -> str:
    """'occasional' up to the monthly limit, 'habitual' beyond it."""
    if sundays_worked_in_month <= constants.OCCASIONAL_SUNDAY_LIMIT:
        return 'occasional'
    return 'habitual'


def compensatory_expiration(work_date: date) -> date:
    """Last day a compensatory rest day earned on work_date may be taken."""
    return work_date + timedelta(days=constants.COMPENSATORY_EXPIRATION_DAYS)


@dataclass
class RestDayCompliance:
    """Weekly rest-day status of one employee"""
    employee_id: str
    work_days: int
    rest_days: int
    compliant: bool
    reason: str = ''

    @property
    def needs_rest_day(self) -> bool:
        return not self.compliant

    def to_dict(self):
        return {
            'employee_id': self.employee_id,
            'work_days': self.work_days,
            'rest_days': self.rest_days,
            'compliant': self.compliant,
            'needs_rest_day': self.needs_rest_day,
            'reason': self.reason,
        }


def rest_day_compliance(employee_id: str, shifts: Iterable[ScheduleShift],
                        rest_days: Iterable[RestDay]) -> RestDayCompliance:
    """
    Check the weekly rest rule for one employee.

    Working six or more distinct days with no assigned rest day is
    non-compliant.
    """
    work_days = len({s.date for s in shifts if s.employee_id == employee_id})
    rest_count = sum(1 for r in rest_days if r.employee_id == employee_id)
    compliant = (
        work_days < constants.MAX_CONSECUTIVE_WORK_DAYS or rest_count >= constants.MIN_REST_DAYS_PER_WEEK
    )
    return RestDayCompliance(
        employee_id=employee_id,
        work_days=work_days,
        rest_days=rest_count,
        compliant=compliant,
        reason='' if compliant else 'Falta día de descanso obligatorio',
    )


@dataclass
class RestDayRecommendation:
    employee_id: str
    employee_name: str
    reason: str
    suggested_dates: List[date] = field(default_factory=list)
    priority: str = 'high'

    def to_dict(self):
        return {
            'employee_id': self.employee_id,
            'employee_name': self.employee_name,
            'reason': self.reason,
            'suggested_dates': [d.isoformat() for d in self.suggested_dates],
            'priority': self.priority,
        }


def rest_day_recommendations(employees: Iterable[Employee], shifts: Iterable[ScheduleShift],
                             rest_days: Iterable[RestDay],
                             week_dates: Iterable[date]) -> List[RestDayRecommendation]:
    """
    Suggest rest days for scheduled employees who have none assigned.

    Up to two free dates of the week are suggested per employee.
    """
    shifts = list(shifts)
    week_dates = list(week_dates)
    with_rest: Dict[str, int] = {}
    for rest in rest_days:
        with_rest[rest.employee_id] = with_rest.get(rest.employee_id, 0) + 1

    recommendations = []
    for employee in employees:
        worked = {s.date for s in shifts if s.employee_id == employee.id}
        if not worked or with_rest.get(employee.id):
            continue
        free = [d for d in week_dates if d not in worked]
        recommendations.append(RestDayRecommendation(
            employee_id=employee.id,
            employee_name=employee.name,
            reason='No tiene día de descanso semanal asignado',
            suggested_dates=free[:2],
        ))
    return recommendations
