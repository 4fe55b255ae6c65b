"""
Schedule Validation Service
Checks proposed shifts and whole weekly schedules against labour and
business rules

Per-shift checks (create/update of one shift):
1. Time format (HH:mm, 24-hour)
2. Duration (too short blocks, too long warns)
3. Date in the past
4. Employee availability for the weekday and window
5. Overlap with the employee's other shifts that day
6. Rest between consecutive shifts

Full-schedule checks:
7. Weekly hours ceiling per employee
8. Weekly rest day per employee
9. Shifts inside approved leave
10. Consecutive work days
11. Weekly budget ceiling
12. Minimum staffing per day and location
"""
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence
import logging

from turnofacil.models import Employee, RequestStatus, RestDay, ScheduleShift, TeamRequest
from turnofacil.utils.time_utils import day_index, shift_bounds, shift_minutes
from turnofacil.utils.validators import time_to_minutes
from . import constants
from .validation_types import (
    EntityType,
    FindingType,
    Severity,
    ValidationFinding,
    ValidationResult,
)

logger = logging.getLogger(__name__)

DAY_NAMES = ('domingos', 'lunes', 'martes', 'miércoles', 'jueves', 'viernes', 'sábados')


@dataclass(frozen=True)
class ValidationConfig:
    """Thresholds and switches for the rule set"""
    max_weekly_hours: float = constants.REGULAR_HOURS_PER_WEEK
    max_consecutive_hours: float = constants.DEFAULT_MAX_CONSECUTIVE_HOURS
    min_rest_between_shifts: float = constants.MIN_REST_HOURS_BETWEEN_SHIFTS
    max_consecutive_work_days: int = constants.MAX_CONSECUTIVE_WORK_DAYS
    budget_warning_threshold: float = constants.DEFAULT_BUDGET_WARNING_THRESHOLD
    min_staffing: int = constants.DEFAULT_MIN_STAFFING
    weekly_budget_limit: float = 0
    enforce_availability: bool = True
    enforce_rest_days: bool = True
    enforce_budget_limits: bool = True

    @classmethod
    def from_mapping(cls, settings: Mapping[str, Any]) -> 'ValidationConfig':
        """
        Build from a Flask config (or any mapping with the same keys).

        Missing keys keep their defaults.
        """
        keys = {
            'MAX_WEEKLY_HOURS': 'max_weekly_hours',
            'MAX_CONSECUTIVE_HOURS': 'max_consecutive_hours',
            'MIN_REST_BETWEEN_SHIFTS': 'min_rest_between_shifts',
            'MAX_CONSECUTIVE_WORK_DAYS': 'max_consecutive_work_days',
            'BUDGET_WARNING_THRESHOLD': 'budget_warning_threshold',
            'MIN_STAFFING_PER_DAY': 'min_staffing',
            'WEEKLY_BUDGET_LIMIT': 'weekly_budget_limit',
            'ENFORCE_AVAILABILITY': 'enforce_availability',
            'ENFORCE_REST_DAYS': 'enforce_rest_days',
            'ENFORCE_BUDGET_LIMITS': 'enforce_budget_limits',
        }
        values = {attr: settings[key] for key, attr in keys.items() if key in settings}
        return cls(**values)


class ScheduleValidationService:
    """
    Validates shift drafts and full weekly schedules

    Stateless between calls: every method receives the snapshot it needs
    and returns a fresh ValidationResult.

    Usage:
        service = ScheduleValidationService(ValidationConfig.from_mapping(app.config))
        result = service.validate_full_schedule(shifts, employees, rest_days, leaves)
    """

    def __init__(self, config: Optional[ValidationConfig] = None, today: Optional[date] = None):
        """
        Args:
            config: Rule thresholds; defaults follow Colombian labour law
            today: Reference date for the past-date check (default: date.today())
        """
        self.config = config or ValidationConfig()
        self.today = today

    # ------------------------------------------------------------------
    # Single shift
    # ------------------------------------------------------------------

    def validate_shift_data(self, draft: ScheduleShift, employees: Iterable[Employee],
                            existing_shifts: Iterable[ScheduleShift] = ()) -> ValidationResult:
        """
        Validate one shift draft before it is created or updated.

        Args:
            draft: The proposed shift; its id, when set, is excluded from
                overlap and rest comparisons so updates do not clash with
                themselves
            employees: Roster used to resolve the draft's employee
            existing_shifts: Other shifts already on the schedule

        Returns:
            ValidationResult with findings from checks 1-6
        """
        result = ValidationResult()
        employees_by_id = {e.id: e for e in employees}
        others = [
            s for s in existing_shifts
            if s.employee_id == draft.employee_id and not (draft.id and s.id == draft.id)
        ]

        times_ok = self._check_time_format(draft, result)
        if times_ok:
            self._check_duration(draft, result)
        self._check_date(draft, result)
        self._check_availability(draft, employees_by_id.get(draft.employee_id), times_ok, result)
        if times_ok:
            self._check_overlaps(draft, others, result)
            self._check_rest_between_shifts(draft, others, result)

        logger.debug(
            f"Shift draft for {draft.employee_id} on {draft.date}: "
            f"{len(result.errors)} errors, {len(result.warnings)} warnings"
        )
        return result

    def _check_time_format(self, draft: ScheduleShift, result: ValidationResult) -> bool:
        if draft.has_valid_times:
            return True
        result.add_finding(ValidationFinding(
            type=FindingType.SHIFT_GAP,
            severity=Severity.ERROR,
            message='Formato de hora inválido',
            description=f"Use HH:mm en formato 24 horas (recibido {draft.start_time!r} - {draft.end_time!r})",
            entity_id=draft.id or None,
            entity_type=EntityType.SHIFT,
        ))
        return False

    def _check_duration(self, draft: ScheduleShift, result: ValidationResult):
        start, end = shift_minutes(draft.start_time, draft.end_time)
        hours = (end - start) / 60

        if hours < constants.MIN_SHIFT_HOURS:
            result.add_finding(ValidationFinding(
                type=FindingType.SHIFT_GAP,
                severity=Severity.ERROR,
                message='El turno debe durar al menos 1 hora',
                description=f"Duración calculada: {hours:.1f}h",
                entity_id=draft.id or None,
                entity_type=EntityType.SHIFT,
            ))
        elif hours > self.config.max_consecutive_hours:
            result.add_finding(ValidationFinding(
                type=FindingType.OVERTIME,
                severity=Severity.WARNING,
                message=f"Turno de {hours:.1f}h excede el máximo de {self.config.max_consecutive_hours:g}h continuas",
                entity_id=draft.id or None,
                entity_type=EntityType.SHIFT,
                suggestions=('Divida el turno en dos', 'Reduzca la duración del turno'),
            ))

    def _check_date(self, draft: ScheduleShift, result: ValidationResult):
        today = self.today or date.today()
        if draft.date < today:
            result.add_finding(ValidationFinding(
                type=FindingType.SHIFT_GAP,
                severity=Severity.WARNING,
                message='El turno está programado en una fecha pasada',
                entity_id=draft.id or None,
                entity_type=EntityType.SHIFT,
            ))

    def _check_availability(self, draft: ScheduleShift, employee: Optional[Employee],
                            times_ok: bool, result: ValidationResult):
        if not self.config.enforce_availability:
            return

        if employee is None:
            result.add_finding(ValidationFinding(
                type=FindingType.AVAILABILITY,
                severity=Severity.ERROR,
                message='Empleado no encontrado',
                entity_id=draft.employee_id,
                entity_type=EntityType.EMPLOYEE,
            ))
            return

        weekday = day_index(draft.date)
        entry = employee.availability_for(weekday)
        if entry is None or not entry.available:
            result.add_finding(ValidationFinding(
                type=FindingType.AVAILABILITY,
                severity=Severity.ERROR,
                message=f"{employee.name} no está disponible los {DAY_NAMES[weekday]}",
                description='El empleado no tiene disponibilidad configurada para este día',
                entity_id=employee.id,
                entity_type=EntityType.EMPLOYEE,
                suggestions=(
                    'Seleccione otro empleado disponible',
                    'Cambie la fecha del turno',
                    'Actualice la disponibilidad del empleado',
                ),
            ))
            return

        if times_ok and entry.has_window:
            window_start = time_to_minutes(entry.start_time)
            window_end = time_to_minutes(entry.end_time)
            start, end = shift_minutes(draft.start_time, draft.end_time)
            if start < window_start or end > window_end:
                result.add_finding(ValidationFinding(
                    type=FindingType.AVAILABILITY,
                    severity=Severity.WARNING,
                    message=f"Turno fuera del horario de disponibilidad ({entry.start_time} - {entry.end_time})",
                    entity_id=draft.id or employee.id,
                    entity_type=EntityType.SHIFT,
                    suggestions=('Ajuste el horario del turno', 'Verifique la disponibilidad del empleado'),
                ))

    def _check_overlaps(self, draft: ScheduleShift, others: Sequence[ScheduleShift],
                        result: ValidationResult):
        start, end = shift_minutes(draft.start_time, draft.end_time)
        for other in others:
            if other.date != draft.date or not other.has_valid_times:
                continue
            other_start, other_end = shift_minutes(other.start_time, other.end_time)
            if start < other_end and end > other_start:
                result.add_finding(ValidationFinding(
                    type=FindingType.OVERLAP,
                    severity=Severity.ERROR,
                    message=f"Conflicto de horarios con turno existente ({other.start_time} - {other.end_time})",
                    description='Los turnos se superponen en el tiempo',
                    entity_id=other.id,
                    entity_type=EntityType.SHIFT,
                    suggestions=(
                        'Ajuste el horario del turno',
                        'Elimine el turno conflictivo',
                        'Asigne el turno a otro empleado',
                    ),
                ))

    def _check_rest_between_shifts(self, draft: ScheduleShift, others: Sequence[ScheduleShift],
                                   result: ValidationResult):
        draft_start, draft_end = shift_bounds(draft.date, draft.start_time, draft.end_time)
        minimum = self.config.min_rest_between_shifts

        for other in others:
            if not other.has_valid_times:
                continue
            other_start, other_end = shift_bounds(other.date, other.start_time, other.end_time)
            if other_start < draft_end and other_end > draft_start:
                if other.date == draft.date:
                    # Same-day overlap is the overlap rule's finding
                    continue
                rest = 0.0
            elif other_end <= draft_start:
                rest = (draft_start - other_end).total_seconds() / 3600
            else:
                rest = (other_start - draft_end).total_seconds() / 3600

            if rest < minimum:
                # Below 8h is always blocking; between 8h and the minimum only warns
                severity = Severity.ERROR if rest < constants.HARD_REST_FLOOR_HOURS else Severity.WARNING
                result.add_finding(ValidationFinding(
                    type=FindingType.SHIFT_GAP,
                    severity=severity,
                    message=f"Tiempo de descanso insuficiente: {rest:.1f}h (mínimo: {minimum:g}h)",
                    description='No hay suficiente tiempo de descanso entre turnos consecutivos',
                    entity_id=other.id,
                    entity_type=EntityType.SHIFT,
                    suggestions=(
                        'Aumente el tiempo entre turnos',
                        'Asigne el turno a otro empleado',
                    ),
                ))

    # ------------------------------------------------------------------
    # Full schedule
    # ------------------------------------------------------------------

    def validate_full_schedule(self, shifts: Iterable[ScheduleShift], employees: Iterable[Employee],
                               rest_days: Iterable[RestDay] = (), leaves: Iterable[TeamRequest] = (),
                               weekly_budget: Optional[float] = None) -> ValidationResult:
        """
        Validate a proposed week before it is published.

        Args:
            shifts: Every shift of the week
            employees: Roster; per-employee rules run for these employees
            rest_days: Assigned rest days
            leaves: Leave requests; only approved ones block shifts
            weekly_budget: Budget ceiling; falls back to the configured limit

        Returns:
            ValidationResult with findings from checks 7-12
        """
        shifts = list(shifts)
        employees = list(employees)
        result = ValidationResult()

        shifts_by_employee: Dict[str, List[ScheduleShift]] = defaultdict(list)
        for shift in shifts:
            shifts_by_employee[shift.employee_id].append(shift)
        rest_by_employee: Dict[str, List[RestDay]] = defaultdict(list)
        for rest in rest_days:
            rest_by_employee[rest.employee_id].append(rest)
        leaves_by_employee: Dict[str, List[TeamRequest]] = defaultdict(list)
        for leave in leaves:
            if leave.status == RequestStatus.APPROVED and leave.effective_range:
                leaves_by_employee[leave.employee_id].append(leave)

        for employee in employees:
            employee_shifts = shifts_by_employee.get(employee.id, [])
            self._check_weekly_hours(employee, employee_shifts, result)
            self._check_rest_days(employee, employee_shifts, rest_by_employee.get(employee.id, []), result)
            self._check_leave_conflicts(employee, employee_shifts, leaves_by_employee.get(employee.id, []), result)
            self._check_consecutive_days(employee, employee_shifts, result)

        self._check_budget(shifts, weekly_budget, result)
        self._check_staffing(shifts, result)

        logger.debug(
            f"Schedule of {len(shifts)} shifts for {len(employees)} employees: "
            f"{len(result.errors)} errors, {len(result.warnings)} warnings"
        )
        return result

    def _check_weekly_hours(self, employee: Employee, shifts: List[ScheduleShift],
                            result: ValidationResult):
        weekly_hours = sum(s.duration for s in shifts)
        max_hours = employee.max_weekly_hours or self.config.max_weekly_hours
        if weekly_hours <= max_hours:
            return

        severity = (Severity.ERROR if weekly_hours > max_hours + constants.WEEKLY_HOURS_TOLERANCE
                    else Severity.WARNING)
        result.add_finding(ValidationFinding(
            type=FindingType.OVERTIME,
            severity=severity,
            message=f"{employee.name} excede horas semanales: {weekly_hours:g}h de {max_hours:g}h",
            description='El empleado supera las horas máximas permitidas por semana',
            entity_id=employee.id,
            entity_type=EntityType.EMPLOYEE,
            suggestions=(
                'Reduzca las horas de algunos turnos',
                'Redistribuya turnos a otros empleados',
                'Solicite aprobación para horas extra',
            ),
            can_auto_fix=True,
        ))

    def _check_rest_days(self, employee: Employee, shifts: List[ScheduleShift],
                         rest_days: List[RestDay], result: ValidationResult):
        if not self.config.enforce_rest_days:
            return
        work_days = {s.date for s in shifts}
        if rest_days or len(work_days) < 7:
            return
        result.add_finding(ValidationFinding(
            type=FindingType.REST_DAY,
            severity=Severity.ERROR,
            message=f"{employee.name} no tiene día de descanso asignado",
            description='Todo empleado debe tener al menos un día de descanso semanal',
            entity_id=employee.id,
            entity_type=EntityType.EMPLOYEE,
            suggestions=(
                'Asigne un día de descanso',
                'Elimine algún turno para crear un día libre',
            ),
            can_auto_fix=True,
        ))

    def _check_leave_conflicts(self, employee: Employee, shifts: List[ScheduleShift],
                               leaves: List[TeamRequest], result: ValidationResult):
        for shift in shifts:
            for leave in leaves:
                start, end = leave.effective_range
                if start <= shift.date <= end:
                    result.add_finding(ValidationFinding(
                        type=FindingType.LEAVE_CONFLICT,
                        severity=Severity.ERROR,
                        message=f"{employee.name} tiene licencia aprobada en esta fecha",
                        description=f"Licencia del {start.isoformat()} al {end.isoformat()}",
                        entity_id=shift.id,
                        entity_type=EntityType.SHIFT,
                        suggestions=('Elimine el turno', 'Asigne el turno a otro empleado'),
                    ))

    def _check_consecutive_days(self, employee: Employee, shifts: List[ScheduleShift],
                                result: ValidationResult):
        limit = self.config.max_consecutive_work_days
        run_length = 0
        previous: Optional[date] = None
        reported = False

        for work_date in sorted({s.date for s in shifts}):
            if previous is not None and work_date - previous == timedelta(days=1):
                run_length += 1
            else:
                run_length = 1
                reported = False
            previous = work_date

            # One warning per run, raised when it first passes the limit
            if run_length > limit and not reported:
                reported = True
                result.add_finding(ValidationFinding(
                    type=FindingType.REST_DAY,
                    severity=Severity.WARNING,
                    message=f"{employee.name} trabaja más de {limit} días consecutivos",
                    description=f"Racha que alcanza el {work_date.isoformat()}",
                    entity_id=employee.id,
                    entity_type=EntityType.EMPLOYEE,
                    suggestions=('Asigne un día de descanso dentro de la racha',),
                ))

    def _check_budget(self, shifts: List[ScheduleShift], weekly_budget: Optional[float],
                      result: ValidationResult):
        if not self.config.enforce_budget_limits:
            return
        budget = weekly_budget if weekly_budget is not None else self.config.weekly_budget_limit
        if not budget or budget <= 0:
            return

        total_cost = sum(s.cost for s in shifts)
        utilization = total_cost * 100 / budget
        if utilization > 100:
            result.add_finding(ValidationFinding(
                type=FindingType.BUDGET,
                severity=Severity.ERROR,
                message=f"Presupuesto excedido: {utilization:.1f}% utilizado",
                description=f"Costo {total_cost:,.0f} frente a presupuesto {budget:,.0f}",
                suggestions=('Reduzca horas extra', 'Redistribuya turnos a tarifas menores'),
            ))
        elif utilization > self.config.budget_warning_threshold:
            result.add_finding(ValidationFinding(
                type=FindingType.BUDGET,
                severity=Severity.WARNING,
                message=f"Presupuesto cerca del límite: {utilization:.1f}% utilizado",
                description=f"Costo {total_cost:,.0f} frente a presupuesto {budget:,.0f}",
            ))

    def _check_staffing(self, shifts: List[ScheduleShift], result: ValidationResult):
        staff: Dict[tuple, set] = defaultdict(set)
        for shift in shifts:
            staff[(shift.date, shift.location_id)].add(shift.employee_id)

        minimum = self.config.min_staffing
        for (work_date, location_id), employee_ids in sorted(
                staff.items(), key=lambda item: (item[0][0], item[0][1] or '')):
            if len(employee_ids) < minimum:
                result.add_finding(ValidationFinding(
                    type=FindingType.UNDERSTAFFED,
                    severity=Severity.WARNING,
                    message=f"Personal insuficiente el {work_date.isoformat()}: {len(employee_ids)} de {minimum}",
                    description=f"Ubicación {location_id}" if location_id else '',
                    entity_id=work_date.isoformat(),
                    entity_type=EntityType.DAY,
                    suggestions=('Asigne más empleados a este día',),
                ))


# Thin call shapes for callers that do not keep a service around

def validate_shift(draft: ScheduleShift, employees: Iterable[Employee],
                   existing_shifts: Iterable[ScheduleShift] = (),
                   config: Optional[ValidationConfig] = None,
                   today: Optional[date] = None) -> ValidationResult:
    return ScheduleValidationService(config, today).validate_shift_data(draft, employees, existing_shifts)


def validate_schedule(shifts: Iterable[ScheduleShift], employees: Iterable[Employee],
                      rest_days: Iterable[RestDay] = (), leaves: Iterable[TeamRequest] = (),
                      weekly_budget: Optional[float] = None,
                      config: Optional[ValidationConfig] = None) -> ValidationResult:
    return ScheduleValidationService(config).validate_full_schedule(
        shifts, employees, rest_days, leaves, weekly_budget
    )
