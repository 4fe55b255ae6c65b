"""
Schedule Metrics Calculator

Aggregates weekly hours, cost and budget utilization from a shift set.
Pure: the same snapshot always produces an equal ScheduleMetrics.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from turnofacil.models import Employee, ScheduleShift

# Utilization percentages above which the budget status changes
BUDGET_DANGER_PERCENT = 100
BUDGET_WARNING_PERCENT = 85


@dataclass(frozen=True)
class ScheduleMetrics:
    """Weekly aggregates for one shift snapshot"""
    weekly_hours: float
    weekly_cost: float
    employee_count: int
    budget_utilization: float
    budget_status: str
    weekly_budget: float = 0.0

    @property
    def remaining_budget(self) -> float:
        return self.weekly_budget - self.weekly_cost

    def to_dict(self) -> Dict:
        return {
            'weekly_hours': self.weekly_hours,
            'weekly_cost': self.weekly_cost,
            'employee_count': self.employee_count,
            'budget_utilization': self.budget_utilization,
            'budget_status': self.budget_status,
            'weekly_budget': self.weekly_budget,
            'remaining_budget': self.remaining_budget,
        }


def budget_status(utilization: float) -> str:
    """Map a utilization percentage to 'danger', 'warning' or 'success'."""
    if utilization > BUDGET_DANGER_PERCENT:
        return 'danger'
    if utilization > BUDGET_WARNING_PERCENT:
        return 'warning'
    return 'success'


def compute_metrics(shifts: Iterable[ScheduleShift], employees: Optional[Iterable[Employee]] = None,
                    weekly_budget: Optional[float] = None) -> ScheduleMetrics:
    """
    Compute weekly aggregates over a shift set.

    Args:
        shifts: Shifts of the week; their stored duration and cost are summed
        employees: Roster, accepted for call-shape symmetry with validation;
            the count comes from the shifts themselves
        weekly_budget: Budget ceiling; a missing or non-positive budget
            yields 0% utilization

    Returns:
        ScheduleMetrics
    """
    shifts = list(shifts)
    weekly_hours = sum(s.duration for s in shifts)
    weekly_cost = sum(s.cost for s in shifts)
    employee_count = len({s.employee_id for s in shifts})

    budget = float(weekly_budget or 0)
    utilization = weekly_cost * 100 / budget if budget > 0 else 0.0

    return ScheduleMetrics(
        weekly_hours=weekly_hours,
        weekly_cost=weekly_cost,
        employee_count=employee_count,
        budget_utilization=utilization,
        budget_status=budget_status(utilization),
        weekly_budget=budget,
    )
