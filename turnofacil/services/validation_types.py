"""
Validation types and data classes for schedule rule checking
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional


class FindingType(str, Enum):
    """Rule category a finding belongs to"""
    OVERTIME = "overtime"
    AVAILABILITY = "availability"
    OVERLAP = "overlap"
    UNDERSTAFFED = "understaffed"
    BUDGET = "budget"
    REST_DAY = "rest_day"
    LEAVE_CONFLICT = "leave_conflict"
    SHIFT_GAP = "shift_gap"


class Severity(str, Enum):
    """Severity levels for findings"""
    ERROR = "error"  # Blocks publishing
    WARNING = "warning"  # Shown, never blocks


class EntityType(str, Enum):
    SHIFT = "shift"
    EMPLOYEE = "employee"
    DAY = "day"


@dataclass(frozen=True)
class ValidationFinding:
    """A single rule finding; recomputed on every pass, never stored"""
    type: FindingType
    severity: Severity
    message: str
    description: str = ''
    entity_id: Optional[str] = None
    entity_type: Optional[EntityType] = None
    suggestions: tuple = ()
    can_auto_fix: bool = False
    id: str = ''

    def __str__(self):
        return f"[{self.severity.value.upper()}] {self.type.value}: {self.message}"

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type.value,
            'severity': self.severity.value,
            'message': self.message,
            'description': self.description,
            'entity_id': self.entity_id,
            'entity_type': self.entity_type.value if self.entity_type else None,
            'suggestions': list(self.suggestions),
            'can_auto_fix': self.can_auto_fix,
        }


@dataclass
class ValidationSummary:
    total_errors: int
    total_warnings: int
    critical_errors: int
    by_type: Dict[FindingType, int]

    def to_dict(self):
        return {
            'total_errors': self.total_errors,
            'total_warnings': self.total_warnings,
            'critical_errors': self.critical_errors,
            'by_type': {t.value: count for t, count in self.by_type.items()},
        }


@dataclass
class ValidationResult:
    """
    Outcome of a validation pass

    Findings keep the order the rules produced them. is_valid is False
    as soon as one error-severity finding is added; warnings never
    change it.
    """
    is_valid: bool = True
    findings: List[ValidationFinding] = field(default_factory=list)

    @property
    def errors(self) -> List[ValidationFinding]:
        return [f for f in self.findings if f.severity == Severity.ERROR]

    @property
    def warnings(self) -> List[ValidationFinding]:
        return [f for f in self.findings if f.severity == Severity.WARNING]

    def of_type(self, finding_type: FindingType) -> List[ValidationFinding]:
        return [f for f in self.findings if f.type == finding_type]

    def add_finding(self, finding: ValidationFinding):
        """Add a finding, numbering it within the result"""
        if not finding.id:
            finding = replace(finding, id=f"{finding.type.value}-{len(self.findings) + 1}")
        self.findings.append(finding)
        if finding.severity == Severity.ERROR:
            self.is_valid = False

    @property
    def summary(self) -> ValidationSummary:
        # Every type gets a bucket, zero included
        by_type = {finding_type: 0 for finding_type in FindingType}
        for finding in self.findings:
            by_type[finding.type] += 1
        errors = self.errors
        return ValidationSummary(
            total_errors=len(errors),
            total_warnings=len(self.warnings),
            critical_errors=len(errors),
            by_type=by_type,
        )

    def to_dict(self):
        return {
            'is_valid': self.is_valid,
            'errors': [f.to_dict() for f in self.errors],
            'warnings': [f.to_dict() for f in self.warnings],
            'summary': self.summary.to_dict(),
        }
