"""
Acting user model
The identity that every permission check and review is attributed to
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from turnofacil.error_handlers.exceptions import AuthenticationException, ValidationException
from .base import coerce_enum, optional_str


class Role(str, Enum):
    """User roles, ordered by authority"""
    EMPLOYEE = "EMPLOYEE"
    SUPERVISOR = "SUPERVISOR"
    BUSINESS_ADMIN = "BUSINESS_ADMIN"

    @property
    def level(self) -> int:
        return ROLE_LEVELS[self]


ROLE_LEVELS = {
    Role.EMPLOYEE: 1,
    Role.SUPERVISOR: 2,
    Role.BUSINESS_ADMIN: 3,
}


@dataclass(frozen=True)
class Actor:
    """
    The user on whose behalf an operation runs

    Attributes:
        id: User identifier; matched against employee_id for ownership
        name: Display name recorded in approval reviews
        role: One of Role
        location_id: Assigned location; narrows location scope for
            supervisors and employees
    """
    id: str
    role: Role
    name: str = ''
    location_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'Actor':
        if not isinstance(data, dict) or not data.get('id'):
            raise AuthenticationException('An actor with an id and role is required')
        try:
            role = coerce_enum(Role, data.get('role'), 'role')
        except ValidationException as e:
            raise AuthenticationException(e.message)
        return cls(
            id=str(data['id']),
            role=role,
            name=str(data.get('name') or ''),
            location_id=optional_str(data, 'location_id'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'role': self.role.value,
            'location_id': self.location_id,
        }
