# soro/core/principal.py
"""Acting principal handed to every booking engine operation by the API layer"""
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from soro.models.user import User, UserRole

SYSTEM_ROLE = "system"


@dataclass(frozen=True)
class Principal:
    id: Optional[UUID]
    role: str

    @property
    def is_system(self) -> bool:
        return self.role == SYSTEM_ROLE

    @property
    def is_professional(self) -> bool:
        return self.role == UserRole.PROFESSIONAL

    @property
    def is_client(self) -> bool:
        return self.role == UserRole.CLIENT

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(id=user.id, role=user.role)


# The lifecycle scheduler acts under this identity
SYSTEM_PRINCIPAL = Principal(id=None, role=SYSTEM_ROLE)
