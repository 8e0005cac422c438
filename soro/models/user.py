# ============================================================================
# FILE: soro/models/user.py
# Principals of the booking engine: clients and professionals
# ============================================================================
from sqlalchemy import Column, String, Boolean, DateTime, Uuid
from sqlalchemy.orm import validates
from sqlalchemy.sql import func
import uuid
import enum
from soro.models.base import Base


class UserRole(str, enum.Enum):
    """Platform-level user roles."""
    CLIENT = "client"
    PROFESSIONAL = "professional"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    role = Column(String(20), default=UserRole.CLIENT.value, nullable=False, index=True)

    # Pseudonymous identities, never derived from the name
    user_id = Column(String(20), unique=True, nullable=False)  # SORO-NNNNNN, every account
    counselor_id = Column(String(20), unique=True, nullable=True)  # SC-NNNNNN, peer counselors only
    is_peer_counselor = Column(Boolean, default=False, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @validates("user_id", "counselor_id")
    def _validate_pseudonym(self, key, value):
        current = getattr(self, key)
        if current is not None and value != current:
            raise ValueError(f"{key} is permanent once assigned")
        return value

    @validates("is_peer_counselor")
    def _validate_peer_flag(self, key, value):
        if self.is_peer_counselor and not value:
            raise ValueError("Peer counselor status cannot be revoked")
        return value

    def is_professional(self) -> bool:
        return self.role == UserRole.PROFESSIONAL

    def __repr__(self):
        return f"<User(id={self.id}, role={self.role}, user_id={self.user_id})>"
