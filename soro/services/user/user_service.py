# ============================================================================
# FILE: soro/services/user/user_service.py
# Account creation and the pseudonymous identities used by the identity mask
# ============================================================================
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
import logging
import secrets

from soro.core.exceptions import NotFoundError, ValidationError
from soro.models.user import User, UserRole

logger = logging.getLogger(__name__)

USER_ID_PREFIX = "SORO-"
COUNSELOR_ID_PREFIX = "SC-"
MAX_ID_ATTEMPTS = 10


class UserService:
    """Service layer for user operations."""

    @staticmethod
    def create_user(
            db: Session,
            email: str,
            full_name: str,
            role: UserRole = UserRole.CLIENT,
            is_peer_counselor: bool = False
    ) -> User:
        """
        Create a new account with its pseudonymous user id.

        Raises:
            ValidationError: email already registered, or a non-professional flagged peer counselor
        """
        email = email.lower().strip()
        if db.query(User).filter(User.email == email).first():
            raise ValidationError("Email already registered", {"email": email})

        role = UserRole(role)
        if is_peer_counselor and role != UserRole.PROFESSIONAL:
            raise ValidationError("Only professionals can be peer counselors")

        user = User(
            email=email,
            full_name=full_name,
            role=role.value,
            user_id=UserService._generate_unique_id(db, USER_ID_PREFIX, User.user_id),
            is_active=True,
        )
        if is_peer_counselor:
            user.is_peer_counselor = True
            user.counselor_id = UserService._generate_unique_id(db, COUNSELOR_ID_PREFIX, User.counselor_id)

        db.add(user)
        db.commit()
        db.refresh(user)

        logger.info(f"Created {role.value} account {user.user_id}")
        return user

    @staticmethod
    def get_user(db: Session, user_id: UUID) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def set_peer_counselor(db: Session, user_id: UUID, is_peer_counselor: bool) -> User:
        """
        Flag a professional as peer counselor and assign their counselor id.

        The flag and counselor id are permanent; clearing the flag is rejected.

        Raises:
            NotFoundError: no such user
            ValidationError: not a professional, or an attempt to revoke the flag
        """
        user = UserService.get_user(db, user_id)
        if not user:
            raise NotFoundError("User not found", {"user_id": str(user_id)})
        if user.role != UserRole.PROFESSIONAL:
            raise ValidationError("Only professionals can be peer counselors")

        if user.is_peer_counselor == is_peer_counselor:
            return user

        try:
            user.is_peer_counselor = is_peer_counselor
            if user.counselor_id is None:
                user.counselor_id = UserService._generate_unique_id(db, COUNSELOR_ID_PREFIX, User.counselor_id)
        except ValueError as e:
            db.rollback()
            raise ValidationError(str(e), {"user_id": str(user_id)})

        db.commit()
        db.refresh(user)

        logger.info(f"Professional {user.user_id} is now peer counselor {user.counselor_id}")
        return user

    @staticmethod
    def _generate_unique_id(db: Session, prefix: str, column) -> str:
        """Random six-digit id with the given prefix, unique in `column`"""
        for _ in range(MAX_ID_ATTEMPTS):
            candidate = f"{prefix}{secrets.randbelow(1_000_000):06d}"
            if not db.query(User).filter(column == candidate).first():
                return candidate
        raise RuntimeError(f"Could not generate a unique {prefix} identifier")
