# =============================================================================
# FILE: src/expressflow/services/auth.py
# Master administrator login, collaborator invites, first access and login
# =============================================================================

import logging
from typing import Optional
from uuid import uuid4

from werkzeug.security import check_password_hash, generate_password_hash

from expressflow.config import Settings, settings as default_settings
from expressflow.exceptions import AuthenticationError, FirstAccessRequired, ValidationError
from expressflow.models.quote import Role
from expressflow.models.user import User
from expressflow.services.store import UserDirectory

logger = logging.getLogger(__name__)

MASTER_ADMIN_ID = "admin-master"
MASTER_ADMIN_NAME = "Administrador Master"


class AuthService:
    """
    Authentication against the collaborator directory.

    The master administrator is not stored in the directory; its credentials
    come from settings and it always acts as MANAGEMENT.
    """

    def __init__(self, users: UserDirectory, config: Optional[Settings] = None):
        self.users = users
        self.config = config or default_settings

    # -------- master administrator --------
    def login_admin(self, email: str, password: str) -> User:
        expected = self.config.ADMIN_PASSWORD
        if (
            not expected
            or email.strip().lower() != self.config.ADMIN_EMAIL.lower()
            or password != expected
        ):
            logger.warning("Rejected administrator login")
            raise AuthenticationError("Invalid administrator credentials.")

        return User(
            id=MASTER_ADMIN_ID,
            name=MASTER_ADMIN_NAME,
            email=self.config.ADMIN_EMAIL,
            role=Role.MANAGEMENT,
        )

    # -------- team management --------
    def invite_user(self, name: str, email: str, role: Role = Role.SALES) -> User:
        name = (name or "").strip()
        email = (email or "").strip()
        if not name or not email:
            raise ValidationError("Name and e-mail are required.")
        if self.users.find_by_email(email):
            raise ValidationError(f"{email} is already registered.")

        user = User(id=f"user-{uuid4().hex[:12]}", name=name, email=email, role=Role(role))
        self.users.add(user)
        logger.info(f"Invited {email} as {user.role.value}")
        return user

    def remove_user(self, user_id: str) -> bool:
        removed = self.users.remove(user_id)
        if removed:
            logger.info(f"Removed collaborator {user_id}")
        return removed

    # -------- collaborator login --------
    def _require_user(self, email: str) -> User:
        user = self.users.find_by_email(email or "")
        if user is None:
            raise AuthenticationError("E-mail not found. Ask an administrator for an invite.")
        return user

    def login(self, email: str, password: str) -> User:
        user = self._require_user(email)
        if user.first_access_pending:
            raise FirstAccessRequired(f"First access pending for {user.email}: choose a password.")
        if not check_password_hash(user.password_hash, password or ""):
            logger.warning(f"Wrong password for {user.email}")
            raise AuthenticationError("Incorrect password.")
        logger.info(f"{user.email} logged in")
        return user

    def complete_first_access(self, email: str, password: str, confirmation: str) -> User:
        user = self._require_user(email)
        if not user.first_access_pending:
            raise ValidationError("Password already set for this user.")
        if not password:
            raise ValidationError("Password is required.")
        if password != confirmation:
            raise ValidationError("Passwords do not match.")

        updated = user.model_copy(update={"password_hash": generate_password_hash(password)})
        self.users.replace(updated)
        logger.info(f"First access completed for {user.email}")
        return updated
