# =============================================================================
# FILE: src/expressflow/models/user.py
# Collaborator model
# =============================================================================

from typing import Optional

from expressflow.models.quote import CamelModel, Role


class User(CamelModel):
    """Collaborator. No password hash means first access is still pending."""
    id: str
    name: str
    email: str
    role: Role
    password_hash: Optional[str] = None

    @property
    def first_access_pending(self) -> bool:
        return not self.password_hash

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles
