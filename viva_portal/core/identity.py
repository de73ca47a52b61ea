"""Identity of the caller as supplied by the external identity provider."""

from __future__ import annotations

from dataclasses import dataclass

from viva_portal.core.errors import InvalidInput, PermissionDenied

FACULTY_ROLE = "faculty"
STUDENT_ROLE = "student"
_ROLES = (FACULTY_ROLE, STUDENT_ROLE)


@dataclass(frozen=True, slots=True)
class Identity:
    """Authenticated user id plus the portal role it signed in with."""

    user_id: str
    role: str

    def __post_init__(self) -> None:
        if not self.user_id.strip():
            raise InvalidInput("User id must not be empty.")
        if self.role not in _ROLES:
            raise InvalidInput(f"Unknown role '{self.role}'.")

    @property
    def is_faculty(self) -> bool:
        return self.role == FACULTY_ROLE


def require_role(identity: Identity, role: str) -> Identity:
    if identity.role != role:
        raise PermissionDenied(f"This action requires the {role} role.")
    return identity
