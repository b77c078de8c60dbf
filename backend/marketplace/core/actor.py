"""Who is acting on a request: a user id plus the account role."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .enums import RoleName
from .exceptions import ForbiddenException

SYSTEM_ACTOR_ID = "system"


@dataclass(frozen=True)
class Actor:
    id: str
    role: RoleName

    @classmethod
    def system(cls) -> "Actor":
        return cls(id=SYSTEM_ACTOR_ID, role=RoleName.SYSTEM)

    @property
    def is_admin(self) -> bool:
        return self.role == RoleName.ADMIN

    @property
    def is_system(self) -> bool:
        return self.role == RoleName.SYSTEM

    @property
    def user_id(self) -> Optional[str]:
        """Id to store in audit columns; the system actor has none."""
        return None if self.is_system else self.id

    def require_role(self, *roles: RoleName) -> None:
        if self.role not in roles:
            raise ForbiddenException(
                "This action requires one of the roles: " + ", ".join(r.value for r in roles),
                details={"role": self.role.value},
            )
