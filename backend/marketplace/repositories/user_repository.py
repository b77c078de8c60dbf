"""User data access."""

from typing import Iterable, List

from sqlalchemy.orm import Session

from ..core.enums import RoleName
from ..models.user import User
from .base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    def __init__(self, db: Session):
        super().__init__(db, User)

    def list_active_by_role(self, role: RoleName) -> List[User]:
        query = (
            self._build_query()
            .filter(User.role == role.value, User.is_active.is_(True))
            .order_by(User.id.asc())
        )
        return self._execute_query(query)

    def list_active_admins(self) -> List[User]:
        return self.list_active_by_role(RoleName.ADMIN)

    def list_active_by_ids(self, user_ids: Iterable[str]) -> List[User]:
        ids = list(user_ids)
        if not ids:
            return []
        query = self._build_query().filter(User.id.in_(ids), User.is_active.is_(True))
        return self._execute_query(query)
