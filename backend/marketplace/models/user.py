# backend/marketplace/models/user.py
"""
User model.

One role per user. Credentials are issued elsewhere; this table only holds
what the reservation and hiring flows need to authorize and notify.
"""

from typing import Any, Dict

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, String
from sqlalchemy.types import JSON

from ..core.enums import RoleName
from ..core.timezone_utils import utc_now
from ..core.ulid_helper import generate_ulid
from ..database import Base
from .rating import RateableMixin


class User(RateableMixin, Base):
    __tablename__ = "users"

    id = Column(String(26), primary_key=True, index=True, default=generate_ulid)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(120), nullable=False)
    phone = Column(String(32), nullable=True)
    role = Column(String(20), nullable=False, default=RoleName.CUSTOMER.value, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    # {"categories": {"booking_confirmed": false, ...}}; absent categories are on
    notification_settings = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utc_now)

    __table_args__ = (
        CheckConstraint(
            "role IN ('admin', 'owner', 'customer', 'driver')",
            name="ck_users_role",
        ),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == RoleName.ADMIN.value

    def wants_notification(self, category: str) -> bool:
        settings: Dict[str, Any] = self.notification_settings or {}
        categories = settings.get("categories") or {}
        return categories.get(category) is not False

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.email} role={self.role}>"
