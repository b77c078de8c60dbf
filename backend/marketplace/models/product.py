"""Marketplace product; only what reviews need to roll ratings up."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String

from ..core.timezone_utils import utc_now
from ..core.ulid_helper import generate_ulid
from ..database import Base
from .rating import RateableMixin


class Product(RateableMixin, Base):
    __tablename__ = "products"

    id = Column(String(26), primary_key=True, default=generate_ulid)
    vendor_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
