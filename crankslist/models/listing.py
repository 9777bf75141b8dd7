from __future__ import annotations
import enum

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Float, ForeignKey, Enum, JSON, CheckConstraint
)
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class Condition(str, enum.Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    NEEDS_WORK = "needs work"


class Category(Base):
    """Bike type. Seeded reference data."""
    __tablename__ = "bike_types"

    id = Column(Integer, primary_key=True)
    name = Column(String(80), unique=True, nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)


class Listing(Base):
    __tablename__ = "bikes"

    id = Column(Integer, primary_key=True)

    title = Column(String(200), nullable=False)
    description = Column(String(4000), nullable=True)
    price = Column(Integer, nullable=False)                  # whole units of `currency`
    currency = Column(String(3), nullable=False, default="USD")
    bike_type = Column(String(80), ForeignKey("bike_types.name"), nullable=False, index=True)
    condition = Column(
        Enum(Condition, values_callable=lambda e: [m.value for m in e], name="bike_condition"),
        nullable=False,
    )
    location = Column(String(200), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    brand = Column(String(100), nullable=True)
    size = Column(String(40), nullable=True)
    year = Column(Integer, nullable=True)
    images = Column(JSON, nullable=False, default=list)      # up to MAX_LISTING_IMAGES urls

    # seller identity, denormalized and fixed at creation
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    seller_email = Column(String(320), nullable=False, index=True)

    is_sold = Column(Boolean, default=False, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=True)

    category = relationship("Category")

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_bikes_price_non_negative"),
    )
