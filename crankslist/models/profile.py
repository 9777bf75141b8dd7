import enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, UniqueConstraint
from .base import Base, utcnow


class ApprovalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    email = Column(String(320), nullable=True)

    # editable by the owner
    display_name = Column(String(120), nullable=True)
    username = Column(String(40), nullable=True)      # NULL when unset; unique otherwise
    phone = Column(String(50), nullable=True)
    location = Column(String(200), nullable=True)
    bio = Column(String(500), nullable=True)
    profile_picture_url = Column(String(1000), nullable=True)

    # editable by admins only
    approval_status = Column(
        Enum(ApprovalStatus, values_callable=lambda e: [m.value for m in e], name="approval_status"),
        default=ApprovalStatus.PENDING,
        nullable=False,
        index=True,
    )
    rejection_reason = Column(String(500), nullable=True)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=True)

    __table_args__ = (
        # one profile per identity, one owner per username: enforced by the store
        UniqueConstraint("user_id", name="uniq_profile_per_user"),
        UniqueConstraint("username", name="uniq_profile_username"),
    )
