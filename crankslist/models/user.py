from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from .base import Base, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String(320), unique=True, index=True, nullable=False)   # stored lowercased
    password_hash = Column(String(200), nullable=True)                     # null for OAuth accounts
    auth_provider = Column(String(32), nullable=False, default="password")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=True)

    admin = relationship("Admin", back_populates="user", uselist=False)

    @property
    def display_name(self) -> str:
        return self.email.split("@", 1)[0] if self.email else f"ID {self.id}"


class Admin(Base):
    """Membership marker: a row here makes the user an administrator."""
    __tablename__ = "admins"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user = relationship("User", back_populates="admin")
