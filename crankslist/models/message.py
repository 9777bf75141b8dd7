from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from .base import Base, utcnow
from .listing import Listing


class Message(Base):
    """Buyer -> seller inquiry about one listing. Only ever changes by being read."""
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True)
    bike_id = Column(Integer, ForeignKey("bikes.id", ondelete="SET NULL"), nullable=True, index=True)

    sender_name = Column(String(200), nullable=False)
    sender_email = Column(String(320), nullable=False)
    recipient_email = Column(String(320), nullable=False, index=True)   # the listing's seller_email

    subject = Column(String(300), nullable=False)
    message = Column(String(4000), nullable=False)
    is_read = Column(Boolean, default=False, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    listing = relationship(Listing)
