from __future__ import annotations

import logging
from typing import List, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from ..models.message import Message
from ..models.user import User
from ..services.catalog import get_listing

logger = logging.getLogger(__name__)

# events published on the realtime hub
MESSAGE_INSERTED = "message_inserted"
MESSAGE_UPDATED = "message_updated"


def mask_email(email: str | None) -> str:
    """
    Display form of a seller address: the first two characters of the local
    part (only the first one when the local part is that short), then ***@domain.

        alice@example.com -> al***@example.com
        ab@example.com    -> a***@example.com
        a@example.com     -> a***@example.com
    """
    if not email:
        return ""
    local, _, domain = email.partition("@")
    shown = local[:1] if len(local) <= 2 else local[:2]
    return f"{shown}***@{domain}"


def send_message(
    db: Session,
    listing_id: int,
    buyer_name: str,
    buyer_email: str,
    body: str,
    claimed_seller_email: str | None = None,
) -> Message:
    """
    Store a buyer inquiry addressed to the listing's seller.
    The recipient always comes from the listing row; `claimed_seller_email`
    (whatever the client sent) is only compared and logged.
    """
    buyer_name = (buyer_name or "").strip()
    buyer_email = (buyer_email or "").strip()
    body = (body or "").strip()
    if not listing_id or not buyer_name or not buyer_email or not body:
        raise ValueError("Missing required fields")

    listing = get_listing(db, listing_id)

    if claimed_seller_email and claimed_seller_email.strip().lower() != listing.seller_email.lower():
        logger.warning("contact for listing %s carried a different seller email; ignored", listing.id)

    m = Message(
        bike_id=listing.id,
        sender_name=buyer_name,
        sender_email=buyer_email,
        recipient_email=listing.seller_email,
        subject=f"Interest in: {listing.title}",
        message=body,
        is_read=False,
    )
    db.add(m)
    db.commit()
    db.refresh(m)
    logger.info("message %s stored for listing %s", m.id, listing.id)
    return m


def list_inbox(db: Session, recipient_email: str) -> List[Message]:
    return db.execute(
        select(Message).options(joinedload(Message.listing))
        .where(Message.recipient_email == (recipient_email or "").lower())
        .order_by(Message.created_at.desc(), Message.id.desc())
    ).scalars().all()


def mark_read(db: Session, message_id: int, reader: User) -> Tuple[Message, bool]:
    """One-way is_read flip. Returns the message and whether anything changed."""
    m = db.get(Message, message_id)
    if not m:
        raise LookupError("Message not found")
    if m.recipient_email.lower() != reader.email.lower():
        raise PermissionError("You can only read your own messages")
    if m.is_read:
        return m, False
    m.is_read = True
    db.commit()
    db.refresh(m)
    return m, True


def unread_count(db: Session, recipient_email: str) -> int:
    return db.execute(
        select(func.count()).select_from(Message).where(
            Message.recipient_email == (recipient_email or "").lower(),
            Message.is_read.is_(False),
        )
    ).scalar_one()
