# crankslist/routers/messages.py
from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db import get_db, get_session_factory
from ..deps import get_current_user
from ..models.message import Message
from ..models.user import User
from ..realtime import hub
from ..services.messaging import (
    MESSAGE_INSERTED, MESSAGE_UPDATED,
    list_inbox, mark_read, send_message, unread_count,
)
from ..services.unread import UnreadCounter, count_with_factory, watch_inbox

logger = logging.getLogger(__name__)
router = APIRouter(tags=["messages"])

CONTACT_FIELDS = ("bikeId", "bikeTitle", "buyerName", "buyerEmail", "message", "sellerEmail")


def message_out(m: Message) -> dict:
    bike = m.listing
    return {
        "id": m.id,
        "bike_id": m.bike_id,
        "sender_name": m.sender_name,
        "sender_email": m.sender_email,
        "subject": m.subject,
        "message": m.message,
        "is_read": m.is_read,
        "created_at": m.created_at.isoformat() if m.created_at else None,
        "bike": (
            {"title": bike.title, "price": bike.price, "location": bike.location}
            if bike else None
        ),
    }


# ---------- Contact form (buyers need no account) ----------
@router.post("/api/contact-seller")
def api_contact_seller(payload: dict, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    if any(not str(payload.get(k) or "").strip() for k in CONTACT_FIELDS):
        return JSONResponse({"error": "Missing required fields"}, status_code=400)
    try:
        listing_id = int(payload["bikeId"])
    except (TypeError, ValueError):
        return JSONResponse({"error": "Missing required fields"}, status_code=400)

    try:
        m = send_message(
            db,
            listing_id=listing_id,
            buyer_name=payload["buyerName"],
            buyer_email=payload["buyerEmail"],
            body=payload["message"],
            claimed_seller_email=payload["sellerEmail"],
        )
    except ValueError:
        return JSONResponse({"error": "Missing required fields"}, status_code=400)
    except LookupError:
        return JSONResponse({"error": "Listing not found"}, status_code=404)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("contact-seller write failed: %s", e)
        return JSONResponse({"error": "Failed to send message"}, status_code=500)

    background_tasks.add_task(hub.publish, MESSAGE_INSERTED, {"id": m.id, "recipient_email": m.recipient_email})
    return {"success": True, "messageId": m.id}


# ---------- Inbox ----------
@router.get("/api/messages")
def api_inbox(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        rows = list_inbox(db, user.email)
    except SQLAlchemyError as e:
        logger.error("fetching messages failed user_id=%s: %s", user.id, e)
        rows = []
    return {"ok": True, "items": [message_out(m) for m in rows]}


@router.post("/api/messages/{message_id}/read")
def api_mark_read(
    message_id: int,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        m, changed = mark_read(db, message_id, user)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("marking message %s read failed: %s", message_id, e)
        raise HTTPException(status_code=500, detail="Error marking message as read")
    if changed:
        background_tasks.add_task(hub.publish, MESSAGE_UPDATED, {"id": m.id, "recipient_email": m.recipient_email})
    return {"ok": True, "id": m.id, "is_read": m.is_read, "changed": changed}


@router.get("/api/messages/unread_count")
def api_unread_count(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        count = unread_count(db, user.email)
    except SQLAlchemyError as e:
        logger.error("fetching unread count failed user_id=%s: %s", user.id, e)
        count = 0
    return {"ok": True, "count": count}


# ---------- Real-time unread count (SSE) ----------
@router.get("/api/messages/stream")
def api_inbox_stream(
    request: Request,
    user: User = Depends(get_current_user),
    session_factory=Depends(get_session_factory),
):
    email = user.email
    counter = UnreadCounter(email, lambda e: count_with_factory(session_factory, e))
    return StreamingResponse(
        watch_inbox(counter, is_disconnected=request.is_disconnected),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-store"},
    )
