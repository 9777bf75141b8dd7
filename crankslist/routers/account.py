from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import get_current_user
from ..models.profile import UserProfile
from ..models.user import User
from ..routers.browse import listing_out
from ..services.catalog import list_by_seller, set_sold
from ..services.profiles import ConflictError, get_or_create_profile, save_profile
from ..services.users import change_password

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/account", tags=["account"])


def profile_out(p: UserProfile) -> dict:
    return {
        "id": p.id,
        "user_id": p.user_id,
        "email": p.email,
        "display_name": p.display_name or "",
        "username": p.username or "",
        "phone": p.phone or "",
        "location": p.location or "",
        "bio": p.bio or "",
        "profile_picture_url": p.profile_picture_url or "",
        "approval_status": getattr(p.approval_status, "value", p.approval_status),
        "rejection_reason": p.rejection_reason,
        "approved_at": p.approved_at.isoformat() if p.approved_at else None,
        "created_at": p.created_at.isoformat() if p.created_at else None,
    }


# ---------- Profile ----------
@router.get("/profile")
def api_profile(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        p = get_or_create_profile(db, user)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("loading profile failed user_id=%s: %s", user.id, e)
        raise HTTPException(status_code=500, detail="Error loading profile data")
    return {"ok": True, "profile": profile_out(p)}


@router.put("/profile")
def api_profile_save(payload: dict, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        p = save_profile(db, user, payload)
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("saving profile failed user_id=%s: %s", user.id, e)
        raise HTTPException(status_code=500, detail="Error saving profile changes")
    return {"ok": True, "profile": profile_out(p)}


@router.post("/password")
def api_change_password(payload: dict, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        change_password(db, user, payload.get("new_password"), payload.get("confirm_password"))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"ok": True}


# ---------- My listings ----------
@router.get("/listings")
def api_my_listings(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    try:
        rows = list_by_seller(db, user.email)
    except SQLAlchemyError as e:
        logger.error("fetching own listings failed user_id=%s: %s", user.id, e)
        rows = []
    return {"ok": True, "items": [listing_out(it, owner_view=True) for it in rows]}


@router.post("/listings/{listing_id}/sold")
def api_set_sold(
    listing_id: int,
    payload: dict,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        it = set_sold(db, user, listing_id, bool(payload.get("sold", True)))
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return {"ok": True, "id": it.id, "is_sold": it.is_sold}
