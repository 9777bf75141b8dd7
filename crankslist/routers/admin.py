# crankslist/routers/admin.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..admin.security import is_admin_user, require_admin
from ..db import get_db
from ..deps import get_current_user
from ..models.user import User
from ..routers.account import profile_out
from ..services.admin_review import ReviewBuckets, load_review_queue
from ..services.approval import approve, reject
from ..services.profiles import ConflictError

logger = logging.getLogger(__name__)
router = APIRouter(tags=["admin"])


@router.get("/api/is_admin")
def api_is_admin(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"ok": True, "is_admin": bool(is_admin_user(db, user))}


@router.get("/api/admin/users")
def api_admin_users(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    try:
        buckets = load_review_queue(db)
    except SQLAlchemyError as e:
        logger.error("fetching profiles for review failed: %s", e)
        buckets = ReviewBuckets()
    return {
        "ok": True,
        "pending": [profile_out(p) for p in buckets.pending],
        "approved": [profile_out(p) for p in buckets.approved],
        "rejected": [profile_out(p) for p in buckets.rejected],
    }


@router.post("/api/admin/users/{profile_id}/approve")
def api_admin_approve(profile_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    try:
        p = approve(db, profile_id, admin.id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("approving profile %s failed: %s", profile_id, e)
        raise HTTPException(status_code=500, detail="Error approving user")
    return {"ok": True, "profile": profile_out(p)}


@router.post("/api/admin/users/{profile_id}/reject")
def api_admin_reject(
    profile_id: int,
    payload: dict | None = None,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    reason = (payload or {}).get("reason")
    try:
        p = reject(db, profile_id, reason)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("rejecting profile %s failed: %s", profile_id, e)
        raise HTTPException(status_code=500, detail="Error rejecting user")
    return {"ok": True, "profile": profile_out(p)}
