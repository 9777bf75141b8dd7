from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import get_current_user
from ..models.user import User
from ..routers.browse import listing_out
from ..services.approval import get_approval_status
from ..services.catalog import create_listing
from ..services.geocode import reverse_lookup
from ..services.profiles import find_profile

logger = logging.getLogger(__name__)
router = APIRouter(tags=["sell"])


@router.get("/api/sell/status")
def api_sell_status(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """What the sell page shows: the form, the pending notice or the rejection notice."""
    approval = get_approval_status(db, user)
    p = find_profile(db, user.id)
    return {
        "ok": True,
        "approval_status": approval.value,
        "can_sell": approval.value == "approved",
        "rejection_reason": p.rejection_reason if p else None,
    }


@router.post("/api/listings")
def api_create_listing(
    payload: dict,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        it = create_listing(db, user, payload)
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("creating listing failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error creating listing. Please try again.",
        )
    return {"ok": True, "id": it.id, "item": listing_out(it, owner_view=True)}


@router.get("/api/geocode/reverse")
async def api_reverse_geocode(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    user: User = Depends(get_current_user),
):
    place = await reverse_lookup(lat, lon)
    if place is None:
        # the seller types it instead
        return {"ok": False, "location": None, "latitude": lat, "longitude": lon}
    return {"ok": True, "location": place.label, "latitude": place.latitude, "longitude": place.longitude}
