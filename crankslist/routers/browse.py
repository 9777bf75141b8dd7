from __future__ import annotations

import logging
from urllib.parse import parse_qsl

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.listing import Listing
from ..services.catalog import get_listing, list_active, list_categories
from ..services.filters import (
    BROWSE_PATH, PRICE_RANGES,
    apply_filters, browse_url, clear_filters, criteria_from_query, criteria_to_query, update_query,
)
from ..services.messaging import mask_email
from ..services.profiles import find_profile

logger = logging.getLogger(__name__)
router = APIRouter(tags=["browse"])


def _dt(x):
    return x.isoformat() if x is not None else None


def listing_out(it: Listing, owner_view: bool = False) -> dict:
    data = {
        "id": it.id,
        "title": it.title,
        "description": it.description,
        "price": it.price,
        "currency": it.currency,
        "type": it.bike_type,
        "condition": getattr(it.condition, "value", it.condition),
        "location": it.location,
        "latitude": it.latitude,
        "longitude": it.longitude,
        "brand": it.brand,
        "size": it.size,
        "year": it.year,
        "images": list(it.images or []),
        "is_sold": it.is_sold,
        "seller_email_masked": mask_email(it.seller_email),
        "created_at": _dt(it.created_at),
    }
    if owner_view:
        data["seller_email"] = it.seller_email
    return data


# ---------- API ----------
@router.get("/api/categories")
def api_categories(db: Session = Depends(get_db)):
    try:
        rows = list_categories(db)
    except SQLAlchemyError as e:
        logger.error("fetching bike types failed: %s", e)
        rows = []
    return {"ok": True, "items": [{"id": c.id, "name": c.name, "sort_order": c.sort_order} for c in rows]}


@router.get("/api/listings")
def api_browse(request: Request, db: Session = Depends(get_db)):
    """
    Browse active listings. Accepts ?search=&type=&price=&location=
    (and explicit minPrice/maxPrice) and echoes the canonical shareable query.
    """
    criteria = criteria_from_query(request.query_params)
    try:
        rows = list_active(db)
    except SQLAlchemyError as e:
        # a failed read shows as an empty catalog, not an error page
        logger.error("fetching listings failed: %s", e)
        rows = []
    items = apply_filters(rows, criteria)
    query = criteria_to_query(criteria)
    return {
        "ok": True,
        "items": [listing_out(it) for it in items],
        "total": len(items),
        "filters": criteria.model_dump(by_alias=True),
        "query": query,
        "url": browse_url(query),
        "empty": not items,
        "clear_url": BROWSE_PATH,
        "price_ranges": list(PRICE_RANGES),
    }


@router.post("/api/browse/filters")
def api_update_filter(payload: dict):
    """Apply one filter edit to the current query string (the in-place URL update)."""
    if payload.get("clear"):
        criteria = clear_filters()
        return {"ok": True, "query": "", "url": BROWSE_PATH, "filters": criteria.model_dump(by_alias=True)}
    key = (payload.get("key") or "").strip()
    if not key:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="key required")
    query = update_query(payload.get("query") or "", key, payload.get("value"))
    criteria = criteria_from_query(dict(parse_qsl(query)))
    return {"ok": True, "query": query, "url": browse_url(query), "filters": criteria.model_dump(by_alias=True)}


@router.get("/api/listings/{listing_id}")
def api_listing(listing_id: int, db: Session = Depends(get_db)):
    # sold listings stay viewable here, only browse hides them
    try:
        it = get_listing(db, listing_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    p = find_profile(db, it.user_id)
    data = listing_out(it)
    data["seller_name"] = (p and (p.display_name or p.username)) or "Seller"
    return {"ok": True, "item": data}


@router.get("/api/listings/{listing_id}/contact")
def api_listing_contact(listing_id: int, db: Session = Depends(get_db)):
    """Contact card reveal: masked email, plus the seller's phone if they gave one."""
    try:
        it = get_listing(db, listing_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    p = find_profile(db, it.user_id)
    return {
        "ok": True,
        "email": mask_email(it.seller_email),
        "phone": p.phone if p else None,
        "note": "email masked for privacy",
    }
