from __future__ import annotations

import logging
from typing import Any, Dict, List

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..config import settings
from ..models.listing import Category, Condition, Listing
from ..models.user import User
from ..services.approval import ensure_seller_allowed

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = (
    "road", "mountain", "hybrid", "gravel", "touring",
    "cruiser", "bmx", "electric", "kids", "other",
)


# ---------- Categories ----------
def list_categories(db: Session) -> List[Category]:
    return db.execute(select(Category).order_by(Category.sort_order, Category.name)).scalars().all()


def seed_categories(db: Session, names=DEFAULT_CATEGORIES) -> int:
    """Insert the default bike types into an empty table. Returns how many were added."""
    existing = db.execute(select(func.count()).select_from(Category)).scalar_one()
    if existing:
        return 0
    for i, name in enumerate(names, start=1):
        db.add(Category(name=name, sort_order=i))
    db.commit()
    logger.info("seeded %d bike types", len(names))
    return len(names)


# ---------- Reads ----------
def list_active(db: Session) -> List[Listing]:
    """Unsold listings, newest first. The browse view filters this in memory."""
    return db.execute(
        select(Listing).where(Listing.is_sold.is_(False))
        .order_by(Listing.created_at.desc(), Listing.id.desc())
    ).scalars().all()


def get_listing(db: Session, listing_id: int) -> Listing:
    it = db.get(Listing, listing_id)
    if not it:
        raise LookupError("Bike listing not found")
    return it


def list_by_seller(db: Session, email: str) -> List[Listing]:
    return db.execute(
        select(Listing).where(Listing.seller_email == (email or "").lower())
        .order_by(Listing.created_at.desc(), Listing.id.desc())
    ).scalars().all()


# ---------- Writes ----------
def _required_text(payload: Dict[str, Any], key: str, label: str) -> str:
    value = str(payload.get(key) or "").strip()
    if not value:
        raise ValueError(f"{label} is required")
    return value


def _optional_int(raw, label: str) -> int | None:
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"{label} must be a whole number")


def _optional_float(raw, label: str) -> float | None:
    if raw in (None, ""):
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise ValueError(f"{label} must be a number")


def _images(raw) -> List[str]:
    if raw in (None, ""):
        return []
    if not isinstance(raw, (list, tuple)):
        raise ValueError("Images must be a list of URLs")
    urls = [str(u).strip() for u in raw if str(u or "").strip()]
    if len(urls) > settings.MAX_LISTING_IMAGES:
        raise ValueError(f"Maximum {settings.MAX_LISTING_IMAGES} images allowed")
    return urls


def create_listing(db: Session, user: User, payload: Dict[str, Any]) -> Listing:
    # approval is re-read here, whatever the page showed at load time
    ensure_seller_allowed(db, user)

    title = _required_text(payload, "title", "Title")
    location = _required_text(payload, "location", "Location")
    bike_type = _required_text(payload, "type", "Bike type")

    price = _optional_int(payload.get("price"), "Price")
    if price is None:
        raise ValueError("Price is required")
    if price < 0:
        raise ValueError("Price must not be negative")

    try:
        condition = Condition(str(payload.get("condition") or "").strip().lower())
    except ValueError:
        raise ValueError("Condition must be one of: " + ", ".join(c.value for c in Condition))

    if not db.execute(select(Category.id).where(Category.name == bike_type)).first():
        raise ValueError(f"Unknown bike type: {bike_type}")

    currency = (str(payload.get("currency") or "").strip().upper()) or settings.DEFAULT_CURRENCY
    if currency not in settings.allowed_currencies:
        raise ValueError("Currency must be one of: " + ", ".join(settings.allowed_currencies))

    it = Listing(
        title=title,
        description=(str(payload.get("description") or "").strip() or None),
        price=price,
        currency=currency,
        bike_type=bike_type,
        condition=condition,
        location=location,
        latitude=_optional_float(payload.get("latitude"), "Latitude"),
        longitude=_optional_float(payload.get("longitude"), "Longitude"),
        brand=(str(payload.get("brand") or "").strip() or None),
        size=(str(payload.get("size") or "").strip() or None),
        year=_optional_int(payload.get("year"), "Year"),
        images=_images(payload.get("images")),
        user_id=user.id,
        seller_email=user.email,
        is_sold=False,
    )
    db.add(it)
    db.commit()
    db.refresh(it)
    logger.info("listing created id=%s seller=%s", it.id, user.id)
    return it


def set_sold(db: Session, user: User, listing_id: int, sold: bool) -> Listing:
    it = get_listing(db, listing_id)
    if it.user_id != user.id:
        raise PermissionError("You can only update your own listings")
    it.is_sold = bool(sold)
    db.commit()
    db.refresh(it)
    return it
