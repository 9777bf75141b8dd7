from __future__ import annotations

import logging
import re
from typing import Any, Dict

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..models.profile import ApprovalStatus, UserProfile
from ..models.user import User

logger = logging.getLogger(__name__)

USERNAME_RE = re.compile(r"^[a-z0-9_]+$")


class ConflictError(Exception):
    """The write collides with state owned by someone else (taken username, duplicate account...)."""


def find_profile(db: Session, user_id: int) -> UserProfile | None:
    return db.execute(select(UserProfile).where(UserProfile.user_id == user_id)).scalar_one_or_none()


def get_or_create_profile(db: Session, user: User) -> UserProfile:
    """Profiles appear lazily, on first access after signup, as `pending`."""
    p = find_profile(db, user.id)
    if p:
        return p
    p = UserProfile(user_id=user.id, email=user.email, approval_status=ApprovalStatus.PENDING)
    db.add(p)
    try:
        db.commit()
    except IntegrityError:
        # another request created it first
        db.rollback()
        return find_profile(db, user.id)
    db.refresh(p)
    logger.info("profile created user_id=%s status=pending", user.id)
    return p


def normalize_username(raw: str | None) -> str | None:
    username = (raw or "").strip().lower()
    if not username:
        return None
    if not USERNAME_RE.match(username):
        raise ValueError("Username may contain only lowercase letters, numbers and underscore")
    return username


def username_taken(db: Session, username: str, user_id: int) -> bool:
    other = db.execute(
        select(UserProfile.id).where(UserProfile.username == username, UserProfile.user_id != user_id)
    ).first()
    return other is not None


def save_profile(db: Session, user: User, payload: Dict[str, Any]) -> UserProfile:
    p = get_or_create_profile(db, user)

    username = normalize_username(payload.get("username"))
    bio = (payload.get("bio") or "").strip() or None
    if bio and len(bio) > settings.BIO_MAX_LENGTH:
        raise ValueError(f"Bio must be at most {settings.BIO_MAX_LENGTH} characters")

    # the pre-check gives a friendly answer; the unique constraint is what actually holds
    if username and username_taken(db, username, user.id):
        raise ConflictError("Username is already taken")

    p.display_name = (payload.get("display_name") or "").strip() or None
    p.username = username
    p.phone = (payload.get("phone") or "").strip() or None
    p.location = (payload.get("location") or "").strip() or None
    p.bio = bio
    p.profile_picture_url = (payload.get("profile_picture_url") or "").strip() or None
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("username conflict on commit user_id=%s username=%s", user.id, username)
        raise ConflictError("Username is already taken")
    db.refresh(p)
    return p
