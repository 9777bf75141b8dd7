from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.base import utcnow
from ..models.profile import ApprovalStatus, UserProfile
from ..models.user import User
from ..services.profiles import ConflictError, get_or_create_profile

logger = logging.getLogger(__name__)

DEFAULT_REJECTION_REASON = "No reason provided"


class ApprovalTransitionError(ConflictError):
    """approved and rejected are terminal; only pending profiles move."""


def get_approval_status(db: Session, user: User) -> ApprovalStatus:
    """
    Current status, read fresh. Creates the profile if missing.
    Any read failure answers `pending`: the gate fails closed.
    """
    try:
        p = get_or_create_profile(db, user)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("approval status read failed user_id=%s: %s", user.id, e)
        return ApprovalStatus.PENDING
    if not p:
        return ApprovalStatus.PENDING
    return ApprovalStatus(p.approval_status)


def ensure_seller_allowed(db: Session, user: User) -> None:
    """Gate for every listing write. Must run at submission time, never from a cached value."""
    status = get_approval_status(db, user)
    if status is ApprovalStatus.APPROVED:
        return
    if status is ApprovalStatus.REJECTED:
        raise PermissionError("Your seller account was not approved.")
    raise PermissionError("Your account is pending approval. You can create listings once it is approved.")


def _get_profile(db: Session, profile_id: int) -> UserProfile:
    p = db.get(UserProfile, profile_id)
    if not p:
        raise LookupError("Profile not found")
    return p


def approve(db: Session, profile_id: int, admin_user_id: int) -> UserProfile:
    p = _get_profile(db, profile_id)
    if p.approval_status == ApprovalStatus.APPROVED:
        # already approved: keep the original audit fields
        return p
    if p.approval_status != ApprovalStatus.PENDING:
        raise ApprovalTransitionError("Only pending profiles can be approved")
    p.approval_status = ApprovalStatus.APPROVED
    p.approved_by = admin_user_id
    p.approved_at = utcnow()
    p.rejection_reason = None
    db.commit()
    db.refresh(p)
    logger.info("profile approved profile_id=%s by=%s", p.id, admin_user_id)
    return p


def reject(db: Session, profile_id: int, reason: str | None = None) -> UserProfile:
    p = _get_profile(db, profile_id)
    if p.approval_status == ApprovalStatus.REJECTED:
        return p
    if p.approval_status != ApprovalStatus.PENDING:
        raise ApprovalTransitionError("Only pending profiles can be rejected")
    p.approval_status = ApprovalStatus.REJECTED
    p.rejection_reason = (reason or "").strip() or DEFAULT_REJECTION_REASON
    db.commit()
    db.refresh(p)
    logger.info("profile rejected profile_id=%s", p.id)
    return p
