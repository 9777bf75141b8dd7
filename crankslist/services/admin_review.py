from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models.profile import ApprovalStatus, UserProfile


@dataclass
class ReviewBuckets:
    pending: List[UserProfile] = field(default_factory=list)
    approved: List[UserProfile] = field(default_factory=list)
    rejected: List[UserProfile] = field(default_factory=list)


def partition_profiles(profiles: Iterable[UserProfile]) -> ReviewBuckets:
    buckets = ReviewBuckets()
    for p in profiles:
        status = ApprovalStatus(p.approval_status)
        if status is ApprovalStatus.APPROVED:
            buckets.approved.append(p)
        elif status is ApprovalStatus.REJECTED:
            buckets.rejected.append(p)
        else:
            buckets.pending.append(p)
    return buckets


def load_review_queue(db: Session) -> ReviewBuckets:
    """One fetch of every profile, newest first, split by status in memory."""
    rows = db.execute(
        select(UserProfile).order_by(UserProfile.created_at.desc(), UserProfile.id.desc())
    ).scalars().all()
    return partition_profiles(rows)
