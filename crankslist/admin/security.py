# crankslist/admin/security.py
from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db
from ..deps import get_current_user
from ..models.user import Admin, User


def is_admin_user(db: Session, user: User) -> bool:
    """
    Admin if:
    1) the email is listed in ADMIN_EMAILS
    2) or there is a row for the user in `admins`
    """
    if (user.email or "").lower() in settings.admin_emails:
        return True
    row = db.execute(select(Admin.id).where(Admin.user_id == user.id)).first()
    return row is not None


def require_admin(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> User:
    if not is_admin_user(db, user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
