# crankslist/deps.py
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .models.user import User
from .services.users import get_user
from .utils.security import decode_jwt


# ------------------ Session token ------------------

def _token_from_request(request: Request, authorization: Optional[str]) -> Optional[str]:
    # 1) Authorization: Bearer <jwt>
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
    # 2) session cookie set by /api/auth/signin
    return request.cookies.get(settings.COOKIE_NAME)


def get_optional_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
) -> Optional[User]:
    token = _token_from_request(request, authorization)
    if not token:
        return None
    data = decode_jwt(token)
    if not data or "sub" not in data:
        return None
    try:
        user_id = int(data["sub"])
    except (TypeError, ValueError):
        return None
    return get_user(db, user_id)


def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    """The signed-in identity; every messaging/approval endpoint receives it explicitly."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Sign in required",
        )
    return user
