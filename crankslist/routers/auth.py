# crankslist/routers/auth.py
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..admin.security import is_admin_user
from ..config import settings
from ..db import get_db
from ..deps import get_optional_user
from ..models.user import User
from ..services.profiles import ConflictError, get_or_create_profile
from ..services.users import authenticate, sign_up
from ..utils.security import create_jwt

router = APIRouter(prefix="/api", tags=["auth"])


def _session_response(user: User, body: dict) -> JSONResponse:
    token = create_jwt({"sub": str(user.id), "email": user.email})
    resp = JSONResponse({**body, "access_token": token, "token_type": "bearer"})
    resp.set_cookie(
        settings.COOKIE_NAME,
        token,
        max_age=settings.JWT_TTL_SEC,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
    )
    # no caching for responses that carry a session
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/signup")
def api_signup(payload: dict, db: Session = Depends(get_db)):
    try:
        u = sign_up(db, payload.get("email"), payload.get("password"), payload.get("confirm_password"))
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    # new sellers start out pending review
    p = get_or_create_profile(db, u)
    return _session_response(u, {"ok": True, "user_id": u.id, "approval_status": p.approval_status.value})


@router.post("/auth/signin")
def api_signin(payload: dict, db: Session = Depends(get_db)):
    u = authenticate(db, payload.get("email") or "", payload.get("password") or "")
    if not u:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    return _session_response(u, {"ok": True, "user_id": u.id})


@router.post("/auth/signout")
def api_signout():
    resp = JSONResponse({"ok": True})
    resp.delete_cookie(settings.COOKIE_NAME)
    return resp


@router.get("/me")
def me(user=Depends(get_optional_user), db: Session = Depends(get_db)):
    if user is None:
        return {"ok": True, "user": None}
    return {
        "ok": True,
        "user": {"id": user.id, "email": user.email, "display_name": user.display_name},
        "is_admin": is_admin_user(db, user),
    }
