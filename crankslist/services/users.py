from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..models.user import User
from ..services.profiles import ConflictError
from ..utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def validate_new_password(password: str | None, confirm: str | None, mismatch_text: str) -> str:
    password = password or ""
    if confirm is not None and password != confirm:
        raise ValueError(mismatch_text)
    if len(password) < settings.MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters long")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError("Password is too long")
    return password


def get_user(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.execute(select(User).where(User.email == normalize_email(email))).scalar_one_or_none()


def sign_up(db: Session, email: str, password: str, confirm: str | None = None) -> User:
    email = normalize_email(email)
    local, _, domain = email.partition("@")
    if not local or not domain:
        raise ValueError("Enter a valid email address")
    password = validate_new_password(password, confirm, "Passwords do not match")

    if get_user_by_email(db, email):
        raise ConflictError("An account with this email already exists")

    u = User(email=email, password_hash=hash_password(password), auth_provider="password")
    db.add(u)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent signup for the same email
        db.rollback()
        raise ConflictError("An account with this email already exists")
    db.refresh(u)
    logger.info("account created user_id=%s", u.id)
    return u


def authenticate(db: Session, email: str, password: str) -> User | None:
    u = get_user_by_email(db, email)
    if not u or not verify_password(password, u.password_hash):
        return None
    return u


def change_password(db: Session, user: User, new_password: str, confirm: str | None) -> User:
    password = validate_new_password(new_password, confirm, "New passwords do not match")
    user.password_hash = hash_password(password)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
