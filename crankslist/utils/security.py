import time

import bcrypt
from jose import jwt, JWTError
from ..config import settings


def create_jwt(payload: dict) -> str:
    exp = int(time.time()) + settings.JWT_TTL_SEC
    return jwt.encode({**payload, "exp": exp}, settings.SECRET_KEY, algorithm=settings.JWT_ALG)


def decode_jwt(token: str):
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALG])
    except JWTError:
        return None


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed hash or a secret bcrypt refuses (over 72 bytes)
        return False
