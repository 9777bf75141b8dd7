from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from .config import settings
from .models.base import Base

# ---------- Engine / Session ----------
DATABASE_URL = settings.DATABASE_URL

# SQLite needs check_same_thread=False: requests run in a threadpool
if DATABASE_URL and DATABASE_URL.startswith("sqlite"):
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        pool_pre_ping=True,
        future=True,
    )
else:
    engine = create_engine(
        DATABASE_URL,
        pool_pre_ping=True,
        future=True,
    )

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
    future=True,
)


def init_db(bind=None) -> None:
    """Create tables for every model that is not there yet."""
    from .models import user, profile, listing, message  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


# ---------- Dependencies ----------
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory():
    # long-lived consumers (the inbox stream) open their own short sessions
    return SessionLocal
