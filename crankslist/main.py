# crankslist/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .db import SessionLocal, init_db
from .routers import (
    auth as auth_router,
    browse as browse_router,
    sell as sell_router,
    account as account_router,
    messages as messages_router,
    admin as admin_router,
)
from .services.catalog import seed_categories

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting crankslist...")
    init_db()
    if settings.SEED_CATEGORIES:
        with SessionLocal() as db:
            seed_categories(db)
    yield
    logger.info("Shutting down crankslist...")


app = FastAPI(title="crankslist", lifespan=lifespan)

# --- CORS ---
allowed_origins = (
    [o.strip() for o in settings.ALLOWED_ORIGINS.split(",")]
    if settings.ALLOWED_ORIGINS
    else ["*"]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# --- Routers ---
app.include_router(auth_router.router)
app.include_router(browse_router.router)
app.include_router(sell_router.router)
app.include_router(account_router.router)
app.include_router(messages_router.router)
app.include_router(admin_router.router)


@app.get("/health")
def health():
    return {"status": "ok"}
