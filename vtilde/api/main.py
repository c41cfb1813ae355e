"""
vtilde.api.main — FastAPI application entry point
==================================================

Run with::

    uvicorn vtilde.api.main:app --reload --port 3001

or ``python -m vtilde``.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.staticfiles import StaticFiles

load_dotenv()

from vtilde.api.auth import router as auth_router  # noqa: E402
from vtilde.api.deps import get_engine  # noqa: E402
from vtilde.api.routes.art import router as art_router  # noqa: E402
from vtilde.api.routes.collections import router as collections_router  # noqa: E402
from vtilde.api.routes.community import router as community_router  # noqa: E402
from vtilde.api.routes.conversations import router as conversations_router  # noqa: E402
from vtilde.api.routes.games import router as games_router  # noqa: E402
from vtilde.api.routes.library import router as library_router  # noqa: E402
from vtilde.api.routes.notifications import router as notifications_router  # noqa: E402
from vtilde.api.routes.users import router as users_router  # noqa: E402
from vtilde.database.engine import init_db  # noqa: E402
from vtilde.errors import VTildeError  # noqa: E402
from vtilde.services.upload_service import UPLOAD_DIR, ensure_upload_dir  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle: verify tables and warm the DB engine."""
    engine = get_engine()
    init_db(engine)
    logger.info("V~ API started, engine ready (%s)", engine.url.database)
    yield
    logger.info("V~ API shutting down")


# The static mount below needs the directory to exist at import time.
ensure_upload_dir()

app = FastAPI(
    title="V~ API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error rendering: every failure is {"message": ...}
# ---------------------------------------------------------------------------
@app.exception_handler(VTildeError)
async def vtilde_error_handler(request: Request, exc: VTildeError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"message": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Server error"})


# Mount routers
app.include_router(auth_router, prefix="/api")
app.include_router(games_router, prefix="/api")
app.include_router(art_router, prefix="/api")
app.include_router(library_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(community_router, prefix="/api")
app.include_router(conversations_router, prefix="/api")
app.include_router(notifications_router, prefix="/api")
app.include_router(collections_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}


# Serve uploaded art as static files
app.mount(
    "/api/uploads",
    StaticFiles(directory=str(UPLOAD_DIR)),
    name="uploads",
)
