"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path

# ---------------------------------------------------------------------------
# Environment that must be in place before any vtilde.api import:
# deps validates JWT_SECRET at module load, and main mounts the upload
# directory at import time.
# Blank Cloudinary credentials keep uploads on local disk even when a
# developer .env sets them (load_dotenv never overrides).
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)
os.environ.setdefault("VTILDE_UPLOAD_DIR", tempfile.mkdtemp(prefix="vtilde-uploads-"))
os.environ.setdefault(
    "VTILDE_CONFIG", str(Path(__file__).resolve().parent.parent / "config.yaml")
)
for _name in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET"):
    os.environ[_name] = ""

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from vtilde.database.models import (  # noqa: E402
    Art,
    ArtLike,
    Base,
    Follow,
    Game,
    LibraryEntry,
    User,
)

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent)."""
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with every V~ table.

    StaticPool keeps one connection so the worker threads used by
    ``run_db`` and FastAPI's threadpool all see the same database.
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def client(db_engine: Engine):
    """TestClient wired to the in-memory engine.

    The lifespan hook is not run (no ``with`` block), so no PostgreSQL
    engine is ever created.
    """
    from fastapi.testclient import TestClient

    import vtilde.api.main as main_mod

    main_mod.app.dependency_overrides[main_mod.get_engine] = lambda: db_engine
    yield TestClient(main_mod.app, raise_server_exceptions=False)
    main_mod.app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------
def make_user(engine: Engine, username: str, email: str | None = None) -> int:
    from werkzeug.security import generate_password_hash

    with Session(engine) as session:
        user = User(
            email=email or f"{username}@example.com",
            username=username,
            password_hash=generate_password_hash("hunter22"),
        )
        session.add(user)
        session.commit()
        return user.id


def make_game(engine: Engine, api_id: str = "3030-1", name: str = "Outer Wilds") -> int:
    with Session(engine) as session:
        game = Game(api_id=api_id, name=name, image_url=f"https://img.example/{api_id}.png")
        session.add(game)
        session.commit()
        return game.id


def make_art(
    engine: Engine,
    author_id: int,
    game_id: int,
    created_at: datetime | None = None,
    image_url: str = "https://img.example/art.png",
) -> int:
    with Session(engine) as session:
        art = Art(image_url=image_url, game_id=game_id, author_id=author_id)
        if created_at is not None:
            art.created_at = created_at
        session.add(art)
        session.commit()
        return art.id


def add_likes(engine: Engine, art_id: int, user_ids: list[int]) -> None:
    with Session(engine) as session:
        for uid in user_ids:
            session.add(ArtLike(user_id=uid, art_id=art_id))
        session.commit()


def add_follow(engine: Engine, follower_id: int, following_id: int) -> None:
    with Session(engine) as session:
        session.add(Follow(follower_id=follower_id, following_id=following_id))
        session.commit()


def add_entry(
    engine: Engine,
    user_id: int,
    game_id: int,
    rating: int | None = None,
    review_text: str | None = None,
) -> int:
    with Session(engine) as session:
        entry = LibraryEntry(
            user_id=user_id, game_id=game_id, rating=rating, review_text=review_text
        )
        session.add(entry)
        session.commit()
        return entry.id


def ts(day: int, hour: int = 12) -> datetime:
    """A fixed UTC timestamp in October 2026."""
    return datetime(2026, 10, day, hour, 0, tzinfo=UTC)


def token_for(user_id: int, username: str = "someone") -> str:
    from vtilde.api.auth import issue_token

    return issue_token(user_id, username, ttl_days=7)


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
