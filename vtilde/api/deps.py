"""
vtilde.api.deps — FastAPI dependency injection
===============================================

Engine, config, the GiantBomb client, and the bearer-token gate.

The gate turns ``Authorization: Bearer <jwt>`` into a user id:

* header missing           → :class:`~vtilde.errors.Unauthenticated` (401)
* malformed / bad / expired → :class:`~vtilde.errors.InvalidCredential` (403)

Public reads go through :func:`get_optional_user_id`, which treats both
cases as an anonymous viewer.

Routes receive the id as a plain ``int`` and pass it on explicitly.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header, Query
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine

from vtilde.config import VTildeConfig, load_config
from vtilde.database.engine import create_db_engine
from vtilde.errors import InvalidCredential, Unauthenticated
from vtilde.services.game_catalog import GameCatalog

_WEAK_SECRETS = frozenset({
    "fallback-secret-key",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> VTildeConfig:
    return load_config()


def get_game_catalog(cfg: Annotated[VTildeConfig, Depends(get_config)]) -> GameCatalog:
    return GameCatalog(cfg.giantbomb_api_url, timeout=cfg.giantbomb_timeout_seconds)


# ---------------------------------------------------------------------------
# Auth gate
# ---------------------------------------------------------------------------
def decode_token(token: str) -> int:
    """Return the user id carried by *token* or raise InvalidCredential."""
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
        return int(payload["sub"])
    except (InvalidTokenError, KeyError, TypeError, ValueError):
        raise InvalidCredential() from None


def _bearer(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise InvalidCredential()
    return token.strip()


def get_current_user_id(
    authorization: Annotated[str | None, Header()] = None,
) -> int:
    """Require a valid bearer token; return its user id."""
    token = _bearer(authorization)
    if token is None:
        raise Unauthenticated()
    return decode_token(token)


def get_optional_user_id(
    authorization: Annotated[str | None, Header()] = None,
) -> int | None:
    """Like :func:`get_current_user_id` but anonymous callers get ``None``.

    A stale or malformed token also reads as anonymous: public pages stay
    reachable for a client that still sends an expired token.
    """
    try:
        token = _bearer(authorization)
        return decode_token(token) if token is not None else None
    except InvalidCredential:
        return None


def get_viewer_id(
    user_id: int | None = Depends(get_optional_user_id),
    legacy_user_id: int | None = Query(None, alias="userId"),
) -> int | None:
    """Viewer for public reads: the token's user, else the ``userId`` query.

    Older clients identify the viewer with ``?userId=`` on public pages;
    it only affects the ``isLiked`` / ``isFollowing`` annotations.
    """
    return user_id if user_id is not None else legacy_user_id
