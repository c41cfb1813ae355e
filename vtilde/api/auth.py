"""
vtilde.api.auth — Accounts, password login + JWT issuance
==========================================================

Passwords are hashed with :mod:`werkzeug.security`.  Tokens are HS256
JWTs carrying ``sub`` (the user id as a string), ``username`` and
``exp``; lifetime comes from ``token_ttl_days`` in ``config.yaml``.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

import jwt
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from vtilde.api.deps import (
    JWT_ALGORITHM,
    JWT_SECRET,
    get_config,
    get_current_user_id,
    get_engine,
)
from vtilde.config import VTildeConfig
from vtilde.constants import MIN_PASSWORD_LENGTH
from vtilde.database.engine import get_session
from vtilde.database.models import User
from vtilde.errors import Conflict, Unauthenticated, ValidationError
from vtilde.services import social_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["auth"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class RegisterBody(BaseModel):
    email: str | None = None
    username: str | None = None
    password: str | None = None


class LoginBody(BaseModel):
    email: str | None = None
    password: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def issue_token(user_id: int, username: str, ttl_days: int) -> str:
    payload = {
        "sub": str(user_id),
        "username": username,
        "exp": datetime.now(UTC) + timedelta(days=ttl_days),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def _create_user(engine, email: str, username: str, password: str) -> int:
    with get_session(engine) as session:
        taken = session.scalar(
            select(User.id).where(or_(User.email == email, User.username == username))
        )
        if taken is not None:
            raise Conflict("Email or username already exists")
        user = User(
            email=email,
            username=username,
            password_hash=generate_password_hash(password),
        )
        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(user)
                session.flush()
        except IntegrityError:
            raise Conflict("Email or username already exists") from None
        return user.id


def _authenticate(engine, email: str, password: str) -> tuple[int, str]:
    with get_session(engine) as session:
        user = session.scalar(select(User).where(User.email == email))
        if user is None or not check_password_hash(user.password_hash, password):
            raise Unauthenticated("Invalid credentials")
        return user.id, user.username


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@router.post("/register", status_code=201)
def register(body: RegisterBody, engine=Depends(get_engine)):
    """Create an account.  Email and username must both be unused."""
    email = (body.email or "").strip().lower()
    username = (body.username or "").strip()
    if not email or not username or not body.password:
        raise ValidationError("All fields are required")
    if len(body.password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )

    user_id = _create_user(engine, email, username, body.password)
    logger.info("Registered user %d (%s)", user_id, username)
    return {"message": "User created successfully", "userId": user_id}


@router.post("/login")
def login(
    body: LoginBody,
    engine=Depends(get_engine),
    cfg: VTildeConfig = Depends(get_config),
):
    """Exchange email + password for a bearer token."""
    email = (body.email or "").strip().lower()
    if not email or not body.password:
        raise ValidationError("Email and password are required")

    user_id, username = _authenticate(engine, email, body.password)
    return {
        "message": "Login successful",
        "userId": user_id,
        "username": username,
        "token": issue_token(user_id, username, cfg.token_ttl_days),
    }


@router.get("/me")
def me(user_id: int = Depends(get_current_user_id), engine=Depends(get_engine)):
    """Return the current authenticated user's account."""
    return social_service.get_user(engine, user_id)
