"""
vtilde.constants — Shared Constants & Link Builders
====================================================

Frontend routes referenced by notifications and activity rows, plus the
limits shared between services and routes.  Import from here instead of
formatting paths inline.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Limits
# ---------------------------------------------------------------------------
MAX_PAGE_SIZE = 100
USER_SEARCH_LIMIT = 10
COMMENT_MAX_LENGTH = 2000
MESSAGE_MAX_LENGTH = 5000
MIN_PASSWORD_LENGTH = 6

RATING_MIN = 1
RATING_MAX = 5


# ---------------------------------------------------------------------------
# Frontend links
# ---------------------------------------------------------------------------
def art_link(art_id: int) -> str:
    return f"/art/{art_id}"


def profile_link(username: str) -> str:
    return f"/users/{username}"


def game_link(api_id: str) -> str:
    return f"/game/{api_id}"


def collection_link(collection_id: int) -> str:
    return f"/collections/{collection_id}"
