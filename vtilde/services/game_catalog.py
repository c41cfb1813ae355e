"""
vtilde.services.game_catalog — GiantBomb Proxy Client
======================================================

Thin async client for the two GiantBomb calls the site needs: free-text
game search and game detail.  Responses are passed through as returned,
with a ``pagination`` block added to searches.

Every request uses one :class:`httpx.AsyncClient` with an explicit timeout
and a single transport-level retry.  Any transport failure, non-2xx
status, a body that is not a JSON object, or a missing
``GIANTBOMB_API_KEY`` surfaces as
:class:`~vtilde.errors.ExternalServiceError` (HTTP 503).

Tests swap the network for :class:`httpx.MockTransport` via *transport*.
"""

from __future__ import annotations

import logging
import math
import os
from typing import Any

import httpx

from vtilde import __version__
from vtilde.errors import ExternalServiceError, NotFound

logger = logging.getLogger(__name__)

USER_AGENT = f"vtilde/{__version__}"


class GameCatalog:
    """GiantBomb search/detail client.

    Parameters
    ----------
    base_url:
        API root, e.g. ``https://www.giantbomb.com/api``.
    api_key:
        GiantBomb key.  Defaults to ``$GIANTBOMB_API_KEY``.
    timeout:
        Seconds before a request is abandoned.
    transport:
        Override the HTTP transport (tests pass :class:`httpx.MockTransport`).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key if api_key is not None else os.getenv("GIANTBOMB_API_KEY", "").strip()
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        transport = self._transport or httpx.AsyncHTTPTransport(retries=1)
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=transport,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )

    async def _get(self, path: str, params: dict[str, Any]) -> dict:
        if not self.api_key:
            raise ExternalServiceError("Game metadata service is not configured")

        query = {"api_key": self.api_key, "format": "json", **params}
        try:
            async with self._client() as client:
                resp = await client.get(path, params=query)
        except httpx.HTTPError as exc:
            logger.warning("GiantBomb request %s failed: %s", path, exc)
            raise ExternalServiceError("Failed to fetch game data") from exc

        if resp.status_code == 404:
            raise NotFound("Game not found")
        if resp.status_code != 200:
            logger.warning("GiantBomb %s returned HTTP %d", path, resp.status_code)
            raise ExternalServiceError("Failed to fetch game data")
        try:
            data = resp.json()
        except ValueError as exc:
            logger.warning("GiantBomb %s returned a non-JSON body", path)
            raise ExternalServiceError("Failed to fetch game data") from exc
        if not isinstance(data, dict):
            logger.warning("GiantBomb %s returned a %s, not an object", path, type(data).__name__)
            raise ExternalServiceError("Failed to fetch game data")
        return data

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------
    async def search(self, query: str, page: int = 1, limit: int = 10) -> dict:
        """Search games by name; returns the upstream body plus ``pagination``."""
        offset = (page - 1) * limit
        data = await self._get(
            "/search/",
            {
                "query": query,
                "resources": "game",
                "limit": limit,
                "offset": offset,
            },
        )
        total = int(data.get("number_of_total_results") or 0)
        return {
            **data,
            "pagination": {
                "page": page,
                "limit": limit,
                "offset": offset,
                "total": total,
                "totalPages": math.ceil(total / limit) if limit else 0,
            },
        }

    async def detail(self, game_id: str) -> dict:
        return await self._get(f"/game/{game_id}/", {})
