"""
tests/test_game_catalog.py — GiantBomb proxy client
====================================================
The network is replaced with :class:`httpx.MockTransport`; no request
leaves the process.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from conftest import make_art, make_game, make_user
from vtilde.errors import ExternalServiceError, NotFound
from vtilde.services.game_catalog import USER_AGENT, GameCatalog

BASE = "https://gb.example/api"


# Helper to run async tests without pytest-asyncio
def run_async(coro):
    return asyncio.run(coro)


def _catalog(handler, api_key="k3y") -> GameCatalog:
    return GameCatalog(BASE, api_key, timeout=2.0, transport=httpx.MockTransport(handler))


class TestSearch:
    def test_sends_key_and_paging_and_adds_pagination(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200, json={"results": [{"id": 1, "name": "Tunic"}], "number_of_total_results": 25}
            )

        data = run_async(_catalog(handler).search("tunic", page=3, limit=10))

        (req,) = seen
        assert req.url.path == "/api/search/"
        assert req.url.params["api_key"] == "k3y"
        assert req.url.params["format"] == "json"
        assert req.url.params["resources"] == "game"
        assert req.url.params["query"] == "tunic"
        assert req.url.params["offset"] == "20"
        assert req.headers["user-agent"] == USER_AGENT

        assert data["results"][0]["name"] == "Tunic"
        assert data["pagination"] == {
            "page": 3,
            "limit": 10,
            "offset": 20,
            "total": 25,
            "totalPages": 3,
        }

    def test_missing_total_means_zero_pages(self):
        data = run_async(
            _catalog(lambda r: httpx.Response(200, json={"results": []})).search("x")
        )
        assert data["pagination"]["total"] == 0
        assert data["pagination"]["totalPages"] == 0


class TestDetail:
    def test_passes_body_through(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/game/3030-1/"
            return httpx.Response(200, json={"results": {"name": "Outer Wilds"}})

        assert run_async(_catalog(handler).detail("3030-1")) == {
            "results": {"name": "Outer Wilds"}
        }

    def test_upstream_404(self):
        with pytest.raises(NotFound):
            run_async(_catalog(lambda r: httpx.Response(404)).detail("nope"))


class TestFailures:
    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("GIANTBOMB_API_KEY", raising=False)
        catalog = GameCatalog(BASE, transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        with pytest.raises(ExternalServiceError, match="not configured"):
            run_async(catalog.search("x"))

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("GIANTBOMB_API_KEY", "from-env")
        assert GameCatalog(BASE).api_key == "from-env"

    def test_server_error(self):
        with pytest.raises(ExternalServiceError):
            run_async(_catalog(lambda r: httpx.Response(502)).search("x"))

    def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("boom", request=request)

        with pytest.raises(ExternalServiceError, match="Failed to fetch"):
            run_async(_catalog(handler).detail("1"))

    def test_non_json_body(self):
        with pytest.raises(ExternalServiceError):
            run_async(_catalog(lambda r: httpx.Response(200, text="<html>")).detail("1"))

    @pytest.mark.parametrize("body", [[{"id": 1}], "tunic", 42])
    def test_body_that_is_not_an_object(self, body):
        with pytest.raises(ExternalServiceError, match="Failed to fetch"):
            run_async(_catalog(lambda r: httpx.Response(200, json=body)).search("x"))


# ===========================================================================
# Through the API
# ===========================================================================
class TestGameRoutes:
    @pytest.fixture
    def catalog_client(self, client):
        import vtilde.api.main as main_mod
        from vtilde.api.routes.games import get_game_catalog

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/search/"):
                return httpx.Response(
                    200, json={"results": [], "number_of_total_results": 0}
                )
            return httpx.Response(404)

        main_mod.app.dependency_overrides[get_game_catalog] = lambda: _catalog(handler)
        return client

    def test_search_route(self, catalog_client):
        resp = catalog_client.get("/api/games?search=zelda&page=2")
        assert resp.status_code == 200
        assert resp.json()["pagination"]["page"] == 2

    def test_search_alias(self, catalog_client):
        assert catalog_client.get("/api/search?query=zelda").status_code == 200

    def test_detail_upstream_404(self, catalog_client):
        resp = catalog_client.get("/api/game/3030-999")
        assert resp.status_code == 404
        assert resp.json() == {"message": "Game not found"}

    def test_upstream_outage_is_503(self, client):
        import vtilde.api.main as main_mod
        from vtilde.api.routes.games import get_game_catalog

        main_mod.app.dependency_overrides[get_game_catalog] = lambda: _catalog(
            lambda r: httpx.Response(500)
        )
        resp = client.get("/api/games?search=x")
        assert resp.status_code == 503
        assert resp.json() == {"message": "Failed to fetch game data"}

    def test_array_body_is_503(self, client):
        import vtilde.api.main as main_mod
        from vtilde.api.routes.games import get_game_catalog

        main_mod.app.dependency_overrides[get_game_catalog] = lambda: _catalog(
            lambda r: httpx.Response(200, json=[])
        )
        resp = client.get("/api/games?search=x")
        assert resp.status_code == 503
        assert resp.json() == {"message": "Failed to fetch game data"}

    def test_game_art_is_local(self, client, db_engine):
        ana = make_user(db_engine, "ana")
        art = make_art(db_engine, ana, make_game(db_engine, "3030-7", "Hades"))
        resp = client.get("/api/game/3030-7/art")
        assert [a["id"] for a in resp.json()] == [art]
