"""
tests/test_api_routes.py — FastAPI Route Integration Tests
============================================================
Drives the public HTTP surface with the FastAPI TestClient against the
in-memory engine:

- Health endpoint availability
- Auth gate: missing token → 401, bad token → 403
- Every error rendered as ``{"message": ...}``
- Register / login / me flow
- Multipart art upload through to the feeds
"""

from __future__ import annotations

import jwt
import pytest

from conftest import add_follow, auth, make_art, make_game, make_user, token_for
from vtilde.api.deps import JWT_ALGORITHM

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def ana(db_engine):
    uid = make_user(db_engine, "ana")
    return uid, auth(token_for(uid, "ana"))


@pytest.fixture
def bo(db_engine):
    uid = make_user(db_engine, "bo")
    return uid, auth(token_for(uid, "bo"))


# ===========================================================================
# Health endpoint
# ===========================================================================
class TestHealthEndpoint:
    def test_health_returns_ok(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


# ===========================================================================
# Auth gate
# ===========================================================================
class TestAuthGate:
    PROTECTED = [
        ("get", "/api/me"),
        ("get", "/api/drawings/following"),
        ("get", "/api/activities"),
        ("get", "/api/notifications"),
        ("get", "/api/conversations"),
        ("get", "/api/collections"),
        ("post", "/api/art/1/like"),
    ]

    @pytest.mark.parametrize("method,path", PROTECTED)
    def test_missing_token_is_401(self, client, method, path):
        resp = getattr(client, method)(path)
        assert resp.status_code == 401
        assert resp.json() == {"message": "Access token required"}

    @pytest.mark.parametrize("method,path", PROTECTED)
    def test_garbage_token_is_403(self, client, method, path):
        resp = getattr(client, method)(path, headers=auth("not-a-jwt"))
        assert resp.status_code == 403
        assert "message" in resp.json()

    def test_token_signed_with_other_key_is_403(self, client, ana):
        forged = jwt.encode({"sub": str(ana[0])}, "x" * 64, algorithm=JWT_ALGORITHM)
        assert client.get("/api/me", headers=auth(forged)).status_code == 403

    def test_expired_token_is_403(self, client, ana):
        from vtilde.api.auth import issue_token

        expired = issue_token(ana[0], "ana", ttl_days=-1)
        assert client.get("/api/me", headers=auth(expired)).status_code == 403

    def test_stale_token_reads_public_pages_anonymously(self, client, db_engine, ana, bo):
        from vtilde.api.auth import issue_token

        art = make_art(db_engine, ana[0], make_game(db_engine))
        client.post(f"/api/art/{art}/like", headers=bo[1])
        expired = auth(issue_token(bo[0], "bo", ttl_days=-1))

        resp = client.get("/api/drawings/popular", headers=expired)
        assert resp.status_code == 200
        assert [(a["id"], a["isLiked"]) for a in resp.json()] == [(art, False)]
        assert client.get(f"/api/art/{art}", headers=expired).status_code == 200
        assert client.get("/api/users/ana", headers=auth("not-a-jwt")).status_code == 200

    def test_non_bearer_scheme_is_403(self, client):
        resp = client.get("/api/me", headers={"Authorization": "Basic abc"})
        assert resp.status_code == 403


# ===========================================================================
# Accounts
# ===========================================================================
class TestAccounts:
    def test_register_login_me(self, client):
        resp = client.post(
            "/api/register",
            json={"email": "New@Example.com", "username": "newbie", "password": "secret1"},
        )
        assert resp.status_code == 201
        assert resp.json()["message"] == "User created successfully"
        user_id = resp.json()["userId"]

        login = client.post(
            "/api/login", json={"email": "new@example.com", "password": "secret1"}
        )
        assert login.status_code == 200
        body = login.json()
        assert body["userId"] == user_id
        assert body["username"] == "newbie"

        me = client.get("/api/me", headers=auth(body["token"]))
        assert me.status_code == 200
        assert me.json()["email"] == "new@example.com"

    def test_register_duplicate_is_409(self, client, ana):
        resp = client.post(
            "/api/register",
            json={"email": "other@example.com", "username": "ana", "password": "secret1"},
        )
        assert resp.status_code == 409
        assert resp.json() == {"message": "Email or username already exists"}

    def test_register_missing_fields(self, client):
        resp = client.post("/api/register", json={"email": "a@b.c"})
        assert resp.status_code == 400
        assert resp.json() == {"message": "All fields are required"}

    def test_register_short_password(self, client):
        resp = client.post(
            "/api/register", json={"email": "a@b.c", "username": "abc", "password": "123"}
        )
        assert resp.status_code == 400

    def test_login_wrong_password(self, client, ana):
        resp = client.post(
            "/api/login", json={"email": "ana@example.com", "password": "wrong-one"}
        )
        assert resp.status_code == 401
        assert resp.json() == {"message": "Invalid credentials"}

    def test_login_unknown_email_same_message(self, client):
        resp = client.post(
            "/api/login", json={"email": "ghost@example.com", "password": "whatever"}
        )
        assert resp.status_code == 401
        assert resp.json() == {"message": "Invalid credentials"}


# ===========================================================================
# Error envelope
# ===========================================================================
class TestErrorShape:
    def test_not_found(self, client):
        resp = client.get("/api/art/424242")
        assert resp.status_code == 404
        assert resp.json() == {"message": "Art not found"}

    def test_request_validation_is_400(self, client):
        resp = client.get("/api/drawings/popular?limit=0")
        assert resp.status_code == 400
        assert resp.json()["message"].startswith("limit")

    def test_bad_sort_is_400(self, client):
        assert client.get("/api/drawings/popular?sort=random").status_code == 400

    def test_unknown_route(self, client):
        resp = client.get("/api/nothing-here")
        assert resp.status_code == 404
        assert "message" in resp.json()


# ===========================================================================
# Art & feeds
# ===========================================================================
class TestArtRoutes:
    def test_upload_then_visible_in_feeds(self, client, db_engine, ana, bo):
        make_game(db_engine, "3030-5", "Celeste")
        add_follow(db_engine, bo[0], ana[0])

        resp = client.post(
            "/api/art",
            headers=ana[1],
            data={"gameApiId": "3030-5", "tags": "pixel"},
            files={"artFile": ("climb.png", PNG_BYTES, "image/png")},
        )
        assert resp.status_code == 201
        art = resp.json()
        assert art["imageUrl"].startswith("/api/uploads/")
        assert art["author"]["username"] == "ana"

        served = client.get(art["imageUrl"])
        assert served.status_code == 200
        assert served.content == PNG_BYTES

        popular = client.get("/api/drawings/popular").json()
        assert [a["id"] for a in popular] == [art["id"]]
        following = client.get("/api/drawings/following", headers=bo[1]).json()
        assert [a["id"] for a in following] == [art["id"]]
        activity = client.get("/api/activities", headers=bo[1]).json()
        assert activity[0]["type"] == "post"

    def test_legacy_upload_path(self, client, db_engine, ana):
        game = make_game(db_engine)
        resp = client.post(
            "/api/user/games/upload-art",
            headers=ana[1],
            data={"gameId": str(game)},
            files={"artFile": ("a.jpg", PNG_BYTES, "image/jpeg")},
        )
        assert resp.status_code == 201

    def test_upload_without_file(self, client, db_engine, ana):
        make_game(db_engine)
        resp = client.post("/api/art", headers=ana[1], data={"gameApiId": "3030-1"})
        assert resp.status_code == 400

    def test_upload_rejects_non_image(self, client, db_engine, ana):
        make_game(db_engine)
        resp = client.post(
            "/api/art",
            headers=ana[1],
            data={"gameApiId": "3030-1"},
            files={"artFile": ("notes.txt", b"hello", "text/plain")},
        )
        assert resp.status_code == 400
        assert "not allowed" in resp.json()["message"]

    def test_upload_for_unknown_game_leaves_no_file(self, client, ana):
        from vtilde.services.upload_service import UPLOAD_DIR

        before = set(UPLOAD_DIR.iterdir())
        resp = client.post(
            "/api/art",
            headers=ana[1],
            data={"gameApiId": "3030-404"},
            files={"artFile": ("x.png", PNG_BYTES, "image/png")},
        )
        assert resp.status_code == 404
        assert set(UPLOAD_DIR.iterdir()) == before

    def test_upload_removes_file_when_creation_crashes(self, client, db_engine, ana, monkeypatch):
        from vtilde.services import art_service
        from vtilde.services.upload_service import UPLOAD_DIR, ensure_upload_dir

        def db_down(*args, **kwargs):
            raise RuntimeError("db down")

        make_game(db_engine)
        monkeypatch.setattr(art_service, "create_art", db_down)
        ensure_upload_dir()
        before = set(UPLOAD_DIR.iterdir())
        resp = client.post(
            "/api/art",
            headers=ana[1],
            data={"gameApiId": "3030-1"},
            files={"artFile": ("x.png", PNG_BYTES, "image/png")},
        )
        assert resp.status_code == 500
        assert resp.json() == {"message": "Server error"}
        assert set(UPLOAD_DIR.iterdir()) == before

    def test_like_twice_then_unlike(self, client, db_engine, ana, bo):
        art = make_art(db_engine, ana[0], make_game(db_engine))
        first = client.post(f"/api/art/{art}/like", headers=bo[1])
        assert first.status_code == 201
        assert first.json() == {"message": "Liked", "likes": 1}
        again = client.post(f"/api/art/{art}/like", headers=bo[1])
        assert again.status_code == 409
        assert client.get(f"/api/art/{art}").json()["likes"] == 1
        assert client.delete(f"/api/art/{art}/like", headers=bo[1]).json()["likes"] == 0

    def test_legacy_viewer_query_param(self, client, db_engine, ana, bo):
        art = make_art(db_engine, ana[0], make_game(db_engine))
        client.post(f"/api/art/{art}/like", headers=bo[1])
        feed = client.get(f"/api/drawings/popular?userId={bo[0]}").json()
        assert feed[0]["isLiked"] is True

    def test_delete_other_users_art_is_403(self, client, db_engine, ana, bo):
        art = make_art(db_engine, ana[0], make_game(db_engine))
        resp = client.delete(f"/api/art/{art}", headers=bo[1])
        assert resp.status_code == 403
        assert client.delete(f"/api/art/{art}", headers=ana[1]).status_code == 200

    def test_comments(self, client, db_engine, ana, bo):
        art = make_art(db_engine, ana[0], make_game(db_engine))
        posted = client.post(
            f"/api/art/{art}/comments", headers=bo[1], json={"content": "wow"}
        )
        assert posted.status_code == 201
        listed = client.get(f"/api/art/{art}/comments").json()
        assert [c["content"] for c in listed] == ["wow"]
        assert client.get("/api/notifications/unread-count", headers=ana[1]).json() == {
            "count": 1
        }
        blank = client.post(f"/api/art/{art}/comments", headers=bo[1], json={"content": ""})
        assert blank.status_code == 400


# ===========================================================================
# Library, users, messaging, collections, leaderboards
# ===========================================================================
class TestOtherRoutes:
    def test_library_round(self, client, ana):
        saved = client.post(
            "/api/user/games",
            headers=ana[1],
            json={"gameApiId": "3030-8", "gameName": "Tunic", "status": "completed"},
        )
        assert saved.status_code == 201
        game_id = saved.json()["game"]["id"]

        updated = client.put(
            "/api/user/games",
            headers=ana[1],
            json={"gameId": game_id, "rating": 5, "reviewText": "Fox!"},
        )
        assert updated.status_code == 200
        assert updated.json()["entry"]["rating"] == 5

        page = client.get(f"/api/user/{ana[0]}/games").json()
        assert page["pagination"]["total"] == 1
        reviews = client.get("/api/game/3030-8/reviews").json()
        assert reviews[0]["reviewText"] == "Fox!"
        board = client.get("/api/leaderboard/games").json()
        assert board[0]["averageRating"] == 5

        bad = client.put(
            "/api/user/games", headers=ana[1], json={"gameId": game_id, "rating": 9}
        )
        assert bad.status_code == 400

    def test_follow_routes(self, client, ana, bo):
        assert client.post(f"/api/users/{bo[0]}/follow", headers=ana[1]).status_code == 201
        assert client.post(f"/api/users/{bo[0]}/follow", headers=ana[1]).status_code == 409
        assert client.post(f"/api/users/{ana[0]}/follow", headers=ana[1]).status_code == 409
        profile = client.get("/api/users/bo", headers=ana[1]).json()
        assert profile["isFollowing"] is True
        assert profile["followerCount"] == 1
        assert client.get("/api/search/users?q=b", headers=ana[1]).json() == [
            {"id": bo[0], "username": "bo"}
        ]

    def test_messaging_routes(self, client, db_engine, ana, bo):
        eve = make_user(db_engine, "eve")
        conv = client.post(
            "/api/conversations", headers=ana[1], json={"recipientId": bo[0]}
        ).json()
        sent = client.post(
            f"/api/conversations/{conv['id']}/messages", headers=ana[1], json={"content": "hi"}
        )
        assert sent.status_code == 201
        assert client.get("/api/conversations/unread-count", headers=bo[1]).json() == {
            "count": 1
        }
        outsider = auth(token_for(eve, "eve"))
        denied = client.get(f"/api/conversations/{conv['id']}/messages", headers=outsider)
        assert denied.status_code == 403
        assert denied.json() == {"message": "Access denied"}

    def test_collection_routes(self, client, ana, bo):
        created = client.post(
            "/api/collections",
            headers=ana[1],
            json={"name": "Hidden gems", "isPublic": False},
        )
        assert created.status_code == 201
        cid = created.json()["id"]
        assert client.get(f"/api/collections/{cid}", headers=bo[1]).status_code == 404

        added = client.post(
            f"/api/collections/{cid}/games",
            headers=ana[1],
            json={"gameApiId": "3030-3", "gameName": "Hades"},
        )
        assert added.status_code == 201
        assert added.json()["gameCount"] == 1

    def test_artist_leaderboard(self, client, db_engine, ana, bo):
        art = make_art(db_engine, ana[0], make_game(db_engine))
        client.post(f"/api/art/{art}/like", headers=bo[1])
        board = client.get("/api/leaderboard/artists").json()
        assert board == [
            {"id": ana[0], "username": "ana", "totalLikes": 1, "totalDrawings": 1}
        ]
