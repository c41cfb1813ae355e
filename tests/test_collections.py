"""
tests/test_collections.py — Curated game lists
===============================================
"""

from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from conftest import make_user
from vtilde.database.models import Activity
from vtilde.errors import Conflict, Forbidden, NotFound, ValidationError
from vtilde.services import collection_service


@pytest.fixture
def owners(db_engine):
    return make_user(db_engine, "ana"), make_user(db_engine, "bo")


def _new(engine, user_id, name="Cozy games", is_public=True):
    return collection_service.create_collection(
        engine, user_id, name=name, description="for rainy days", is_public=is_public
    )


def _add(engine, cid, uid, api_id, name):
    return collection_service.add_game(engine, cid, uid, game_api_id=api_id, game_name=name)


class TestCreate:
    def test_public_collection_announced(self, db_engine, owners):
        ana, _ = owners
        col = _new(db_engine, ana)
        assert col["gameCount"] == 0
        assert col["user"] == {"id": ana, "username": "ana"}
        with Session(db_engine) as session:
            (activity,) = session.scalars(select(Activity)).all()
        assert activity.type == "collection"
        assert activity.link == f"/collections/{col['id']}"

    def test_private_collection_silent(self, db_engine, owners):
        ana, _ = owners
        _new(db_engine, ana, is_public=False)
        with Session(db_engine) as session:
            assert session.scalars(select(Activity)).all() == []

    def test_name_required(self, db_engine, owners):
        with pytest.raises(ValidationError):
            _new(db_engine, owners[0], name="  ")


class TestVisibility:
    def test_private_hidden_from_others(self, db_engine, owners):
        ana, bo = owners
        secret = _new(db_engine, ana, "Secret", is_public=False)
        public = _new(db_engine, ana, "Shown")

        with pytest.raises(NotFound):
            collection_service.get_collection(db_engine, secret["id"], bo)
        assert collection_service.get_collection(db_engine, secret["id"], ana)["name"] == "Secret"

        others_view = collection_service.list_public_for(db_engine, "ana", bo)
        assert [c["id"] for c in others_view] == [public["id"]]
        own_view = collection_service.list_public_for(db_engine, "ana", ana)
        assert {c["id"] for c in own_view} == {public["id"], secret["id"]}

    def test_list_mine(self, db_engine, owners):
        ana, bo = owners
        _new(db_engine, ana, "One", is_public=False)
        _new(db_engine, bo, "Theirs")
        assert [c["name"] for c in collection_service.list_mine(db_engine, ana)] == ["One"]

    def test_unknown_username(self, db_engine):
        with pytest.raises(NotFound):
            collection_service.list_public_for(db_engine, "ghost")


class TestMutations:
    def test_only_owner_edits_public_collection(self, db_engine, owners):
        ana, bo = owners
        col = _new(db_engine, ana)
        with pytest.raises(Forbidden):
            collection_service.update_collection(db_engine, col["id"], bo, {"name": "Mine now"})
        with pytest.raises(Forbidden):
            collection_service.delete_collection(db_engine, col["id"], bo)

    def test_other_users_private_collection_is_missing(self, db_engine, owners):
        ana, bo = owners
        col = _new(db_engine, ana, is_public=False)
        with pytest.raises(NotFound):
            collection_service.delete_collection(db_engine, col["id"], bo)

    def test_partial_update(self, db_engine, owners):
        ana, _ = owners
        col = _new(db_engine, ana)
        updated = collection_service.update_collection(
            db_engine, col["id"], ana, {"isPublic": False}
        )
        assert updated["isPublic"] is False
        assert updated["name"] == "Cozy games"
        assert updated["description"] == "for rainy days"

    def test_making_public_announces_once(self, db_engine, owners):
        ana, _ = owners
        col = _new(db_engine, ana, is_public=False)
        collection_service.update_collection(db_engine, col["id"], ana, {"isPublic": True})
        collection_service.update_collection(db_engine, col["id"], ana, {"name": "Renamed"})

        with Session(db_engine) as session:
            (activity,) = session.scalars(select(Activity)).all()
        assert activity.type == "collection"
        assert activity.content == "ana shared the collection Cozy games"
        assert activity.link == f"/collections/{col['id']}"

    def test_hiding_public_collection_adds_no_activity(self, db_engine, owners):
        ana, _ = owners
        col = _new(db_engine, ana)
        collection_service.update_collection(db_engine, col["id"], ana, {"isPublic": False})
        with Session(db_engine) as session:
            assert len(session.scalars(select(Activity)).all()) == 1

    def test_delete(self, db_engine, owners):
        ana, _ = owners
        col = _new(db_engine, ana)
        _add(db_engine, col["id"], ana, "g1", "Stardew Valley")
        collection_service.delete_collection(db_engine, col["id"], ana)
        with pytest.raises(NotFound):
            collection_service.get_collection(db_engine, col["id"], ana)


class TestMembership:
    def test_games_appended_in_order(self, db_engine, owners):
        ana, _ = owners
        col = _new(db_engine, ana)
        _add(db_engine, col["id"], ana, "g1", "Stardew Valley")
        result = _add(db_engine, col["id"], ana, "g2", "Spiritfarer")
        assert [g["game"]["name"] for g in result["games"]] == ["Stardew Valley", "Spiritfarer"]
        assert [g["position"] for g in result["games"]] == [0, 1]
        assert result["gameCount"] == 2

    def test_duplicate_game_conflicts(self, db_engine, owners):
        ana, _ = owners
        col = _new(db_engine, ana)
        _add(db_engine, col["id"], ana, "g1", "Stardew Valley")
        with pytest.raises(Conflict):
            _add(db_engine, col["id"], ana, "g1", "Stardew Valley")

    def test_remove_keeps_remaining_order(self, db_engine, owners):
        ana, _ = owners
        col = _new(db_engine, ana)
        first = _add(db_engine, col["id"], ana, "g1", "A")["games"][0]["game"]["id"]
        _add(db_engine, col["id"], ana, "g2", "B")
        _add(db_engine, col["id"], ana, "g3", "C")

        result = collection_service.remove_game(db_engine, col["id"], ana, first)
        assert [g["game"]["name"] for g in result["games"]] == ["B", "C"]

    def test_remove_missing_game(self, db_engine, owners):
        ana, _ = owners
        col = _new(db_engine, ana)
        with pytest.raises(NotFound):
            collection_service.remove_game(db_engine, col["id"], ana, 999)
