"""
tests/test_media_host.py — Cloudinary image hosting
====================================================
The SDK's ``upload`` / ``destroy`` calls are patched; no request leaves
the process.
"""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import cloudinary.exceptions
import pytest

from conftest import auth, make_game, make_user, token_for
from vtilde.errors import ExternalServiceError, ValidationError
from vtilde.services import upload_service
from vtilde.services.media_host import MediaHost

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
HOSTED = "https://res.cloudinary.com/vtilde/image/upload/v1712345678/v-art/abc123.png"


def run_async(coro):
    return asyncio.run(coro)


@pytest.fixture
def hosted(monkeypatch):
    monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "vtilde")
    monkeypatch.setenv("CLOUDINARY_API_KEY", "key")
    monkeypatch.setenv("CLOUDINARY_API_SECRET", "shh")


class TestConfiguration:
    def test_unconfigured_by_default(self):
        assert MediaHost.from_env() is None

    def test_partial_credentials_are_ignored(self, monkeypatch):
        monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "vtilde")
        assert MediaHost.from_env() is None

    def test_built_from_environment(self, hosted):
        host = MediaHost.from_env()
        assert host.cloud_name == "vtilde"
        assert host.folder == "v-art"


class TestUpload:
    def test_returns_secure_url(self):
        host = MediaHost("vtilde", "key", "shh")
        with patch("cloudinary.uploader.upload", return_value={"secure_url": HOSTED}) as up:
            assert host.upload(PNG_BYTES, "climb.png") == HOSTED

        (stream,), options = up.call_args
        assert stream.read() == PNG_BYTES
        assert options["folder"] == "v-art"
        assert options["resource_type"] == "image"
        assert (options["cloud_name"], options["api_key"], options["api_secret"]) == (
            "vtilde",
            "key",
            "shh",
        )

    def test_sdk_error_is_external_failure(self):
        host = MediaHost("vtilde", "key", "shh")
        with patch("cloudinary.uploader.upload", side_effect=cloudinary.exceptions.Error("boom")):
            with pytest.raises(ExternalServiceError, match="Failed to upload image"):
                host.upload(PNG_BYTES)

    def test_missing_secure_url_is_external_failure(self):
        host = MediaHost("vtilde", "key", "shh")
        with patch("cloudinary.uploader.upload", return_value={"error": "nope"}):
            with pytest.raises(ExternalServiceError):
                host.upload(PNG_BYTES)


class TestDestroy:
    def test_public_id_from_delivery_url(self):
        host = MediaHost("vtilde", "key", "shh")
        assert host.public_id(HOSTED) == "v-art/abc123"
        assert host.public_id("https://res.cloudinary.com/other/image/upload/v1/a.png") is None
        assert host.public_id("https://img.example/art.png") is None

    def test_destroy_by_public_id(self):
        host = MediaHost("vtilde", "key", "shh")
        with patch("cloudinary.uploader.destroy", return_value={"result": "ok"}) as destroy:
            assert host.destroy(HOSTED) is True
        assert destroy.call_args.args == ("v-art/abc123",)

    def test_destroy_failure_is_logged_not_raised(self):
        host = MediaHost("vtilde", "key", "shh")
        with patch("cloudinary.uploader.destroy", side_effect=cloudinary.exceptions.Error("x")):
            assert host.destroy(HOSTED) is False


class TestUploadService:
    def test_save_goes_to_host_when_configured(self, hosted):
        upload_service.ensure_upload_dir()
        before = set(upload_service.UPLOAD_DIR.iterdir())
        with patch("cloudinary.uploader.upload", return_value={"secure_url": HOSTED}):
            url = run_async(upload_service.save_upload("climb.png", PNG_BYTES, "image/png"))
        assert url == HOSTED
        assert set(upload_service.UPLOAD_DIR.iterdir()) == before

    def test_validation_runs_before_host(self, hosted):
        with patch("cloudinary.uploader.upload") as up:
            with pytest.raises(ValidationError, match="not allowed"):
                run_async(upload_service.save_upload("notes.txt", b"hi", "text/plain"))
        up.assert_not_called()

    def test_delete_hosted_image(self, hosted):
        with patch("cloudinary.uploader.destroy", return_value={"result": "ok"}) as destroy:
            assert upload_service.delete_upload(HOSTED) is True
            assert upload_service.delete_upload("https://img.example/art.png") is False
        destroy.assert_called_once()

    def test_local_storage_without_host(self):
        url = run_async(upload_service.save_upload("climb.png", PNG_BYTES, "image/png"))
        assert url.startswith(upload_service.UPLOAD_URL_PREFIX)
        assert upload_service.delete_upload(url) is True


class TestUploadRoute:
    def test_art_points_at_hosted_image(self, client, db_engine, hosted):
        uid = make_user(db_engine, "ana")
        make_game(db_engine)
        with patch("cloudinary.uploader.upload", return_value={"secure_url": HOSTED}):
            resp = client.post(
                "/api/art",
                headers=auth(token_for(uid, "ana")),
                data={"gameApiId": "3030-1"},
                files={"artFile": ("climb.png", PNG_BYTES, "image/png")},
            )
        assert resp.status_code == 201
        assert resp.json()["imageUrl"] == HOSTED

    def test_host_outage_is_503(self, client, db_engine, hosted):
        uid = make_user(db_engine, "ana")
        make_game(db_engine)
        with patch("cloudinary.uploader.upload", side_effect=cloudinary.exceptions.Error("down")):
            resp = client.post(
                "/api/art",
                headers=auth(token_for(uid, "ana")),
                data={"gameApiId": "3030-1"},
                files={"artFile": ("climb.png", PNG_BYTES, "image/png")},
            )
        assert resp.status_code == 503
        assert resp.json() == {"message": "Failed to upload image"}

    def test_hosted_image_destroyed_when_game_missing(self, client, db_engine, hosted):
        uid = make_user(db_engine, "ana")
        with (
            patch("cloudinary.uploader.upload", return_value={"secure_url": HOSTED}),
            patch("cloudinary.uploader.destroy", return_value={"result": "ok"}) as destroy,
        ):
            resp = client.post(
                "/api/art",
                headers=auth(token_for(uid, "ana")),
                data={"gameApiId": "3030-404"},
                files={"artFile": ("climb.png", PNG_BYTES, "image/png")},
            )
        assert resp.status_code == 404
        assert destroy.call_args.args == ("v-art/abc123",)
