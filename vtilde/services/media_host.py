"""
vtilde.services.media_host — Cloudinary image hosting
======================================================

Production art images live on Cloudinary in the ``v-art`` folder; the
stored ``image_url`` is the asset's ``secure_url``.  The host is enabled
only when ``CLOUDINARY_CLOUD_NAME``, ``CLOUDINARY_API_KEY`` and
``CLOUDINARY_API_SECRET`` are all set; otherwise
:mod:`vtilde.services.upload_service` keeps images on local disk.

Credentials are passed per call rather than through the SDK's global
``cloudinary.config``.  Any SDK failure on upload surfaces as
:class:`~vtilde.errors.ExternalServiceError` (HTTP 503).
"""

from __future__ import annotations

import io
import logging
import os
from urllib.parse import urlparse

import cloudinary.exceptions
import cloudinary.uploader

from vtilde.errors import ExternalServiceError

logger = logging.getLogger(__name__)

DEFAULT_FOLDER = "v-art"


class MediaHost:
    """Upload and destroy images on one Cloudinary cloud."""

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        *,
        folder: str = DEFAULT_FOLDER,
    ) -> None:
        self.cloud_name = cloud_name
        self.folder = folder
        self._credentials = {
            "cloud_name": cloud_name,
            "api_key": api_key,
            "api_secret": api_secret,
        }

    @classmethod
    def from_env(cls) -> MediaHost | None:
        """Build a host from ``CLOUDINARY_*`` variables, or ``None`` if any is unset."""
        values = [
            os.getenv(name, "").strip()
            for name in ("CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET")
        ]
        if not all(values):
            return None
        return cls(*values)

    def upload(self, content: bytes, filename: str | None = None) -> str:
        """Push *content* to the host and return its HTTPS URL (blocking)."""
        try:
            result = cloudinary.uploader.upload(
                io.BytesIO(content),
                folder=self.folder,
                resource_type="image",
                filename=filename,
                **self._credentials,
            )
        except cloudinary.exceptions.Error as exc:
            logger.warning("Cloudinary upload failed: %s", exc)
            raise ExternalServiceError("Failed to upload image") from exc

        url = result.get("secure_url") if isinstance(result, dict) else None
        if not url:
            logger.warning("Cloudinary upload returned no secure_url: %r", result)
            raise ExternalServiceError("Failed to upload image")
        return url

    def owns(self, url: str) -> bool:
        """Whether *url* points at an asset in this host's cloud."""
        parsed = urlparse(url)
        return parsed.hostname == "res.cloudinary.com" and parsed.path.startswith(
            f"/{self.cloud_name}/"
        )

    def public_id(self, url: str) -> str | None:
        """Recover the asset's public id from a delivery URL.

        ``/<cloud>/image/upload/v1712/v-art/abc.png`` → ``v-art/abc``
        """
        if not self.owns(url):
            return None
        _, sep, rest = urlparse(url).path.partition("/upload/")
        if not sep:
            return None
        parts = rest.split("/")
        if parts and parts[0].startswith("v") and parts[0][1:].isdigit():
            parts = parts[1:]
        if not parts or not parts[-1]:
            return None
        parts[-1] = parts[-1].rsplit(".", 1)[0]
        return "/".join(parts)

    def destroy(self, url: str) -> bool:
        """Delete the asset behind *url*; True when the host confirms it.

        Cleanup only: a host failure is logged, the caller's operation
        has already succeeded.
        """
        public_id = self.public_id(url)
        if public_id is None:
            return False
        try:
            result = cloudinary.uploader.destroy(
                public_id, resource_type="image", invalidate=True, **self._credentials
            )
        except cloudinary.exceptions.Error as exc:
            logger.warning("Cloudinary destroy of %s failed: %s", public_id, exc)
            return False
        return isinstance(result, dict) and result.get("result") == "ok"
