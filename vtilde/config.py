"""
vtilde.config — YAML Configuration Loader
==========================================

Reads ``config.yaml`` for soft, non-secret settings (page sizes, token
lifetime, the game-metadata endpoint).  Secrets such as ``JWT_SECRET``,
``DATABASE_URL`` and ``GIANTBOMB_API_KEY`` stay in the environment.

Usage::

    from vtilde.config import load_config

    cfg = load_config()          # $VTILDE_CONFIG or ./config.yaml
    print(cfg.community_name)    # "V~"
    print(cfg.feed_page_size)    # 12
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class VTildeConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    community_name: str

    # Server
    api_port: int

    # Default page sizes
    feed_page_size: int
    activity_page_size: int
    leaderboard_size: int
    library_page_size: int

    # Sessions
    token_ttl_days: int

    # GiantBomb
    giantbomb_api_url: str
    giantbomb_timeout_seconds: float = 10.0


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def default_config_path() -> Path:
    """``$VTILDE_CONFIG`` if set, else ``config.yaml`` in the working directory."""
    return Path(os.getenv("VTILDE_CONFIG", "config.yaml"))


def load_config(path: str | Path | None = None) -> VTildeConfig:
    """Read *path* and return a :class:`VTildeConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path) if path is not None else default_config_path()
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml from the repository root and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh)

    return VTildeConfig(
        community_name=raw["community_name"],
        api_port=int(raw["api_port"]),
        feed_page_size=int(raw["feed_page_size"]),
        activity_page_size=int(raw["activity_page_size"]),
        leaderboard_size=int(raw["leaderboard_size"]),
        library_page_size=int(raw["library_page_size"]),
        token_ttl_days=int(raw["token_ttl_days"]),
        giantbomb_api_url=str(raw["giantbomb_api_url"]).rstrip("/"),
        giantbomb_timeout_seconds=float(raw.get("giantbomb_timeout_seconds", 10.0)),
    )
