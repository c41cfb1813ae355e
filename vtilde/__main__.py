"""
vtilde.__main__ — Entry point for ``python -m vtilde``
=======================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (soft settings) for the port.
3. Hand the FastAPI app to uvicorn (blocking).

Tables are verified by the app's lifespan hook on startup.

Run with::

    python -m vtilde
"""

from __future__ import annotations

import logging
import os
import sys

import uvicorn
from dotenv import load_dotenv

from vtilde.config import load_config

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("vtilde")


def main() -> None:
    """Bootstrap and serve the V~ API."""

    # 1. Environment variables (secrets).
    load_dotenv()

    if not os.getenv("DATABASE_URL"):
        logger.critical(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and set a valid PostgreSQL URL."
        )
        sys.exit(1)

    # 2. Soft configuration.
    cfg = load_config()
    logger.info("Starting %s API on port %d", cfg.community_name, cfg.api_port)

    # 3. Serve.
    uvicorn.run(
        "vtilde.api.main:app",
        host=os.getenv("VTILDE_HOST", "0.0.0.0"),
        port=cfg.api_port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
