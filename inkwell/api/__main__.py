"""
inkwell.api.__main__ — Entry point for ``python -m inkwell.api``
=================================================================

Wiring:
1. Configure logging.
2. Load .env (secrets).
3. Load config.yaml (soft settings, defaults if absent).
4. Run the FastAPI app under uvicorn.

The schema is managed by Alembic (``alembic upgrade head``).
"""

from __future__ import annotations

import logging

import uvicorn
from dotenv import load_dotenv

from inkwell.config import default_config, load_config

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("inkwell")


def main() -> None:
    """Bootstrap and serve the Inkwell API."""

    # 1. Environment variables (secrets).
    load_dotenv()

    # 2. Soft configuration.
    try:
        cfg = load_config()
    except FileNotFoundError:
        logger.warning("config.yaml not found — using defaults")
        cfg = default_config()
    logger.info("Config loaded — Platform: %s", cfg.platform_name)

    # 3. Serve (blocks until Ctrl+C or SIGTERM).
    logger.info("Starting Inkwell API on port %d…", cfg.api_port)
    uvicorn.run("inkwell.api.main:app", host="0.0.0.0", port=cfg.api_port, log_config=None)


if __name__ == "__main__":
    main()
