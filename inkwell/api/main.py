"""
inkwell.api.main — FastAPI application entry point
===================================================

Run with::

    uvicorn inkwell.api.main:app --reload --port 8000

or ``python -m inkwell.api`` (port from ``config.yaml``).
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

load_dotenv()

from inkwell.api.auth import router as auth_router  # noqa: E402
from inkwell.api.deps import get_engine  # noqa: E402
from inkwell.api.routes.achievements import router as achievements_router  # noqa: E402
from inkwell.api.routes.challenges import router as challenges_router  # noqa: E402
from inkwell.api.routes.currency import router as currency_router  # noqa: E402
from inkwell.api.routes.streaks import router as streaks_router  # noqa: E402
from inkwell.errors import EconomyError  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — warm the DB engine."""
    engine = get_engine()
    logger.info("Inkwell API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("Inkwell API shutting down")


app = FastAPI(
    title="Inkwell Economy API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(EconomyError)
async def economy_error_handler(request: Request, exc: EconomyError):
    logger.warning(
        "%s %s rejected: %s (%s)",
        request.method, request.url.path, exc.code, exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Mount routers
app.include_router(auth_router, prefix="/api")
app.include_router(streaks_router, prefix="/api")
app.include_router(challenges_router, prefix="/api")
app.include_router(currency_router, prefix="/api")
app.include_router(achievements_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}
