# flickpick/main.py: app setup, router mounting, CORS, error mapping, background sweep

from __future__ import annotations

import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flickpick import scheduler
from flickpick.core.settings import settings
from flickpick.deps import engine, rating_cache
from flickpick.errors import SessionError
from flickpick.infra import cache

logging.basicConfig(level=settings.log_level.upper())
log = logging.getLogger("startup")


@asynccontextmanager
async def lifespan(_: FastAPI):
    await rating_cache.load()
    scheduler.start_jobs(engine, minutes=settings.session_sweep_minutes)
    log.info("Session sweep every %s min, max age %sh", settings.session_sweep_minutes, settings.session_max_age_hours)
    try:
        yield
    finally:
        scheduler.stop_jobs()
        await rating_cache.idle()
        await rating_cache.flush()
        await cache.close()


app = FastAPI(
    title="FlickPick API",
    version="1.0.0",
    openapi_url="/api/openapi.json",
    docs_url="/api/docs",
    redoc_url=None,
    lifespan=lifespan,
)

# ───────────────── CORS ─────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ───────────────── Error mapping ─────────────────
@app.exception_handler(SessionError)
async def session_error_handler(_: Request, exc: SessionError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message, "reason": exc.reason})


# Single API namespace prefix
api = APIRouter(prefix="/api")


def _include(router_import: str, attr: str = "router", *, name_hint: str = "") -> None:
    """
    Import a router lazily and include it.
    If missing/broken, log the full traceback instead of failing startup.
    """
    label = name_hint or router_import
    try:
        mod = __import__(router_import, fromlist=[attr])
        router = getattr(mod, attr)
        api.include_router(router)
        log.info("Mounted router: %s (prefix=%s)", label, getattr(router, "prefix", ""))
    except Exception as e:
        tb = traceback.format_exc()
        log.error("FAILED to mount router: %s (%s)", label, router_import)
        log.error("Reason: %r", e)
        log.error("Traceback:\n%s", tb)


# ───────────────── Mount routers ─────────────────
_include("flickpick.routes.health", name_hint="health")
_include("flickpick.routes.filters", name_hint="filters")
_include("flickpick.routes.sessions", name_hint="sessions")

app.include_router(api)
