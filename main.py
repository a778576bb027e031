"""
Online Clipboard Server
=======================
Paste text or upload files, get a 4-digit code, open it on any other device.
Everything expires 24 hours after it was created.

Devices can also claim a personal receive code: clipboards sent to that code
land in the device's inbox and, if it subscribed, trigger a Web Push
notification.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from clipboards import purge_all_expired
from config import CLEANUP_INTERVAL_SEC, CORS_ORIGINS, LOG_LEVEL
from database import get_db
from limiter import limiter
from routers import clipboard, device, system

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


# ── Background cleanup ────────────────────────────────────────────────────────

async def _cleanup_loop() -> None:
    """Purge expired clipboards every CLEANUP_INTERVAL_SEC. Requests purge too; this only tidies idle servers."""
    while True:
        await asyncio.sleep(CLEANUP_INTERVAL_SEC)
        try:
            db = await get_db()
            try:
                await purge_all_expired(db)
            finally:
                await db.close()
        except Exception:
            logger.exception("Error during scheduled purge")


# ── Lifespan ──────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create the schema once, purge leftovers, optionally start the loop
    db = await get_db()
    try:
        await purge_all_expired(db)
    finally:
        await db.close()

    task = asyncio.create_task(_cleanup_loop()) if CLEANUP_INTERVAL_SEC > 0 else None
    yield
    # Shutdown: cancel background task cleanly
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


# ── Errors ────────────────────────────────────────────────────────────────────

async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# ── App ───────────────────────────────────────────────────────────────────────

app = FastAPI(
    lifespan=lifespan,
    title="Online Clipboard",
    description="""
Share text and files between devices with a short numeric code.

## How it works

1. `POST /api/clipboard` with some text — you get back a 4-digit id
2. Attach files with `POST /api/clipboard/{id}/upload` (up to 50MB each)
3. Open `GET /api/clipboard/{id}` on any other device

## Personal inbox

Register a receive code with `POST /api/devices`, then create clipboards with
`sentToReceiveCode` and call `POST /api/devices/send` to push a notification.

## Data retention

Clipboards and their files expire **24 hours** after creation. Reading or
editing a clipboard does not extend its lifetime. Expired clipboards are
indistinguishable from ones that never existed.
""",
    version="1.0.0",
    license_info={"name": "MIT"},
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(Exception, _unhandled_exception_handler)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

# ── Routers ───────────────────────────────────────────────────────────────────

app.include_router(clipboard.router)
app.include_router(device.router)
app.include_router(system.router)
