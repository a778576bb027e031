"""
Online Clipboard — System routes
  GET /health   liveness + database check
"""
import logging

import aiosqlite
from fastapi import APIRouter, HTTPException

from database import get_db, now_utc
from models import StatusResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["System"])


@router.get("/health", response_model=StatusResponse, summary="Health check")
async def health_check():
    """Returns 200 if the server is up and the database answers, 503 otherwise."""
    try:
        db = await get_db()
        try:
            async with db.execute(
                "SELECT COUNT(*) FROM clipboards WHERE expires_at > ?", (now_utc(),)
            ) as cursor:
                (live,) = await cursor.fetchone()
        finally:
            await db.close()
    except aiosqlite.Error:
        logger.exception("Health check could not reach the database")
        raise HTTPException(status_code=503, detail="Database unavailable.")
    return StatusResponse(status="ok", message=f"Online Clipboard is running ({live} live clipboard(s)).")
