"""
Online Clipboard — Clipboard identifiers
Short zero-padded numeric ids, easy to type on another device.
"""
import secrets

import aiosqlite
from fastapi import HTTPException

from config import ID_DIGITS, ID_MAX_ATTEMPTS


def random_id() -> str:
    return str(secrets.randbelow(10 ** ID_DIGITS)).zfill(ID_DIGITS)


async def id_exists(db: aiosqlite.Connection, clipboard_id: str) -> bool:
    async with db.execute("SELECT 1 FROM clipboards WHERE id = ?", (clipboard_id,)) as cursor:
        return await cursor.fetchone() is not None


async def generate_id(db: aiosqlite.Connection, max_attempts: int = ID_MAX_ATTEMPTS) -> str:
    """
    Draw random ids until one is free. With only 10,000 values collisions are
    routine, so the caller must still treat its INSERT as the final check.
    Raises 503 once max_attempts draws have all been taken.
    """
    for _ in range(max_attempts):
        candidate = random_id()
        if not await id_exists(db, candidate):
            return candidate
    raise HTTPException(status_code=503, detail="Unable to generate unique clipboard ID.")
