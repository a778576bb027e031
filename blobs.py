"""
Online Clipboard — Blob store
Raw file bytes split into fixed-size chunks, keyed by an opaque handle.

  blobs        one row per stored file (name, length, owner metadata)
  blob_chunks  the bytes, BLOB_CHUNK_BYTES per row, ordered by n

The owning clipboard id is kept only as metadata so every blob of a
clipboard can be removed in one call; clipboards point at handles, never
the other way round.
"""
import logging
import secrets
from typing import Any

import aiosqlite

from config import BLOB_CHUNK_BYTES, DEFAULT_MIME_TYPE
from database import now_utc

logger = logging.getLogger(__name__)


async def put_blob(
    db: aiosqlite.Connection,
    data: bytes,
    filename: str,
    metadata: dict[str, Any],
    chunk_size: int = BLOB_CHUNK_BYTES,
) -> str:
    """Store data and return its handle. Nothing is committed unless every chunk is written."""
    handle = secrets.token_hex(12)
    try:
        await db.execute(
            "INSERT INTO blobs (handle, filename, length, chunk_size, upload_date, "
            "clipboard_id, original_name, mime_type) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                handle,
                filename,
                len(data),
                chunk_size,
                now_utc(),
                metadata.get("clipboardId"),
                metadata.get("originalName", filename),
                metadata.get("mimeType", DEFAULT_MIME_TYPE),
            ),
        )
        await db.executemany(
            "INSERT INTO blob_chunks (handle, n, data) VALUES (?, ?, ?)",
            [
                (handle, n, data[offset:offset + chunk_size])
                for n, offset in enumerate(range(0, len(data), chunk_size))
            ],
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return handle


async def get_blob(db: aiosqlite.Connection, handle: str) -> tuple[bytes, dict[str, Any]] | None:
    """Return (bytes, metadata) for a handle, or None if it does not exist."""
    async with db.execute(
        "SELECT filename, length, upload_date, clipboard_id, original_name, mime_type "
        "FROM blobs WHERE handle = ?",
        (handle,),
    ) as cursor:
        info = await cursor.fetchone()
    if info is None:
        return None

    async with db.execute(
        "SELECT data FROM blob_chunks WHERE handle = ? ORDER BY n ASC", (handle,)
    ) as cursor:
        chunks = [row[0] for row in await cursor.fetchall()]

    data = b"".join(chunks)
    if len(data) != info["length"]:
        raise RuntimeError(f"Blob {handle} is corrupt: expected {info['length']} bytes, got {len(data)}.")

    return data, {
        "filename":     info["filename"],
        "length":       info["length"],
        "uploadDate":   info["upload_date"],
        "clipboardId":  info["clipboard_id"],
        "originalName": info["original_name"] or info["filename"],
        "mimeType":     info["mime_type"] or DEFAULT_MIME_TYPE,
    }


async def delete_blob(db: aiosqlite.Connection, handle: str) -> bool:
    """Delete one blob and its chunks. Returns False if the handle was unknown."""
    cursor = await db.execute("DELETE FROM blobs WHERE handle = ?", (handle,))
    await db.commit()
    return cursor.rowcount > 0


async def delete_blobs_for_clipboard(db: aiosqlite.Connection, clipboard_id: str) -> int:
    """Delete every blob owned by a clipboard, continuing past individual failures."""
    async with db.execute(
        "SELECT handle FROM blobs WHERE clipboard_id = ?", (clipboard_id,)
    ) as cursor:
        handles = [row[0] for row in await cursor.fetchall()]

    deleted = 0
    for handle in handles:
        try:
            if await delete_blob(db, handle):
                deleted += 1
        except aiosqlite.Error:
            logger.exception("Failed to delete blob %s of clipboard %s", handle, clipboard_id)
    return deleted


async def delete_orphaned_blobs(db: aiosqlite.Connection) -> int:
    """
    Delete blobs whose clipboard no longer exists: leftovers of a failed
    cascade or of an upload that raced a delete. Failures are logged and
    retried on the next sweep.
    """
    async with db.execute(
        "SELECT handle FROM blobs WHERE clipboard_id NOT IN (SELECT id FROM clipboards)"
    ) as cursor:
        handles = [row[0] for row in await cursor.fetchall()]

    deleted = 0
    for handle in handles:
        try:
            if await delete_blob(db, handle):
                deleted += 1
        except aiosqlite.Error:
            logger.exception("Failed to delete orphaned blob %s", handle)
    if deleted:
        logger.info("Removed %d orphaned blob(s).", deleted)
    return deleted
