"""
Online Clipboard — Clipboard store
Create / read / update / delete of clipboards and their file lists, plus the
expiry sweep. Every blob written for a clipboard is deleted here, with it.
"""
import logging
import mimetypes
import secrets
import sqlite3
from pathlib import PurePath

import aiosqlite
from fastapi import HTTPException

from blobs import delete_blob, delete_blobs_for_clipboard, delete_orphaned_blobs, get_blob, put_blob
from config import DEFAULT_MIME_TYPE, ID_MAX_ATTEMPTS, MAX_FILE_BYTES
from database import lifetime_utc, now_utc
from ids import generate_id
from models import Clipboard, ClipboardFile

logger = logging.getLogger(__name__)

_COLUMNS = "id, content, is_public, sent_to_receive_code, created_at, last_accessed, expires_at"


# ── Row mapping ───────────────────────────────────────────────────────────────

def _file_from_row(row: aiosqlite.Row) -> ClipboardFile:
    return ClipboardFile(
        filename=row["filename"],
        original_name=row["original_name"],
        size=row["size"],
        upload_time=row["upload_time"],
        mime_type=row["mime_type"],
        blob_handle=row["blob_handle"],
    )


def _clipboard_from_row(row: aiosqlite.Row, files: list[ClipboardFile]) -> Clipboard:
    return Clipboard(
        id=row["id"],
        content=row["content"],
        files=files,
        is_public=bool(row["is_public"]),
        sent_to_receive_code=row["sent_to_receive_code"],
        created_at=row["created_at"],
        last_accessed=row["last_accessed"],
        expires_at=row["expires_at"],
    )


async def _load_files(db: aiosqlite.Connection, ids: list[str]) -> dict[str, list[ClipboardFile]]:
    files: dict[str, list[ClipboardFile]] = {i: [] for i in ids}
    if not ids:
        return files
    placeholders = ", ".join("?" for _ in ids)
    async with db.execute(
        "SELECT clipboard_id, filename, original_name, size, upload_time, mime_type, blob_handle "
        f"FROM clipboard_files WHERE clipboard_id IN ({placeholders}) ORDER BY seq ASC",
        ids,
    ) as cursor:
        for row in await cursor.fetchall():
            files[row["clipboard_id"]].append(_file_from_row(row))
    return files


async def _rows_to_clipboards(db: aiosqlite.Connection, rows) -> list[Clipboard]:
    files = await _load_files(db, [r["id"] for r in rows])
    return [_clipboard_from_row(r, files[r["id"]]) for r in rows]


# ── Create ────────────────────────────────────────────────────────────────────

async def create_clipboard(
    db: aiosqlite.Connection,
    content: str = "",
    is_public: bool = False,
    sent_to_receive_code: str | None = None,
) -> Clipboard:
    """
    Allocate an id and insert a new clipboard expiring CLIPBOARD_TTL_HOURS
    from now. The primary key decides uniqueness: if another request took
    the id between the check and the insert, a fresh id is drawn.
    """
    for _ in range(ID_MAX_ATTEMPTS):
        clipboard_id = await generate_id(db)
        created, expires = lifetime_utc()
        try:
            await db.execute(
                f"INSERT INTO clipboards ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                (clipboard_id, content, int(is_public), sent_to_receive_code,
                 created, created, expires),
            )
            await db.commit()
        except sqlite3.IntegrityError:
            await db.rollback()
            continue
        return Clipboard(
            id=clipboard_id,
            content=content,
            files=[],
            is_public=is_public,
            sent_to_receive_code=sent_to_receive_code,
            created_at=created,
            last_accessed=created,
            expires_at=expires,
        )
    raise HTTPException(status_code=503, detail="Unable to generate unique clipboard ID.")


# ── Read ──────────────────────────────────────────────────────────────────────

async def get_clipboard(db: aiosqlite.Connection, clipboard_id: str, touch: bool = True) -> Clipboard | None:
    """
    Fetch a live clipboard, refreshing last_accessed unless touch=False.
    Expired and missing clipboards both return None; an expired one found
    here is deleted on the spot.
    """
    async with db.execute(f"SELECT {_COLUMNS} FROM clipboards WHERE id = ?", (clipboard_id,)) as cursor:
        row = await cursor.fetchone()
    if row is None:
        return None

    now = now_utc()
    if row["expires_at"] < now:
        await delete_clipboard(db, clipboard_id)
        return None

    if touch:
        await db.execute("UPDATE clipboards SET last_accessed = ? WHERE id = ?", (now, clipboard_id))
        await db.commit()
        async with db.execute(f"SELECT {_COLUMNS} FROM clipboards WHERE id = ?", (clipboard_id,)) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None

    return (await _rows_to_clipboards(db, [row]))[0]


async def list_clipboards(
    db: aiosqlite.Connection, limit: int, public_only: bool = False
) -> list[Clipboard]:
    """Newest first. With public_only, private clipboards are left out."""
    query = f"SELECT {_COLUMNS} FROM clipboards WHERE expires_at > ?"
    params: list = [now_utc()]
    if public_only:
        query += " AND is_public = 1"
    query += " ORDER BY created_at DESC LIMIT ?"
    params.append(limit)
    async with db.execute(query, params) as cursor:
        rows = await cursor.fetchall()
    return await _rows_to_clipboards(db, rows)


async def list_inbox(db: aiosqlite.Connection, receive_code: str, limit: int) -> list[Clipboard]:
    """Clipboards sent to a receive code (case-insensitive), newest first."""
    async with db.execute(
        f"SELECT {_COLUMNS} FROM clipboards "
        "WHERE TRIM(sent_to_receive_code) = ? COLLATE NOCASE AND expires_at > ? "
        "ORDER BY created_at DESC LIMIT ?",
        (receive_code.strip(), now_utc(), limit),
    ) as cursor:
        rows = await cursor.fetchall()
    return await _rows_to_clipboards(db, rows)


# ── Update ────────────────────────────────────────────────────────────────────

async def update_clipboard(db: aiosqlite.Connection, clipboard_id: str, content: str) -> bool:
    """Overwrite the content of a live clipboard. Returns False if not found."""
    now = now_utc()
    cursor = await db.execute(
        "UPDATE clipboards SET content = ?, last_accessed = ? WHERE id = ? AND expires_at > ?",
        (content, now, clipboard_id, now),
    )
    await db.commit()
    return cursor.rowcount > 0


# ── Files ─────────────────────────────────────────────────────────────────────

def check_file_size(size: int) -> None:
    if size > MAX_FILE_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"File size exceeds {MAX_FILE_BYTES // 1024 // 1024}MB limit.",
        )


def stored_filename(original_name: str) -> str:
    """Collision-resistant internal name that keeps the original extension."""
    suffix = PurePath(original_name).suffix.lower()
    if not suffix[1:].isalnum():
        suffix = ""
    return f"{secrets.token_urlsafe(16)}{suffix}"


def guess_mime_type(original_name: str, declared: str | None) -> str:
    if declared:
        return declared
    guessed, _ = mimetypes.guess_type(original_name)
    return guessed or DEFAULT_MIME_TYPE


async def add_file_to_clipboard(
    db: aiosqlite.Connection,
    clipboard_id: str,
    original_name: str,
    data: bytes,
    mime_type: str | None = None,
) -> ClipboardFile | None:
    """
    Store the bytes in the blob store, then append one file entry to the
    clipboard. Returns None if the clipboard does not exist (or expired).

    The entry is a single INSERT, so concurrent uploads to one clipboard
    never overwrite each other. A blob whose entry could not be written is
    removed again.
    """
    check_file_size(len(data))
    if await get_clipboard(db, clipboard_id, touch=False) is None:
        return None

    entry = ClipboardFile(
        filename=stored_filename(original_name),
        original_name=original_name,
        size=len(data),
        upload_time=now_utc(),
        mime_type=guess_mime_type(original_name, mime_type),
    )
    entry.blob_handle = await put_blob(
        db,
        data,
        entry.filename,
        {"clipboardId": clipboard_id, "originalName": original_name, "mimeType": entry.mime_type},
    )

    try:
        await db.execute(
            "INSERT INTO clipboard_files (clipboard_id, filename, original_name, size, "
            "upload_time, mime_type, blob_handle) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (clipboard_id, entry.filename, entry.original_name, entry.size,
             entry.upload_time, entry.mime_type, entry.blob_handle),
        )
        await db.execute(
            "UPDATE clipboards SET last_accessed = ? WHERE id = ?", (now_utc(), clipboard_id)
        )
        await db.commit()
    except sqlite3.IntegrityError:
        # Clipboard deleted between the check and the insert.
        await db.rollback()
        await delete_blob(db, entry.blob_handle)
        return None
    except Exception:
        await db.rollback()
        try:
            await delete_blob(db, entry.blob_handle)
        except Exception:
            logger.exception("Could not remove blob %s after a failed upload", entry.blob_handle)
        raise

    return entry


async def get_file(
    db: aiosqlite.Connection, clipboard_id: str, filename: str
) -> tuple[bytes, str, str] | None:
    """Return (bytes, mime_type, original_name) for a stored file of a live clipboard."""
    async with db.execute(
        "SELECT f.blob_handle, f.mime_type, f.original_name FROM clipboard_files f "
        "JOIN clipboards c ON c.id = f.clipboard_id "
        "WHERE f.clipboard_id = ? AND f.filename = ? AND c.expires_at > ?",
        (clipboard_id, filename, now_utc()),
    ) as cursor:
        row = await cursor.fetchone()
    if row is None:
        return None

    blob = await get_blob(db, row["blob_handle"])
    if blob is None:
        logger.error("File %s of clipboard %s references a missing blob", filename, clipboard_id)
        return None

    data, meta = blob
    return data, row["mime_type"] or meta["mimeType"], row["original_name"] or meta["originalName"]


# ── Delete ────────────────────────────────────────────────────────────────────

async def delete_clipboard(db: aiosqlite.Connection, clipboard_id: str) -> bool:
    """
    Delete a clipboard and every blob it owns. Blob removal is best-effort;
    the clipboard row goes regardless. Returns False if nothing was there.
    """
    async with db.execute("SELECT 1 FROM clipboards WHERE id = ?", (clipboard_id,)) as cursor:
        if await cursor.fetchone() is None:
            return False

    removed = await delete_blobs_for_clipboard(db, clipboard_id)
    cursor = await db.execute("DELETE FROM clipboards WHERE id = ?", (clipboard_id,))
    await db.commit()
    if removed:
        logger.debug("Deleted clipboard %s with %d file(s)", clipboard_id, removed)
    return cursor.rowcount > 0


# ── Purge ─────────────────────────────────────────────────────────────────────

async def purge_all_expired(db: aiosqlite.Connection) -> int:
    """
    Delete every expired clipboard with its blobs, then any blob left without
    a clipboard. Returns number of clipboards deleted.
    """
    async with db.execute(
        "SELECT id FROM clipboards WHERE expires_at < ?", (now_utc(),)
    ) as cursor:
        expired = [row[0] for row in await cursor.fetchall()]

    deleted = 0
    for clipboard_id in expired:
        if await delete_clipboard(db, clipboard_id):
            deleted += 1
    if deleted:
        logger.info("Purged %d expired clipboard(s).", deleted)
    await delete_orphaned_blobs(db)
    return deleted
