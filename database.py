"""
Online Clipboard — Database helpers
Handles connection, one-time schema creation and UTC timestamps.
"""
from datetime import datetime, timedelta, timezone

import aiosqlite

from config import CLIPBOARD_TTL_HOURS, DATABASE_PATH

SCHEMA = """
CREATE TABLE IF NOT EXISTS clipboards (
    id                     TEXT PRIMARY KEY,
    content                TEXT NOT NULL DEFAULT '',
    is_public              INTEGER NOT NULL DEFAULT 0 CHECK (is_public IN (0, 1)),
    sent_to_receive_code   TEXT,
    created_at             TEXT NOT NULL,
    last_accessed          TEXT NOT NULL,
    expires_at             TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_clipboards_expires_at ON clipboards(expires_at);
CREATE INDEX IF NOT EXISTS idx_clipboards_created_at ON clipboards(created_at);
CREATE INDEX IF NOT EXISTS idx_clipboards_receive_code
    ON clipboards(sent_to_receive_code COLLATE NOCASE);

CREATE TABLE IF NOT EXISTS clipboard_files (
    seq            INTEGER PRIMARY KEY AUTOINCREMENT,
    clipboard_id   TEXT NOT NULL REFERENCES clipboards(id) ON DELETE CASCADE,
    filename       TEXT NOT NULL UNIQUE,
    original_name  TEXT NOT NULL,
    size           INTEGER NOT NULL,
    upload_time    TEXT NOT NULL,
    mime_type      TEXT NOT NULL,
    blob_handle    TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_clipboard_files_clipboard ON clipboard_files(clipboard_id);

CREATE TABLE IF NOT EXISTS blobs (
    handle         TEXT PRIMARY KEY,
    filename       TEXT NOT NULL,
    length         INTEGER NOT NULL,
    chunk_size     INTEGER NOT NULL,
    upload_date    TEXT NOT NULL,
    clipboard_id   TEXT,
    original_name  TEXT,
    mime_type      TEXT
);
CREATE INDEX IF NOT EXISTS idx_blobs_clipboard ON blobs(clipboard_id);

CREATE TABLE IF NOT EXISTS blob_chunks (
    handle  TEXT NOT NULL REFERENCES blobs(handle) ON DELETE CASCADE,
    n       INTEGER NOT NULL,
    data    BLOB NOT NULL,
    PRIMARY KEY (handle, n)
);

CREATE TABLE IF NOT EXISTS devices (
    receive_code       TEXT PRIMARY KEY COLLATE NOCASE,
    device_name        TEXT NOT NULL,
    push_subscription  TEXT,
    last_seen          TEXT NOT NULL,
    created_at         TEXT NOT NULL
);
"""

# Paths whose schema has already been created by this process.
_initialised: set[str] = set()


# ── Connection ────────────────────────────────────────────────────────────────

async def get_db() -> aiosqlite.Connection:
    db = await aiosqlite.connect(DATABASE_PATH)
    db.row_factory = aiosqlite.Row
    await db.execute("PRAGMA foreign_keys = ON")
    if DATABASE_PATH not in _initialised:
        await db.executescript(SCHEMA)
        await db.commit()
        _initialised.add(DATABASE_PATH)
    return db


# ── Utilities ─────────────────────────────────────────────────────────────────

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    # Fixed width so stored timestamps compare correctly as text.
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def now_utc() -> str:
    return to_iso(utcnow())


def lifetime_utc(ttl_hours: int = CLIPBOARD_TTL_HOURS) -> tuple[str, str]:
    """(created, expires) timestamps for something living ttl_hours from now."""
    start = utcnow()
    return to_iso(start), to_iso(start + timedelta(hours=ttl_hours))
