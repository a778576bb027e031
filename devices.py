"""
Online Clipboard — Device registry
One device per receive code. Codes are compared case-insensitively
(the column is COLLATE NOCASE) and stored lowercased.
"""
import json
import re
import sqlite3

import aiosqlite
from fastapi import HTTPException

from database import now_utc
from models import Device, PushSubscription

DEFAULT_DEVICE_NAME = "My Device"
RECEIVE_CODE_MIN = 3
RECEIVE_CODE_MAX = 30

_INVALID_CODE_CHARS = re.compile(r"[^a-z0-9_-]")


def normalize_receive_code(code: str) -> str:
    """Trim, lowercase and strip disallowed characters. Raises 400 if the result is out of bounds."""
    clean = _INVALID_CODE_CHARS.sub("", code.strip().lower())
    if len(clean) < RECEIVE_CODE_MIN:
        raise HTTPException(
            status_code=400,
            detail=f"Receive code must be at least {RECEIVE_CODE_MIN} characters.",
        )
    if len(clean) > RECEIVE_CODE_MAX:
        raise HTTPException(
            status_code=400,
            detail=f"Receive code must be {RECEIVE_CODE_MAX} characters or less.",
        )
    return clean


def _device_from_row(row: aiosqlite.Row) -> Device:
    return Device(
        receive_code=row["receive_code"],
        device_name=row["device_name"],
        has_push=bool(row["push_subscription"]),
        last_seen=row["last_seen"],
        created_at=row["created_at"],
    )


def _dump_subscription(subscription: PushSubscription | None) -> str | None:
    if subscription is None:
        return None
    return json.dumps(subscription.model_dump(by_alias=True, exclude_none=True))


async def _fetch(db: aiosqlite.Connection, receive_code: str) -> aiosqlite.Row | None:
    async with db.execute(
        "SELECT receive_code, device_name, push_subscription, last_seen, created_at "
        "FROM devices WHERE receive_code = ?",
        (receive_code.strip(),),
    ) as cursor:
        return await cursor.fetchone()


# ── Register ──────────────────────────────────────────────────────────────────

async def register_device(
    db: aiosqlite.Connection,
    receive_code: str,
    device_name: str | None = None,
    subscription: PushSubscription | None = None,
) -> Device:
    """Create a device for a free receive code. Raises 409 if the code is taken."""
    code = normalize_receive_code(receive_code)
    now = now_utc()
    try:
        await db.execute(
            "INSERT INTO devices (receive_code, device_name, push_subscription, last_seen, created_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (code, (device_name or "").strip() or DEFAULT_DEVICE_NAME,
             _dump_subscription(subscription), now, now),
        )
        await db.commit()
    except sqlite3.IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=409,
            detail="This receive code is already taken. Please choose another.",
        )
    return _device_from_row(await _fetch(db, code))


# ── Lookup ────────────────────────────────────────────────────────────────────

async def get_device(db: aiosqlite.Connection, receive_code: str) -> Device | None:
    """Find a device by code and mark it as seen."""
    cursor = await db.execute(
        "UPDATE devices SET last_seen = ? WHERE receive_code = ?",
        (now_utc(), receive_code.strip()),
    )
    await db.commit()
    if cursor.rowcount == 0:
        return None
    row = await _fetch(db, receive_code)
    return _device_from_row(row) if row else None


async def get_push_subscription(db: aiosqlite.Connection, receive_code: str) -> tuple[Device, dict | None] | None:
    """Device plus its raw subscription, without touching last_seen. For the notifier."""
    row = await _fetch(db, receive_code)
    if row is None:
        return None
    raw = row["push_subscription"]
    return _device_from_row(row), json.loads(raw) if raw else None


# ── Update ────────────────────────────────────────────────────────────────────

async def update_device(
    db: aiosqlite.Connection,
    receive_code: str,
    device_name: str | None = None,
    subscription: PushSubscription | None = None,
) -> Device | None:
    """Change only the fields that were given. Returns None if the code is unknown."""
    assignments = ["last_seen = ?"]
    params: list = [now_utc()]
    if device_name and device_name.strip():
        assignments.append("device_name = ?")
        params.append(device_name.strip())
    if subscription is not None:
        assignments.append("push_subscription = ?")
        params.append(_dump_subscription(subscription))
    params.append(receive_code.strip())

    cursor = await db.execute(
        f"UPDATE devices SET {', '.join(assignments)} WHERE receive_code = ?", params
    )
    await db.commit()
    if cursor.rowcount == 0:
        return None
    row = await _fetch(db, receive_code)
    return _device_from_row(row) if row else None


async def clear_push_subscription(db: aiosqlite.Connection, receive_code: str) -> bool:
    cursor = await db.execute(
        "UPDATE devices SET push_subscription = NULL WHERE receive_code = ?",
        (receive_code.strip(),),
    )
    await db.commit()
    return cursor.rowcount > 0


# ── Unregister ────────────────────────────────────────────────────────────────

async def unregister_device(db: aiosqlite.Connection, receive_code: str) -> bool:
    """Remove a device. Returns False if there was none; callers treat that as success."""
    cursor = await db.execute(
        "DELETE FROM devices WHERE receive_code = ?", (receive_code.strip(),)
    )
    await db.commit()
    return cursor.rowcount > 0
