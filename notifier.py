"""
Online Clipboard — Push notifications
Tells a registered device that a clipboard was sent to its receive code.

The service worker renders {title, body, data} and opens data.url on click.
Delivery is best-effort: a missing subscription, missing VAPID keys or a
rejected push all end in delivered=False, never in an error for the sender.
"""
import asyncio
import json
import logging
from typing import Any, Protocol

import aiosqlite
from fastapi import HTTPException
from pywebpush import WebPushException, webpush

from clipboards import get_clipboard
from config import PUSH_TIMEOUT_SEC, PUSH_TTL_SEC, VAPID_PRIVATE_KEY, VAPID_SUBJECT
from devices import clear_push_subscription, get_push_subscription
from models import Clipboard

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 80
# Push services answer 404/410 for subscriptions that will never work again.
GONE_STATUSES = {404, 410}


class PushDeliveryError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PushTransport(Protocol):
    async def send(self, subscription: dict[str, Any], payload: str) -> None: ...


class WebPushTransport:
    """Web Push (RFC 8030) with VAPID auth via pywebpush."""

    def __init__(self, private_key: str, subject: str, ttl: int = PUSH_TTL_SEC,
                 timeout: float = PUSH_TIMEOUT_SEC):
        self.private_key = private_key
        self.subject = subject
        self.ttl = ttl
        self.timeout = timeout

    def _send_blocking(self, subscription: dict[str, Any], payload: str) -> None:
        webpush(
            subscription_info=subscription,
            data=payload,
            vapid_private_key=self.private_key,
            vapid_claims={"sub": self.subject},
            ttl=self.ttl,
            timeout=self.timeout,
        )

    async def send(self, subscription: dict[str, Any], payload: str) -> None:
        try:
            await asyncio.to_thread(self._send_blocking, subscription, payload)
        except WebPushException as exc:
            status = exc.response.status_code if exc.response is not None else None
            raise PushDeliveryError(str(exc), status_code=status) from exc


def get_push_transport() -> PushTransport | None:
    """The configured transport, or None when VAPID keys are not set."""
    if not VAPID_PRIVATE_KEY:
        return None
    return WebPushTransport(VAPID_PRIVATE_KEY, VAPID_SUBJECT)


def build_payload(clipboard: Clipboard) -> str:
    preview = clipboard.content[:PREVIEW_CHARS]
    file_info = f"📁 {len(clipboard.files)} file(s)" if clipboard.files else ""
    return json.dumps({
        "title": "📋 New Clipboard Received!",
        "body": preview or file_info or "New clipboard",
        "data": {
            "clipboardId": clipboard.id,
            "url": f"/clipboard/{clipboard.id}",
        },
    })


async def notify(
    db: aiosqlite.Connection,
    clipboard_id: str,
    receive_code: str,
    transport: PushTransport | None,
) -> bool:
    """
    Push a notification about clipboard_id to the device registered under
    receive_code. Raises 404 when the device or the clipboard is unknown;
    otherwise returns whether the push service accepted the message.
    A subscription the push service reports as gone is removed.
    """
    found = await get_push_subscription(db, receive_code)
    if found is None:
        raise HTTPException(status_code=404, detail="Device not found with that receive code.")
    device, subscription = found

    clipboard = await get_clipboard(db, clipboard_id, touch=False)
    if clipboard is None:
        raise HTTPException(status_code=404, detail="Clipboard not found.")

    if not subscription or not subscription.get("endpoint"):
        logger.info("Device %s has no push subscription; skipping notification", device.receive_code)
        return False
    if transport is None:
        logger.warning("VAPID keys not configured; skipping notification to %s", device.receive_code)
        return False

    try:
        await transport.send(subscription, build_payload(clipboard))
    except PushDeliveryError as exc:
        logger.warning(
            "Push to %s failed (status %s): %s", device.receive_code, exc.status_code, exc
        )
        if exc.status_code in GONE_STATUSES:
            await clear_push_subscription(db, device.receive_code)
            logger.info("Removed stale push subscription of %s", device.receive_code)
        return False
    except Exception:
        logger.exception("Push to %s failed", device.receive_code)
        return False

    logger.info("Notified %s about clipboard %s", device.receive_code, clipboard.id)
    return True
