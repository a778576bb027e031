"""
Online Clipboard — Device routes
  GET    /api/devices?receiveCode=...        look up a device
  POST   /api/devices                        register a receive code
  PUT    /api/devices                        change name / push subscription
  DELETE /api/devices?receiveCode=...        unregister
  GET    /api/devices/inbox?receiveCode=...  clipboards sent to a code
  POST   /api/devices/send                   notify a device about a clipboard
  GET    /api/devices/vapid-public-key       key for PushManager.subscribe()
"""
from fastapi import APIRouter, HTTPException, Query, Request

from clipboards import list_inbox, purge_all_expired
from config import LIST_DEFAULT_LIMIT, LIST_MAX_LIMIT, VAPID_PUBLIC_KEY
from database import get_db
from devices import get_device, register_device, unregister_device, update_device
from limiter import limiter
from models import (
    ClipboardListResponse,
    Device,
    DeviceRegister,
    DeviceUpdate,
    PublicKeyResponse,
    SendRequest,
    SendResponse,
    StatusResponse,
)
from notifier import get_push_transport, notify

router = APIRouter(prefix="/api/devices", tags=["Devices"])


def _receive_code(value: str) -> str:
    if not value.strip():
        raise HTTPException(status_code=400, detail="Receive code is required.")
    return value.strip()


@router.get("", response_model=Device, summary="Look up device")
@limiter.limit("60/minute")
async def lookup(request: Request, receive_code: str = Query(alias="receiveCode")):
    db = await get_db()
    try:
        device = await get_device(db, _receive_code(receive_code))
    finally:
        await db.close()

    if device is None:
        raise HTTPException(status_code=404, detail="Device not found.")
    return device


@router.post("", response_model=Device, summary="Register device")
@limiter.limit("10/minute")
async def register(request: Request, data: DeviceRegister):
    """
    Claim a receive code for this device. Codes are 3–30 characters of
    `a-z`, `0-9`, `-` and `_` (other characters are dropped, case is
    ignored). Returns **409** if someone already holds the code.
    """
    db = await get_db()
    try:
        return await register_device(db, data.receive_code, data.device_name, data.push_subscription)
    finally:
        await db.close()


@router.put("", response_model=Device, summary="Update device")
@limiter.limit("30/minute")
async def update(request: Request, data: DeviceUpdate):
    """Only the fields present in the body are changed."""
    db = await get_db()
    try:
        device = await update_device(
            db, _receive_code(data.receive_code), data.device_name, data.push_subscription
        )
    finally:
        await db.close()

    if device is None:
        raise HTTPException(status_code=404, detail="Device not found.")
    return device


@router.delete("", response_model=StatusResponse, summary="Unregister device")
@limiter.limit("10/minute")
async def unregister(request: Request, receive_code: str = Query(alias="receiveCode")):
    """Succeeds whether or not the device existed."""
    db = await get_db()
    try:
        await unregister_device(db, _receive_code(receive_code))
    finally:
        await db.close()
    return StatusResponse(status="ok", message="Device unregistered.")


@router.get("/inbox", response_model=ClipboardListResponse, summary="Device inbox")
@limiter.limit("60/minute")
async def inbox(
    request: Request,
    receive_code: str = Query(alias="receiveCode"),
    limit: int = Query(default=LIST_DEFAULT_LIMIT, ge=1, le=LIST_MAX_LIMIT),
):
    """Live clipboards sent to this receive code, newest first."""
    db = await get_db()
    try:
        await purge_all_expired(db)
        clipboards = await list_inbox(db, _receive_code(receive_code), limit)
    finally:
        await db.close()
    return ClipboardListResponse(count=len(clipboards), clipboards=clipboards)


@router.post("/send", response_model=SendResponse, summary="Notify device")
@limiter.limit("20/minute")
async def send(request: Request, data: SendRequest):
    """
    Push a notification about a clipboard to the device holding
    **receiveCode**. `delivered` is false when the device has no push
    subscription or the push service refused it; the clipboard is still
    in the device's inbox either way.
    """
    db = await get_db()
    try:
        delivered = await notify(db, data.clipboard_id, data.receive_code, get_push_transport())
    finally:
        await db.close()

    return SendResponse(
        clipboard_id=data.clipboard_id,
        delivered=delivered,
        message=(
            "Clipboard sent and notification delivered!"
            if delivered
            else "Clipboard sent! Open the app on your device to see it."
        ),
    )


@router.get("/vapid-public-key", response_model=PublicKeyResponse, summary="VAPID public key")
async def vapid_public_key():
    if not VAPID_PUBLIC_KEY:
        raise HTTPException(status_code=404, detail="Push notifications are not configured.")
    return PublicKeyResponse(public_key=VAPID_PUBLIC_KEY)
