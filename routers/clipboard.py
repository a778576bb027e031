"""
Online Clipboard — Clipboard routes
  POST   /api/clipboard                      create a clipboard
  GET    /api/clipboard?id=... | ?all=true   fetch one, or list recent (optionally public only)
  GET    /api/clipboard/{id}                 fetch one
  PUT    /api/clipboard/{id}                 replace content
  DELETE /api/clipboard/{id}                 delete with all files
  POST   /api/clipboard/{id}/upload          attach a file (multipart "file")
  GET    /api/clipboard/{id}/file/{filename} download a file
"""
from urllib.parse import quote

from fastapi import APIRouter, File, HTTPException, Query, Request, Response, UploadFile

from clipboards import (
    add_file_to_clipboard,
    check_file_size,
    create_clipboard,
    delete_clipboard,
    get_clipboard,
    get_file,
    list_clipboards,
    purge_all_expired,
    update_clipboard,
)
from config import LIST_DEFAULT_LIMIT, LIST_MAX_LIMIT, MAX_FILE_BYTES
from database import get_db
from limiter import limiter
from models import (
    Clipboard,
    ClipboardCreate,
    ClipboardFile,
    ClipboardListResponse,
    ClipboardUpdate,
    StatusResponse,
)

router = APIRouter(prefix="/api/clipboard", tags=["Clipboard"])

NOT_FOUND = "Clipboard not found (it may have expired)."


def content_disposition(original_name: str) -> str:
    """attachment header with an ASCII fallback plus the RFC 5987 UTF-8 name."""
    fallback = original_name.encode("ascii", "replace").decode().replace('"', "'")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(original_name)}"


@router.post("", response_model=Clipboard, summary="Create clipboard")
@limiter.limit("30/minute")
async def create(request: Request, data: ClipboardCreate):
    """
    Create a clipboard and return it with its 4-digit id.

    - **content**: text to share, may be empty
    - **isPublic**: list it in the public feed (must be a JSON boolean)
    - **sentToReceiveCode** *(optional)*: deliver it to a device's inbox

    Clipboards expire 24 hours after creation.
    """
    db = await get_db()
    try:
        await purge_all_expired(db)
        return await create_clipboard(
            db,
            content=data.content,
            is_public=data.is_public,
            sent_to_receive_code=data.sent_to_receive_code,
        )
    finally:
        await db.close()


@router.get("", response_model=Clipboard | ClipboardListResponse, summary="Fetch or list clipboards")
@limiter.limit("60/minute")
async def fetch_or_list(
    request: Request,
    id: str | None = None,
    list_all: bool = Query(default=False, alias="all"),
    public: bool = False,
    limit: int = Query(default=LIST_DEFAULT_LIMIT, ge=1, le=LIST_MAX_LIMIT),
):
    """
    With **all=true**, list recent clipboards newest first (**public=true**
    keeps only public ones). Otherwise fetch the clipboard given by **id**.
    """
    if not list_all and not id:
        raise HTTPException(status_code=400, detail="Clipboard ID is required.")

    db = await get_db()
    try:
        await purge_all_expired(db)
        if list_all:
            clipboards = await list_clipboards(db, limit=limit, public_only=public)
            return ClipboardListResponse(count=len(clipboards), clipboards=clipboards)
        clipboard = await get_clipboard(db, id)
    finally:
        await db.close()

    if clipboard is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return clipboard


@router.get("/{clipboard_id}", response_model=Clipboard, summary="Fetch clipboard")
@limiter.limit("60/minute")
async def fetch(request: Request, clipboard_id: str):
    """Returns **404** whether the clipboard never existed or has expired."""
    db = await get_db()
    try:
        await purge_all_expired(db)
        clipboard = await get_clipboard(db, clipboard_id)
    finally:
        await db.close()

    if clipboard is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return clipboard


@router.put("/{clipboard_id}", response_model=StatusResponse, summary="Update clipboard content")
@limiter.limit("60/minute")
async def update(request: Request, clipboard_id: str, data: ClipboardUpdate):
    """Replace the text content. Files are untouched; expiry is not extended."""
    db = await get_db()
    try:
        updated = await update_clipboard(db, clipboard_id, data.content)
    finally:
        await db.close()

    if not updated:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return StatusResponse(status="ok", message="Clipboard updated successfully.")


@router.delete("/{clipboard_id}", response_model=StatusResponse, summary="Delete clipboard")
@limiter.limit("30/minute")
async def delete(request: Request, clipboard_id: str):
    """Delete a clipboard together with all of its files."""
    db = await get_db()
    try:
        await purge_all_expired(db)
        deleted = await delete_clipboard(db, clipboard_id)
    finally:
        await db.close()

    if not deleted:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return StatusResponse(status="ok", message="Clipboard deleted successfully.")


@router.post("/{clipboard_id}/upload", response_model=ClipboardFile, summary="Upload file")
@limiter.limit("30/minute")
async def upload(request: Request, clipboard_id: str, file: UploadFile = File(...)):
    """
    Attach one file (max 50MB) to a clipboard. Upload several files with
    several requests; each one succeeds or fails on its own.
    """
    if file.size is not None:
        check_file_size(file.size)
    # One byte past the limit is enough to know it is too large.
    data = await file.read(MAX_FILE_BYTES + 1)
    check_file_size(len(data))

    db = await get_db()
    try:
        await purge_all_expired(db)
        entry = await add_file_to_clipboard(
            db,
            clipboard_id,
            original_name=file.filename or "file",
            data=data,
            mime_type=file.content_type,
        )
    finally:
        await db.close()

    if entry is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND)
    return entry


@router.get("/{clipboard_id}/file/{filename}", summary="Download file",
            responses={200: {"content": {"application/octet-stream": {}}}})
@limiter.limit("60/minute")
async def download(request: Request, clipboard_id: str, filename: str):
    """Download a file by its stored filename, under its original name."""
    db = await get_db()
    try:
        await purge_all_expired(db)
        found = await get_file(db, clipboard_id, filename)
    finally:
        await db.close()

    if found is None:
        raise HTTPException(status_code=404, detail="File not found.")

    data, mime_type, original_name = found
    return Response(
        content=data,
        media_type=mime_type,
        headers={"Content-Disposition": content_disposition(original_name)},
    )
