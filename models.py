"""
Online Clipboard — Pydantic models (request bodies + response shapes)
JSON field names are camelCase; Python attributes stay snake_case.
"""
from typing import List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictBool, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Clipboards ────────────────────────────────────────────────────────────────

class ClipboardFile(CamelModel):
    filename: str
    original_name: str
    size: int
    upload_time: str
    mime_type: str
    blob_handle: str = Field(default="", exclude=True)  # internal, never serialized


class Clipboard(CamelModel):
    id: str
    content: str
    files: List[ClipboardFile]
    is_public: bool
    sent_to_receive_code: str | None = None
    created_at: str
    last_accessed: str
    expires_at: str


class ClipboardCreate(CamelModel):
    content: str = ""
    is_public: StrictBool = False
    sent_to_receive_code: str | None = None

    @field_validator("sent_to_receive_code")
    @classmethod
    def blank_code_is_none(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v


class ClipboardUpdate(CamelModel):
    content: str


class ClipboardListResponse(CamelModel):
    count: int
    clipboards: List[Clipboard]


class StatusResponse(BaseModel):
    status: str
    message: str


# ── Devices ───────────────────────────────────────────────────────────────────

class PushKeys(BaseModel):
    p256dh: str
    auth: str


class PushSubscription(CamelModel):
    endpoint: str
    keys: PushKeys
    expiration_time: int | None = None

    @field_validator("endpoint")
    @classmethod
    def endpoint_is_url(cls, v: str) -> str:
        if not v.startswith("https://"):
            raise ValueError("Push endpoint must be an https:// URL")
        return v


class DeviceRegister(CamelModel):
    receive_code: str
    device_name: str | None = None
    push_subscription: PushSubscription | None = None


class DeviceUpdate(CamelModel):
    receive_code: str
    device_name: str | None = None
    push_subscription: PushSubscription | None = None


class Device(CamelModel):
    receive_code: str
    device_name: str
    has_push: bool
    last_seen: str
    created_at: str


class SendRequest(CamelModel):
    clipboard_id: str = Field(validation_alias=AliasChoices("recordId", "clipboardId", "clipboard_id"))
    receive_code: str

    @field_validator("clipboard_id", "receive_code")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Value cannot be empty")
        return v.strip()


class SendResponse(CamelModel):
    clipboard_id: str
    delivered: bool
    message: str


class PublicKeyResponse(CamelModel):
    public_key: str
