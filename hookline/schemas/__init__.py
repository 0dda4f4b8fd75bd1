"""Pydantic schemas for API request/response and registry input validation."""

from datetime import datetime
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, field_validator

from hookline.events import known_event_types
from hookline.models import as_utc

# Engine-owned header that webhook owners can never set themselves
SIGNATURE_HEADER = "X-Webhook-Signature"


def _check_url(url: str) -> str:
    url = url.strip()
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https"):
        raise ValueError("URL scheme must be http or https")
    if not parts.hostname:
        raise ValueError("URL must include a host")
    return url


def _check_events(events: list[str]) -> list[str]:
    if not events:
        raise ValueError("At least one event type is required")
    valid = known_event_types()
    for evt in events:
        if evt not in valid:
            raise ValueError(f"Invalid event type: {evt}")
    # Keep first occurrence order, drop duplicates
    return list(dict.fromkeys(events))


def _check_headers(headers: dict[str, str]) -> dict[str, str]:
    for name in headers:
        if not name.strip():
            raise ValueError("Header names must not be empty")
        if name.strip().lower() == SIGNATURE_HEADER.lower():
            raise ValueError(f"{SIGNATURE_HEADER} is reserved")
    return headers


def _clean_secret(secret: str | None) -> str | None:
    if secret is None or not secret.strip():
        return None
    return secret


# ── Webhook ──────────────────────────────────────────────
class WebhookCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., max_length=2048)
    events: list[str]
    secret: str | None = Field(None, max_length=200)
    headers: dict[str, str] = Field(default_factory=dict)
    generate_secret: bool = False

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        return _check_url(v)

    @field_validator("events")
    @classmethod
    def validate_events(cls, v):
        return _check_events(v)

    @field_validator("headers")
    @classmethod
    def validate_headers(cls, v):
        return _check_headers(v)

    @field_validator("secret")
    @classmethod
    def validate_secret(cls, v):
        return _clean_secret(v)


class WebhookUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    url: str | None = Field(None, max_length=2048)
    events: list[str] | None = None
    secret: str | None = Field(None, max_length=200)
    headers: dict[str, str] | None = None
    is_active: bool | None = None

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        return v if v is None else _check_url(v)

    @field_validator("events")
    @classmethod
    def validate_events(cls, v):
        return v if v is None else _check_events(v)

    @field_validator("headers")
    @classmethod
    def validate_headers(cls, v):
        return v if v is None else _check_headers(v)

    @field_validator("secret")
    @classmethod
    def validate_secret(cls, v):
        return _clean_secret(v)


class WebhookOut(BaseModel):
    id: str
    organization_id: str
    name: str
    url: str
    events: list[str]
    headers: dict[str, str]
    has_secret: bool
    is_active: bool
    failure_count: int
    last_triggered_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, wh):
        return cls(
            id=wh.id,
            organization_id=wh.organization_id,
            name=wh.name,
            url=wh.url,
            events=wh.event_list,
            headers=wh.header_map,
            has_secret=bool(wh.secret),
            is_active=bool(wh.is_active),
            failure_count=wh.failure_count or 0,
            last_triggered_at=as_utc(wh.last_triggered_at),
            created_at=as_utc(wh.created_at),
            updated_at=as_utc(wh.updated_at),
        )


# ── Delivery ─────────────────────────────────────────────
class DeliveryOut(BaseModel):
    id: str
    webhook_id: str
    organization_id: str
    event_type: str
    payload: Any = None
    status: str
    status_code: int | None = None
    response_body: str | None = None
    error_message: str | None = None
    attempt_count: int
    delivered_at: datetime | None = None
    next_retry_at: datetime | None = None
    created_at: datetime

    @classmethod
    def from_model(cls, d):
        return cls(
            id=d.id,
            webhook_id=d.webhook_id,
            organization_id=d.organization_id,
            event_type=d.event_type,
            payload=d.payload_data,
            status=d.status,
            status_code=d.status_code,
            response_body=d.response_body,
            error_message=d.error_message,
            attempt_count=d.attempt_count or 0,
            delivered_at=as_utc(d.delivered_at),
            next_retry_at=as_utc(d.next_retry_at),
            created_at=as_utc(d.created_at),
        )


# ── Events ───────────────────────────────────────────────
class EventTypeOut(BaseModel):
    value: str
    label: str


class TriggerRequest(BaseModel):
    event_type: str = Field(..., min_length=1, max_length=100)
    payload: Any = Field(default_factory=dict)


class TriggerAccepted(BaseModel):
    event_type: str
    accepted: bool = True


class PingRequest(BaseModel):
    payload: dict = Field(default_factory=lambda: {"message": "Test webhook delivery"})


class SecretOut(BaseModel):
    secret: str


__all__ = [
    "SIGNATURE_HEADER",
    "DeliveryOut",
    "EventTypeOut",
    "SecretOut",
    "PingRequest",
    "TriggerAccepted",
    "TriggerRequest",
    "WebhookCreate",
    "WebhookOut",
    "WebhookUpdate",
]
