"""SQLAlchemy models — portable across SQLite and PostgreSQL."""

import json
import uuid
from datetime import datetime, timezone


def utcnow():
    return datetime.now(timezone.utc)


def new_uuid():
    return str(uuid.uuid4())


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def load_json(raw, default):
    """Decode a JSON text column, falling back to ``default`` on bad data."""
    if raw is None:
        return default
    if not isinstance(raw, str):
        return raw
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return default


from hookline.models.webhook import DeliveryStatus, Webhook, WebhookDelivery  # noqa: E402

__all__ = [
    "DeliveryStatus",
    "Webhook",
    "WebhookDelivery",
    "as_utc",
    "load_json",
    "new_uuid",
    "utcnow",
]
