"""Webhook subscription and delivery models."""

from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from hookline.database import Base
from hookline.models import load_json, new_uuid, utcnow


class DeliveryStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class Webhook(Base):
    """A tenant's subscription of one HTTP endpoint to a set of event types."""

    __tablename__ = "webhooks"

    id = Column(String(36), primary_key=True, default=new_uuid)
    organization_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    url = Column(String(2048), nullable=False)
    events = Column(Text, default="[]")  # JSON list of event types
    secret = Column(String(200), nullable=True)  # HMAC signing secret, None = unsigned
    headers = Column(Text, default="{}")  # JSON map of extra request headers
    is_active = Column(Boolean, default=True)
    last_triggered_at = Column(DateTime(timezone=True), nullable=True)
    failure_count = Column(Integer, default=0)  # consecutive failed attempts
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    @property
    def event_list(self) -> list[str]:
        events = load_json(self.events, [])
        return events if isinstance(events, list) else []

    @property
    def header_map(self) -> dict[str, str]:
        headers = load_json(self.headers, {})
        return headers if isinstance(headers, dict) else {}

    def subscribes_to(self, event_type: str) -> bool:
        return event_type in self.event_list

    def __repr__(self):
        return f"<Webhook(id={self.id}, org={self.organization_id}, url={self.url})>"


class WebhookDelivery(Base):
    """One event destined for one webhook, possibly spanning several attempts."""

    __tablename__ = "webhook_deliveries"

    id = Column(String(36), primary_key=True, default=new_uuid)
    webhook_id = Column(
        String(36),
        ForeignKey("webhooks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    organization_id = Column(String(36), nullable=False, index=True)
    event_type = Column(String(100), nullable=False)
    payload = Column(Text, default="null")  # caller-supplied JSON, stored verbatim
    status = Column(String(20), default=DeliveryStatus.PENDING.value, index=True)
    status_code = Column(Integer, nullable=True)
    response_body = Column(Text, nullable=True)
    error_message = Column(Text, nullable=True)
    attempt_count = Column(Integer, default=0)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    next_retry_at = Column(DateTime(timezone=True), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    @property
    def payload_data(self):
        return load_json(self.payload, None)

    @property
    def is_terminal(self) -> bool:
        """Failed with no retry scheduled."""
        return self.status == DeliveryStatus.FAILED.value and self.next_retry_at is None

    def __repr__(self):
        return f"<WebhookDelivery(id={self.id}, webhook={self.webhook_id}, status={self.status})>"
