"""Creates and updates webhook delivery rows."""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hookline.models import DeliveryStatus, Webhook, WebhookDelivery, utcnow
from hookline.services.retry_policy import RetryPolicy

RESPONSE_BODY_LIMIT = 10_000


class DeliveryNotFoundError(ValueError):
    pass


@dataclass
class AttemptOutcome:
    """Result of one HTTP attempt, as handed to the recorder."""

    success: bool
    attempt_number: int
    status_code: int | None = None
    response_body: str | None = None
    error_message: str | None = None


def truncate(text: str | None, limit: int = RESPONSE_BODY_LIMIT) -> str | None:
    if text is None:
        return None
    return text[:limit]


class DeliveryRecorder:
    """Persistence wrapper for :class:`WebhookDelivery` rows."""

    def __init__(
        self,
        db: AsyncSession,
        policy: RetryPolicy | None = None,
        body_limit: int = RESPONSE_BODY_LIMIT,
    ):
        self.db = db
        self.policy = policy or RetryPolicy.from_settings()
        self.body_limit = body_limit

    async def create_pending(
        self,
        webhook_id: str,
        organization_id: str,
        event_type: str,
        payload: Any,
    ) -> WebhookDelivery:
        delivery = WebhookDelivery(
            webhook_id=webhook_id,
            organization_id=organization_id,
            event_type=event_type,
            payload=json.dumps(payload, default=str),
            status=DeliveryStatus.PENDING.value,
            attempt_count=0,
        )
        self.db.add(delivery)
        await self.db.commit()
        await self.db.refresh(delivery)
        return delivery

    async def get(self, delivery_id: str) -> WebhookDelivery | None:
        result = await self.db.execute(select(WebhookDelivery).where(WebhookDelivery.id == delivery_id))
        return result.scalar_one_or_none()

    async def record_attempt_result(
        self,
        delivery_id: str,
        outcome: AttemptOutcome,
        now: datetime | None = None,
    ) -> WebhookDelivery:
        delivery = await self.get(delivery_id)
        if delivery is None:
            raise DeliveryNotFoundError(f"Delivery {delivery_id} not found")
        if outcome.attempt_number < (delivery.attempt_count or 0):
            raise ValueError(
                f"Attempt {outcome.attempt_number} is older than recorded attempt {delivery.attempt_count}"
            )

        now = now or utcnow()
        delivery.attempt_count = outcome.attempt_number
        delivery.status_code = outcome.status_code
        delivery.response_body = truncate(outcome.response_body, self.body_limit)
        delivery.error_message = truncate(outcome.error_message, self.body_limit)

        if outcome.success:
            delivery.status = DeliveryStatus.SUCCESS.value
            delivery.delivered_at = now
            delivery.next_retry_at = None
        else:
            delivery.status = DeliveryStatus.FAILED.value
            # None once attempts are exhausted: terminal failure
            delivery.next_retry_at = self.policy.next_retry_at(outcome.attempt_number, now)

        await self.db.commit()
        await self.db.refresh(delivery)
        return delivery

    async def list_for_webhook(self, webhook_id: str, limit: int = 50) -> list[WebhookDelivery]:
        """Delivery history, newest first."""
        result = await self.db.execute(
            select(WebhookDelivery)
            .where(WebhookDelivery.webhook_id == webhook_id)
            .order_by(WebhookDelivery.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_due_retries(self, now: datetime | None = None, limit: int = 100) -> list[WebhookDelivery]:
        """Failed deliveries whose retry time has passed, for active webhooks only."""
        now = now or utcnow()
        result = await self.db.execute(
            select(WebhookDelivery)
            .join(Webhook, Webhook.id == WebhookDelivery.webhook_id)
            .where(WebhookDelivery.status == DeliveryStatus.FAILED.value)
            .where(WebhookDelivery.next_retry_at.is_not(None))
            .where(WebhookDelivery.next_retry_at <= now)
            .where(Webhook.is_active.is_(True))
            .order_by(WebhookDelivery.next_retry_at)
            .limit(limit)
        )
        return list(result.scalars().all())
