"""Webhook registry — tenant-scoped CRUD over webhook subscriptions."""

import json
import logging

from pydantic import ValidationError
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hookline.models import Webhook, WebhookDelivery, utcnow
from hookline.schemas import WebhookCreate, WebhookUpdate
from hookline.services.signer import generate_secret

logger = logging.getLogger(__name__)


class WebhookValidationError(ValueError):
    """Rejected webhook configuration; nothing was persisted."""


def _validated(schema, data):
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        messages = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}" for err in exc.errors()
        )
        raise WebhookValidationError(messages) from exc


class WebhookRegistry:
    """Persistence wrapper for :class:`Webhook` rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_for_organization(self, organization_id: str) -> list[Webhook]:
        result = await self.db.execute(
            select(Webhook)
            .where(Webhook.organization_id == organization_id)
            .order_by(Webhook.created_at.desc())
        )
        return list(result.scalars().all())

    async def get(self, webhook_id: str) -> Webhook | None:
        result = await self.db.execute(select(Webhook).where(Webhook.id == webhook_id))
        return result.scalar_one_or_none()

    async def create(self, organization_id: str, data: WebhookCreate | dict) -> Webhook:
        data = _validated(WebhookCreate, data)
        secret = data.secret
        if secret is None and data.generate_secret:
            secret = generate_secret()

        wh = Webhook(
            organization_id=organization_id,
            name=data.name,
            url=data.url,
            events=json.dumps(data.events),
            secret=secret,
            headers=json.dumps(data.headers),
        )
        self.db.add(wh)
        await self.db.commit()
        await self.db.refresh(wh)
        logger.info(f"Webhook {wh.id} created for org {organization_id}: events={data.events}")
        return wh

    async def update(self, webhook_id: str, data: WebhookUpdate | dict) -> Webhook | None:
        data = _validated(WebhookUpdate, data)
        wh = await self.get(webhook_id)
        if not wh:
            return None

        updates = data.model_dump(exclude_unset=True)
        if "name" in updates and updates["name"] is None:
            raise WebhookValidationError("name: cannot be cleared")
        if "url" in updates and updates["url"] is None:
            raise WebhookValidationError("url: cannot be cleared")
        if "events" in updates:
            if updates["events"] is None:
                raise WebhookValidationError("events: at least one event type is required")
            updates["events"] = json.dumps(updates["events"])
        if "headers" in updates:
            updates["headers"] = json.dumps(updates["headers"] or {})
        if "is_active" in updates and updates["is_active"] is None:
            del updates["is_active"]

        for key, val in updates.items():
            setattr(wh, key, val)
        wh.updated_at = utcnow()

        await self.db.commit()
        await self.db.refresh(wh)
        return wh

    async def delete(self, webhook_id: str) -> bool:
        """Delete a webhook and its delivery history. Returns False if it did not exist."""
        wh = await self.get(webhook_id)
        if not wh:
            return False
        # Explicit so the cascade also holds on SQLite, which does not enforce FKs by default
        await self.db.execute(delete(WebhookDelivery).where(WebhookDelivery.webhook_id == webhook_id))
        await self.db.delete(wh)
        await self.db.commit()
        logger.info(f"Webhook {webhook_id} deleted")
        return True

    async def find_active_subscribers(self, organization_id: str, event_type: str) -> list[Webhook]:
        """Active webhooks of the tenant whose event set contains ``event_type``."""
        result = await self.db.execute(
            select(Webhook)
            .where(Webhook.organization_id == organization_id)
            .where(Webhook.is_active.is_(True))
            .order_by(Webhook.created_at)
        )
        # events is JSON text for portability, so membership is checked here
        return [wh for wh in result.scalars().all() if wh.subscribes_to(event_type)]

    async def record_outcome(self, webhook_id: str, success: bool) -> None:
        """Reset the failure counter on success, increment it on failure.

        Each is a single UPDATE, so concurrent attempts cannot lose an increment.
        """
        stmt = update(Webhook).where(Webhook.id == webhook_id)
        if success:
            stmt = stmt.values(failure_count=0, last_triggered_at=utcnow())
        else:
            stmt = stmt.values(failure_count=Webhook.failure_count + 1)
        await self.db.execute(stmt)
        await self.db.commit()
