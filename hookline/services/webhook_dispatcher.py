"""Webhook dispatch service — fans an event out to every subscribed endpoint of a tenant."""

import asyncio
import logging
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hookline.config import Settings, get_settings
from hookline.database import async_session
from hookline.models import Webhook, WebhookDelivery
from hookline.services.delivery_executor import DeliveryExecutor
from hookline.services.delivery_recorder import DeliveryRecorder
from hookline.services.webhook_registry import WebhookRegistry

logger = logging.getLogger(__name__)


class WebhookDispatcher:
    """Entry point for event producers.

    Each webhook gets its own task and its own database session, so one slow or
    failing endpoint never blocks or corrupts delivery to its siblings.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = async_session,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ):
        self.session_factory = session_factory
        self.http_client = http_client
        self.settings = settings or get_settings()

    async def trigger(self, organization_id: str, event_type: str, payload: Any) -> list[WebhookDelivery]:
        """Deliver ``event_type`` to all active subscribers of the tenant.

        Only the first attempt runs here; retries belong to the sweeper. Never
        raises for delivery-level failures. Returns the deliveries that completed
        their first attempt (mainly for callers that want to inspect them).
        """
        async with self.session_factory() as db:
            webhooks = await WebhookRegistry(db).find_active_subscribers(organization_id, event_type)

        if not webhooks:
            logger.debug(f"No webhooks subscribed to {event_type} for org {organization_id}")
            return []

        logger.info(f"Dispatching {event_type} for org {organization_id} to {len(webhooks)} webhook(s)")

        semaphore = asyncio.Semaphore(max(self.settings.webhook_dispatch_concurrency, 1))

        async def _bounded(webhook: Webhook) -> WebhookDelivery:
            async with semaphore:
                return await self.deliver(webhook, event_type, payload)

        results = await asyncio.gather(*(_bounded(wh) for wh in webhooks), return_exceptions=True)

        deliveries = []
        for webhook, result in zip(webhooks, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error(
                    f"Webhook delivery failed for {webhook.id}: {result!r}",
                    exc_info=(type(result), result, result.__traceback__),
                )
            else:
                deliveries.append(result)
        return deliveries

    async def deliver(self, webhook: Webhook, event_type: str, payload: Any) -> WebhookDelivery:
        """Create the pending delivery row for one webhook and make the first attempt."""
        async with self.session_factory() as db:
            delivery = await DeliveryRecorder(db).create_pending(
                webhook_id=webhook.id,
                organization_id=webhook.organization_id,
                event_type=event_type,
                payload=payload,
            )
            executor = DeliveryExecutor(db, http_client=self.http_client, settings=self.settings)
            return await executor.attempt(delivery, webhook)
