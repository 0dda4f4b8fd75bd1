"""Webhook retry tasks."""

import asyncio
import logging

from hookline.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="hookline.sweep_webhook_retries", ignore_result=False)
def sweep_webhook_retries() -> dict:
    """Retry every delivery whose ``next_retry_at`` has elapsed."""
    return asyncio.run(_sweep())


@celery_app.task(name="hookline.retry_webhook_delivery")
def retry_webhook_delivery(delivery_id: str) -> dict:
    """Force one delivery to be re-attempted now."""
    return asyncio.run(_retry(delivery_id))


async def _sweep() -> dict:
    from hookline.database import engine
    from hookline.services.retry_sweeper import sweep_due_retries

    try:
        result = await sweep_due_retries()
    finally:
        # asyncio.run gives each task a fresh loop; pooled connections must not outlive it
        await engine.dispose()
    return result.to_dict()


async def _retry(delivery_id: str) -> dict:
    from hookline.database import async_session, engine
    from hookline.services.delivery_executor import DeliveryExecutor

    try:
        async with async_session() as db:
            delivery = await DeliveryExecutor(db).retry_delivery(delivery_id)
            result = {
                "id": delivery.id,
                "status": delivery.status,
                "attempt_count": delivery.attempt_count,
            }
    finally:
        await engine.dispose()
    logger.info(f"Manual retry of delivery {delivery_id}: {result['status']}")
    return result
