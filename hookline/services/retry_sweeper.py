"""Periodic re-attempt of deliveries whose scheduled retry time has passed."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hookline.config import Settings, get_settings
from hookline.database import async_session
from hookline.models import DeliveryStatus, utcnow
from hookline.services.delivery_executor import DeliveryExecutor
from hookline.services.delivery_recorder import DeliveryRecorder

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    due: int = 0
    succeeded: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    errored: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "due": self.due,
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "errored": len(self.errored),
        }


async def sweep_due_retries(
    session_factory: async_sessionmaker[AsyncSession] = async_session,
    http_client: httpx.AsyncClient | None = None,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> SweepResult:
    """Retry every due delivery once.

    Assumes a single sweeper instance runs at a time; two concurrent sweeps
    could pick up the same delivery.
    """
    settings = settings or get_settings()
    now = now or utcnow()

    async with session_factory() as db:
        due = await DeliveryRecorder(db).list_due_retries(now=now, limit=settings.webhook_sweep_batch_size)
        due_ids = [d.id for d in due]

    result = SweepResult(due=len(due_ids))
    if not due_ids:
        return result

    semaphore = asyncio.Semaphore(max(settings.webhook_dispatch_concurrency, 1))

    async def _retry(delivery_id: str):
        async with semaphore:
            async with session_factory() as db:
                executor = DeliveryExecutor(db, http_client=http_client, settings=settings)
                return await executor.retry_delivery(delivery_id)

    outcomes = await asyncio.gather(*(_retry(i) for i in due_ids), return_exceptions=True)
    for delivery_id, outcome in zip(due_ids, outcomes):
        if isinstance(outcome, Exception):
            logger.error(f"Retry of delivery {delivery_id} raised: {outcome!r}")
            result.errored.append(delivery_id)
        elif isinstance(outcome, BaseException):
            raise outcome
        elif outcome.status == DeliveryStatus.SUCCESS.value:
            result.succeeded.append(delivery_id)
        else:
            result.failed.append(delivery_id)

    logger.info(f"Webhook retry sweep: {result.to_dict()}")
    return result
