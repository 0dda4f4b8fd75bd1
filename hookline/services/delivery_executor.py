"""Delivery executor — one signed HTTP attempt per call, outcome persisted via the recorder."""

import asyncio
import json
import logging
import time
from datetime import datetime
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from hookline.config import Settings, get_settings
from hookline.models import Webhook, WebhookDelivery, utcnow
from hookline.schemas import SIGNATURE_HEADER
from hookline.services.delivery_recorder import AttemptOutcome, DeliveryNotFoundError, DeliveryRecorder
from hookline.services.retry_policy import RetryPolicy
from hookline.services.signer import signature_header
from hookline.services.webhook_registry import WebhookRegistry

logger = logging.getLogger(__name__)

EVENT_HEADER = "X-Webhook-Event"
DELIVERY_HEADER = "X-Webhook-Delivery"


class WebhookNotFoundError(ValueError):
    pass


def build_envelope(event_type: str, payload: Any, timestamp: datetime | None = None) -> dict:
    return {
        "event": event_type,
        "timestamp": (timestamp or utcnow()).isoformat(),
        "data": payload,
    }


def serialize_envelope(envelope: dict) -> str:
    """Stable key order and compact separators, so signer and receiver see the same bytes."""
    return json.dumps(envelope, sort_keys=True, separators=(",", ":"), default=str)


def build_headers(
    webhook: Webhook,
    delivery_id: str,
    event_type: str,
    body: str,
    user_agent: str | None = None,
) -> httpx.Headers:
    headers = httpx.Headers({
        "Content-Type": "application/json",
        EVENT_HEADER: event_type,
        DELIVERY_HEADER: delivery_id,
    })
    if user_agent:
        headers["User-Agent"] = user_agent

    # Owner headers may override the defaults above, never the signature
    for name, value in webhook.header_map.items():
        if name.strip().lower() == SIGNATURE_HEADER.lower():
            continue
        headers[name] = str(value)

    signature = signature_header(webhook.secret, body)
    if signature:
        headers[SIGNATURE_HEADER] = signature
    return headers


def _describe_error(exc: BaseException) -> str:
    message = str(exc)
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__


class DeliveryExecutor:
    """Performs exactly one delivery attempt; never sleeps or loops between retries."""

    def __init__(
        self,
        db: AsyncSession,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
        policy: RetryPolicy | None = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.http_client = http_client
        self.timeout = self.settings.webhook_timeout_seconds
        self.registry = WebhookRegistry(db)
        self.recorder = DeliveryRecorder(
            db,
            policy=policy or RetryPolicy.from_settings(self.settings),
            body_limit=self.settings.webhook_response_body_limit,
        )

    async def attempt(self, delivery: WebhookDelivery, webhook: Webhook) -> WebhookDelivery:
        attempt_number = (delivery.attempt_count or 0) + 1
        body = serialize_envelope(build_envelope(delivery.event_type, delivery.payload_data))
        headers = build_headers(
            webhook, delivery.id, delivery.event_type, body, self.settings.webhook_user_agent
        )

        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._post(webhook.url, body, headers), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            outcome = AttemptOutcome(
                success=False,
                attempt_number=attempt_number,
                error_message=f"Timed out after {self.timeout:g}s",
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            outcome = AttemptOutcome(
                success=False,
                attempt_number=attempt_number,
                error_message=_describe_error(exc),
            )
        else:
            outcome = AttemptOutcome(
                success=response.is_success,
                attempt_number=attempt_number,
                status_code=response.status_code,
                response_body=response.text,
            )
        duration_ms = int((time.monotonic() - start) * 1000)

        updated = await self.recorder.record_attempt_result(delivery.id, outcome)
        await self.registry.record_outcome(webhook.id, outcome.success)

        if outcome.success:
            logger.info(
                f"Webhook delivery {delivery.id} to {webhook.url} succeeded "
                f"(attempt {attempt_number}, HTTP {outcome.status_code}, {duration_ms}ms)"
            )
        else:
            reason = f"HTTP {outcome.status_code}" if outcome.status_code else outcome.error_message
            logger.warning(
                f"Webhook delivery {delivery.id} to {webhook.url} failed "
                f"(attempt {attempt_number}, {reason}, {duration_ms}ms)"
            )
            if updated.next_retry_at is None:
                logger.info(f"Webhook delivery {delivery.id} exhausted after {attempt_number} attempts")
        return updated

    async def _post(self, url: str, body: str, headers: httpx.Headers) -> httpx.Response:
        if self.http_client is not None:
            return await self.http_client.post(url, content=body, headers=headers, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(url, content=body, headers=headers)

    async def retry_delivery(self, delivery_id: str) -> WebhookDelivery:
        """Re-attempt a stored delivery with its original event type and payload.

        Ignores ``next_retry_at``: used for operator force-retries and by the sweeper.
        """
        delivery = await self.recorder.get(delivery_id)
        if delivery is None:
            raise DeliveryNotFoundError(f"Delivery {delivery_id} not found")
        webhook = await self.registry.get(delivery.webhook_id)
        if webhook is None:
            raise WebhookNotFoundError(f"Webhook {delivery.webhook_id} not found")
        return await self.attempt(delivery, webhook)
