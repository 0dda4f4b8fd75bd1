"""Webhook management API."""

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hookline.api.deps import get_current_org, get_http_client
from hookline.database import get_db
from hookline.events import TEST_EVENT, available_events
from hookline.models import Webhook
from hookline.schemas import (
    DeliveryOut,
    EventTypeOut,
    PingRequest,
    SecretOut,
    WebhookCreate,
    WebhookOut,
    WebhookUpdate,
)
from hookline.services.delivery_executor import DeliveryExecutor
from hookline.services.delivery_recorder import DeliveryRecorder
from hookline.services.signer import generate_secret
from hookline.services.webhook_registry import WebhookRegistry, WebhookValidationError

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


async def _owned_webhook(webhook_id: str, org_id: str, db: AsyncSession) -> Webhook:
    wh = await WebhookRegistry(db).get(webhook_id)
    # Another tenant's webhook is indistinguishable from a missing one
    if not wh or wh.organization_id != org_id:
        raise HTTPException(404, "Webhook not found")
    return wh


# ── Endpoints ────────────────────────────────────────────
@router.get("/events", response_model=list[EventTypeOut])
async def list_event_types():
    """List all event types a webhook can subscribe to."""
    return available_events()


@router.post("/secret", response_model=SecretOut)
async def new_secret(org_id: str = Depends(get_current_org)):
    """Generate a signing secret the caller can store on a webhook."""
    return SecretOut(secret=generate_secret())


@router.post("/", response_model=WebhookOut, status_code=201)
async def create_webhook(
    data: WebhookCreate,
    org_id: str = Depends(get_current_org),
    db: AsyncSession = Depends(get_db),
):
    try:
        wh = await WebhookRegistry(db).create(org_id, data)
    except WebhookValidationError as e:
        raise HTTPException(400, str(e))
    return WebhookOut.from_model(wh)


@router.get("/", response_model=list[WebhookOut])
async def list_webhooks(
    active: bool | None = None,
    org_id: str = Depends(get_current_org),
    db: AsyncSession = Depends(get_db),
):
    webhooks = await WebhookRegistry(db).list_for_organization(org_id)
    if active is not None:
        webhooks = [wh for wh in webhooks if bool(wh.is_active) == active]
    return [WebhookOut.from_model(wh) for wh in webhooks]


@router.get("/{webhook_id}", response_model=WebhookOut)
async def get_webhook(
    webhook_id: str,
    org_id: str = Depends(get_current_org),
    db: AsyncSession = Depends(get_db),
):
    return WebhookOut.from_model(await _owned_webhook(webhook_id, org_id, db))


@router.patch("/{webhook_id}", response_model=WebhookOut)
async def update_webhook(
    webhook_id: str,
    data: WebhookUpdate,
    org_id: str = Depends(get_current_org),
    db: AsyncSession = Depends(get_db),
):
    await _owned_webhook(webhook_id, org_id, db)
    try:
        wh = await WebhookRegistry(db).update(webhook_id, data)
    except WebhookValidationError as e:
        raise HTTPException(400, str(e))
    return WebhookOut.from_model(wh)


@router.delete("/{webhook_id}", status_code=204)
async def delete_webhook(
    webhook_id: str,
    org_id: str = Depends(get_current_org),
    db: AsyncSession = Depends(get_db),
):
    await _owned_webhook(webhook_id, org_id, db)
    await WebhookRegistry(db).delete(webhook_id)


@router.get("/{webhook_id}/deliveries", response_model=list[DeliveryOut])
async def list_deliveries(
    webhook_id: str,
    limit: int = Query(50, ge=1, le=200),
    org_id: str = Depends(get_current_org),
    db: AsyncSession = Depends(get_db),
):
    """Delivery history for a webhook, newest first."""
    await _owned_webhook(webhook_id, org_id, db)
    deliveries = await DeliveryRecorder(db).list_for_webhook(webhook_id, limit=limit)
    return [DeliveryOut.from_model(d) for d in deliveries]


@router.post("/{webhook_id}/test", response_model=DeliveryOut)
async def test_webhook(
    webhook_id: str,
    data: PingRequest | None = None,
    org_id: str = Depends(get_current_org),
    db: AsyncSession = Depends(get_db),
    http_client: httpx.AsyncClient | None = Depends(get_http_client),
):
    """Send a test ping through the normal delivery path, recorded like any delivery."""
    wh = await _owned_webhook(webhook_id, org_id, db)
    data = data or PingRequest()
    delivery = await DeliveryRecorder(db).create_pending(
        webhook_id=wh.id,
        organization_id=org_id,
        event_type=TEST_EVENT,
        payload=data.payload,
    )
    delivery = await DeliveryExecutor(db, http_client=http_client).attempt(delivery, wh)
    return DeliveryOut.from_model(delivery)
