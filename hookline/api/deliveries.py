"""Delivery inspection and manual retry API."""

import httpx
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from hookline.api.deps import get_current_org, get_http_client
from hookline.database import get_db
from hookline.schemas import DeliveryOut
from hookline.services.delivery_executor import (
    DeliveryExecutor,
    DeliveryNotFoundError,
    WebhookNotFoundError,
)
from hookline.services.delivery_recorder import DeliveryRecorder

router = APIRouter(prefix="/deliveries", tags=["deliveries"])


@router.get("/{delivery_id}", response_model=DeliveryOut)
async def get_delivery(
    delivery_id: str,
    org_id: str = Depends(get_current_org),
    db: AsyncSession = Depends(get_db),
):
    delivery = await DeliveryRecorder(db).get(delivery_id)
    if not delivery or delivery.organization_id != org_id:
        raise HTTPException(404, "Delivery not found")
    return DeliveryOut.from_model(delivery)


@router.post("/{delivery_id}/retry", response_model=DeliveryOut)
async def retry_delivery(
    delivery_id: str,
    org_id: str = Depends(get_current_org),
    db: AsyncSession = Depends(get_db),
    http_client: httpx.AsyncClient | None = Depends(get_http_client),
):
    """Force a new attempt, even for a terminally failed delivery."""
    delivery = await DeliveryRecorder(db).get(delivery_id)
    if not delivery or delivery.organization_id != org_id:
        raise HTTPException(404, "Delivery not found")
    try:
        delivery = await DeliveryExecutor(db, http_client=http_client).retry_delivery(delivery_id)
    except (DeliveryNotFoundError, WebhookNotFoundError) as e:
        raise HTTPException(404, str(e))
    return DeliveryOut.from_model(delivery)
