"""Shared API dependencies: tenant resolution and delivery plumbing."""

import httpx
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from hookline.services.auth import decode_token
from hookline.services.webhook_dispatcher import WebhookDispatcher

security = HTTPBearer()


async def get_current_org(creds: HTTPAuthorizationCredentials = Depends(security)) -> str:
    """Decode the bearer JWT and return the caller's organization id."""
    payload = decode_token(creds.credentials)
    if payload is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid or expired token")
    org_id = payload.get("sub")
    if not org_id:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token payload")
    return org_id


def get_http_client() -> httpx.AsyncClient | None:
    """Outbound client for deliveries; None lets each attempt open its own."""
    return None


def get_dispatcher(http_client: httpx.AsyncClient | None = Depends(get_http_client)) -> WebhookDispatcher:
    return WebhookDispatcher(http_client=http_client)
