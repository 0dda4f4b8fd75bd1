"""Tenant bearer tokens. The ``sub`` claim carries the organization id."""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from hookline.config import get_settings

ALGORITHM = "HS256"


def create_access_token(organization_id: str, expires_delta: timedelta | None = None) -> str:
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.jwt_expire_minutes)
    )
    return jwt.encode({"sub": organization_id, "exp": expire}, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, get_settings().secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None
