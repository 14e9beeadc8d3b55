"""Authentication service: JWT token management for business identities."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from tradelink.app.config import get_settings

settings = get_settings()


def create_access_token(business_id: str, name: Optional[str] = None) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expiration_minutes)
    payload = {"sub": business_id, "exp": expire}
    if name:
        payload["name"] = name
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict | None:
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
