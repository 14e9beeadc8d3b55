"""Authentication dependency: resolve the acting business from a Bearer token."""

from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from tradelink.infra.database import get_db
from tradelink.services.auth_service import decode_token
from tradelink.services.directory_service import DirectoryService


@dataclass(frozen=True)
class CurrentActor:
    """The business making the request."""

    id: str
    name: str


async def get_current_actor(
    request: Request, db: AsyncSession = Depends(get_db)
) -> CurrentActor:
    """Dependency: extract the current business from Bearer token."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid token",
        )
    token = auth_header.removeprefix("Bearer ")
    payload = decode_token(token)
    if not payload or "sub" not in payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    business = await DirectoryService(db).find_business(payload["sub"])
    if business is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Business not found",
        )
    return CurrentActor(id=business.id, name=payload.get("name") or business.name)
