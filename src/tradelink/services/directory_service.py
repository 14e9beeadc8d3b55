"""Business directory lookups used by the proposal core."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from tradelink.domain.errors import NotFoundError, UnavailableError
from tradelink.domain.models import Business

logger = logging.getLogger(__name__)


class DirectoryService:
    """Resolves business ids to directory entries."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_business(self, business_id: str) -> Business | None:
        try:
            result = await self.db.execute(select(Business).where(Business.id == business_id))
        except (OperationalError, InterfaceError) as e:
            logger.error("Directory lookup failed for business %s: %s", business_id, e)
            raise UnavailableError("Business directory unavailable") from e
        return result.scalar_one_or_none()

    async def get_business_by_id(self, business_id: str) -> Business:
        """Return the business or raise NotFoundError."""
        business = await self.find_business(business_id)
        if business is None:
            raise NotFoundError(f"Business {business_id} not found", business_id=business_id)
        return business
