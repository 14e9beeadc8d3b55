"""Block registry: one-directional visibility suppression between businesses."""

import logging

from sqlalchemy import delete, or_, and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from tradelink.domain.errors import ProposalValidationError
from tradelink.domain.models import BusinessBlock

logger = logging.getLogger(__name__)


class BlockService:
    """Records and queries blocks. Callers own the transaction."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def block(self, blocker_id: str, blocked_id: str) -> BusinessBlock:
        """Record blocker -> blocked. Returns the existing row when already blocked."""
        if blocker_id == blocked_id:
            raise ProposalValidationError("A business cannot block itself")

        existing = await self._find(blocker_id, blocked_id)
        if existing:
            return existing

        block = BusinessBlock(blocker_id=blocker_id, blocked_id=blocked_id)
        self.db.add(block)
        await self.db.flush()
        logger.info("Business %s blocked %s", blocker_id, blocked_id)
        return block

    async def unblock(self, blocker_id: str, blocked_id: str) -> bool:
        """Remove a block. Returns False when there was none."""
        result = await self.db.execute(
            delete(BusinessBlock).where(
                BusinessBlock.blocker_id == blocker_id,
                BusinessBlock.blocked_id == blocked_id,
            )
        )
        removed = (result.rowcount or 0) > 0
        if removed:
            logger.info("Business %s unblocked %s", blocker_id, blocked_id)
        return removed

    async def list_blocked(self, blocker_id: str) -> list[BusinessBlock]:
        result = await self.db.execute(
            select(BusinessBlock)
            .where(BusinessBlock.blocker_id == blocker_id)
            .order_by(BusinessBlock.created_at)
        )
        return list(result.scalars().all())

    async def blocked_ids(self, blocker_id: str) -> set[str]:
        return {b.blocked_id for b in await self.list_blocked(blocker_id)}

    async def is_blocked(self, blocker_id: str, blocked_id: str) -> bool:
        return await self._find(blocker_id, blocked_id) is not None

    async def is_blocked_either_way(self, first_id: str, second_id: str) -> bool:
        result = await self.db.execute(
            select(BusinessBlock.id).where(
                or_(
                    and_(BusinessBlock.blocker_id == first_id, BusinessBlock.blocked_id == second_id),
                    and_(BusinessBlock.blocker_id == second_id, BusinessBlock.blocked_id == first_id),
                )
            ).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def _find(self, blocker_id: str, blocked_id: str) -> BusinessBlock | None:
        result = await self.db.execute(
            select(BusinessBlock).where(
                BusinessBlock.blocker_id == blocker_id,
                BusinessBlock.blocked_id == blocked_id,
            )
        )
        return result.scalar_one_or_none()
