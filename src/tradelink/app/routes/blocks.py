"""Block management routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tradelink.app.routes.auth import CurrentActor, get_current_actor
from tradelink.domain.errors import NotFoundError
from tradelink.domain.schemas import BusinessBlockOut
from tradelink.infra.database import get_db, store_errors
from tradelink.services.block_service import BlockService

router = APIRouter(prefix="/api/blocks", tags=["blocks"])


@router.get("", response_model=list[BusinessBlockOut])
async def list_blocked(
    actor: CurrentActor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    async with store_errors(db, "Block registry"):
        blocks = await BlockService(db).list_blocked(actor.id)
    return [BusinessBlockOut.model_validate(b) for b in blocks]


@router.delete("/{business_id}")
async def unblock(
    business_id: str,
    actor: CurrentActor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Lift a block. Proposals with that business reappear in listings."""
    async with store_errors(db, "Block registry"):
        removed = await BlockService(db).unblock(actor.id, business_id)
        if not removed:
            raise NotFoundError("Block not found", business_id=business_id)
        await db.commit()
    return {"ok": True, "blocked_id": business_id}
