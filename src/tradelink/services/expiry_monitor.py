"""Background job that expires proposals left idle past the configured window."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tradelink.app.config import get_settings
from tradelink.domain.errors import ConflictError, InvalidTransitionError
from tradelink.domain.models import Proposal
from tradelink.services.proposal_service import ProposalService
from tradelink.services.proposal_state_machine import ACTIVE_STATES

logger = logging.getLogger(__name__)


async def expire_stale_proposals(
    db: AsyncSession,
    max_idle_days: Optional[int] = None,
    now: Optional[datetime] = None,
) -> int:
    """Expire active proposals whose last activity is older than ``max_idle_days``.

    Returns the number of proposals expired. A proposal that moved on between
    the scan and its expiry (a party acted, or the row changed underneath) is
    skipped and picked up on a later run if still idle.
    """
    if max_idle_days is None:
        max_idle_days = get_settings().proposal_expiry_days
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=max_idle_days)

    result = await db.execute(
        select(Proposal.id).where(
            Proposal.status.in_([s.value for s in ACTIVE_STATES]),
            Proposal.updated_at < cutoff,
        )
    )
    proposal_ids = list(result.scalars().all())

    service = ProposalService(db)
    expired = 0
    for proposal_id in proposal_ids:
        try:
            await service.expire(proposal_id)
        except (ConflictError, InvalidTransitionError) as e:
            logger.info("Expiry skipped for proposal %s: %s", proposal_id, e)
            continue
        expired += 1

    if expired:
        logger.info("Expiry monitor: expired %d of %d idle proposals", expired, len(proposal_ids))
    return expired
