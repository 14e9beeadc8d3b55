"""In-app notifications about proposal activity."""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tradelink.domain.enums import NotificationType
from tradelink.domain.errors import NotFoundError
from tradelink.domain.models import ProposalNotification

logger = logging.getLogger(__name__)

# Upper bound on notifications returned in one listing
MAX_NOTIFICATIONS = 200


def proposal_action_url(proposal_id: str) -> str:
    return f"/proposals/{proposal_id}"


class NotificationService:
    """Writes and reads proposal notifications. Callers own the transaction."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def notify(
        self,
        user_id: str,
        proposal_id: str,
        type: NotificationType,
        title: str,
        message: str,
        metadata: Optional[dict] = None,
    ) -> ProposalNotification:
        notification = ProposalNotification(
            user_id=user_id,
            proposal_id=proposal_id,
            type=type.value,
            title=title,
            message=message,
            action_url=proposal_action_url(proposal_id),
            metadata_=metadata,
        )
        self.db.add(notification)
        await self.db.flush()
        logger.debug("Notification %s -> %s (%s)", type.value, user_id, proposal_id)
        return notification

    async def list_for_user(
        self, user_id: str, unread_only: bool = False
    ) -> list[ProposalNotification]:
        query = select(ProposalNotification).where(ProposalNotification.user_id == user_id)
        if unread_only:
            query = query.where(ProposalNotification.is_read.is_(False))
        query = query.order_by(ProposalNotification.created_at.desc()).limit(MAX_NOTIFICATIONS)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def mark_read(self, user_id: str, notification_id: str) -> ProposalNotification:
        """Mark one of the user's notifications read.

        Notifications owned by someone else are reported as missing.
        """
        result = await self.db.execute(
            select(ProposalNotification).where(ProposalNotification.id == notification_id)
        )
        notification = result.scalar_one_or_none()
        if notification is None or notification.user_id != user_id:
            raise NotFoundError("Notification not found", notification_id=notification_id)
        notification.is_read = True
        await self.db.flush()
        return notification
