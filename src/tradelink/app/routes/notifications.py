"""Notification inbox routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tradelink.app.routes.auth import CurrentActor, get_current_actor
from tradelink.domain.schemas import NotificationOut
from tradelink.infra.database import get_db, store_errors
from tradelink.services.notification_service import NotificationService

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationOut])
async def list_notifications(
    unread_only: bool = Query(False),
    actor: CurrentActor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    async with store_errors(db, "Notification inbox"):
        notifications = await NotificationService(db).list_for_user(actor.id, unread_only=unread_only)
    return [NotificationOut.model_validate(n) for n in notifications]


@router.post("/{notification_id}/read", response_model=NotificationOut)
async def mark_notification_read(
    notification_id: str,
    actor: CurrentActor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    async with store_errors(db, "Notification inbox"):
        notification = await NotificationService(db).mark_read(actor.id, notification_id)
        await db.commit()
    return NotificationOut.model_validate(notification)
