"""Tests for the notification inbox and the block registry."""

import pytest

from tradelink.domain.enums import NotificationType, StatusAction
from tradelink.domain.errors import NotFoundError, ProposalValidationError
from tradelink.services.block_service import BlockService
from tradelink.services.notification_service import NotificationService
from tradelink.services.proposal_service import ProposalService


class TestNotificationService:

    async def test_inbox_newest_first(self, db_session, make_proposal):
        created = await make_proposal()
        await ProposalService(db_session).send_message("acme", created.id, "Following up")

        notes = await NotificationService(db_session).list_for_user("globex")

        assert [n.type for n in notes] == [
            NotificationType.MESSAGE.value,
            NotificationType.NEW_PROPOSAL.value,
        ]

    async def test_mark_read_and_unread_filter(self, db_session, make_proposal):
        created = await make_proposal()
        await ProposalService(db_session).act("globex", created.id, StatusAction.ACCEPT)
        service = NotificationService(db_session)

        [note] = await service.list_for_user("acme", unread_only=True)
        marked = await service.mark_read("acme", note.id)
        await db_session.commit()

        assert marked.is_read is True
        assert await service.list_for_user("acme", unread_only=True) == []
        assert len(await service.list_for_user("acme")) == 1

    async def test_cannot_mark_someone_elses(self, db_session, make_proposal):
        await make_proposal()
        service = NotificationService(db_session)
        [note] = await service.list_for_user("globex")

        with pytest.raises(NotFoundError):
            await service.mark_read("acme", note.id)

    async def test_unknown_notification(self, db_session):
        with pytest.raises(NotFoundError):
            await NotificationService(db_session).mark_read("acme", "missing")


class TestBlockService:

    async def test_block_and_query(self, db_session):
        blocks = BlockService(db_session)
        await blocks.block("acme", "globex")

        assert await blocks.is_blocked("acme", "globex")
        assert not await blocks.is_blocked("globex", "acme")
        assert await blocks.is_blocked_either_way("globex", "acme")
        assert await blocks.blocked_ids("acme") == {"globex"}
        assert await blocks.blocked_ids("globex") == set()

    async def test_cannot_block_self(self, db_session):
        with pytest.raises(ProposalValidationError):
            await BlockService(db_session).block("acme", "acme")

    async def test_unblock(self, db_session):
        blocks = BlockService(db_session)
        await blocks.block("acme", "globex")

        assert await blocks.unblock("acme", "globex") is True
        assert await blocks.unblock("acme", "globex") is False
        assert await blocks.list_blocked("acme") == []
