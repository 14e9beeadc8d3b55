"""Tests for the idle-proposal expiry job."""

from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from tradelink.domain.enums import ProposalStatus, StatusAction
from tradelink.domain.models import ProposalNotification
from tradelink.services.expiry_monitor import expire_stale_proposals
from tradelink.services.proposal_service import ProposalService


def _later(days: int) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days)


class TestExpireStaleProposals:

    async def test_idle_proposal_expires(self, db_session, make_proposal):
        created = await make_proposal()
        await ProposalService(db_session).get("globex", created.id)

        count = await expire_stale_proposals(db_session, max_idle_days=30, now=_later(31))

        assert count == 1
        detail = await ProposalService(db_session).get("acme", created.id)
        assert detail.status == ProposalStatus.EXPIRED
        assert detail.awaiting_party is None
        assert detail.status_label == "Expired"
        assert detail.allowed_actions == []

        last = detail.messages[-1]
        assert last.sender_role is None
        assert last.sender_id == "system"
        assert last.payload["to_status"] == "expired"

    async def test_expiry_flags_both_parties(self, db_session, make_proposal):
        created = await make_proposal()
        service = ProposalService(db_session)
        await service.get("globex", created.id)

        await expire_stale_proposals(db_session, max_idle_days=30, now=_later(31))

        [item] = await service.list_proposals("globex")
        assert item.unread is True
        [item] = await service.list_proposals("acme")
        assert item.unread is True

        result = await db_session.execute(
            select(ProposalNotification.user_id).where(ProposalNotification.type == "status_change")
        )
        assert sorted(result.scalars().all()) == ["acme", "globex"]

    async def test_recent_proposal_untouched(self, db_session, make_proposal):
        created = await make_proposal()

        count = await expire_stale_proposals(db_session, max_idle_days=30, now=_later(29))

        assert count == 0
        detail = await ProposalService(db_session).get("acme", created.id)
        assert detail.status == ProposalStatus.AWAITING_RECIPIENT

    async def test_under_negotiation_expires(self, db_session, make_proposal, sample_content):
        created = await make_proposal()
        await ProposalService(db_session).negotiate("globex", created.id, sample_content())

        assert await expire_stale_proposals(db_session, max_idle_days=30, now=_later(31)) == 1

    async def test_terminal_proposals_skipped(self, db_session, make_proposal):
        created = await make_proposal()
        await ProposalService(db_session).act("globex", created.id, StatusAction.DECLINE)

        assert await expire_stale_proposals(db_session, max_idle_days=30, now=_later(31)) == 0

        detail = await ProposalService(db_session).get("acme", created.id)
        assert detail.status == ProposalStatus.DECLINED

    async def test_defaults_to_configured_window(self, db_session, make_proposal):
        await make_proposal()
        assert await expire_stale_proposals(db_session) == 0
