"""Optimistic locking: two sessions racing on the same proposal.

Uses a file-backed SQLite database so each session gets its own connection.
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tradelink.domain.enums import ProposalStatus, StatusAction
from tradelink.domain.errors import ConflictError
from tradelink.domain.models import Business, Proposal
from tradelink.domain.schemas import ProposalContent, ProposalCreate
from tradelink.infra.database import Base
from tradelink.services.proposal_service import ProposalService

from conftest import build_content


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 5},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def proposal_id(session_factory):
    async with session_factory() as db:
        db.add_all([Business(id="acme", name="Acme Roasters"), Business(id="globex", name="Globex Bakery")])
        await db.commit()
        detail = await ProposalService(db).create(
            "acme",
            ProposalCreate(
                proposer_name="Acme Roasters",
                recipient_id="globex",
                recipient_name="Globex Bakery",
                content=build_content(),
            ),
        )
    return detail.id


class _InterleavingService(ProposalService):
    """Lets a competing writer commit between this service's read and its write."""

    def __init__(self, db, competitor):
        super().__init__(db)
        self.competitor = competitor

    async def _load(self, proposal_id):
        proposal = await super()._load(proposal_id)
        await self.competitor()
        return proposal


class TestOptimisticLocking:

    async def test_losing_writer_gets_conflict(self, session_factory, proposal_id):
        async def cancel_first():
            async with session_factory() as other:
                await ProposalService(other).act("acme", proposal_id, StatusAction.CANCEL)

        async with session_factory() as db:
            service = _InterleavingService(db, cancel_first)
            with pytest.raises(ConflictError):
                await service.act("globex", proposal_id, StatusAction.ACCEPT)

        async with session_factory() as db:
            proposal = await db.get(Proposal, proposal_id)
            assert proposal.status == ProposalStatus.CANCELLED.value
            assert proposal.version == 2

    async def test_losing_negotiation_writes_nothing(self, session_factory, proposal_id):
        async def accept_first():
            async with session_factory() as other:
                await ProposalService(other).act("globex", proposal_id, StatusAction.ACCEPT)

        async with session_factory() as db:
            service = _InterleavingService(db, accept_first)
            with pytest.raises(ConflictError):
                await service.negotiate("acme", proposal_id, ProposalContent.model_validate(build_content()))

        async with session_factory() as db:
            detail = await ProposalService(db).get("acme", proposal_id)
            assert detail.status == ProposalStatus.ACCEPTED
            assert detail.current_version_number == 1
            assert [m.type.value for m in detail.messages] == ["system", "status_change"]

    async def test_sequential_writers_both_succeed(self, session_factory, proposal_id):
        async with session_factory() as db:
            await ProposalService(db).send_message("acme", proposal_id, "Checking in")
        async with session_factory() as db:
            detail = await ProposalService(db).act("globex", proposal_id, StatusAction.ACCEPT)
        assert detail.version == 3
