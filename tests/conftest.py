"""Shared test infrastructure for the TradeLink test suite.

Provides:
- db_session: async SQLite in-memory session with all tables created
- make_business: factory for directory Business rows
- sample_content: factory for a complete, submittable ProposalContent
- make_proposal: factory that submits a proposal through ProposalService
"""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import Base first, then models to register all tables
from tradelink.infra.database import Base

import tradelink.domain.models  # noqa: F401

from tradelink.domain.models import Business
from tradelink.domain.schemas import ProposalContent, ProposalCreate
from tradelink.services.proposal_service import ProposalService


# ---------------------------------------------------------------------------
# Database session fixture
# ---------------------------------------------------------------------------

@pytest.fixture
async def db_session():
    """Async SQLite in-memory session with all tables created.

    Creates a fresh engine + tables for each test, yields a session,
    then rolls back and tears down.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


# ---------------------------------------------------------------------------
# Directory factory
# ---------------------------------------------------------------------------

@pytest.fixture
def make_business(db_session):
    """Factory that creates a Business directory entry.

    Usage:
        acme = await make_business("acme", "Acme Roasters")
    """
    async def _factory(
        business_id: str,
        name: str,
        industry: str = "Food & Beverage",
        location: str = "Portland, OR",
    ) -> Business:
        business = Business(id=business_id, name=name, industry=industry, location=location)
        db_session.add(business)
        await db_session.commit()
        return business

    return _factory


@pytest.fixture
async def businesses(make_business):
    """Two directory entries: ``acme`` (proposer) and ``globex`` (recipient)."""
    acme = await make_business("acme", "Acme Roasters")
    globex = await make_business("globex", "Globex Bakery")
    return acme, globex


# ---------------------------------------------------------------------------
# Proposal content factory
# ---------------------------------------------------------------------------

def build_content(**overrides) -> dict:
    """A complete builder payload from acme to globex, as the UI submits it."""
    content = {
        "partner_selection": {
            "partner_id": "globex",
            "partner_name": "Globex Bakery",
            "partner_industry": "Food & Beverage",
            "partner_location": "Portland, OR",
        },
        "outline": {
            "summary": "Co-branded breakfast bundle",
            "focus_key": "co_marketing",
            "focus_title": "Co-marketing",
            "focus_description": "Promote each other's products in store and online.",
        },
        "contributions": {
            "proposer_contribution": "Coffee beans at cost",
            "recipient_contribution": "Pastries at cost",
        },
        "objectives": {
            "overview": "Grow weekday morning traffic for both shops.",
            "rows": [
                {
                    "id": "obj-1",
                    "proposer_outcome": "More pastry buyers try our coffee",
                    "recipient_outcome": "More coffee buyers try our pastries",
                }
            ],
        },
        "terms": {
            "start_date": "2024-01-31",
            "duration_value": 6,
            "duration_unit": "months",
            "ongoing": False,
            "review_frequency_value": 1,
            "review_frequency_unit": "months",
            "termination_options": ["breach", "mutual_consent"],
            "additional_terms": "",
            "computed_end_date": "2024-07-31",
        },
        "tracking": {
            "kpis": [
                {
                    "id": "kpi-1",
                    "name": "Bundle sales",
                    "measurement_unit": "number",
                    "target_value": "500",
                    "report_frequency_value": 1,
                    "report_frequency_unit": "months",
                }
            ]
        },
        "additional_notes": "",
    }
    for key, value in overrides.items():
        content[key] = value
    return content


@pytest.fixture
def sample_content():
    """Factory returning a validated ProposalContent; keyword args replace whole steps."""
    def _factory(**overrides) -> ProposalContent:
        return ProposalContent.model_validate(build_content(**overrides))

    return _factory


@pytest.fixture
def make_proposal(db_session, businesses, sample_content):
    """Factory that submits acme -> globex through ProposalService.

    Usage:
        detail = await make_proposal(title="Bundle deal")
    """
    async def _factory(
        proposer_id: str = "acme",
        recipient_id: str = "globex",
        proposer_name: str = "Acme Roasters",
        recipient_name: str = "Globex Bakery",
        title: str | None = "Breakfast bundle",
        summary: str | None = None,
    ):
        data = ProposalCreate(
            proposer_id=proposer_id,
            proposer_name=proposer_name,
            recipient_id=recipient_id,
            recipient_name=recipient_name,
            title=title,
            summary=summary,
            content=sample_content(),
        )
        return await ProposalService(db_session).create(proposer_id, data)

    return _factory
