"""Proposal routes: submit, browse, negotiate and act on partnership proposals.

Every endpoint acts as the business named by the Bearer token. Domain
failures propagate as ProposalError and are rendered by the app-level handler.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from tradelink.app.routes.auth import CurrentActor, get_current_actor
from tradelink.domain.enums import ProposalTab
from tradelink.domain.schemas import (
    BuilderPreviewRequest,
    BuilderPreviewResponse,
    BusinessBlockOut,
    MessageCreate,
    NegotiationRequest,
    ProposalCreate,
    ProposalDetail,
    ProposalListItem,
    ProposalMessageOut,
    ProposalReportOut,
    ReportCreate,
    StatusActionRequest,
)
from tradelink.infra.database import get_db
from tradelink.services.content_builder import (
    compute_end_date,
    has_valid_objective_row,
    is_buildable,
    is_valid_kpi_row,
)
from tradelink.services.proposal_service import ProposalService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/proposals", tags=["proposals"])


@router.post("", response_model=ProposalDetail, status_code=status.HTTP_201_CREATED)
async def create_proposal(
    body: ProposalCreate,
    actor: CurrentActor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Submit a proposal to another business."""
    return await ProposalService(db).create(actor.id, body)


@router.get("", response_model=list[ProposalListItem])
async def list_proposals(
    tab: ProposalTab = Query(ProposalTab.ALL),
    search: Optional[str] = Query(None),
    actor: CurrentActor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await ProposalService(db).list_proposals(actor.id, tab, search)


@router.post("/builder/preview", response_model=BuilderPreviewResponse)
async def preview_builder(
    body: BuilderPreviewRequest,
    actor: CurrentActor = Depends(get_current_actor),
):
    """Derived values for a proposal still being drafted."""
    end_date = compute_end_date(body.start_date, body.duration_value, body.duration_unit, body.ongoing)
    return BuilderPreviewResponse(
        end_date=end_date.isoformat() if end_date else None,
        kpi_rows_valid=[is_valid_kpi_row(row) for row in body.kpis],
        has_valid_objective_row=has_valid_objective_row(body.objective_rows),
        buildable=is_buildable(body.objective_rows, body.kpis),
    )


@router.get("/{proposal_id}", response_model=ProposalDetail)
async def get_proposal(
    proposal_id: str,
    actor: CurrentActor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Full proposal detail. Clears the caller's unread flag."""
    return await ProposalService(db).get(actor.id, proposal_id)


@router.post("/{proposal_id}/actions", response_model=ProposalDetail)
async def act_on_proposal(
    proposal_id: str,
    body: StatusActionRequest,
    actor: CurrentActor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Accept, decline or cancel."""
    return await ProposalService(db).act(
        actor.id,
        proposal_id,
        body.action,
        actor_name=body.actor_name or actor.name,
        note=body.note,
        expected_version=body.expected_version,
    )


@router.post("/{proposal_id}/negotiate", response_model=ProposalDetail)
async def negotiate_proposal(
    proposal_id: str,
    body: NegotiationRequest,
    actor: CurrentActor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await ProposalService(db).negotiate(
        actor.id,
        proposal_id,
        body.content,
        summary=body.summary,
        actor_name=body.actor_name or actor.name,
        expected_version=body.expected_version,
    )


@router.post(
    "/{proposal_id}/messages",
    response_model=ProposalMessageOut,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    proposal_id: str,
    body: MessageCreate,
    actor: CurrentActor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await ProposalService(db).send_message(
        actor.id, proposal_id, body.content, sender_name=body.sender_name or actor.name
    )


@router.post(
    "/{proposal_id}/report",
    response_model=ProposalReportOut,
    status_code=status.HTTP_201_CREATED,
)
async def report_proposal(
    proposal_id: str,
    body: ReportCreate,
    actor: CurrentActor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Flag a proposal for moderation review."""
    return await ProposalService(db).report(
        actor.id,
        proposal_id,
        body.reason,
        details=body.details,
        actor_name=body.actor_name or actor.name,
    )


@router.get("/{proposal_id}/reports", response_model=list[ProposalReportOut])
async def list_reports(
    proposal_id: str,
    actor: CurrentActor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await ProposalService(db).list_reports(actor.id, proposal_id)


@router.post("/{proposal_id}/block", response_model=BusinessBlockOut)
async def block_counterparty(
    proposal_id: str,
    actor: CurrentActor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Block the other business on this proposal."""
    return await ProposalService(db).block(actor.id, proposal_id)
