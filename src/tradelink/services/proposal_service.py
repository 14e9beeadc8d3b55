"""Proposal service: create, view, negotiate and act on partnership proposals.

Every mutation runs as one unit of work: the proposal row, its new message,
version and notification rows are flushed and committed together, or rolled
back together. The proposal row is version-checked on write, so a caller that
loses a race gets ConflictError instead of overwriting the winner.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value
from sqlalchemy.orm.exc import StaleDataError

from tradelink.domain.enums import (
    NotificationType,
    ParticipantRole,
    ProposalAction,
    ProposalActor,
    ProposalMessageType,
    ProposalStatus,
    ProposalStepKey,
    ProposalTab,
    StatusAction,
)
from tradelink.domain.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ProposalValidationError,
    UnavailableError,
)
from tradelink.domain.models import (
    Proposal,
    ProposalMessage,
    ProposalReport,
    ProposalVersion,
    utcnow,
)
from tradelink.domain.schemas import (
    BusinessBlockOut,
    ProposalContent,
    ProposalCreate,
    ProposalDetail,
    ProposalListItem,
    ProposalMessageOut,
    ProposalReportOut,
    ProposalVersionOut,
)
from tradelink.infra.database import store_errors
from tradelink.services.block_service import BlockService
from tradelink.services.content_builder import (
    build_default_summary,
    build_default_title,
    determine_updated_steps,
    validate_content,
)
from tradelink.services.directory_service import DirectoryService
from tradelink.services.notification_service import NotificationService
from tradelink.services.proposal_listing import (
    counterparty_id,
    matches_search,
    matches_tab,
    partner_name_for,
    resolve_role,
    status_label,
    unread_for,
)
from tradelink.services.proposal_state_machine import (
    ProposalStateMachine,
    actor_for_role,
)

logger = logging.getLogger(__name__)

SYSTEM_SENDER_ID = "system"
SYSTEM_SENDER_NAME = "TradeLink"

DEFAULT_NEGOTIATION_MESSAGE = "Submitted updated proposal terms"

_STATUS_VERBS = {
    ProposalStatus.ACCEPTED: "accepted",
    ProposalStatus.DECLINED: "declined",
    ProposalStatus.CANCELLED: "cancelled",
    ProposalStatus.EXPIRED: "expired",
}


class ProposalService:
    """Proposal lifecycle operations for one database session."""

    def __init__(self, db: AsyncSession, state_machine: Optional[ProposalStateMachine] = None):
        self.db = db
        self.state_machine = state_machine or ProposalStateMachine()
        self.directory = DirectoryService(db)
        self.blocks = BlockService(db)
        self.notifications = NotificationService(db)

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _unit_of_work(self, proposal_id: Optional[str] = None):
        """Commit on success; roll back and translate persistence failures otherwise."""
        try:
            yield
            await self.db.commit()
        except StaleDataError as e:
            await self.db.rollback()
            logger.warning("Proposal %s: concurrent update lost the race", proposal_id)
            raise ConflictError(proposal_id=proposal_id) from e
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning("Proposal %s: integrity conflict: %s", proposal_id, e.orig)
            raise ConflictError(proposal_id=proposal_id) from e
        except (OperationalError, InterfaceError) as e:
            await self.db.rollback()
            logger.error("Proposal %s: persistence failure: %s", proposal_id, e)
            raise UnavailableError("Proposal store unavailable") from e
        except Exception:
            await self.db.rollback()
            raise

    async def _load(self, proposal_id: str) -> Proposal:
        result = await self.db.execute(
            select(Proposal)
            .where(Proposal.id == proposal_id)
            .execution_options(populate_existing=True)
        )
        proposal = result.scalar_one_or_none()
        if proposal is None:
            raise NotFoundError(f"Proposal {proposal_id} not found", proposal_id=proposal_id)
        return proposal

    async def _load_for_participant(
        self, actor_id: str, proposal_id: str
    ) -> tuple[Proposal, ParticipantRole]:
        proposal = await self._load(proposal_id)
        return proposal, resolve_role(proposal, actor_id)

    @staticmethod
    def _check_version(proposal: Proposal, expected_version: Optional[int]) -> None:
        if expected_version is not None and expected_version != proposal.version:
            raise ConflictError(
                proposal_id=proposal.id,
                expected_version=expected_version,
                current_version=proposal.version,
            )

    @staticmethod
    def _actor_name(proposal: Proposal, role: ParticipantRole, actor_name: Optional[str]) -> str:
        if actor_name and actor_name.strip():
            return actor_name.strip()
        if role == ParticipantRole.PROPOSER:
            return proposal.proposer_name
        return proposal.recipient_name

    @staticmethod
    def _mark_unread_for_others(proposal: Proposal, actor: ProposalActor) -> None:
        """Flag the parties who did not act; the actor's own flag is left as is."""
        if actor != ProposalActor.PROPOSER:
            proposal.unread_for_proposer = True
        if actor != ProposalActor.RECIPIENT:
            proposal.unread_for_recipient = True

    async def _append_message(
        self,
        proposal: Proposal,
        sender_id: str,
        sender_role: Optional[ParticipantRole],
        sender_name: str,
        message_type: ProposalMessageType,
        content: str,
        payload: Optional[dict] = None,
    ) -> ProposalMessage:
        result = await self.db.execute(
            select(func.max(ProposalMessage.sequence)).where(
                ProposalMessage.proposal_id == proposal.id
            )
        )
        sequence = (result.scalar() or 0) + 1
        message = ProposalMessage(
            proposal_id=proposal.id,
            sequence=sequence,
            sender_id=sender_id,
            sender_role=sender_role.value if sender_role else None,
            sender_name=sender_name,
            type=message_type.value,
            content=content,
            payload=payload,
        )
        self.db.add(message)
        return message

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    async def _detail(self, proposal: Proposal, role: ParticipantRole) -> ProposalDetail:
        messages = await self.db.execute(
            select(ProposalMessage)
            .where(ProposalMessage.proposal_id == proposal.id)
            .order_by(ProposalMessage.sequence)
        )
        versions = await self.db.execute(
            select(ProposalVersion)
            .where(ProposalVersion.proposal_id == proposal.id)
            .order_by(ProposalVersion.version_number)
        )
        allowed = self.state_machine.get_allowed_actions(
            proposal.status, actor_for_role(role), proposal.awaiting_party
        )
        return ProposalDetail(
            id=proposal.id,
            proposer_id=proposal.proposer_id,
            proposer_name=proposal.proposer_name,
            recipient_id=proposal.recipient_id,
            recipient_name=proposal.recipient_name,
            title=proposal.title,
            summary=proposal.summary,
            partner_name=partner_name_for(proposal, role),
            status=proposal.status,
            awaiting_party=proposal.awaiting_party,
            viewer_role=role,
            status_label=status_label(proposal.status, proposal.awaiting_party, role),
            unread_for_proposer=proposal.unread_for_proposer,
            unread_for_recipient=proposal.unread_for_recipient,
            version=proposal.version,
            current_version_number=proposal.current_version_number,
            content=ProposalContent.model_validate(proposal.content),
            messages=[ProposalMessageOut.model_validate(m) for m in messages.scalars().all()],
            versions=[ProposalVersionOut.model_validate(v) for v in versions.scalars().all()],
            allowed_actions=[a.value for a in allowed],
            created_at=proposal.created_at,
            updated_at=proposal.updated_at,
        )

    @staticmethod
    def _list_item(proposal: Proposal, role: ParticipantRole) -> ProposalListItem:
        return ProposalListItem(
            id=proposal.id,
            title=proposal.title,
            summary=proposal.summary,
            partner_name=partner_name_for(proposal, role),
            status=proposal.status,
            awaiting_party=proposal.awaiting_party,
            viewer_role=role,
            unread=unread_for(proposal, role),
            status_label=status_label(proposal.status, proposal.awaiting_party, role),
            updated_at=proposal.updated_at,
        )

    # ------------------------------------------------------------------
    # Create / read
    # ------------------------------------------------------------------

    async def create(self, actor_id: str, data: ProposalCreate) -> ProposalDetail:
        """Submit a new proposal from the actor's business to the recipient."""
        proposer_id = data.proposer_id or actor_id
        if proposer_id != actor_id:
            raise ForbiddenError("Proposals can only be sent on behalf of your own business")
        if data.recipient_id == proposer_id:
            raise ProposalValidationError("A business cannot send a proposal to itself")
        validate_content(data.content)

        async with self._unit_of_work():
            await self.directory.get_business_by_id(data.recipient_id)
            if await self.blocks.is_blocked_either_way(proposer_id, data.recipient_id):
                raise ForbiddenError("Proposals between these businesses are blocked")

            title = (data.title or "").strip() or build_default_title(data.content, data.proposer_name)
            summary = (data.summary or "").strip() or build_default_summary(data.content)
            content = data.content.model_dump(mode="json")

            proposal = Proposal(
                proposer_id=proposer_id,
                proposer_name=data.proposer_name,
                recipient_id=data.recipient_id,
                recipient_name=data.recipient_name,
                title=title,
                summary=summary,
                content=content,
                status=ProposalStatus.AWAITING_RECIPIENT.value,
                awaiting_party=None,
                current_version_number=1,
                unread_for_proposer=False,
                unread_for_recipient=True,
            )
            self.db.add(proposal)
            await self.db.flush()

            self.db.add(
                ProposalVersion(
                    proposal_id=proposal.id,
                    version_number=1,
                    created_by=proposer_id,
                    created_by_role=ParticipantRole.PROPOSER.value,
                    step_data=content,
                    updated_steps=[key.value for key in ProposalStepKey],
                )
            )
            await self._append_message(
                proposal,
                proposer_id,
                ParticipantRole.PROPOSER,
                data.proposer_name,
                ProposalMessageType.SYSTEM,
                "Proposal submitted",
                payload={"version_number": 1},
            )
            await self.notifications.notify(
                data.recipient_id,
                proposal.id,
                NotificationType.NEW_PROPOSAL,
                f"New proposal from {data.proposer_name}",
                f"{data.proposer_name} has sent you a proposal: {title}.",
                metadata={"proposer_name": data.proposer_name},
            )

        logger.info(
            "Proposal %s created: %s -> %s", proposal.id, proposer_id, data.recipient_id
        )
        return await self._detail(proposal, ParticipantRole.PROPOSER)

    async def get(self, actor_id: str, proposal_id: str) -> ProposalDetail:
        """Full detail for a participant. Viewing clears the viewer's unread flag."""
        async with self._unit_of_work(proposal_id):
            proposal, role = await self._load_for_participant(actor_id, proposal_id)
            column = (
                "unread_for_proposer" if role == ParticipantRole.PROPOSER else "unread_for_recipient"
            )
            if getattr(proposal, column):
                # Plain UPDATE: reading must not bump the optimistic-lock version
                await self.db.execute(
                    update(Proposal)
                    .where(Proposal.id == proposal.id)
                    .values({column: False})
                    .execution_options(synchronize_session=False)
                )
                set_committed_value(proposal, column, False)
        return await self._detail(proposal, role)

    async def list_proposals(
        self,
        actor_id: str,
        tab: ProposalTab = ProposalTab.ALL,
        search: Optional[str] = None,
    ) -> list[ProposalListItem]:
        """Proposals the actor takes part in, newest activity first.

        Proposals with a counterparty the actor has blocked are omitted; they
        stay reachable through ``get``.
        """
        try:
            result = await self.db.execute(
                select(Proposal)
                .where(or_(Proposal.proposer_id == actor_id, Proposal.recipient_id == actor_id))
                .order_by(Proposal.updated_at.desc())
            )
            proposals = result.scalars().all()
            blocked = await self.blocks.blocked_ids(actor_id)
        except (OperationalError, InterfaceError) as e:
            logger.error("Listing proposals for %s failed: %s", actor_id, e)
            raise UnavailableError("Proposal store unavailable") from e

        items: list[ProposalListItem] = []
        for proposal in proposals:
            role = resolve_role(proposal, actor_id)
            if counterparty_id(proposal, role) in blocked:
                continue
            if not matches_tab(proposal, actor_id, tab):
                continue
            if not matches_search(proposal, actor_id, search):
                continue
            items.append(self._list_item(proposal, role))
        return items

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def act(
        self,
        actor_id: str,
        proposal_id: str,
        action: StatusAction,
        actor_name: Optional[str] = None,
        note: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> ProposalDetail:
        """Accept, decline or cancel a proposal."""
        async with self._unit_of_work(proposal_id):
            proposal, role = await self._load_for_participant(actor_id, proposal_id)
            self._check_version(proposal, expected_version)
            actor = actor_for_role(role)
            transition = self.state_machine.validate(
                proposal.status, ProposalAction(StatusAction(action).value), actor, proposal.awaiting_party
            )
            name = self._actor_name(proposal, role, actor_name)

            proposal.status = transition.to_status.value
            proposal.awaiting_party = None
            proposal.updated_at = utcnow()
            self._mark_unread_for_others(proposal, actor)

            verb = _STATUS_VERBS[transition.to_status]
            content = (note or "").strip() or f"{name} {verb} the proposal."
            await self._append_message(
                proposal,
                actor_id,
                role,
                name,
                ProposalMessageType.STATUS_CHANGE,
                content,
                payload={
                    "from_status": transition.from_status.value,
                    "to_status": transition.to_status.value,
                },
            )
            await self.notifications.notify(
                counterparty_id(proposal, role),
                proposal.id,
                NotificationType.STATUS_CHANGE,
                f"{name} {verb} the proposal",
                content,
            )

        logger.info(
            "Proposal %s: %s -> %s (actor=%s, user=%s)",
            proposal.id,
            transition.from_status.value,
            transition.to_status.value,
            actor.value,
            actor_id,
        )
        return await self._detail(proposal, role)

    async def negotiate(
        self,
        actor_id: str,
        proposal_id: str,
        content: ProposalContent,
        summary: Optional[str] = None,
        actor_name: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> ProposalDetail:
        """Replace the terms on the table and hand the turn to the other party.

        The counterpart identity is fixed at creation; a different
        ``partner_selection.partner_id`` in the revision is stored as content
        only and never re-targets the proposal.
        """
        async with self._unit_of_work(proposal_id):
            proposal, role = await self._load_for_participant(actor_id, proposal_id)
            self._check_version(proposal, expected_version)
            actor = actor_for_role(role)
            transition = self.state_machine.validate(
                proposal.status, ProposalAction.NEGOTIATE, actor, proposal.awaiting_party
            )
            validate_content(content)
            name = self._actor_name(proposal, role, actor_name)

            previous = proposal.content or {}
            revised = content.model_dump(mode="json")
            updated_steps = [step.value for step in determine_updated_steps(previous, revised)]
            if (previous.get("partner_selection") or {}).get("partner_id") != revised["partner_selection"]["partner_id"]:
                logger.info(
                    "Proposal %s: partner selection changed in revision; counterpart unchanged",
                    proposal.id,
                )

            version_number = proposal.current_version_number + 1
            change_note = (summary or "").strip()
            self.db.add(
                ProposalVersion(
                    proposal_id=proposal.id,
                    version_number=version_number,
                    created_by=actor_id,
                    created_by_role=role.value,
                    step_data=revised,
                    changes_summary=change_note or None,
                    updated_steps=updated_steps,
                )
            )

            proposal.content = revised
            proposal.current_version_number = version_number
            proposal.status = transition.to_status.value
            proposal.awaiting_party = transition.awaiting_party.value
            outline_summary = content.outline.summary.strip()
            if outline_summary:
                proposal.summary = outline_summary
            proposal.updated_at = utcnow()
            self._mark_unread_for_others(proposal, actor)

            message = change_note or DEFAULT_NEGOTIATION_MESSAGE
            await self._append_message(
                proposal,
                actor_id,
                role,
                name,
                ProposalMessageType.NEGOTIATION_REQUEST,
                message,
                payload={"updated_steps": updated_steps, "version_number": version_number},
            )
            await self.notifications.notify(
                counterparty_id(proposal, role),
                proposal.id,
                NotificationType.NEGOTIATION_UPDATE,
                f"{name} proposed changes",
                message,
                metadata={"updated_steps": updated_steps},
            )

        logger.info(
            "Proposal %s: negotiation round %d by %s, awaiting %s (steps=%s)",
            proposal.id,
            version_number,
            role.value,
            proposal.awaiting_party,
            ",".join(updated_steps) or "-",
        )
        return await self._detail(proposal, role)

    async def expire(self, proposal_id: str) -> Proposal:
        """System transition to ``expired``; both parties are notified."""
        async with self._unit_of_work(proposal_id):
            proposal = await self._load(proposal_id)
            transition = self.state_machine.validate(
                proposal.status, ProposalAction.EXPIRE, ProposalActor.SYSTEM, proposal.awaiting_party
            )
            proposal.status = transition.to_status.value
            proposal.awaiting_party = None
            proposal.updated_at = utcnow()
            self._mark_unread_for_others(proposal, ProposalActor.SYSTEM)

            content = "Proposal expired after a period of inactivity."
            await self._append_message(
                proposal,
                SYSTEM_SENDER_ID,
                None,
                SYSTEM_SENDER_NAME,
                ProposalMessageType.SYSTEM,
                content,
                payload={
                    "from_status": transition.from_status.value,
                    "to_status": transition.to_status.value,
                },
            )
            for user_id in (proposal.proposer_id, proposal.recipient_id):
                await self.notifications.notify(
                    user_id,
                    proposal.id,
                    NotificationType.STATUS_CHANGE,
                    "Proposal expired",
                    f"{proposal.title} expired without a decision.",
                )

        logger.info(
            "Proposal %s: %s -> %s (actor=system)",
            proposal.id,
            transition.from_status.value,
            transition.to_status.value,
        )
        return proposal

    # ------------------------------------------------------------------
    # Side channels
    # ------------------------------------------------------------------

    async def send_message(
        self,
        actor_id: str,
        proposal_id: str,
        content: str,
        sender_name: Optional[str] = None,
    ) -> ProposalMessageOut:
        """Append a free-text message; status and turn are untouched."""
        text = (content or "").strip()
        if not text:
            raise ProposalValidationError("Message content is required")

        async with self._unit_of_work(proposal_id):
            proposal, role = await self._load_for_participant(actor_id, proposal_id)
            name = self._actor_name(proposal, role, sender_name)
            proposal.updated_at = utcnow()
            self._mark_unread_for_others(proposal, actor_for_role(role))
            message = await self._append_message(
                proposal, actor_id, role, name, ProposalMessageType.MESSAGE, text
            )
            await self.notifications.notify(
                counterparty_id(proposal, role),
                proposal.id,
                NotificationType.MESSAGE,
                f"New message from {name}",
                text,
            )

        return ProposalMessageOut.model_validate(message)

    async def report(
        self,
        actor_id: str,
        proposal_id: str,
        reason: str,
        details: Optional[str] = None,
        actor_name: Optional[str] = None,
    ) -> ProposalReportOut:
        """File a moderation report. Every report is kept; the proposal is not touched."""
        async with self._unit_of_work(proposal_id):
            proposal, role = await self._load_for_participant(actor_id, proposal_id)
            cleaned = (reason or "").strip()
            if not cleaned:
                raise ProposalValidationError("A reason is required to report a proposal")
            report = ProposalReport(
                proposal_id=proposal.id,
                reported_by=actor_id,
                reporter_role=role.value,
                reporter_name=self._actor_name(proposal, role, actor_name),
                reason=cleaned,
                details=(details or "").strip() or None,
            )
            self.db.add(report)
            await self.db.flush()

        logger.warning("Proposal %s reported by %s: %s", proposal_id, actor_id, cleaned)
        return ProposalReportOut.model_validate(report)

    async def list_reports(self, actor_id: str, proposal_id: str) -> list[ProposalReportOut]:
        """Reports the actor filed against this proposal, oldest first."""
        async with store_errors(self.db, "Proposal store"):
            await self._load_for_participant(actor_id, proposal_id)
            result = await self.db.execute(
                select(ProposalReport)
                .where(
                    ProposalReport.proposal_id == proposal_id,
                    ProposalReport.reported_by == actor_id,
                )
                .order_by(ProposalReport.created_at)
            )
        return [ProposalReportOut.model_validate(r) for r in result.scalars().all()]

    async def block(self, actor_id: str, proposal_id: str) -> BusinessBlockOut:
        """Block the counterparty of a proposal. The proposal record is unchanged."""
        async with self._unit_of_work(proposal_id):
            proposal, role = await self._load_for_participant(actor_id, proposal_id)
            block = await self.blocks.block(actor_id, counterparty_id(proposal, role))
        return BusinessBlockOut.model_validate(block)
