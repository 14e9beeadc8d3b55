"""List-view helpers: viewer role, tab predicates, search and status labels."""

from typing import Callable, Optional

from tradelink.domain.enums import ParticipantRole, ProposalStatus, ProposalTab
from tradelink.domain.errors import ForbiddenError
from tradelink.domain.models import Proposal

S = ProposalStatus
T = ProposalTab


def resolve_role(proposal: Proposal, user_id: str) -> ParticipantRole:
    """Return the user's role on the proposal. Raise ForbiddenError for outsiders."""
    if proposal.proposer_id == user_id:
        return ParticipantRole.PROPOSER
    if proposal.recipient_id == user_id:
        return ParticipantRole.RECIPIENT
    raise ForbiddenError(proposal_id=proposal.id, user_id=user_id)


def counterparty_id(proposal: Proposal, role: ParticipantRole) -> str:
    if role == ParticipantRole.PROPOSER:
        return proposal.recipient_id
    return proposal.proposer_id


def partner_name_for(proposal: Proposal, role: ParticipantRole) -> str:
    """Display name of the other business from the viewer's side."""
    if role == ParticipantRole.PROPOSER:
        return proposal.recipient_name
    return proposal.proposer_name


def unread_for(proposal: Proposal, role: ParticipantRole) -> bool:
    if role == ParticipantRole.PROPOSER:
        return bool(proposal.unread_for_proposer)
    return bool(proposal.unread_for_recipient)


# ---------------------------------------------------------------------------
# Tabs
# ---------------------------------------------------------------------------

TabPredicate = Callable[[Proposal, str], bool]

TAB_PREDICATES: dict[ProposalTab, TabPredicate] = {
    T.ALL: lambda p, user_id: True,
    T.SENT: lambda p, user_id: p.proposer_id == user_id,
    T.RECEIVED: lambda p, user_id: p.recipient_id == user_id,
    T.AWAITING: lambda p, user_id: (
        p.status == S.AWAITING_RECIPIENT.value or p.awaiting_party is not None
    ),
    T.NEGOTIATING: lambda p, user_id: p.status == S.UNDER_NEGOTIATION.value,
    T.ACCEPTED: lambda p, user_id: p.status == S.ACCEPTED.value,
    T.DECLINED: lambda p, user_id: p.status in (S.DECLINED.value, S.CANCELLED.value),
}


def matches_tab(proposal: Proposal, user_id: str, tab: ProposalTab) -> bool:
    return TAB_PREDICATES[ProposalTab(tab)](proposal, user_id)


def matches_search(proposal: Proposal, user_id: str, search: Optional[str]) -> bool:
    """Case-insensitive substring match on title and the counterpart's name."""
    lowered = (search or "").strip().lower()
    if not lowered:
        return True
    role = resolve_role(proposal, user_id)
    return (
        lowered in (proposal.title or "").lower()
        or lowered in partner_name_for(proposal, role).lower()
    )


# ---------------------------------------------------------------------------
# Status labels
# ---------------------------------------------------------------------------

_FIXED_LABELS: dict[ProposalStatus, str] = {
    S.ACCEPTED: "Accepted",
    S.DECLINED: "Declined",
    S.CANCELLED: "Cancelled",
    S.EXPIRED: "Expired",
}


def status_label(status, awaiting_party, role: ParticipantRole) -> str:
    """Badge text for a proposal as seen by ``role``."""
    status = ProposalStatus(status)
    if status == S.AWAITING_RECIPIENT:
        return "Awaiting approval" if role == ParticipantRole.PROPOSER else "Needs review"
    if status == S.UNDER_NEGOTIATION:
        if awaiting_party is not None and ParticipantRole(awaiting_party) == role:
            return "Your response required"
        return "Awaiting partner"
    return _FIXED_LABELS[status]
