"""Domain enumerations for the TradeLink proposal workflow.

All enums use the (str, Enum) pattern to ensure JSON serialization compatibility.
"""

from enum import Enum


# ---------------------------------------------------------------------------
# Proposal lifecycle
# ---------------------------------------------------------------------------


class ProposalStatus(str, Enum):
    """Lifecycle status of a partnership proposal."""

    AWAITING_RECIPIENT = "awaiting_recipient"
    UNDER_NEGOTIATION = "under_negotiation"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class ParticipantRole(str, Enum):
    """Fixed role a business holds on a proposal."""

    PROPOSER = "proposer"
    RECIPIENT = "recipient"

    @property
    def other(self) -> "ParticipantRole":
        if self is ParticipantRole.PROPOSER:
            return ParticipantRole.RECIPIENT
        return ParticipantRole.PROPOSER


class ProposalActor(str, Enum):
    """Who triggered a transition: one of the two roles or the platform."""

    PROPOSER = "proposer"
    RECIPIENT = "recipient"
    SYSTEM = "system"


class ProposalAction(str, Enum):
    """Actions that move a proposal through its lifecycle."""

    ACCEPT = "accept"
    DECLINE = "decline"
    NEGOTIATE = "negotiate"
    CANCEL = "cancel"
    EXPIRE = "expire"


class StatusAction(str, Enum):
    """Subset of actions accepted by the generic action endpoint."""

    ACCEPT = "accept"
    DECLINE = "decline"
    CANCEL = "cancel"


class ProposalTab(str, Enum):
    """List filter tabs shown on the proposals page."""

    ALL = "all"
    SENT = "sent"
    RECEIVED = "received"
    AWAITING = "awaiting"
    NEGOTIATING = "negotiating"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class ProposalMessageType(str, Enum):
    """Kind of entry in a proposal's message thread."""

    MESSAGE = "message"
    STATUS_CHANGE = "status_change"
    SYSTEM = "system"
    NEGOTIATION_REQUEST = "negotiation_request"


class NotificationType(str, Enum):
    """Kind of notification delivered to the counterpart business."""

    NEW_PROPOSAL = "new_proposal"
    STATUS_CHANGE = "status_change"
    NEGOTIATION_UPDATE = "negotiation_update"
    MESSAGE = "message"


# ---------------------------------------------------------------------------
# Proposal content
# ---------------------------------------------------------------------------


class ProposalStepKey(str, Enum):
    """Sections of a proposal, in builder order."""

    PARTNER_SELECTION = "partner_selection"
    OUTLINE = "outline"
    CONTRIBUTIONS = "contributions"
    OBJECTIVES = "objectives"
    TERMS = "terms"
    TRACKING = "tracking"
    ADDITIONAL_NOTES = "additional_notes"


class DurationUnit(str, Enum):
    """Unit for a partnership's fixed duration."""

    DAYS = "days"
    MONTHS = "months"
    QUARTERS = "quarters"
    YEARS = "years"


class ReviewUnit(str, Enum):
    """Unit for the partnership review cadence."""

    WEEKS = "weeks"
    MONTHS = "months"
    QUARTERS = "quarters"
    YEARS = "years"


class MeasurementUnit(str, Enum):
    """How a KPI target is measured."""

    NUMBER = "number"
    PERCENT = "percent"
    CURRENCY = "currency"
    TIME = "time"
    RESOURCES = "resources"
    EXPOSURE = "exposure"


class FrequencyUnit(str, Enum):
    """Unit for KPI report frequency."""

    DAYS = "days"
    MONTHS = "months"
    YEARS = "years"
    CUSTOM = "custom"


class TerminationOption(str, Enum):
    """Conditions under which either party may end the partnership."""

    BREACH = "breach"
    NON_PERFORMANCE = "non_performance"
    MUTUAL_CONSENT = "mutual_consent"
