"""Pydantic v2 schemas for proposal content and API request/response validation."""

from datetime import datetime, timezone
from typing import Annotated, Any, Optional, Union

from pydantic import AfterValidator, AliasChoices, BaseModel, ConfigDict, Field

from tradelink.domain.enums import (
    DurationUnit,
    FrequencyUnit,
    MeasurementUnit,
    NotificationType,
    ParticipantRole,
    ProposalMessageType,
    ProposalStatus,
    ProposalStepKey,
    ReviewUnit,
    StatusAction,
    TerminationOption,
)

Number = Union[int, float]


def _as_utc(value: datetime) -> datetime:
    """SQLite hands timestamps back naive; they are always stored as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


# ---------------------------------------------------------------------------
# Proposal content (one model per builder step)
# ---------------------------------------------------------------------------


class PartnerSelectionStep(BaseModel):
    partner_id: str = Field(min_length=1)
    partner_name: str = Field(min_length=1)
    partner_industry: Optional[str] = None
    partner_location: Optional[str] = None


class OutlineStep(BaseModel):
    summary: str = Field(min_length=1)
    focus_key: str = Field(min_length=1)
    focus_title: str = Field(min_length=1)
    focus_description: str = Field(min_length=1)


class ContributionsStep(BaseModel):
    proposer_contribution: str = Field(min_length=1)
    recipient_contribution: str = Field(min_length=1)


class ObjectiveRow(BaseModel):
    id: str = Field(min_length=1)
    proposer_outcome: str = ""
    recipient_outcome: str = ""


class ObjectivesStep(BaseModel):
    overview: str = Field(min_length=1)
    rows: list[ObjectiveRow] = Field(min_length=1)


class TermsStep(BaseModel):
    start_date: str = Field(min_length=1)
    duration_value: Optional[Number] = None
    duration_unit: Optional[DurationUnit] = None
    ongoing: bool = False
    review_frequency_value: Number = Field(gt=0)
    review_frequency_unit: ReviewUnit
    termination_options: list[TerminationOption] = Field(min_length=1)
    additional_terms: str = ""
    computed_end_date: Optional[str] = None


class TrackingKpiRow(BaseModel):
    """A tracked success metric.

    ``report_frequency_value`` is kept exactly as submitted (number or
    numeric string); validity is decided by the content builder.
    """

    id: str = Field(min_length=1)
    name: str = ""
    measurement_unit: MeasurementUnit = MeasurementUnit.NUMBER
    target_value: str = ""
    currency: Optional[str] = None
    report_frequency_value: Union[int, float, str, None] = None
    report_frequency_unit: FrequencyUnit = FrequencyUnit.MONTHS


class TrackingStep(BaseModel):
    kpis: list[TrackingKpiRow] = Field(default_factory=list)


class ProposalContent(BaseModel):
    """Full negotiable payload; replaced wholesale on every negotiation round."""

    partner_selection: PartnerSelectionStep
    outline: OutlineStep
    contributions: ContributionsStep
    objectives: ObjectivesStep
    terms: TermsStep
    tracking: TrackingStep
    additional_notes: str = ""


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class ProposalCreate(BaseModel):
    """Schema for submitting a new proposal. ``proposer_id`` defaults to the caller."""

    proposer_id: Optional[str] = None
    proposer_name: str = Field(min_length=1)
    recipient_id: str = Field(min_length=1)
    recipient_name: str = Field(min_length=1)
    title: Optional[str] = None
    summary: Optional[str] = None
    content: ProposalContent


class StatusActionRequest(BaseModel):
    action: StatusAction
    note: Optional[str] = None
    actor_name: Optional[str] = None
    expected_version: Optional[int] = None


class NegotiationRequest(BaseModel):
    content: ProposalContent
    summary: Optional[str] = None
    actor_name: Optional[str] = None
    expected_version: Optional[int] = None


class MessageCreate(BaseModel):
    content: str
    sender_name: Optional[str] = None


class ReportCreate(BaseModel):
    reason: str = ""
    details: Optional[str] = None
    actor_name: Optional[str] = None


class BuilderPreviewRequest(BaseModel):
    """Partial builder state submitted while the user is still editing."""

    start_date: Optional[str] = None
    duration_value: Union[int, float, str, None] = None
    duration_unit: Optional[DurationUnit] = None
    ongoing: bool = False
    objective_rows: list[ObjectiveRow] = Field(default_factory=list)
    kpis: list[TrackingKpiRow] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class BuilderPreviewResponse(BaseModel):
    end_date: Optional[str] = None
    kpi_rows_valid: list[bool]
    has_valid_objective_row: bool
    buildable: bool


class ProposalMessageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    proposal_id: str
    sequence: int
    sender_id: str
    sender_role: Optional[ParticipantRole] = None
    sender_name: str
    type: ProposalMessageType
    content: str
    payload: Optional[dict[str, Any]] = None
    created_at: Optional[UtcDatetime] = None


class ProposalVersionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    proposal_id: str
    version_number: int
    created_by: str
    created_by_role: ParticipantRole
    step_data: ProposalContent
    changes_summary: Optional[str] = None
    updated_steps: list[ProposalStepKey] = Field(default_factory=list)
    created_at: Optional[UtcDatetime] = None


class ProposalListItem(BaseModel):
    """Row on the proposals page; only the viewer's unread flag is exposed."""

    id: str
    title: str
    summary: str
    partner_name: str
    status: ProposalStatus
    awaiting_party: Optional[ParticipantRole] = None
    viewer_role: ParticipantRole
    unread: bool
    status_label: str
    updated_at: Optional[UtcDatetime] = None


class ProposalDetail(BaseModel):
    id: str
    proposer_id: str
    proposer_name: str
    recipient_id: str
    recipient_name: str
    title: str
    summary: str
    partner_name: str
    status: ProposalStatus
    awaiting_party: Optional[ParticipantRole] = None
    viewer_role: ParticipantRole
    status_label: str
    unread_for_proposer: bool
    unread_for_recipient: bool
    version: int
    current_version_number: int
    content: ProposalContent
    messages: list[ProposalMessageOut] = Field(default_factory=list)
    versions: list[ProposalVersionOut] = Field(default_factory=list)
    allowed_actions: list[str] = Field(default_factory=list)
    created_at: Optional[UtcDatetime] = None
    updated_at: Optional[UtcDatetime] = None


class ProposalReportOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    proposal_id: str
    reported_by: str
    reporter_role: ParticipantRole
    reason: str
    details: Optional[str] = None
    created_at: Optional[UtcDatetime] = None


class BusinessBlockOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    blocker_id: str
    blocked_id: str
    created_at: Optional[UtcDatetime] = None


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    proposal_id: str
    type: NotificationType
    title: str
    message: str
    action_url: Optional[str] = None
    metadata: Optional[dict[str, Any]] = Field(
        default=None, validation_alias=AliasChoices("metadata_", "metadata")
    )
    is_read: bool
    created_at: Optional[UtcDatetime] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
