"""SQLAlchemy ORM models for the TradeLink proposal core.

All models use SQLite-compatible types:
- String(36) for UUID primary keys
- JSON for structured data (no JSONB)
- DateTime for timestamps (no TIMESTAMPTZ)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)

from tradelink.infra.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Business directory
# ---------------------------------------------------------------------------


class Business(Base):
    """Directory entry for a business account on the marketplace."""

    __tablename__ = "businesses"

    id = Column(String(64), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    industry = Column(String(255), nullable=True)
    location = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow)


class BusinessBlock(Base):
    """One-directional block: blocker no longer sees or contacts blocked."""

    __tablename__ = "business_blocks"
    __table_args__ = (UniqueConstraint("blocker_id", "blocked_id", name="uq_business_block_pair"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    blocker_id = Column(String(64), nullable=False, index=True)
    blocked_id = Column(String(64), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)


# ---------------------------------------------------------------------------
# Proposals
# ---------------------------------------------------------------------------


class Proposal(Base):
    """Partnership proposal exchanged between two businesses.

    ``version`` is the optimistic-lock counter: every ORM flush of a dirty
    row is issued as ``UPDATE ... WHERE version = :seen`` and bumps it.
    """

    __tablename__ = "proposals"

    id = Column(String(36), primary_key=True, default=_uuid)
    proposer_id = Column(String(64), nullable=False, index=True)
    proposer_name = Column(String(255), nullable=False)  # snapshot at creation
    recipient_id = Column(String(64), nullable=False, index=True)
    recipient_name = Column(String(255), nullable=False)  # snapshot at creation

    title = Column(String(255), nullable=False)
    summary = Column(Text, nullable=False, default="")
    content = Column(JSON, nullable=False)  # ProposalContent snapshot

    # Status
    status = Column(String(30), nullable=False, default="awaiting_recipient", index=True)
    awaiting_party = Column(String(20), nullable=True)  # ParticipantRole
    current_version_number = Column(Integer, nullable=False, default=1)

    # Read tracking
    unread_for_proposer = Column(Boolean, nullable=False, default=False)
    unread_for_recipient = Column(Boolean, nullable=False, default=True)

    # Concurrency
    version = Column(Integer, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, index=True)

    __mapper_args__ = {"version_id_col": version}


class ProposalVersion(Base):
    """Immutable content snapshot written on creation and every negotiation round."""

    __tablename__ = "proposal_versions"
    __table_args__ = (UniqueConstraint("proposal_id", "version_number", name="uq_proposal_version_number"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    proposal_id = Column(String(36), ForeignKey("proposals.id"), nullable=False, index=True)
    version_number = Column(Integer, nullable=False)
    created_by = Column(String(64), nullable=False)
    created_by_role = Column(String(20), nullable=False)  # ParticipantRole
    step_data = Column(JSON, nullable=False)
    changes_summary = Column(Text, nullable=True)
    updated_steps = Column(JSON, nullable=False, default=list)  # list[ProposalStepKey]
    created_at = Column(DateTime, default=utcnow)


class ProposalMessage(Base):
    """Append-only thread entry attached to a proposal."""

    __tablename__ = "proposal_messages"
    __table_args__ = (UniqueConstraint("proposal_id", "sequence", name="uq_proposal_message_sequence"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    proposal_id = Column(String(36), ForeignKey("proposals.id"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    sender_id = Column(String(64), nullable=False)
    sender_role = Column(String(20), nullable=True)  # ParticipantRole, NULL for system
    sender_name = Column(String(255), nullable=False)
    type = Column(String(30), nullable=False, default="message")  # ProposalMessageType
    content = Column(Text, nullable=False)
    payload = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow)


class ProposalNotification(Base):
    """In-app notification delivered to one business about one proposal."""

    __tablename__ = "proposal_notifications"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(64), nullable=False, index=True)
    proposal_id = Column(String(36), ForeignKey("proposals.id"), nullable=False)
    type = Column(String(30), nullable=False)  # NotificationType
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    action_url = Column(String(500), nullable=True)
    metadata_ = Column("metadata", JSON, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)


class ProposalReport(Base):
    """Moderation report filed by a participant; independent of proposal status."""

    __tablename__ = "proposal_reports"

    id = Column(String(36), primary_key=True, default=_uuid)
    proposal_id = Column(String(36), ForeignKey("proposals.id"), nullable=False, index=True)
    reported_by = Column(String(64), nullable=False)
    reporter_role = Column(String(20), nullable=False)  # ParticipantRole
    reporter_name = Column(String(255), nullable=True)
    reason = Column(String(500), nullable=False)
    details = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
