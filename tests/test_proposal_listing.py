"""Tests for viewer role resolution, tab filters, search and status labels."""

from types import SimpleNamespace

import pytest

from tradelink.domain.enums import ParticipantRole, ProposalStatus, ProposalTab
from tradelink.domain.errors import ForbiddenError
from tradelink.services.proposal_listing import (
    TAB_PREDICATES,
    counterparty_id,
    matches_search,
    matches_tab,
    partner_name_for,
    resolve_role,
    status_label,
    unread_for,
)

S = ProposalStatus
T = ProposalTab
R = ParticipantRole


def _make_proposal(**kwargs):
    """Create a simple namespace that acts like a proposal row."""
    defaults = {
        "id": "p-1",
        "proposer_id": "acme",
        "proposer_name": "Acme Roasters",
        "recipient_id": "globex",
        "recipient_name": "Globex Bakery",
        "title": "Breakfast bundle",
        "status": S.AWAITING_RECIPIENT.value,
        "awaiting_party": None,
        "unread_for_proposer": False,
        "unread_for_recipient": True,
    }
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


class TestRoles:

    def test_resolve_role(self):
        p = _make_proposal()
        assert resolve_role(p, "acme") == R.PROPOSER
        assert resolve_role(p, "globex") == R.RECIPIENT

    def test_outsider_forbidden(self):
        with pytest.raises(ForbiddenError):
            resolve_role(_make_proposal(), "initech")

    def test_counterparty_and_partner_name(self):
        p = _make_proposal()
        assert counterparty_id(p, R.PROPOSER) == "globex"
        assert counterparty_id(p, R.RECIPIENT) == "acme"
        assert partner_name_for(p, R.PROPOSER) == "Globex Bakery"
        assert partner_name_for(p, R.RECIPIENT) == "Acme Roasters"

    def test_unread_for_viewer(self):
        p = _make_proposal()
        assert unread_for(p, R.RECIPIENT) is True
        assert unread_for(p, R.PROPOSER) is False


class TestTabs:

    def test_every_tab_has_a_predicate(self):
        assert set(TAB_PREDICATES) == set(ProposalTab)

    def test_sent_and_received(self):
        p = _make_proposal()
        assert matches_tab(p, "acme", T.SENT)
        assert not matches_tab(p, "acme", T.RECEIVED)
        assert matches_tab(p, "globex", T.RECEIVED)
        assert not matches_tab(p, "globex", T.SENT)

    def test_awaiting_includes_fresh_and_turn_based(self):
        assert matches_tab(_make_proposal(), "acme", T.AWAITING)
        negotiating = _make_proposal(status=S.UNDER_NEGOTIATION.value, awaiting_party="proposer")
        assert matches_tab(negotiating, "acme", T.AWAITING)
        assert matches_tab(negotiating, "globex", T.AWAITING)

    def test_awaiting_excludes_terminal(self):
        assert not matches_tab(_make_proposal(status=S.ACCEPTED.value), "acme", T.AWAITING)

    def test_negotiating(self):
        p = _make_proposal(status=S.UNDER_NEGOTIATION.value, awaiting_party="recipient")
        assert matches_tab(p, "acme", T.NEGOTIATING)
        assert not matches_tab(_make_proposal(), "acme", T.NEGOTIATING)

    def test_declined_tab_includes_cancelled(self):
        assert matches_tab(_make_proposal(status=S.DECLINED.value), "acme", T.DECLINED)
        assert matches_tab(_make_proposal(status=S.CANCELLED.value), "acme", T.DECLINED)
        assert not matches_tab(_make_proposal(status=S.EXPIRED.value), "acme", T.DECLINED)

    def test_expired_only_in_all(self):
        p = _make_proposal(status=S.EXPIRED.value)
        hits = [tab for tab in ProposalTab if matches_tab(p, "acme", tab)]
        assert hits == [T.ALL, T.SENT]

    def test_raw_tab_value(self):
        assert matches_tab(_make_proposal(), "acme", "sent")


class TestSearch:

    def test_blank_search_matches(self):
        assert matches_search(_make_proposal(), "acme", "  ")
        assert matches_search(_make_proposal(), "acme", None)

    def test_title_case_insensitive(self):
        assert matches_search(_make_proposal(), "acme", "BREAKFAST")

    def test_matches_counterpart_name_only(self):
        p = _make_proposal()
        assert matches_search(p, "acme", "globex")
        assert not matches_search(p, "acme", "acme roasters")
        assert matches_search(p, "globex", "acme")

    def test_no_match(self):
        assert not matches_search(_make_proposal(), "acme", "lumber")


class TestStatusLabels:

    def test_fresh_proposal(self):
        assert status_label(S.AWAITING_RECIPIENT, None, R.PROPOSER) == "Awaiting approval"
        assert status_label(S.AWAITING_RECIPIENT, None, R.RECIPIENT) == "Needs review"

    def test_negotiation_turn(self):
        assert status_label("under_negotiation", "recipient", R.RECIPIENT) == "Your response required"
        assert status_label("under_negotiation", "recipient", R.PROPOSER) == "Awaiting partner"

    @pytest.mark.parametrize(
        "status,label",
        [
            (S.ACCEPTED, "Accepted"),
            (S.DECLINED, "Declined"),
            (S.CANCELLED, "Cancelled"),
            (S.EXPIRED, "Expired"),
        ],
    )
    def test_terminal_labels(self, status, label):
        assert status_label(status, None, R.PROPOSER) == label
        assert status_label(status, None, R.RECIPIENT) == label
