"""Proposal state machine: validates lifecycle transitions and turn-taking.

Statuses move forward only, except the negotiation round which re-enters
``under_negotiation``. During negotiation the role recorded in
``awaiting_party`` is the only one allowed to accept, decline or counter.
"""

from dataclasses import dataclass
from typing import Optional, Union

from tradelink.domain.enums import (
    ParticipantRole,
    ProposalAction,
    ProposalActor,
    ProposalStatus,
)
from tradelink.domain.errors import InvalidTransitionError

S = ProposalStatus
X = ProposalAction
A = ProposalActor

# Marker: the actor must hold the role currently stored in awaiting_party
AWAITING_PARTY = "awaiting_party"

ActorRule = Union[frozenset, str]

# ---------------------------------------------------------------------------
# Transition map: from_status -> {action: (to_status, allowed actors)}
# ---------------------------------------------------------------------------

TRANSITION_MAP: dict[ProposalStatus, dict[ProposalAction, tuple[ProposalStatus, ActorRule]]] = {
    S.AWAITING_RECIPIENT: {
        X.ACCEPT: (S.ACCEPTED, frozenset({A.RECIPIENT})),
        X.DECLINE: (S.DECLINED, frozenset({A.RECIPIENT})),
        X.NEGOTIATE: (S.UNDER_NEGOTIATION, frozenset({A.PROPOSER, A.RECIPIENT})),
        X.CANCEL: (S.CANCELLED, frozenset({A.PROPOSER})),
        X.EXPIRE: (S.EXPIRED, frozenset({A.SYSTEM})),
    },
    S.UNDER_NEGOTIATION: {
        X.ACCEPT: (S.ACCEPTED, AWAITING_PARTY),
        X.DECLINE: (S.DECLINED, AWAITING_PARTY),
        X.NEGOTIATE: (S.UNDER_NEGOTIATION, AWAITING_PARTY),
        X.CANCEL: (S.CANCELLED, frozenset({A.PROPOSER})),
        X.EXPIRE: (S.EXPIRED, frozenset({A.SYSTEM})),
    },
}

TERMINAL_STATES: set[ProposalStatus] = {
    S.ACCEPTED,
    S.DECLINED,
    S.CANCELLED,
    S.EXPIRED,
}

ACTIVE_STATES: set[ProposalStatus] = {s for s in ProposalStatus if s not in TERMINAL_STATES}


@dataclass(frozen=True)
class Transition:
    """Outcome of a validated action."""

    from_status: ProposalStatus
    to_status: ProposalStatus
    action: ProposalAction
    actor: ProposalActor
    awaiting_party: Optional[ParticipantRole]


def actor_for_role(role: ParticipantRole) -> ProposalActor:
    return ProposalActor(role.value)


def _coerce_status(status) -> ProposalStatus:
    if isinstance(status, ProposalStatus):
        return status
    return ProposalStatus(status)


def _coerce_role(role) -> Optional[ParticipantRole]:
    if role is None or isinstance(role, ParticipantRole):
        return role
    return ParticipantRole(role)


class ProposalStateMachine:
    """Validates proposal transitions and computes the resulting turn."""

    def validate(
        self,
        status,
        action: ProposalAction,
        actor: ProposalActor,
        awaiting_party=None,
    ) -> Transition:
        """Return the Transition for ``action``. Raise InvalidTransitionError if not allowed.

        Checks:
        1. The current status is not terminal.
        2. The action is defined for the current status.
        3. The actor is allowed (fixed role set, or the awaiting party).
        """
        current = _coerce_status(status)
        awaiting = _coerce_role(awaiting_party)

        if current in TERMINAL_STATES:
            raise InvalidTransitionError(
                current, action, actor, f"Proposal is already {current.value}"
            )

        allowed_actions = TRANSITION_MAP.get(current)
        if allowed_actions is None or action not in allowed_actions:
            raise InvalidTransitionError(
                current, action, actor, f"{action.value} is not defined from {current.value}"
            )

        target, rule = allowed_actions[action]
        if rule == AWAITING_PARTY:
            if awaiting is None:
                raise InvalidTransitionError(
                    current, action, actor, "No party is awaited on this proposal"
                )
            if actor.value != awaiting.value:
                raise InvalidTransitionError(
                    current,
                    action,
                    actor,
                    f"It is the {awaiting.value}'s turn to respond",
                )
        elif actor not in rule:
            raise InvalidTransitionError(
                current,
                action,
                actor,
                f"Actor {actor.value} is not permitted for this transition "
                f"(allowed: {', '.join(sorted(a.value for a in rule))})",
            )

        next_awaiting: Optional[ParticipantRole] = None
        if target == S.UNDER_NEGOTIATION:
            next_awaiting = ParticipantRole(actor.value).other

        return Transition(
            from_status=current,
            to_status=target,
            action=action,
            actor=actor,
            awaiting_party=next_awaiting,
        )

    def get_allowed_actions(
        self,
        status,
        actor: ProposalActor,
        awaiting_party=None,
    ) -> list[ProposalAction]:
        """Return the actions ``actor`` may take from the current state, in map order."""
        current = _coerce_status(status)
        results: list[ProposalAction] = []
        for action in TRANSITION_MAP.get(current, {}):
            try:
                self.validate(current, action, actor, awaiting_party)
            except InvalidTransitionError:
                continue
            results.append(action)
        return results

    def is_terminal(self, status) -> bool:
        return _coerce_status(status) in TERMINAL_STATES
