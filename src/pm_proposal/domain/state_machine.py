"""Proposal lifecycle transitions.

ACTIVE -> CLOSED -> RESOLVED -> {EXECUTED | REJECTED}
ACTIVE | CLOSED -> CANCELED
"""

from collections.abc import Iterable

from src.pm_common.enums import ProposalState
from src.pm_common.errors import InvalidTransitionError

LEGAL_TRANSITIONS: dict[ProposalState, frozenset[ProposalState]] = {
    ProposalState.ACTIVE: frozenset({ProposalState.CLOSED, ProposalState.CANCELED}),
    ProposalState.CLOSED: frozenset({ProposalState.RESOLVED, ProposalState.CANCELED}),
    ProposalState.RESOLVED: frozenset({ProposalState.EXECUTED, ProposalState.REJECTED}),
    ProposalState.EXECUTED: frozenset(),
    ProposalState.REJECTED: frozenset(),
    ProposalState.CANCELED: frozenset(),
}


def ensure_state(proposal: object, allowed: Iterable[ProposalState], operation: str) -> None:
    state: ProposalState = proposal.state  # type: ignore[attr-defined]
    if state not in set(allowed):
        raise InvalidTransitionError(proposal.id, state.value, operation)  # type: ignore[attr-defined]


def transition(proposal: object, target: ProposalState, operation: str) -> None:
    state: ProposalState = proposal.state  # type: ignore[attr-defined]
    if target not in LEGAL_TRANSITIONS[state]:
        raise InvalidTransitionError(proposal.id, state.value, operation)  # type: ignore[attr-defined]
    proposal.state = target  # type: ignore[attr-defined]
