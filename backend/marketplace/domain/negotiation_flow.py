"""
Rate negotiation state machine.

``pending`` and ``countered`` are open; ``accepted``, ``rejected`` and
``expired`` are final. The party who did not make the offer on the table is
the only one who may respond to it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..core.enums import NegotiationAction, NegotiationStatus
from ..core.exceptions import ForbiddenException, InvalidStateTransitionException

OPEN_STATUSES = frozenset({NegotiationStatus.PENDING, NegotiationStatus.COUNTERED})

_ACTION_RESULT = {
    NegotiationAction.ACCEPT: NegotiationStatus.ACCEPTED,
    NegotiationAction.REJECT: NegotiationStatus.REJECTED,
    NegotiationAction.COUNTER: NegotiationStatus.COUNTERED,
}


def is_expired(status: NegotiationStatus, expires_at: datetime, now: datetime) -> bool:
    """An open negotiation whose deadline has passed is expired."""
    return status in OPEN_STATUSES and expires_at <= now


def next_status(
    status: NegotiationStatus,
    action: NegotiationAction,
    *,
    responder_id: str,
    last_offer_by_id: str,
    counter_rounds: int = 0,
    max_counter_rounds: Optional[int] = None,
) -> NegotiationStatus:
    """
    Resolve ``action`` against the current state.

    Raises:
        InvalidStateTransitionException: negotiation is closed, or the round cap is hit
        ForbiddenException: responder made the offer on the table
    """
    if status not in OPEN_STATUSES:
        raise InvalidStateTransitionException(
            f"Negotiation is {status.value} and can no longer be changed",
            current=status.value,
            requested=_ACTION_RESULT[action].value,
        )
    if responder_id == last_offer_by_id:
        raise ForbiddenException(
            "Waiting for the other party to respond to your offer",
            details={"current_status": status.value},
        )
    if (
        action == NegotiationAction.COUNTER
        and max_counter_rounds is not None
        and counter_rounds >= max_counter_rounds
    ):
        raise InvalidStateTransitionException(
            f"Counter-offer limit of {max_counter_rounds} reached",
            current=status.value,
            requested=NegotiationStatus.COUNTERED.value,
            details={"max_counter_rounds": max_counter_rounds},
        )
    return _ACTION_RESULT[action]
