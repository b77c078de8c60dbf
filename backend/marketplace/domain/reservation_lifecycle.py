"""
Reservation lifecycle table.

One table for both reservation kinds. Each entry maps ``(from, to)`` to the
roles allowed to make that move; anything missing is not a legal transition.
"""

from __future__ import annotations

from typing import FrozenSet, Mapping, Tuple

from ..core.enums import ReservationStatus, RoleName
from ..core.exceptions import ForbiddenException, InvalidStateTransitionException

_OWNER_SIDE = frozenset({RoleName.OWNER, RoleName.ADMIN})
_OPERATORS = frozenset({RoleName.OWNER, RoleName.ADMIN, RoleName.SYSTEM})
_ANY_PARTY = frozenset({RoleName.CUSTOMER, RoleName.OWNER, RoleName.ADMIN})

_S = ReservationStatus

_ALLOWED_TRANSITIONS: Mapping[Tuple[ReservationStatus, ReservationStatus], FrozenSet[RoleName]] = {
    (_S.PENDING, _S.CONFIRMED): _OWNER_SIDE,
    (_S.PENDING, _S.REJECTED): _OWNER_SIDE,
    (_S.PENDING, _S.CANCELLED): _ANY_PARTY,
    (_S.CONFIRMED, _S.ACTIVE): _OPERATORS,
    (_S.CONFIRMED, _S.CANCELLED): _ANY_PARTY,
    (_S.ACTIVE, _S.COMPLETED): _OPERATORS,
    (_S.ACTIVE, _S.CANCELLED): _ANY_PARTY,
}

TERMINAL_STATUSES = frozenset({_S.COMPLETED, _S.CANCELLED, _S.REJECTED})

RESCHEDULABLE_STATUSES = frozenset({_S.PENDING, _S.CONFIRMED})


def allowed_targets(current: ReservationStatus) -> FrozenSet[ReservationStatus]:
    return frozenset(to for (frm, to) in _ALLOWED_TRANSITIONS if frm == current)


def is_allowed(current: ReservationStatus, target: ReservationStatus) -> bool:
    return (current, target) in _ALLOWED_TRANSITIONS


def validate_transition(
    current: ReservationStatus, target: ReservationStatus, actor_role: RoleName
) -> None:
    """
    Raise unless ``actor_role`` may move a reservation from ``current`` to ``target``.

    State is checked before authority: asking for an impossible move is an
    invalid transition whoever asks.
    """
    roles = _ALLOWED_TRANSITIONS.get((current, target))
    if roles is None:
        raise InvalidStateTransitionException(
            f"Cannot change reservation status from {current.value} to {target.value}",
            current=current.value,
            requested=target.value,
        )
    if actor_role not in roles:
        raise ForbiddenException(
            f"Not authorized to change reservation status to {target.value}",
            details={"current_status": current.value, "requested_status": target.value},
        )
