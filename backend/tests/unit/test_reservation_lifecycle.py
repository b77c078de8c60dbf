"""Every (from, to, role) combination of the reservation lifecycle."""

import itertools

import pytest

from marketplace.core.enums import ReservationStatus as S
from marketplace.core.enums import RoleName as R
from marketplace.core.exceptions import ForbiddenException, InvalidStateTransitionException
from marketplace.domain.reservation_lifecycle import (
    TERMINAL_STATUSES,
    allowed_targets,
    is_allowed,
    validate_transition,
)

EXPECTED = {
    (S.PENDING, S.CONFIRMED): {R.OWNER, R.ADMIN},
    (S.PENDING, S.REJECTED): {R.OWNER, R.ADMIN},
    (S.PENDING, S.CANCELLED): {R.CUSTOMER, R.OWNER, R.ADMIN},
    (S.CONFIRMED, S.ACTIVE): {R.OWNER, R.ADMIN, R.SYSTEM},
    (S.CONFIRMED, S.CANCELLED): {R.CUSTOMER, R.OWNER, R.ADMIN},
    (S.ACTIVE, S.COMPLETED): {R.OWNER, R.ADMIN, R.SYSTEM},
    (S.ACTIVE, S.CANCELLED): {R.CUSTOMER, R.OWNER, R.ADMIN},
}

ROLES = [R.CUSTOMER, R.OWNER, R.ADMIN, R.SYSTEM]


@pytest.mark.parametrize("current, target, role", itertools.product(S, S, ROLES))
def test_transition_table(current, target, role):
    allowed_roles = EXPECTED.get((current, target))
    if allowed_roles is None:
        with pytest.raises(InvalidStateTransitionException) as exc:
            validate_transition(current, target, role)
        assert exc.value.code == "INVALID_STATE_TRANSITION"
    elif role in allowed_roles:
        validate_transition(current, target, role)
    else:
        with pytest.raises(ForbiddenException):
            validate_transition(current, target, role)


def test_terminal_statuses_have_no_exits():
    for status in TERMINAL_STATUSES:
        assert allowed_targets(status) == frozenset()


def test_state_is_checked_before_role():
    # A customer asking to complete a pending reservation is told the move is impossible
    with pytest.raises(InvalidStateTransitionException):
        validate_transition(S.PENDING, S.COMPLETED, R.CUSTOMER)


def test_is_allowed_matches_table():
    assert is_allowed(S.PENDING, S.CONFIRMED)
    assert not is_allowed(S.CONFIRMED, S.PENDING)
    assert allowed_targets(S.PENDING) == {S.CONFIRMED, S.REJECTED, S.CANCELLED}
