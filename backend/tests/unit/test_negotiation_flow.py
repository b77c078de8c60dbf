from datetime import datetime, timedelta, timezone

import pytest

from marketplace.core.enums import NegotiationAction as A
from marketplace.core.enums import NegotiationStatus as S
from marketplace.core.exceptions import ForbiddenException, InvalidStateTransitionException
from marketplace.domain.negotiation_flow import is_expired, next_status

NOW = datetime(2030, 1, 1, tzinfo=timezone.utc)


class TestNextStatus:
    @pytest.mark.parametrize(
        "action, expected",
        [(A.ACCEPT, S.ACCEPTED), (A.REJECT, S.REJECTED), (A.COUNTER, S.COUNTERED)],
    )
    def test_owner_answers_opening_offer(self, action, expected):
        assert next_status(S.PENDING, action, responder_id="owner", last_offer_by_id="cust") == expected

    def test_customer_answers_counter(self):
        assert (
            next_status(S.COUNTERED, A.ACCEPT, responder_id="cust", last_offer_by_id="owner")
            == S.ACCEPTED
        )

    def test_cannot_answer_own_offer(self):
        with pytest.raises(ForbiddenException):
            next_status(S.PENDING, A.ACCEPT, responder_id="cust", last_offer_by_id="cust")

    @pytest.mark.parametrize("status", [S.ACCEPTED, S.REJECTED, S.EXPIRED])
    def test_closed_negotiations_are_final(self, status):
        with pytest.raises(InvalidStateTransitionException):
            next_status(status, A.COUNTER, responder_id="owner", last_offer_by_id="cust")

    def test_counter_cap(self):
        with pytest.raises(InvalidStateTransitionException) as exc:
            next_status(
                S.COUNTERED,
                A.COUNTER,
                responder_id="owner",
                last_offer_by_id="cust",
                counter_rounds=3,
                max_counter_rounds=3,
            )
        assert exc.value.details["max_counter_rounds"] == 3

    def test_cap_does_not_block_accept(self):
        assert (
            next_status(
                S.COUNTERED,
                A.ACCEPT,
                responder_id="owner",
                last_offer_by_id="cust",
                counter_rounds=3,
                max_counter_rounds=3,
            )
            == S.ACCEPTED
        )


class TestIsExpired:
    def test_open_past_deadline(self):
        assert is_expired(S.PENDING, NOW - timedelta(seconds=1), NOW)

    def test_deadline_itself_counts(self):
        assert is_expired(S.COUNTERED, NOW, NOW)

    def test_before_deadline(self):
        assert not is_expired(S.PENDING, NOW + timedelta(minutes=1), NOW)

    def test_closed_never_expires(self):
        assert not is_expired(S.ACCEPTED, NOW - timedelta(days=3), NOW)
