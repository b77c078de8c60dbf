from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from marketplace.services import cancellation_policy

NOW = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)
TOTAL = Decimal("100.00")


@pytest.mark.parametrize(
    "notice, percent, amount",
    [
        (timedelta(hours=72), 100, Decimal("100.00")),
        (timedelta(hours=48, seconds=1), 100, Decimal("100.00")),
        (timedelta(hours=48), 50, Decimal("50.00")),
        (timedelta(hours=30), 50, Decimal("50.00")),
        (timedelta(hours=24), 0, Decimal("0.00")),
        (timedelta(hours=2), 0, Decimal("0.00")),
        (timedelta(hours=-1), 0, Decimal("0.00")),
    ],
)
def test_refund_tiers(notice, percent, amount):
    decision = cancellation_policy.evaluate(TOTAL, NOW + notice, NOW)
    assert decision.refund_percent == percent
    assert decision.refund_amount == amount


def test_naive_timestamps_are_read_as_utc():
    start = (NOW + timedelta(hours=60)).replace(tzinfo=None)
    assert cancellation_policy.refund_amount(TOTAL, start, NOW) == TOTAL


def test_half_refund_rounds_to_cents():
    decision = cancellation_policy.evaluate(Decimal("33.33"), NOW + timedelta(hours=30), NOW)
    assert decision.refund_amount == Decimal("16.67")
    assert decision.hours_until_start == pytest.approx(30.0)
