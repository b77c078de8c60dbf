"""Refund tiers for cancelled reservations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from ..core.timezone_utils import ensure_utc

FULL_REFUND_NOTICE = timedelta(hours=48)
HALF_REFUND_NOTICE = timedelta(hours=24)


@dataclass(frozen=True)
class RefundDecision:
    refund_amount: Decimal
    refund_percent: int
    hours_until_start: float


def evaluate(total: Decimal, start: datetime, now: datetime) -> RefundDecision:
    """
    More than 48h notice refunds everything, more than 24h half, otherwise nothing.

    Boundaries belong to the lower tier: exactly 48h refunds 50%, exactly 24h
    refunds 0%.
    """
    notice = ensure_utc(start) - ensure_utc(now)
    if notice > FULL_REFUND_NOTICE:
        percent = 100
    elif notice > HALF_REFUND_NOTICE:
        percent = 50
    else:
        percent = 0
    amount = (Decimal(total) * percent / 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return RefundDecision(
        refund_amount=amount,
        refund_percent=percent,
        hours_until_start=notice.total_seconds() / 3600,
    )


def refund_amount(total: Decimal, start: datetime, now: datetime) -> Decimal:
    return evaluate(total, start, now).refund_amount
