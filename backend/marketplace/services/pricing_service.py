"""
Rental pricing.

Pure functions over Decimal money. Hourly rentals bill fractional hours
(or the sum of the booked slot hours); daily rentals bill the ceiling of the
raw duration in 24-hour units, not calendar days.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping, Optional

from ..core.config import settings
from ..core.enums import RateType
from ..core.exceptions import ConfigurationException, ValidationException

CENTS = Decimal("0.01")
_ONE_DAY = timedelta(days=1)
_MICROS_PER_HOUR = Decimal(3_600_000_000)


@dataclass(frozen=True)
class PricingResult:
    rate_type: RateType
    rate: Decimal
    total_amount: Decimal
    services_total: Decimal
    total_hours: Optional[Decimal] = None
    total_days: Optional[int] = None
    is_negotiated: bool = False
    original_amount: Optional[Decimal] = None

    @property
    def deposit_amount(self) -> Decimal:
        return compute_deposit(self.total_amount)


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def parse_rate_type(value: Any) -> RateType:
    try:
        return RateType(value)
    except ValueError:
        raise ValidationException(
            f"Unknown rate type: {value}",
            details={"rate_type": str(value), "allowed": [r.value for r in RateType]},
        )


def billable_hours(
    start: datetime, end: datetime, time_slots: Optional[Iterable[Mapping[str, Any]]] = None
) -> Decimal:
    """Sum of slot hours when slots are given, else the window length in hours."""
    slots = list(time_slots or [])
    if slots:
        return sum((Decimal(str(slot["hours"])) for slot in slots), Decimal("0"))
    micros = (end - start) // timedelta(microseconds=1)
    return Decimal(micros) / _MICROS_PER_HOUR


def billable_days(start: datetime, end: datetime) -> int:
    """Ceiling of the duration in whole days; 24h is 1 day, 24h plus a second is 2."""
    delta = end - start
    days = delta // _ONE_DAY
    if delta % _ONE_DAY:
        days += 1
    return int(days)


def services_total(additional_services: Optional[Iterable[Mapping[str, Any]]]) -> Decimal:
    return sum(
        (Decimal(str(service.get("price", 0))) for service in additional_services or []),
        Decimal("0"),
    )


def compute_total(
    rate_type: Any,
    start: datetime,
    end: datetime,
    base_rate: Optional[Decimal],
    *,
    time_slots: Optional[Iterable[Mapping[str, Any]]] = None,
    additional_services: Optional[Iterable[Mapping[str, Any]]] = None,
    negotiated_rate: Optional[Decimal] = None,
) -> PricingResult:
    """
    Price a rental window.

    An accepted negotiation's rate replaces ``base_rate``; the base-rate price
    is then kept as ``original_amount`` so the discount stays visible.

    Raises:
        ValidationException: unknown rate type or inverted window
        ConfigurationException: the car has no rate for ``rate_type``
    """
    kind = parse_rate_type(rate_type)
    if end < start:
        raise ValidationException("End time must not be before start time")
    if base_rate is None:
        raise ConfigurationException(
            f"Car has no {kind.value} rate configured",
            details={"rate_type": kind.value},
        )

    extras = services_total(additional_services)
    slots = list(time_slots or [])
    hours: Optional[Decimal] = None
    days: Optional[int] = None
    if kind == RateType.HOURLY:
        hours = billable_hours(start, end, slots)
        units = hours
    else:
        days = billable_days(start, end)
        units = Decimal(days)

    base_amount = _money(units * Decimal(base_rate) + extras)
    if negotiated_rate is None:
        return PricingResult(
            rate_type=kind,
            rate=_money(Decimal(base_rate)),
            total_amount=base_amount,
            services_total=_money(extras),
            total_hours=_money(hours) if hours is not None else None,
            total_days=days,
        )

    return PricingResult(
        rate_type=kind,
        rate=_money(Decimal(negotiated_rate)),
        total_amount=_money(units * Decimal(negotiated_rate) + extras),
        services_total=_money(extras),
        total_hours=_money(hours) if hours is not None else None,
        total_days=days,
        is_negotiated=True,
        original_amount=base_amount,
    )


def compute_deposit(total_amount: Decimal, rate: Optional[Decimal] = None) -> Decimal:
    """Deposit is the total times the deployment's deposit rate, rounded to a whole unit."""
    deposit_rate = settings.deposit_rate if rate is None else rate
    return (Decimal(total_amount) * Decimal(deposit_rate)).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP
    )
