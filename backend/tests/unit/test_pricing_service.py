"""Rental pricing: hourly, daily ceiling, slots, services, negotiated rate, deposit."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from marketplace.core.enums import RateType
from marketplace.core.exceptions import ConfigurationException, ValidationException
from marketplace.services import pricing_service

START = datetime(2030, 5, 1, 10, 0, tzinfo=timezone.utc)


class TestHourlyPricing:
    def test_two_hours_at_ten(self):
        result = pricing_service.compute_total(
            RateType.HOURLY, START, START + timedelta(hours=2), Decimal("10")
        )
        assert result.total_amount == Decimal("20.00")
        assert result.total_hours == Decimal("2.00")
        assert result.total_days is None
        assert result.deposit_amount == Decimal("4")
        assert result.is_negotiated is False
        assert result.original_amount is None

    def test_fractional_hours_are_billed(self):
        result = pricing_service.compute_total(
            "hourly", START, START + timedelta(minutes=90), Decimal("10")
        )
        assert result.total_hours == Decimal("1.50")
        assert result.total_amount == Decimal("15.00")

    def test_slot_hours_replace_window_length(self):
        slots = [
            {"start": "2030-05-01T10:00:00Z", "end": "2030-05-01T11:00:00Z", "hours": 1},
            {"start": "2030-05-01T14:00:00Z", "end": "2030-05-01T15:30:00Z", "hours": "1.5"},
        ]
        result = pricing_service.compute_total(
            RateType.HOURLY, START, START + timedelta(hours=8), Decimal("10"), time_slots=slots
        )
        assert result.total_hours == Decimal("2.50")
        assert result.total_amount == Decimal("25.00")

    def test_additional_services_are_added_flat(self):
        result = pricing_service.compute_total(
            RateType.HOURLY,
            START,
            START + timedelta(hours=2),
            Decimal("10"),
            additional_services=[{"name": "Child seat", "price": 5}, {"name": "GPS", "price": "2.5"}],
        )
        assert result.services_total == Decimal("7.50")
        assert result.total_amount == Decimal("27.50")


class TestDailyPricing:
    def test_exactly_one_day_is_one_day(self):
        result = pricing_service.compute_total(
            RateType.DAILY, START, START + timedelta(hours=24), Decimal("200")
        )
        assert result.total_days == 1
        assert result.total_amount == Decimal("200.00")
        assert result.total_hours is None

    def test_one_second_over_rounds_up(self):
        assert pricing_service.billable_days(START, START + timedelta(hours=24, seconds=1)) == 2

    def test_partial_day_bills_a_full_day(self):
        assert pricing_service.billable_days(START, START + timedelta(hours=3)) == 1

    def test_zero_length_window_bills_nothing(self):
        assert pricing_service.billable_days(START, START) == 0


class TestNegotiatedPricing:
    def test_negotiated_rate_keeps_original_amount(self):
        result = pricing_service.compute_total(
            RateType.HOURLY,
            START,
            START + timedelta(hours=2),
            Decimal("10"),
            negotiated_rate=Decimal("9"),
        )
        assert result.rate == Decimal("9.00")
        assert result.total_amount == Decimal("18.00")
        assert result.original_amount == Decimal("20.00")
        assert result.is_negotiated is True


class TestPricingErrors:
    def test_missing_rate_is_configuration_error(self):
        with pytest.raises(ConfigurationException):
            pricing_service.compute_total(RateType.DAILY, START, START + timedelta(days=1), None)

    def test_unknown_rate_type(self):
        with pytest.raises(ValidationException):
            pricing_service.compute_total("weekly", START, START + timedelta(days=7), Decimal("1"))

    def test_inverted_window(self):
        with pytest.raises(ValidationException):
            pricing_service.compute_total(
                RateType.HOURLY, START, START - timedelta(hours=1), Decimal("10")
            )


class TestDeposit:
    @pytest.mark.parametrize(
        "total, expected",
        [
            (Decimal("20.00"), Decimal("4")),
            (Decimal("12.50"), Decimal("3")),  # 2.5 rounds half up
            (Decimal("0"), Decimal("0")),
            (Decimal("199.99"), Decimal("40")),
        ],
    )
    def test_default_rate(self, total, expected):
        assert pricing_service.compute_deposit(total) == expected

    def test_explicit_rate(self):
        assert pricing_service.compute_deposit(Decimal("100"), Decimal("0.5")) == Decimal("50")
