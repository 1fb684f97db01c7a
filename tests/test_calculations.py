"""Tests for core calculation functions."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

import pytest

from coopbill.core.calculations import (
    aggregate_invoice,
    calculate_consumption,
    calculate_cost,
    check_transition,
    due_date_for,
    household_adjustment,
    invoice_number,
    is_overdue,
    price_flat_line,
    price_metered_line,
    prorated_shared_costs,
    quarter_of,
    reconcile_totals,
    resolve_pricing,
    share_per_household,
    split_difference,
    status_after_payment,
)
from coopbill.core.errors import (
    ConfigurationError,
    DataIntegrityError,
    InvalidStatusTransitionError,
    MissingPrecedingPeriodError,
)
from coopbill.core.models import (
    ConsumptionSource,
    FirstReadingPolicy,
    InvoiceStatus,
    PeriodType,
    ServiceType,
    SplitMode,
)


@pytest.mark.parametrize(
    "current, previous, override, expected, source",
    [
        (Decimal("130"), Decimal("100"), None, Decimal("30"), ConsumptionSource.DERIVED),
        (Decimal("100"), Decimal("100"), None, Decimal("0"), ConsumptionSource.DERIVED),
        (Decimal("150.55"), Decimal("120.25"), None, Decimal("30.30"), ConsumptionSource.DERIVED),
        # Meter replaced: the new meter restarted at zero.
        (Decimal("0"), Decimal("812"), Decimal("54"), Decimal("54"), ConsumptionSource.OVERRIDE),
        (Decimal("130"), Decimal("100"), Decimal("0"), Decimal("0"), ConsumptionSource.OVERRIDE),
        (Decimal("42"), None, None, Decimal("42"), ConsumptionSource.INITIAL),
    ],
)
def test_calculate_consumption(current, previous, override, expected, source):
    """Tests the calculate_consumption function with various scenarios."""
    result = calculate_consumption(current, previous, override)
    assert result.value == expected
    assert result.source is source


def test_calculate_consumption_rejects_decreasing_readings():
    with pytest.raises(DataIntegrityError):
        calculate_consumption(Decimal("120"), Decimal("130"))


def test_calculate_consumption_first_reading_unavailable():
    with pytest.raises(MissingPrecedingPeriodError):
        calculate_consumption(
            Decimal("42"), None, policy=FirstReadingPolicy.UNAVAILABLE
        )


def test_override_wins_over_first_reading_policy():
    result = calculate_consumption(
        Decimal("42"), None, Decimal("5"), policy=FirstReadingPolicy.UNAVAILABLE
    )
    assert result.value == Decimal("5")


@pytest.mark.parametrize(
    "consumption, rate, expected",
    [
        (Decimal("100"), Decimal("10.5"), Decimal("1050.00")),
        (Decimal("0"), Decimal("10.5"), Decimal("0.00")),
        (Decimal("28"), Decimal("45.50"), Decimal("1274.00")),
        (Decimal("-2"), Decimal("45.50"), Decimal("-91.00")),
        (Decimal("0.333"), Decimal("10"), Decimal("3.33")),
        (Decimal("0.125"), Decimal("1"), Decimal("0.13")),
    ],
)
def test_calculate_cost(consumption, rate, expected):
    """Tests the calculate_cost function with various scenarios."""
    assert calculate_cost(consumption, rate) == expected


def test_reconcile_totals_balances_across_households():
    totals = reconcile_totals(
        [Decimal("46")], [Decimal("30"), Decimal("20")], active_household_count=2
    )
    assert totals.main_meter_total == Decimal("46")
    assert totals.household_total == Decimal("50")
    assert totals.difference == Decimal("-4")
    assert totals.adjustment_per_household == Decimal("-2")
    assert totals.adjustment_per_household * 2 == totals.difference


def test_split_difference_rounds_to_six_decimals():
    assert split_difference(Decimal("10"), 3) == Decimal("3.333333")


@pytest.mark.parametrize("count", [0, -1])
def test_sharing_requires_active_households(count):
    with pytest.raises(ConfigurationError):
        split_difference(Decimal("10"), count)
    with pytest.raises(ConfigurationError):
        share_per_household(Decimal("1000"), count)


def test_share_per_household():
    assert share_per_household(Decimal("1000"), 3) == Decimal("333.33")


@pytest.mark.parametrize(
    "split_mode, raw, expected",
    [
        (SplitMode.EQUAL, Decimal("30"), Decimal("-2")),
        (SplitMode.PROPORTIONAL, Decimal("30"), Decimal("-2.4")),
        (SplitMode.PROPORTIONAL, Decimal("20"), Decimal("-1.6")),
    ],
)
def test_household_adjustment(split_mode, raw, expected):
    assert (
        household_adjustment(
            difference=Decimal("-4"),
            household_total=Decimal("50"),
            adjustment_per_household=Decimal("-2"),
            split_mode=split_mode,
            raw_consumption=raw,
        )
        == expected
    )


def test_proportional_adjustment_without_household_consumption_falls_back_to_equal():
    assert household_adjustment(
        difference=Decimal("6"),
        household_total=Decimal("0"),
        adjustment_per_household=Decimal("3"),
        split_mode=SplitMode.PROPORTIONAL,
        raw_consumption=Decimal("0"),
    ) == Decimal("3")


@dataclass
class _Price:
    effective_date: date
    label: str


@pytest.mark.parametrize(
    "as_of, expected",
    [
        (date(2023, 12, 31), None),
        (date(2024, 1, 1), "T1"),
        (date(2024, 3, 31), "T1"),
        (date(2024, 4, 1), "T2"),
        (date(2024, 12, 31), "T3"),
    ],
)
def test_resolve_pricing(as_of, expected):
    history = [
        _Price(date(2024, 7, 1), "T3"),
        _Price(date(2024, 1, 1), "T1"),
        _Price(date(2024, 4, 1), "T2"),
    ]
    resolved = resolve_pricing(history, as_of)
    assert (resolved.label if resolved else None) == expected


def test_price_metered_line():
    line = price_metered_line(
        raw_consumption=Decimal("30"),
        adjustment=Decimal("-2"),
        price_per_unit=Decimal("45.50"),
        fixed_fee=Decimal("171.43"),
    )
    assert line.adjusted_consumption == Decimal("28")
    assert line.consumption_cost == Decimal("1274.00")
    assert line.fixed_fee_share == Decimal("171.43")
    assert line.total_utility_cost == Decimal("1445.43")


def test_price_metered_line_can_be_a_credit():
    line = price_metered_line(
        raw_consumption=Decimal("1"),
        adjustment=Decimal("-3"),
        price_per_unit=Decimal("10"),
        fixed_fee=Decimal("0"),
    )
    assert line.adjusted_consumption == Decimal("-2")
    assert line.total_utility_cost == Decimal("-20.00")


def test_price_flat_line():
    line = price_flat_line(Decimal("750"))
    assert line.total_utility_cost == Decimal("750.00")
    assert line.consumption_cost == Decimal("0")
    assert line.raw_consumption == Decimal("0")


def test_aggregate_invoice_separates_member_fee():
    totals = aggregate_invoice(
        [
            (ServiceType.WATER, Decimal("1445.43")),
            (ServiceType.MEMBERSHIP, Decimal("750.00")),
            (ServiceType.ELECTRICITY, Decimal("300.00")),
        ],
        shared_costs=Decimal("500.00"),
    )
    assert totals.total_utility_costs == Decimal("1745.43")
    assert totals.member_fee == Decimal("750.00")
    assert totals.shared_costs == Decimal("500.00")
    assert totals.total_amount == Decimal("2995.43")


@pytest.mark.parametrize(
    "period_type, expected",
    [
        (PeriodType.QUARTERLY, Decimal("500.00")),
        (PeriodType.MONTHLY, Decimal("166.67")),
    ],
)
def test_prorated_shared_costs(period_type, expected):
    assert prorated_shared_costs([Decimal("300"), Decimal("200")], period_type) == expected


@pytest.mark.parametrize(
    "day, quarter",
    [(date(2024, 1, 1), 1), (date(2024, 6, 30), 2), (date(2024, 7, 1), 3), (date(2024, 12, 31), 4)],
)
def test_quarter_of(day, quarter):
    assert quarter_of(day) == quarter


def test_due_date_and_invoice_number():
    assert due_date_for(date(2024, 7, 15), 4) == date(2024, 11, 15)
    assert due_date_for(date(2024, 10, 31), 4) == date(2025, 2, 28)
    assert invoice_number("2024-Q2", 7) == "INV-2024-Q2-007"


@pytest.mark.parametrize(
    "current, target",
    [
        (InvoiceStatus.PENDING, InvoiceStatus.PAID),
        (InvoiceStatus.PENDING, InvoiceStatus.OVERDUE),
        (InvoiceStatus.OVERDUE, InvoiceStatus.PAID),
    ],
)
def test_allowed_transitions(current, target):
    check_transition(current, target)


@pytest.mark.parametrize(
    "current, target",
    [
        (InvoiceStatus.PAID, InvoiceStatus.PENDING),
        (InvoiceStatus.PAID, InvoiceStatus.OVERDUE),
        (InvoiceStatus.OVERDUE, InvoiceStatus.PENDING),
    ],
)
def test_forbidden_transitions(current, target):
    with pytest.raises(InvalidStatusTransitionError):
        check_transition(current, target)


def test_status_after_payment():
    assert status_after_payment(
        InvoiceStatus.PENDING, Decimal("100"), Decimal("40")
    ) is InvoiceStatus.PENDING
    assert status_after_payment(
        InvoiceStatus.OVERDUE, Decimal("100"), Decimal("100")
    ) is InvoiceStatus.PAID


def test_is_overdue():
    due = date(2024, 11, 15)
    assert not is_overdue(InvoiceStatus.PENDING, due, due)
    assert is_overdue(InvoiceStatus.PENDING, due, date(2024, 11, 16))
    assert not is_overdue(InvoiceStatus.PAID, due, date(2025, 1, 1))
