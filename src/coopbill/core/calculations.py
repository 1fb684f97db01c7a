"""Core business logic for calculations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, NewType, Protocol, Sequence, TypeVar

from dateutil.relativedelta import relativedelta

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

Consumption = NewType("Consumption", Decimal)

ZERO = Decimal("0")
CENT = Decimal("0.01")
# Volume adjustments are stored with six decimals.
VOLUME_STEP = Decimal("0.000001")

# Share of a quarterly cost that falls on one period of the given length.
PERIOD_QUARTER_FRACTION = {
    PeriodType.QUARTERLY: Decimal("1"),
    PeriodType.MONTHLY: Decimal("1") / Decimal("3"),
}

INVOICE_TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.PENDING: frozenset({InvoiceStatus.PAID, InvoiceStatus.OVERDUE}),
    InvoiceStatus.OVERDUE: frozenset({InvoiceStatus.PAID}),
    InvoiceStatus.PAID: frozenset(),
}


def quantize_money(amount: Decimal) -> Decimal:
    """Rounds a monetary amount to öre, half up."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def quantize_volume(volume: Decimal) -> Decimal:
    return volume.quantize(VOLUME_STEP, rounding=ROUND_HALF_UP)


# --- Consumption -------------------------------------------------------------


@dataclass(frozen=True)
class MeterConsumption:
    """Consumption of one meter in one period, tagged with its provenance."""

    value: Consumption
    source: ConsumptionSource


def calculate_consumption(
    current_reading: Decimal,
    previous_reading: Decimal | None,
    override: Decimal | None = None,
    policy: FirstReadingPolicy = FirstReadingPolicy.FULL_READING,
) -> MeterConsumption:
    """
    Calculates the consumption between two cumulative meter readings.

    Args:
        current_reading: The reading taken in the billed period.
        previous_reading: The same meter's reading in the closest earlier
            period, or None when the meter has no earlier reading.
        override: Consumption supplied explicitly with the reading. When
            present it is used verbatim, e.g. after a meter was replaced and
            restarted at zero.
        policy: What to do when there is no previous reading.

    Returns:
        The consumption and where it came from.

    Raises:
        DataIntegrityError: If the current reading is below the previous one
            and no override was supplied.
        MissingPrecedingPeriodError: If there is no previous reading and the
            policy says first readings cannot be billed.
    """
    if override is not None:
        return MeterConsumption(Consumption(override), ConsumptionSource.OVERRIDE)

    if previous_reading is None:
        if policy is FirstReadingPolicy.UNAVAILABLE:
            raise MissingPrecedingPeriodError(
                f"No earlier reading to compare {current_reading} against."
            )
        return MeterConsumption(
            Consumption(current_reading), ConsumptionSource.INITIAL
        )

    if current_reading < previous_reading:
        raise DataIntegrityError(
            f"Reading {current_reading} is lower than the previous reading "
            f"{previous_reading} and no consumption override was given."
        )

    return MeterConsumption(
        Consumption(current_reading - previous_reading), ConsumptionSource.DERIVED
    )


def calculate_cost(consumption: Decimal, rate: Decimal) -> Decimal:
    """
    Calculates the monetary cost based on consumption and a unit price.

    Args:
        consumption: The amount of resource consumed. May be negative.
        rate: The monetary rate per unit of consumption.

    Returns:
        The cost rounded to öre.
    """
    return quantize_money(consumption * rate)


# --- Reconciliation ----------------------------------------------------------


@dataclass(frozen=True)
class ReconciliationTotals:
    main_meter_total: Decimal
    household_total: Decimal
    difference: Decimal
    active_household_count: int
    adjustment_per_household: Decimal


def _require_households(household_count: int, what: str) -> None:
    if household_count <= 0:
        raise ConfigurationError(f"Cannot share {what}: no active households.")


def split_difference(difference: Decimal, household_count: int) -> Decimal:
    """Splits a consumption difference equally between active households."""
    _require_households(household_count, "a reconciliation difference")
    return quantize_volume(difference / Decimal(household_count))


def share_per_household(total_amount: Decimal, household_count: int) -> Decimal:
    """Splits a cooperative-wide cost equally between active households."""
    _require_households(household_count, "a shared cost")
    return quantize_money(total_amount / Decimal(household_count))


def reconcile_totals(
    main_consumptions: Iterable[Decimal],
    household_consumptions: Iterable[Decimal],
    active_household_count: int,
) -> ReconciliationTotals:
    """Compares main-meter and household consumption for one service and period."""
    main_total = sum(main_consumptions, ZERO)
    household_total = sum(household_consumptions, ZERO)
    difference = main_total - household_total
    return ReconciliationTotals(
        main_meter_total=main_total,
        household_total=household_total,
        difference=difference,
        active_household_count=active_household_count,
        adjustment_per_household=split_difference(difference, active_household_count),
    )


def household_adjustment(
    *,
    difference: Decimal,
    household_total: Decimal,
    adjustment_per_household: Decimal,
    split_mode: SplitMode,
    raw_consumption: Decimal,
) -> Decimal:
    """
    Returns the part of a reconciliation difference carried by one household.

    Equal split gives every active household the same volume. Proportional
    split weights the difference by the household's own consumption and falls
    back to the equal share when households consumed nothing in total.
    """
    if split_mode is SplitMode.PROPORTIONAL and household_total != ZERO:
        return quantize_volume(difference * raw_consumption / household_total)
    return adjustment_per_household


# --- Billing -----------------------------------------------------------------


class PricedRecord(Protocol):
    effective_date: date


P = TypeVar("P", bound=PricedRecord)


def resolve_pricing(history: Iterable[P], as_of: date) -> P | None:
    """Picks the record with the latest effective date not after ``as_of``."""
    candidates = [record for record in history if record.effective_date <= as_of]
    if not candidates:
        return None
    return max(candidates, key=lambda record: record.effective_date)


@dataclass(frozen=True)
class LineAmounts:
    """The computed figures of one billing line item."""

    raw_consumption: Decimal
    reconciliation_adjustment: Decimal
    adjusted_consumption: Decimal
    cost_per_unit: Decimal
    consumption_cost: Decimal
    fixed_fee_share: Decimal
    total_utility_cost: Decimal


def price_metered_line(
    raw_consumption: Decimal,
    adjustment: Decimal,
    price_per_unit: Decimal,
    fixed_fee: Decimal,
) -> LineAmounts:
    """
    Prices a metered service for one household.

    The adjusted consumption may be negative; it is billed as a credit so the
    reconciliation stays balanced across the cooperative.
    """
    adjusted = raw_consumption + adjustment
    consumption_cost = calculate_cost(adjusted, price_per_unit)
    fixed_fee_share = quantize_money(fixed_fee)
    return LineAmounts(
        raw_consumption=raw_consumption,
        reconciliation_adjustment=adjustment,
        adjusted_consumption=adjusted,
        cost_per_unit=price_per_unit,
        consumption_cost=consumption_cost,
        fixed_fee_share=fixed_fee_share,
        total_utility_cost=consumption_cost + fixed_fee_share,
    )


def price_flat_line(fixed_fee: Decimal) -> LineAmounts:
    """Prices a non-metered service: the fixed fee is the whole charge."""
    fixed_fee_share = quantize_money(fixed_fee)
    return LineAmounts(
        raw_consumption=ZERO,
        reconciliation_adjustment=ZERO,
        adjusted_consumption=ZERO,
        cost_per_unit=ZERO,
        consumption_cost=ZERO,
        fixed_fee_share=fixed_fee_share,
        total_utility_cost=fixed_fee_share,
    )


# --- Invoices ----------------------------------------------------------------


@dataclass(frozen=True)
class InvoiceTotals:
    total_utility_costs: Decimal
    member_fee: Decimal
    shared_costs: Decimal
    total_amount: Decimal


def quarter_of(day: date) -> int:
    return (day.month - 1) // 3 + 1


def prorated_shared_costs(
    costs_per_household: Iterable[Decimal], period_type: PeriodType
) -> Decimal:
    """Share of the quarter's shared costs that falls on one period."""
    quarter_total = sum(costs_per_household, ZERO)
    return quantize_money(quarter_total * PERIOD_QUARTER_FRACTION[period_type])


def aggregate_invoice(
    lines: Sequence[tuple[ServiceType, Decimal]], shared_costs: Decimal
) -> InvoiceTotals:
    """
    Folds line item totals into invoice totals.

    Args:
        lines: ``(service_type, total_utility_cost)`` for every line item of
            one household and period.
        shared_costs: The household's share of cooperative-wide costs.
    """
    utility = ZERO
    member_fee = ZERO
    for service_type, amount in lines:
        if service_type is ServiceType.MEMBERSHIP:
            member_fee += amount
        else:
            utility += amount
    return InvoiceTotals(
        total_utility_costs=utility,
        member_fee=member_fee,
        shared_costs=shared_costs,
        total_amount=utility + member_fee + shared_costs,
    )


def due_date_for(reading_deadline: date, months: int) -> date:
    return reading_deadline + relativedelta(months=months)


def invoice_number(period_name: str, household_number: int) -> str:
    return f"INV-{period_name}-{household_number:03d}"


def check_transition(current: InvoiceStatus, target: InvoiceStatus) -> None:
    """Raises if the invoice lifecycle does not allow ``current -> target``."""
    if target not in INVOICE_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(
            f"Invoice status cannot change from {current.value} to {target.value}."
        )


def status_after_payment(
    current: InvoiceStatus, total_amount: Decimal, paid_amount: Decimal
) -> InvoiceStatus:
    """Returns the status an invoice has once ``paid_amount`` is recorded."""
    if current is not InvoiceStatus.PAID and paid_amount >= total_amount:
        return InvoiceStatus.PAID
    return current


def is_overdue(status: InvoiceStatus, due_date: date, today: date) -> bool:
    return status is InvoiceStatus.PENDING and today > due_date
