"""Domain models for the cooperative billing engine."""

from __future__ import annotations

import enum
import uuid

from tortoise import fields, models


class ServiceType(str, enum.Enum):
    """Kind of utility service a household is billed for."""

    WATER = "water"
    ELECTRICITY = "electricity"
    HEATING = "heating"
    MEMBERSHIP = "membership"
    OTHER = "other"


class PeriodType(str, enum.Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class ConsumptionSource(str, enum.Enum):
    """Where a billed consumption value came from."""

    DERIVED = "derived"  # current minus previous reading
    OVERRIDE = "override"  # explicitly supplied with the reading
    INITIAL = "initial"  # first reading of a meter, taken as-is
    FLAT = "flat"  # non-metered service, no consumption


class FirstReadingPolicy(str, enum.Enum):
    """How to treat a reading that has no earlier reading for the same meter."""

    FULL_READING = "full_reading"
    UNAVAILABLE = "unavailable"


class SplitMode(str, enum.Enum):
    """How a reconciliation difference is shared between households."""

    EQUAL = "equal"
    PROPORTIONAL = "proportional"


class InvoiceStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class BaseModel(models.Model):
    """Abstract base model with common fields."""

    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        abstract = True


class Household(BaseModel):
    """A member household of the cooperative."""

    household_number = fields.IntField(unique=True)
    owner_name = fields.CharField(max_length=255)
    email = fields.CharField(max_length=255, null=True)
    ownership_share = fields.DecimalField(
        max_digits=9,
        decimal_places=6,
        default=0,
        description="Andelstal: fraction of cooperative costs carried by the household",
    )
    annual_member_fee = fields.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        description="Agreed yearly fee, for reference only; invoices bill the Membership pricing",
    )
    is_active = fields.BooleanField(default=True)

    meters: fields.ReverseRelation[HouseholdMeter]
    invoices: fields.ReverseRelation[Invoice]

    def __str__(self) -> str:
        return f"Hus {self.household_number} ({self.owner_name})"


class UtilityService(BaseModel):
    """A metered utility (water) or a flat fee (membership)."""

    name = fields.CharField(max_length=100, unique=True)
    unit = fields.CharField(max_length=20, default="")
    service_type = fields.CharEnumField(ServiceType, default=ServiceType.OTHER)
    requires_readings = fields.BooleanField(default=True)
    has_main_meters = fields.BooleanField(default=False)
    requires_reconciliation = fields.BooleanField(default=False)

    main_meters: fields.ReverseRelation[MainMeter]
    household_meters: fields.ReverseRelation[HouseholdMeter]
    pricing: fields.ReverseRelation[UtilityPricing]

    def __str__(self) -> str:
        return self.name


class MainMeter(BaseModel):
    """A municipal meter measuring the whole property."""

    identifier = fields.CharField(max_length=100, unique=True)
    service: fields.ForeignKeyRelation[UtilityService] = fields.ForeignKeyField(
        "models.UtilityService", related_name="main_meters"
    )

    readings: fields.ReverseRelation[MainMeterReading]

    def __str__(self) -> str:
        return self.identifier


class HouseholdMeter(BaseModel):
    """A household's sub-meter (or fee subscription) for one service."""

    serial = fields.CharField(max_length=100, null=True)
    household: fields.ForeignKeyRelation[Household] = fields.ForeignKeyField(
        "models.Household", related_name="meters"
    )
    service: fields.ForeignKeyRelation[UtilityService] = fields.ForeignKeyField(
        "models.UtilityService", related_name="household_meters"
    )

    readings: fields.ReverseRelation[HouseholdMeterReading]

    class Meta:
        unique_together = ("household", "service")

    def __str__(self) -> str:
        return f"{self.household} - {self.service}"


class BillingPeriod(BaseModel):
    """A calendar interval over which readings are taken and bills computed."""

    name = fields.CharField(max_length=100, unique=True)
    period_type = fields.CharEnumField(PeriodType, default=PeriodType.QUARTERLY)
    start_date = fields.DateField()
    end_date = fields.DateField()
    reading_deadline = fields.DateField()
    is_official_billing = fields.BooleanField(default=False)
    is_billing_enabled = fields.BooleanField(default=False)

    def __str__(self) -> str:
        return self.name


class MainMeterReading(BaseModel):
    """Cumulative reading of a main meter in a billing period."""

    value = fields.DecimalField(max_digits=12, decimal_places=3)
    reading_date = fields.DateField()
    consumption = fields.DecimalField(
        max_digits=12,
        decimal_places=3,
        null=True,
        description="Explicit consumption overriding the reading delta",
    )
    notes = fields.TextField(null=True)
    meter: fields.ForeignKeyRelation[MainMeter] = fields.ForeignKeyField(
        "models.MainMeter", related_name="readings"
    )
    billing_period: fields.ForeignKeyRelation[BillingPeriod] = fields.ForeignKeyField(
        "models.BillingPeriod", related_name="main_meter_readings"
    )

    class Meta:
        unique_together = ("meter", "billing_period")

    def __str__(self) -> str:
        return f"Reading for {self.meter_id} in {self.billing_period_id}: {self.value}"


class HouseholdMeterReading(BaseModel):
    """Cumulative reading of a household meter in a billing period."""

    value = fields.DecimalField(max_digits=12, decimal_places=3)
    reading_date = fields.DateField()
    raw_consumption = fields.DecimalField(
        max_digits=12,
        decimal_places=3,
        null=True,
        description="Explicit consumption overriding the reading delta (meter swap)",
    )
    notes = fields.TextField(null=True)
    household_meter: fields.ForeignKeyRelation[HouseholdMeter] = fields.ForeignKeyField(
        "models.HouseholdMeter", related_name="readings"
    )
    billing_period: fields.ForeignKeyRelation[BillingPeriod] = fields.ForeignKeyField(
        "models.BillingPeriod", related_name="household_meter_readings"
    )

    class Meta:
        unique_together = ("household_meter", "billing_period")

    def __str__(self) -> str:
        return (
            f"Reading for {self.household_meter_id} "
            f"in {self.billing_period_id}: {self.value}"
        )


class UtilityPricing(BaseModel):
    """A price record for a service, valid from its effective date onwards."""

    effective_date = fields.DateField()
    price_per_unit = fields.DecimalField(max_digits=10, decimal_places=4, default=0)
    fixed_fee_per_household = fields.DecimalField(
        max_digits=10, decimal_places=2, default=0
    )
    service: fields.ForeignKeyRelation[UtilityService] = fields.ForeignKeyField(
        "models.UtilityService", related_name="pricing"
    )

    class Meta:
        unique_together = ("service", "effective_date")

    def __str__(self) -> str:
        return (
            f"Pricing for {self.service_id} from {self.effective_date}: "
            f"{self.price_per_unit}/unit + {self.fixed_fee_per_household}"
        )


class Reconciliation(BaseModel):
    """Gap between main meters and summed household meters for one period."""

    main_meter_total = fields.DecimalField(max_digits=14, decimal_places=3)
    household_total = fields.DecimalField(max_digits=14, decimal_places=3)
    difference = fields.DecimalField(max_digits=14, decimal_places=3)
    active_household_count = fields.IntField()
    adjustment_per_household = fields.DecimalField(max_digits=14, decimal_places=6)
    split_mode = fields.CharEnumField(SplitMode, default=SplitMode.EQUAL)
    service: fields.ForeignKeyRelation[UtilityService] = fields.ForeignKeyField(
        "models.UtilityService", related_name="reconciliations"
    )
    billing_period: fields.ForeignKeyRelation[BillingPeriod] = fields.ForeignKeyField(
        "models.BillingPeriod", related_name="reconciliations"
    )

    class Meta:
        unique_together = ("service", "billing_period")

    def __str__(self) -> str:
        return (
            f"Reconciliation {self.service_id}/{self.billing_period_id}: "
            f"{self.difference} ({self.adjustment_per_household} per household)"
        )


class UtilityBilling(BaseModel):
    """One billed service for one household in one period."""

    raw_consumption = fields.DecimalField(max_digits=12, decimal_places=3, default=0)
    consumption_source = fields.CharEnumField(
        ConsumptionSource, default=ConsumptionSource.DERIVED
    )
    reconciliation_adjustment = fields.DecimalField(
        max_digits=14, decimal_places=6, default=0
    )
    adjusted_consumption = fields.DecimalField(
        max_digits=14, decimal_places=6, default=0
    )
    cost_per_unit = fields.DecimalField(max_digits=10, decimal_places=4, default=0)
    consumption_cost = fields.DecimalField(max_digits=12, decimal_places=2, default=0)
    fixed_fee_share = fields.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_utility_cost = fields.DecimalField(max_digits=12, decimal_places=2)
    household: fields.ForeignKeyRelation[Household] = fields.ForeignKeyField(
        "models.Household", related_name="utility_billings"
    )
    service: fields.ForeignKeyRelation[UtilityService] = fields.ForeignKeyField(
        "models.UtilityService", related_name="utility_billings"
    )
    billing_period: fields.ForeignKeyRelation[BillingPeriod] = fields.ForeignKeyField(
        "models.BillingPeriod", related_name="utility_billings"
    )
    reconciliation: fields.ForeignKeyNullableRelation[
        Reconciliation
    ] = fields.ForeignKeyField(
        "models.Reconciliation",
        related_name="utility_billings",
        null=True,
        on_delete=fields.SET_NULL,
    )

    class Meta:
        unique_together = ("household", "service", "billing_period")

    def __str__(self) -> str:
        return (
            f"Billing {self.household_id}/{self.service_id}/"
            f"{self.billing_period_id}: {self.total_utility_cost}"
        )


class SharedCost(BaseModel):
    """A cooperative-wide expense split between active households."""

    year = fields.IntField()
    quarter = fields.IntField()
    description = fields.CharField(max_length=255)
    total_amount = fields.DecimalField(max_digits=12, decimal_places=2)
    cost_per_household = fields.DecimalField(max_digits=12, decimal_places=2)

    def __str__(self) -> str:
        return f"{self.description} ({self.year} Q{self.quarter}): {self.total_amount}"


class Invoice(BaseModel):
    """The payable bill of a household for a billing period."""

    invoice_number = fields.CharField(max_length=50, unique=True)
    total_utility_costs = fields.DecimalField(max_digits=12, decimal_places=2)
    member_fee = fields.DecimalField(max_digits=12, decimal_places=2, default=0)
    shared_costs = fields.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = fields.DecimalField(max_digits=12, decimal_places=2)
    due_date = fields.DateField()
    status = fields.CharEnumField(InvoiceStatus, default=InvoiceStatus.PENDING)
    paid_date = fields.DateField(null=True)
    household: fields.ForeignKeyRelation[Household] = fields.ForeignKeyField(
        "models.Household", related_name="invoices"
    )
    billing_period: fields.ForeignKeyRelation[BillingPeriod] = fields.ForeignKeyField(
        "models.BillingPeriod", related_name="invoices"
    )

    payments: fields.ReverseRelation[Payment]

    class Meta:
        unique_together = ("household", "billing_period")

    def __str__(self) -> str:
        return f"Invoice {self.invoice_number}: {self.total_amount} ({self.status.value})"


class Payment(BaseModel):
    """A payment recorded against an invoice."""

    amount = fields.DecimalField(max_digits=12, decimal_places=2)
    payment_date = fields.DateField()
    method = fields.CharField(max_length=50, default="unknown")
    notes = fields.TextField(null=True)
    invoice: fields.ForeignKeyRelation[Invoice] = fields.ForeignKeyField(
        "models.Invoice", related_name="payments"
    )

    def __str__(self) -> str:
        return f"Payment of {self.amount} on {self.payment_date}"
