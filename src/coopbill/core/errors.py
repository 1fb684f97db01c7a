"""Billing error taxonomy and the per-record issue values collected in batch runs."""

from __future__ import annotations

from dataclasses import dataclass


class BillingError(Exception):
    """Base class for billing errors."""


class DataIntegrityError(BillingError):
    """Readings or periods contradict each other (negative delta, duplicates, overlap)."""


class MissingReadingError(BillingError):
    """A metered household has no reading for the billed period."""


class MissingPrecedingPeriodError(BillingError):
    """No earlier reading exists to derive consumption from."""


class MissingPricingError(BillingError):
    """No pricing record is effective for the billing date."""


class ConfigurationError(BillingError):
    """The cooperative setup makes the computation meaningless (no active households)."""


class ConcurrencyConflict(BillingError):
    """Another writer created the same natural key first. Safe to retry."""


class InvalidStatusTransitionError(BillingError):
    """An invoice status change not allowed by the invoice lifecycle."""


# Errors that only invalidate a single record and are collected instead of raised.
RECORD_ERRORS = (
    DataIntegrityError,
    MissingReadingError,
    MissingPrecedingPeriodError,
    MissingPricingError,
    InvalidStatusTransitionError,
)


@dataclass(frozen=True)
class BillingIssue:
    """A per-record failure reported back to the caller of a batch run."""

    error: str
    message: str
    period: str | None = None
    household_number: int | None = None
    service: str | None = None

    @classmethod
    def from_error(
        cls,
        exc: BillingError,
        *,
        period: str | None = None,
        household_number: int | None = None,
        service: str | None = None,
    ) -> BillingIssue:
        return cls(
            error=type(exc).__name__,
            message=str(exc),
            period=period,
            household_number=household_number,
            service=service,
        )
