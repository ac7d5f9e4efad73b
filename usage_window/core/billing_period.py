"""
Billing periods and calendar arithmetic.

Defines the cadences usage items are billed on and how dates move by whole periods.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, Optional

from dateutil.relativedelta import relativedelta


class BillingPeriod(Enum):
    """Recurring interval on which a usage item is billed."""
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    THIRTY_DAYS = "thirty_days"
    THIRTY_ONE_DAYS = "thirty_one_days"
    SIXTY_DAYS = "sixty_days"
    NINETY_DAYS = "ninety_days"
    MONTHLY = "monthly"
    BIMESTRIAL = "bimestrial"
    QUARTERLY = "quarterly"
    TRIANNUAL = "triannual"
    BIANNUAL = "biannual"
    ANNUAL = "annual"
    SESQUIANNUAL = "sesquiannual"
    BIENNIAL = "biennial"
    TRIENNIAL = "triennial"
    NO_BILLING_PERIOD = "no_billing_period"

    @property
    def period(self) -> Optional[relativedelta]:
        """Length of one period, or None for NO_BILLING_PERIOD."""
        return _PERIOD_LENGTHS.get(self)


_PERIOD_LENGTHS: Dict[BillingPeriod, relativedelta] = {
    BillingPeriod.DAILY: relativedelta(days=1),
    BillingPeriod.WEEKLY: relativedelta(weeks=1),
    BillingPeriod.BIWEEKLY: relativedelta(weeks=2),
    BillingPeriod.THIRTY_DAYS: relativedelta(days=30),
    BillingPeriod.THIRTY_ONE_DAYS: relativedelta(days=31),
    BillingPeriod.SIXTY_DAYS: relativedelta(days=60),
    BillingPeriod.NINETY_DAYS: relativedelta(days=90),
    BillingPeriod.MONTHLY: relativedelta(months=1),
    BillingPeriod.BIMESTRIAL: relativedelta(months=2),
    BillingPeriod.QUARTERLY: relativedelta(months=3),
    BillingPeriod.TRIANNUAL: relativedelta(months=4),
    BillingPeriod.BIANNUAL: relativedelta(months=6),
    BillingPeriod.ANNUAL: relativedelta(years=1),
    BillingPeriod.SESQUIANNUAL: relativedelta(months=18),
    BillingPeriod.BIENNIAL: relativedelta(years=2),
    BillingPeriod.TRIENNIAL: relativedelta(years=3),
}


@dataclass(frozen=True)
class UsageDefinition:
    """Catalog entry for a usage section of a plan."""
    name: str
    billing_period: BillingPeriod

    def __post_init__(self):
        """Validate the usage has a name."""
        if not self.name or not self.name.strip():
            raise ValueError("name is required and cannot be empty")


def recede_by_n_periods(initial_date: date, billing_period: BillingPeriod, nb_periods: int) -> date:
    """Move a date back by a number of whole billing periods.

    The full span is subtracted in a single step, so month based cadences
    clamp to the end of the month only once: March 31 receded by one MONTHLY
    period is February 28 (or 29), by two periods January 31.

    Args:
        initial_date: Date to recede from
        billing_period: Cadence of one period
        nb_periods: Number of periods to subtract (0 returns the date as is)

    Returns:
        The receded date

    Raises:
        ValueError: If nb_periods is negative or the cadence has no length
    """
    if nb_periods < 0:
        raise ValueError(f"nb_periods must be >= 0, got {nb_periods}")

    period = billing_period.period
    if period is None:
        raise ValueError(f"Billing period {billing_period.name} has no length")

    if nb_periods == 0:
        return initial_date

    return initial_date - period * nb_periods
