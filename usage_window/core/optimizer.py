"""
Raw usage window optimization.

In-arrear usage items are billed once their period has fully elapsed, so an
invoice only needs the raw usage of the periods that may not have been billed
yet. This module computes the earliest date from which raw usage must be
re-read and loads that window from the usage and tracking stores.

Window computation:
1. Never look past today - future usage cannot have settled
2. Recede one period per cadence in use to reach the last complete period
3. Recede the configured number of extra periods as a safety margin
4. Keep the earliest candidate, floored at the first billing event
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, FrozenSet, Mapping, Set, Tuple

from usage_window.config.loader import InvoiceConfig
from usage_window.core.billing_period import BillingPeriod, UsageDefinition, recede_by_n_periods
from usage_window.core.clock import Clock
from usage_window.core.context import CallContext
from usage_window.storage.models import RawUsageRecord, TrackingRecordId
from usage_window.storage.repository import UsageRepository

logger = logging.getLogger(__name__)


class InvalidUsageDefinition(ValueError):
    """Raised when a usage definition has no usable billing period."""
    def __init__(self, message: str, usage_name: str):
        super().__init__(message)
        self.usage_name = usage_name


@dataclass(frozen=True)
class RawUsageOptimizerResult:
    """Raw usage and tracking ids read for an optimized window."""
    raw_usage_start_date: date
    raw_usage: Tuple[RawUsageRecord, ...]
    existing_tracking_ids: FrozenSet[TrackingRecordId]


def compute_window(
    first_event_start_date: date,
    target_date: date,
    usage_definitions: Mapping[str, UsageDefinition],
    configured_lookback: int,
    clock: Clock
) -> date:
    """Compute the earliest date from which raw usage must be read.

    Args:
        first_event_start_date: Earliest date billable usage can exist for the account
        target_date: Date the invoice is generated for
        usage_definitions: Usage definitions in use, keyed by usage name
        configured_lookback: Extra periods to read; negative disables optimization
        clock: Source of today's UTC date, read only when optimization is enabled

    Returns:
        Start date of the raw usage window

    Raises:
        InvalidUsageDefinition: If a definition has no usable billing period
        ClockUnavailable: If the clock cannot supply today's date
    """
    if configured_lookback < 0:
        return first_event_start_date

    billing_periods = _distinct_billing_periods(usage_definitions)
    today = clock.utc_today()
    min_today_target_date = today if today < target_date else target_date

    candidates: Dict[BillingPeriod, date] = {
        billing_period: _candidate_start_date(
            min_today_target_date, billing_period, configured_lookback, first_event_start_date
        )
        for billing_period in billing_periods
    }

    target_start_date = target_date
    for candidate in candidates.values():
        if candidate < target_start_date:
            target_start_date = candidate

    return max(target_start_date, first_event_start_date)


def _candidate_start_date(
    min_today_target_date: date,
    billing_period: BillingPeriod,
    configured_lookback: int,
    first_event_start_date: date
) -> date:
    """Recede to the start of the last complete period, then by the configured margin.

    A margin reaching before the first representable date falls back to the
    first billing event.
    """
    try:
        last_period_start_date = recede_by_n_periods(min_today_target_date, billing_period, 1)
        return recede_by_n_periods(last_period_start_date, billing_period, configured_lookback)
    except (OverflowError, ValueError):
        # dateutil raises ValueError for years before 1, timedelta math OverflowError
        return first_event_start_date


def _distinct_billing_periods(usage_definitions: Mapping[str, UsageDefinition]) -> Set[BillingPeriod]:
    billing_periods = set()
    for usage_name, usage in usage_definitions.items():
        if usage is None:
            raise InvalidUsageDefinition(f"Usage '{usage_name}' has no definition", usage_name)
        billing_period = getattr(usage, 'billing_period', None)
        if not isinstance(billing_period, BillingPeriod):
            raise InvalidUsageDefinition(f"Usage '{usage_name}' has no billing period", usage_name)
        if billing_period.period is None:
            raise InvalidUsageDefinition(
                f"Usage '{usage_name}' billing period {billing_period.name} cannot be billed in arrear",
                usage_name
            )
        billing_periods.add(billing_period)
    return billing_periods


class RawUsageOptimizer:
    """Reads the raw usage needed to bill in-arrear usage items.

    Holds no mutable state; the clock and stores are the only collaborators
    and every read is scoped by the call context it is given.
    """

    def __init__(
        self,
        config: InvoiceConfig,
        usage_store: UsageRepository,
        tracking_store: UsageRepository,
        clock: Clock
    ):
        """Initialize the optimizer with its collaborators.

        Args:
            config: Invoice configuration supplying the lookback per context
            usage_store: Store of raw usage records
            tracking_store: Store of invoice tracking records
            clock: Source of today's UTC date
        """
        self.config = config
        self.usage_store = usage_store
        self.tracking_store = tracking_store
        self.clock = clock

    def get_in_arrear_usage(
        self,
        first_event_start_date: date,
        target_date: date,
        known_usage: Mapping[str, UsageDefinition],
        context: CallContext
    ) -> RawUsageOptimizerResult:
        """Read raw usage and existing tracking ids for the optimized window.

        Both reads must succeed; store errors propagate without retry.

        Args:
            first_event_start_date: Earliest date billable usage can exist for the account
            target_date: Date the invoice is generated for
            known_usage: Usage definitions in use, keyed by usage name
            context: Call context identifying account and tenant

        Returns:
            RawUsageOptimizerResult for [start date, target_date]

        Raises:
            InvalidUsageDefinition: If a definition has no usable billing period
            ClockUnavailable: If the clock cannot supply today's date
            StoreUnavailable: If either store cannot be read
        """
        configured_lookback = self.config.get_max_raw_usage_previous_period(context)
        optimized_start_date = compute_window(
            first_event_start_date, target_date, known_usage, configured_lookback, self.clock
        )

        logger.debug(
            "RawUsageOptimizerResult account_record_id=%s configured_lookback=%s "
            "first_event_start_date=%s optimized_start_date=%s target_date=%s",
            context.account_record_id, configured_lookback, first_event_start_date,
            optimized_start_date, target_date
        )

        raw_usage = self.usage_store.get_raw_usage_for_account(optimized_start_date, target_date, context)
        trackings = self.tracking_store.get_trackings_by_date_range(optimized_start_date, target_date, context)
        existing_tracking_ids = frozenset(tracking.to_tracking_record_id() for tracking in trackings)

        return RawUsageOptimizerResult(
            raw_usage_start_date=optimized_start_date,
            raw_usage=tuple(raw_usage),
            existing_tracking_ids=existing_tracking_ids
        )

    def get_optimized_raw_usage_start_date(
        self,
        first_event_start_date: date,
        target_date: date,
        known_usage: Mapping[str, UsageDefinition],
        context: CallContext
    ) -> date:
        """Compute the window start date using the lookback configured for the context."""
        configured_lookback = self.config.get_max_raw_usage_previous_period(context)
        return compute_window(
            first_event_start_date, target_date, known_usage, configured_lookback, self.clock
        )
