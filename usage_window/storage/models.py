"""
Data models for storage layer.

Defines raw usage, invoice tracking and usage invoice item records.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, List, Optional


@dataclass(frozen=True)
class RawUsageRecord:
    """Immutable unit of usage reported for a subscription.

    Owned by the usage store; readers never modify it.
    """
    subscription_id: str
    unit_type: str
    record_date: date
    amount: Decimal
    tracking_id: str


@dataclass(frozen=True)
class TrackingRecordId:
    """Key of a usage unit already accounted for on an invoice.

    Equality covers the full composite key so the same unit billed on two
    invoices yields two distinct ids.
    """
    tracking_id: str
    invoice_id: str
    subscription_id: str
    unit_type: str
    record_date: date


@dataclass(frozen=True)
class InvoiceTrackingRecord:
    """Stored tracking row written when an invoice is finalized."""
    tracking_id: str
    invoice_id: str
    subscription_id: str
    unit_type: str
    record_date: date
    created_date: Optional[datetime] = None

    def to_tracking_record_id(self) -> TrackingRecordId:
        return TrackingRecordId(
            tracking_id=self.tracking_id,
            invoice_id=self.invoice_id,
            subscription_id=self.subscription_id,
            unit_type=self.unit_type,
            record_date=self.record_date
        )


@dataclass(frozen=True)
class UsageInvoiceItem:
    """Usage line previously billed for a subscription."""
    subscription_id: str
    usage_name: str
    start_date: date
    end_date: date
    amount: Decimal

    def __post_init__(self):
        """Validate the service period is logical."""
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")


def usage_item_end_date(item: UsageInvoiceItem) -> date:
    """Sort key ordering usage items by the end of their service period."""
    return item.end_date


def sort_usage_items(items: Iterable[UsageInvoiceItem]) -> List[UsageInvoiceItem]:
    """Return usage items ordered by end date, oldest first (stable)."""
    return sorted(items, key=usage_item_end_date)


def most_recent_usage_item(items: Iterable[UsageInvoiceItem]) -> Optional[UsageInvoiceItem]:
    """Return the usage item with the latest end date, or None if there are none."""
    return max(items, key=usage_item_end_date, default=None)
