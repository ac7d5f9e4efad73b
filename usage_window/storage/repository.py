"""
Repository pattern for data access.

Reads raw usage and invoice tracking records by account and date range.
"""

import logging
import sqlite3
from datetime import date, datetime
from decimal import Decimal
from typing import List

from usage_window.core.context import CallContext

from .db import DEFAULT_DB_PATH, get_connection
from .models import InvoiceTrackingRecord, RawUsageRecord

logger = logging.getLogger(__name__)


class StoreUnavailable(RuntimeError):
    """Raised when the usage or tracking store cannot be read."""


class UsageRepository:
    """Read access to raw usage and invoice tracking records.

    Every query is scoped to the account and tenant of the call context and
    to an inclusive date range. Failures are loud: any SQLite error surfaces
    as StoreUnavailable with the original error chained.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def get_raw_usage_for_account(
        self,
        start_date: date,
        end_date: date,
        context: CallContext
    ) -> List[RawUsageRecord]:
        """Get raw usage recorded for the account between two dates.

        Args:
            start_date: First record date included
            end_date: Last record date included
            context: Call context identifying account and tenant

        Returns:
            List of raw usage records ordered by record date

        Raises:
            StoreUnavailable: If the store cannot be read
        """
        try:
            conn = get_connection(self.db_path)
            try:
                cursor = conn.execute("""
                    SELECT subscription_id, unit_type, record_date, amount, tracking_id
                    FROM raw_usage
                    WHERE account_record_id = ? AND tenant_record_id = ?
                      AND record_date >= ? AND record_date <= ?
                    ORDER BY record_date, id
                """, (
                    context.account_record_id,
                    context.tenant_record_id,
                    start_date.isoformat(),
                    end_date.isoformat()
                ))
                records = [
                    RawUsageRecord(
                        subscription_id=row["subscription_id"],
                        unit_type=row["unit_type"],
                        record_date=date.fromisoformat(row["record_date"]),
                        amount=Decimal(row["amount"]),
                        tracking_id=row["tracking_id"]
                    )
                    for row in cursor.fetchall()
                ]
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StoreUnavailable(
                f"Unable to read raw usage for account {context.account_record_id}: {e}"
            ) from e

        logger.debug("Read %d raw usage records for account %s in [%s, %s]",
                     len(records), context.account_record_id, start_date, end_date)
        return records

    def get_trackings_by_date_range(
        self,
        start_date: date,
        end_date: date,
        context: CallContext
    ) -> List[InvoiceTrackingRecord]:
        """Get tracking rows of already invoiced usage between two dates.

        Args:
            start_date: First record date included
            end_date: Last record date included
            context: Call context identifying account and tenant

        Returns:
            List of tracking records ordered by record date

        Raises:
            StoreUnavailable: If the store cannot be read
        """
        try:
            conn = get_connection(self.db_path)
            try:
                cursor = conn.execute("""
                    SELECT tracking_id, invoice_id, subscription_id, unit_type,
                           record_date, created_date
                    FROM invoice_tracking_ids
                    WHERE account_record_id = ? AND tenant_record_id = ?
                      AND record_date >= ? AND record_date <= ?
                    ORDER BY record_date, id
                """, (
                    context.account_record_id,
                    context.tenant_record_id,
                    start_date.isoformat(),
                    end_date.isoformat()
                ))
                records = [
                    InvoiceTrackingRecord(
                        tracking_id=row["tracking_id"],
                        invoice_id=row["invoice_id"],
                        subscription_id=row["subscription_id"],
                        unit_type=row["unit_type"],
                        record_date=date.fromisoformat(row["record_date"]),
                        created_date=datetime.fromisoformat(row["created_date"]) if row["created_date"] else None
                    )
                    for row in cursor.fetchall()
                ]
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StoreUnavailable(
                f"Unable to read invoice trackings for account {context.account_record_id}: {e}"
            ) from e

        logger.debug("Read %d tracking records for account %s in [%s, %s]",
                     len(records), context.account_record_id, start_date, end_date)
        return records


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the raw_usage and invoice_tracking_ids tables if they don't exist.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS raw_usage (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                account_record_id INTEGER NOT NULL,
                tenant_record_id INTEGER NOT NULL,
                subscription_id TEXT NOT NULL,
                unit_type TEXT NOT NULL,
                record_date TEXT NOT NULL,
                amount TEXT NOT NULL,
                tracking_id TEXT NOT NULL
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS raw_usage_account_date
            ON raw_usage (tenant_record_id, account_record_id, record_date)
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS invoice_tracking_ids (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                account_record_id INTEGER NOT NULL,
                tenant_record_id INTEGER NOT NULL,
                tracking_id TEXT NOT NULL,
                invoice_id TEXT NOT NULL,
                subscription_id TEXT NOT NULL,
                unit_type TEXT NOT NULL,
                record_date TEXT NOT NULL,
                created_date TEXT
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS invoice_tracking_ids_account_date
            ON invoice_tracking_ids (tenant_record_id, account_record_id, record_date)
        """)
        conn.commit()
    finally:
        conn.close()


def insert_raw_usage_records(
    records: List[RawUsageRecord],
    context: CallContext,
    db_path: str = DEFAULT_DB_PATH
) -> None:
    """Insert raw usage records for an account in a single transaction.

    Args:
        records: Raw usage records to store
        context: Call context identifying account and tenant
        db_path: Path to SQLite database file
    """
    if not records:
        return

    conn = get_connection(db_path)
    try:
        conn.execute("BEGIN TRANSACTION")
        for record in records:
            conn.execute("""
                INSERT INTO raw_usage
                (account_record_id, tenant_record_id, subscription_id, unit_type,
                 record_date, amount, tracking_id)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (
                context.account_record_id,
                context.tenant_record_id,
                record.subscription_id,
                record.unit_type,
                record.record_date.isoformat(),
                str(record.amount),
                record.tracking_id
            ))
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def insert_tracking_records(
    records: List[InvoiceTrackingRecord],
    context: CallContext,
    db_path: str = DEFAULT_DB_PATH
) -> None:
    """Insert invoice tracking rows for an account in a single transaction.

    Args:
        records: Tracking rows to store
        context: Call context identifying account and tenant
        db_path: Path to SQLite database file
    """
    if not records:
        return

    conn = get_connection(db_path)
    try:
        conn.execute("BEGIN TRANSACTION")
        for record in records:
            conn.execute("""
                INSERT INTO invoice_tracking_ids
                (account_record_id, tenant_record_id, tracking_id, invoice_id,
                 subscription_id, unit_type, record_date, created_date)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                context.account_record_id,
                context.tenant_record_id,
                record.tracking_id,
                record.invoice_id,
                record.subscription_id,
                record.unit_type,
                record.record_date.isoformat(),
                record.created_date.isoformat() if record.created_date else None
            ))
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
