"""
Tests for the CLI interface.
"""
import os
import tempfile
from datetime import date
from decimal import Decimal

import pytest
from typer.testing import CliRunner

from usage_window.cli.main import app, parse_usage_option, EXIT_CODE_PASS, EXIT_CODE_FAIL
from usage_window.core.billing_period import BillingPeriod
from usage_window.core.context import CallContext
from usage_window.storage.models import RawUsageRecord
from usage_window.storage.repository import initialize_schema, insert_raw_usage_records

runner = CliRunner()


@pytest.fixture
def db_path():
    """Provide a seeded database for the account 1 / tenant 1."""
    with tempfile.TemporaryDirectory() as temp_dir:
        path = os.path.join(temp_dir, "test.db")
        initialize_schema(path)
        records = [
            RawUsageRecord("sub-1", "api-calls", record_date, Decimal("1"), f"t-{record_date}")
            for record_date in (date(2023, 5, 1), date(2023, 6, 20), date(2023, 7, 10))
        ]
        insert_raw_usage_records(records, CallContext(1, 1), path)
        yield path


class TestCLI:
    """Test CLI commands."""

    def test_init_creates_schema(self):
        """Test init command creates the database."""
        with tempfile.TemporaryDirectory() as temp_dir:
            path = os.path.join(temp_dir, "new.db")
            result = runner.invoke(app, ["init", "--db", path])

            assert result.exit_code == EXIT_CODE_PASS
            assert "Database initialized successfully" in result.output
            assert os.path.exists(path)

    def test_window_command(self, db_path):
        """Test window command prints the computed window."""
        result = runner.invoke(app, [
            "window",
            "--first-event", "2023-01-01",
            "--target", "2023-07-15",
            "--today", "2023-07-15",
            "--usage", "api-calls:monthly",
            "--lookback", "0",
            "--db", db_path
        ])

        assert result.exit_code == EXIT_CODE_PASS
        assert "Raw Usage Window" in result.output
        assert "2023-06-15" in result.output
        assert "2023-07-15" in result.output

    def test_window_disabled_optimization(self, db_path):
        """Test a negative lookback starts at the first event."""
        result = runner.invoke(app, [
            "window",
            "--first-event", "2023-01-01",
            "--target", "2023-07-15",
            "--today", "2023-07-15",
            "--usage", "api-calls:monthly",
            "--lookback=-1",
            "--db", db_path
        ])

        assert result.exit_code == EXIT_CODE_PASS
        assert "2023-01-01" in result.output

    def test_window_with_config_file(self, db_path):
        """Test the lookback is read from a config file for the tenant."""
        config_path = os.path.join(os.path.dirname(db_path), "invoice.yaml")
        with open(config_path, 'w', encoding='utf-8') as f:
            f.write("invoice:\n  max_raw_usage_previous_period: 0\n"
                    "tenants:\n  '1':\n    max_raw_usage_previous_period: 1\n")

        result = runner.invoke(app, [
            "window",
            "--first-event", "2023-01-01",
            "--target", "2023-07-15",
            "--today", "2023-07-15",
            "--usage", "api-calls:monthly",
            "--config", config_path,
            "--db", db_path
        ])

        assert result.exit_code == EXIT_CODE_PASS
        assert "2023-05-15" in result.output

    def test_window_without_usage(self, db_path):
        """Test no usage definitions collapses the window to the target."""
        result = runner.invoke(app, [
            "window",
            "--first-event", "2023-01-01",
            "--target", "2023-07-15",
            "--today", "2023-07-15",
            "--lookback", "0",
            "--db", db_path
        ])

        assert result.exit_code == EXIT_CODE_PASS
        assert "not constrained by billing periods" in result.output

    def test_window_invalid_usage_fails(self, db_path):
        """Test an unknown billing period exits with failure."""
        result = runner.invoke(app, [
            "window",
            "--first-event", "2023-01-01",
            "--target", "2023-07-15",
            "--usage", "api-calls:fortnightly",
            "--db", db_path
        ])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Unknown billing period" in result.output

    def test_window_uninitialized_store_fails(self):
        """Test a database without schema exits with failure."""
        with tempfile.TemporaryDirectory() as temp_dir:
            result = runner.invoke(app, [
                "window",
                "--first-event", "2023-01-01",
                "--target", "2023-07-15",
                "--today", "2023-07-15",
                "--db", os.path.join(temp_dir, "empty.db")
            ])

        assert result.exit_code == EXIT_CODE_FAIL
        assert "Error" in result.output


class TestParseUsageOption:
    """Test NAME:PERIOD parsing."""

    def test_valid_option(self):
        """Test a valid usage option."""
        usage = parse_usage_option("api-calls:MONTHLY")
        assert usage.name == "api-calls"
        assert usage.billing_period == BillingPeriod.MONTHLY

    def test_missing_separator_raises_error(self):
        """Test an option without period is rejected."""
        with pytest.raises(ValueError, match="expected NAME:PERIOD"):
            parse_usage_option("api-calls")

    def test_empty_name_raises_error(self):
        """Test an option without name is rejected."""
        with pytest.raises(ValueError, match="expected NAME:PERIOD"):
            parse_usage_option(":monthly")
