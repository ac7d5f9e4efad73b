"""
Configuration management and loading.

Handles invoice settings and their per-tenant overrides.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml

from usage_window.core.context import CallContext

# Number of extra billing periods of raw usage read before the last complete one
DEFAULT_MAX_RAW_USAGE_PREVIOUS_PERIOD = 2


@dataclass(frozen=True)
class InvoiceConfig:
    """Invoice settings, resolved per call context.

    A negative max_raw_usage_previous_period disables the raw usage window
    optimization, so the full usage history is always read.
    """
    max_raw_usage_previous_period: int = DEFAULT_MAX_RAW_USAGE_PREVIOUS_PERIOD
    tenant_overrides: Dict[int, int] = field(default_factory=dict)

    def get_max_raw_usage_previous_period(self, context: CallContext) -> int:
        """Get the lookback for the tenant of the call, using the default if not overridden."""
        return self.tenant_overrides.get(context.tenant_record_id, self.max_raw_usage_previous_period)


def load_invoice_config(path: str) -> InvoiceConfig:
    """Load and validate invoice configuration from YAML file.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated InvoiceConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Invoice config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")

    if not isinstance(raw_config, dict):
        raise ValueError("Configuration root must be a dictionary")

    allowed_top_keys = {'invoice', 'tenants'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    if 'invoice' not in raw_config:
        raise ValueError("Missing required 'invoice' section")

    invoice_data = raw_config['invoice']
    if not isinstance(invoice_data, dict):
        raise ValueError("'invoice' must be a dictionary")

    default_lookback = _parse_invoice_section(invoice_data, "invoice")
    if default_lookback is None:
        default_lookback = DEFAULT_MAX_RAW_USAGE_PREVIOUS_PERIOD

    tenants_data = raw_config.get('tenants', {})
    if not isinstance(tenants_data, dict):
        raise ValueError("'tenants' must be a dictionary")

    tenant_overrides = {}
    for tenant_key, tenant_data in tenants_data.items():
        tenant_path = f"tenants.{tenant_key}"
        tenant_record_id = _parse_tenant_record_id(tenant_key, tenant_path)
        if not isinstance(tenant_data, dict):
            raise ValueError(f"Tenant '{tenant_key}' must be a dictionary")
        lookback = _parse_invoice_section(tenant_data, tenant_path)
        if lookback is None:
            raise ValueError(f"Missing required 'max_raw_usage_previous_period' in {tenant_path}")
        tenant_overrides[tenant_record_id] = lookback

    return InvoiceConfig(
        max_raw_usage_previous_period=default_lookback,
        tenant_overrides=tenant_overrides
    )


def _parse_invoice_section(data: Dict[str, Any], path: str):
    """Parse the invoice settings of a section.

    Args:
        data: Section data
        path: Path for error messages

    Returns:
        The configured lookback, or None when the section doesn't set one

    Raises:
        ValueError: If the section is invalid
    """
    allowed_keys = {'max_raw_usage_previous_period'}
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")

    if 'max_raw_usage_previous_period' not in data:
        return None

    value = data['max_raw_usage_previous_period']
    # bool is an int subclass; `true` is never a valid period count
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'max_raw_usage_previous_period' in {path} must be an integer")

    return value


def _parse_tenant_record_id(key: Any, path: str) -> int:
    if isinstance(key, (bool, float)):
        raise ValueError(f"{path}: tenant record id must be a positive integer")
    try:
        tenant_record_id = int(key)
    except (TypeError, ValueError):
        raise ValueError(f"{path}: tenant record id must be a positive integer")
    if tenant_record_id <= 0:
        raise ValueError(f"{path}: tenant record id must be a positive integer")
    return tenant_record_id
