"""
Call context shared by every read made on behalf of an account.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class CallContext:
    """Identifies the account and tenant a call is made for."""
    account_record_id: int
    tenant_record_id: int

    def __post_init__(self):
        """Validate record ids are positive."""
        if self.account_record_id <= 0:
            raise ValueError("account_record_id must be > 0")
        if self.tenant_record_id <= 0:
            raise ValueError("tenant_record_id must be > 0")
