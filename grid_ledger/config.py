"""
Configuration
=============
Runtime settings for a grid ledger session.

Values default to a local development setup (in-process co-processor and
ledger). Every field can be overridden with a GRID_LEDGER_<FIELD> environment
variable via GridLedgerConfig.from_env().
"""

import os
from typing import Optional, get_args

from pydantic import BaseModel


ENV_PREFIX = "GRID_LEDGER_"


class GridLedgerConfig(BaseModel):
    """Session configuration"""
    # BFV parameters for the reference co-processor
    poly_modulus_degree: int = 4096
    plain_modulus: int = 1032193

    contract_address: str = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
    account_address: Optional[str] = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
    block_time_seconds: float = 0.0

    # OperationStatus auto-clear intervals
    status_success_seconds: float = 2.0
    status_error_seconds: float = 3.0

    realtime_interval_seconds: float = 2.0
    realtime_window: int = 20

    record_tag: str = "Energy Grid Load Data"
    id_prefix: str = "grid-"

    host: str = "0.0.0.0"
    port: int = 8000

    audit_log_file: Optional[str] = None

    @classmethod
    def from_env(cls, **overrides) -> 'GridLedgerConfig':
        """Build config from GRID_LEDGER_* environment variables"""
        values = {}
        for name, field in cls.model_fields.items():
            raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if raw is None:
                continue
            if raw == "":
                # empty clears an Optional field, otherwise the default stands
                if type(None) in get_args(field.annotation):
                    values[name] = None
                continue
            # pydantic coerces the string to the field type
            values[name] = raw
        values.update(overrides)
        return cls(**values)
