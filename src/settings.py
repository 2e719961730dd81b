"""
Runtime configuration, read from LEDGER_* environment variables.
"""

from enum import Enum
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class DisputePolicy(str, Enum):
    # Dispute state is inferred from balance arithmetic alone.
    PERMISSIVE = "permissive"
    # History entries carry a dispute status that gates dispute/resolve/chargeback.
    STRICT = "strict"


class LedgerSettings(BaseSettings):
    """Ledger replay configuration"""

    model_config = SettingsConfigDict(env_prefix="LEDGER_")

    dispute_policy: DisputePolicy = DisputePolicy.PERMISSIVE
    log_level: LogLevel = "WARNING"
    print_summary: bool = True  # Processed/rejected counts on stderr

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value):
        return value.upper() if isinstance(value, str) else value
