"""Runtime settings for the ledger engine and its command shell.

Values come from ``LEDGER_*`` environment variables or a local ``.env``
file. ``get_settings`` caches the validated instance for the process.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    recent_limit: int = Field(10, ge=1, description="Size of the recent transactions window.")
    undo_limit: int = Field(5, ge=1, description="How many appends can be undone.")
    fraud_multiplier: Decimal = Field(
        Decimal("3"),
        gt=0,
        description="Debits above multiplier x median debit are reported as large.",
    )
    budget_top_categories: int = Field(
        3, ge=1, description="Categories listed when spending is over budget."
    )
    log_level: str = Field("WARNING", description="Level name for the ledger package logger.")

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level


@lru_cache()
def get_settings() -> LedgerSettings:
    return LedgerSettings()
