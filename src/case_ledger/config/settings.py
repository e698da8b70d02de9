"""Runtime configuration for the case ledger.

Values come from the process environment (optionally seeded from `.env`).
Financial constants are read-only inputs to the statement engine; nothing here
is computed from backend data.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from dotenv import load_dotenv

load_dotenv(override=False)

DEFAULT_PARTNER_SHARE_PER_CASE = Decimal("10.00")
DEFAULT_OPERATIONAL_COST_PER_CASE = Decimal("0")


def _env_decimal(name: str, default: Decimal) -> Decimal:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        amount = Decimal(raw.replace(",", "."))
    except InvalidOperation:
        raise ValueError(f"{name} must be a decimal amount, got {raw!r}")
    if not amount.is_finite():
        raise ValueError(f"{name} must be a decimal amount, got {raw!r}")
    return amount


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass(frozen=True, slots=True)
class LedgerSettings:
    api_base_url: str = "http://127.0.0.1:8000"
    api_token: str | None = None
    timeout_seconds: int = 30
    partner_share_per_case: Decimal = DEFAULT_PARTNER_SHARE_PER_CASE
    operational_cost_per_case: Decimal = DEFAULT_OPERATIONAL_COST_PER_CASE
    history_months: int = 12
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "LedgerSettings":
        load_dotenv(override=False)
        base_url = (os.environ.get("CASE_API_BASE_URL") or "http://127.0.0.1:8000").rstrip("/")
        return cls(
            api_base_url=base_url,
            api_token=os.environ.get("CASE_API_TOKEN") or None,
            timeout_seconds=_env_int("CASE_API_TIMEOUT_SECONDS", 30),
            partner_share_per_case=_env_decimal(
                "PARTNER_SHARE_PER_CASE", DEFAULT_PARTNER_SHARE_PER_CASE
            ),
            operational_cost_per_case=_env_decimal(
                "OPERATIONAL_COST_PER_CASE", DEFAULT_OPERATIONAL_COST_PER_CASE
            ),
            history_months=_env_int("STATEMENT_HISTORY_MONTHS", 12),
            log_level=(os.environ.get("LOG_LEVEL") or "INFO").upper(),
        )
