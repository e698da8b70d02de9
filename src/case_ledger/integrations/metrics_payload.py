"""Monthly metrics snapshot parsing.

One snapshot per (organization, month), shaped like:
  { year_month, statusCounts: {status: count}, paidCount, grossAmount,
    referralCount?, referralPaidCount? }

Snapshots are immutable once parsed. A body with no usable `year_month` cannot be
placed in a statement and is treated like a failed fetch (None).
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Mapping

from src.case_ledger.integrations.field_resolver import (
    as_int,
    as_text,
    resolve_decimal,
    resolve_field,
    resolve_int,
)

logger = logging.getLogger(__name__)

_YEAR_MONTH_RE = re.compile(r"^(\d{4})-(\d{1,2})")


@dataclass(frozen=True, slots=True)
class MonthlyMetricsSnapshot:
    year_month: str
    status_counts: Mapping[str, int]
    paid_count: int
    gross_amount: Decimal
    referral_count: int | None = None
    referral_paid_count: int | None = None

    @property
    def total_cases(self) -> int:
        return total_cases(self.status_counts)


def normalize_year_month(value: Any) -> str | None:
    """Return a zero-padded `YYYY-MM` key, or None when the value is not one."""

    text = as_text(value)
    if text is None:
        return None
    m = _YEAR_MONTH_RE.match(text)
    if not m:
        return None
    month = int(m.group(2))
    if not 1 <= month <= 12:
        return None
    return f"{m.group(1)}-{month:02d}"


def _status_counts(raw: Any) -> Mapping[str, int]:
    if not isinstance(raw, dict):
        return MappingProxyType({})
    counts: dict[str, int] = {}
    for status, count in raw.items():
        counts[str(status)] = as_int(count, 0) or 0
    return MappingProxyType(counts)


def total_cases(status_counts: Mapping[str, int] | None) -> int:
    if not status_counts:
        return 0
    return sum(int(v or 0) for v in status_counts.values())


def normalize_metrics_snapshot(
    raw: Any, *, year_month: str | None = None
) -> MonthlyMetricsSnapshot | None:
    """Parse a monthly metrics body.

    `year_month` is the month that was requested; it is used when the body omits
    its own key.
    """

    if not isinstance(raw, dict):
        return None

    key = normalize_year_month(
        resolve_field(raw, ("year_month", "yearMonth", "month"))
    ) or normalize_year_month(year_month)
    if key is None:
        logger.debug("Dropping metrics snapshot without a year_month")
        return None

    return MonthlyMetricsSnapshot(
        year_month=key,
        status_counts=_status_counts(resolve_field(raw, ("statusCounts", "status_counts"))),
        paid_count=resolve_int(raw, ("paidCount", "paid_count"), 0) or 0,
        gross_amount=resolve_decimal(raw, ("grossAmount", "gross_amount")) or Decimal("0"),
        referral_count=resolve_int(raw, ("referralCount", "referral_count")),
        referral_paid_count=resolve_int(raw, ("referralPaidCount", "referral_paid_count")),
    )
