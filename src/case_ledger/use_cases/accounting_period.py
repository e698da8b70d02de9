"""Accounting period helpers.

A month is "aberto" (still accruing) when it is the current month or later, and
"fechado" once it is strictly in the past. Both operands must already be
zero-padded `YYYY-MM` strings; the comparison is lexicographic and is not
validated at runtime.
"""

from __future__ import annotations

from datetime import date
from enum import Enum


class ClosingStatus(str, Enum):
    ABERTO = "aberto"
    FECHADO = "fechado"


def to_year_month(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def current_year_month(today: date | None = None) -> str:
    return to_year_month(today or date.today())


def shift_year_month(d: date, months: int) -> str:
    """Return the `YYYY-MM` key `months` away from `d` (negative goes back)."""

    index = d.year * 12 + (d.month - 1) + months
    year, month0 = divmod(index, 12)
    return f"{year:04d}-{month0 + 1:02d}"


def previous_year_month(today: date | None = None) -> str:
    return shift_year_month(today or date.today(), -1)


def last_year_months(count: int, today: date | None = None) -> list[str]:
    """The `count` most recent month keys, newest first, including the current one."""

    base = today or date.today()
    return [shift_year_month(base, -i) for i in range(max(count, 0))]


def classify_accounting_period(
    year_month: str, current: date | str | None = None
) -> ClosingStatus:
    """Classify `year_month` against the current month (a date or a `YYYY-MM`)."""

    if current is None or isinstance(current, date):
        current_key = current_year_month(current)
    else:
        current_key = current
    return ClosingStatus.FECHADO if year_month < current_key else ClosingStatus.ABERTO
