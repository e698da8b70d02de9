from __future__ import annotations

from datetime import date

import pytest

from src.case_ledger.use_cases.accounting_period import (
    ClosingStatus,
    classify_accounting_period,
    current_year_month,
    last_year_months,
    previous_year_month,
    shift_year_month,
)


def test_past_month_is_closed() -> None:
    assert classify_accounting_period("2025-01", "2025-03") is ClosingStatus.FECHADO


def test_current_month_is_open() -> None:
    assert classify_accounting_period("2025-03", "2025-03") is ClosingStatus.ABERTO


def test_future_month_is_open() -> None:
    assert classify_accounting_period("2025-04", "2025-03") is ClosingStatus.ABERTO


def test_date_is_accepted_as_current() -> None:
    assert classify_accounting_period("2025-02", date(2025, 3, 31)) is ClosingStatus.FECHADO
    assert classify_accounting_period("2025-03", date(2025, 3, 1)).value == "aberto"


def test_year_boundary_compares_lexicographically() -> None:
    assert classify_accounting_period("2024-12", "2025-01") is ClosingStatus.FECHADO


@pytest.mark.parametrize(
    "d, months, expected",
    [
        (date(2025, 3, 15), 0, "2025-03"),
        (date(2025, 3, 15), -2, "2025-01"),
        (date(2025, 1, 31), -1, "2024-12"),
        (date(2025, 1, 31), -13, "2023-12"),
        (date(2025, 11, 1), 3, "2026-02"),
    ],
)
def test_shift_year_month(d, months, expected) -> None:
    assert shift_year_month(d, months) == expected


def test_current_and_previous_month() -> None:
    today = date(2025, 1, 10)
    assert current_year_month(today) == "2025-01"
    assert previous_year_month(today) == "2024-12"


def test_last_year_months_newest_first() -> None:
    months = last_year_months(12, date(2025, 3, 1))
    assert len(months) == 12
    assert months[0] == "2025-03"
    assert months[-1] == "2024-04"
    assert months == sorted(months, reverse=True)
    assert last_year_months(0, date(2025, 3, 1)) == []
