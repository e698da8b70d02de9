"""Monthly financial statement.

Deterministic reconciliation over already-fetched monthly metrics snapshots. No
network calls here; months whose fetch failed simply arrive as None (or are
absent) and are left out. Nothing is interpolated or zero-filled.

Per row:
  partner_share      = paid_count * partner_share_per_case
  platform_revenue   = gross_amount - partner_share
  operational_cost   = paid_count * operational_cost_per_case
  operational_margin = platform_revenue - operational_cost

Totals are sums of the row values, not re-derived from counts.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from src.case_ledger.integrations.metrics_payload import MonthlyMetricsSnapshot
from src.case_ledger.use_cases.accounting_period import (
    ClosingStatus,
    classify_accounting_period,
    current_year_month,
)

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class StatementRow:
    year_month: str
    paid_count: int
    gross_amount: Decimal
    partner_share: Decimal
    platform_revenue: Decimal
    operational_cost: Decimal
    operational_margin: Decimal
    closing_status: ClosingStatus

    @property
    def is_open(self) -> bool:
        return self.closing_status is ClosingStatus.ABERTO


@dataclass(frozen=True, slots=True)
class StatementTotals:
    paid_count: int = 0
    gross_amount: Decimal = Decimal("0.00")
    partner_share: Decimal = Decimal("0.00")
    platform_revenue: Decimal = Decimal("0.00")
    operational_cost: Decimal = Decimal("0.00")
    operational_margin: Decimal = Decimal("0.00")


@dataclass(frozen=True, slots=True)
class FinancialStatement:
    rows: tuple[StatementRow, ...]
    totals: StatementTotals
    open_receivable: Decimal
    current_year_month: str


def build_statement_row(
    snapshot: MonthlyMetricsSnapshot,
    *,
    partner_share_per_case: Decimal,
    operational_cost_per_case: Decimal = Decimal("0"),
    current: date | str | None = None,
) -> StatementRow:
    paid = snapshot.paid_count
    gross = _money(snapshot.gross_amount)
    partner_share = _money(paid * partner_share_per_case)
    platform_revenue = gross - partner_share
    operational_cost = _money(paid * operational_cost_per_case)
    return StatementRow(
        year_month=snapshot.year_month,
        paid_count=paid,
        gross_amount=gross,
        partner_share=partner_share,
        platform_revenue=platform_revenue,
        operational_cost=operational_cost,
        operational_margin=platform_revenue - operational_cost,
        closing_status=classify_accounting_period(snapshot.year_month, current),
    )


def sum_rows(rows: Iterable[StatementRow]) -> StatementTotals:
    paid = 0
    gross = partner = platform = cost = margin = Decimal("0.00")
    for row in rows:
        paid += row.paid_count
        gross += row.gross_amount
        partner += row.partner_share
        platform += row.platform_revenue
        cost += row.operational_cost
        margin += row.operational_margin
    return StatementTotals(
        paid_count=paid,
        gross_amount=gross,
        partner_share=partner,
        platform_revenue=platform,
        operational_cost=cost,
        operational_margin=margin,
    )


def open_receivable(rows: Iterable[StatementRow]) -> Decimal:
    """Partner share still accruing: the sum over rows whose period is open."""

    total = Decimal("0.00")
    for row in rows:
        if row.is_open:
            total += row.partner_share
    return total


def build_financial_statement(
    snapshots: Iterable[MonthlyMetricsSnapshot | None],
    *,
    partner_share_per_case: Decimal,
    operational_cost_per_case: Decimal = Decimal("0"),
    today: date | None = None,
) -> FinancialStatement:
    """Reconcile a batch of monthly snapshots into a statement.

    `None` entries stand for months whose fetch failed and are skipped. Rows are
    returned newest first; totals do not depend on order.
    """

    current_key = current_year_month(today)

    present = [s for s in snapshots if s is not None]
    rows = [
        build_statement_row(
            s,
            partner_share_per_case=partner_share_per_case,
            operational_cost_per_case=operational_cost_per_case,
            current=current_key,
        )
        for s in present
    ]
    rows.sort(key=lambda r: r.year_month, reverse=True)

    logger.debug(f"Built statement with {len(rows)} month(s) as of {current_key}")

    return FinancialStatement(
        rows=tuple(rows),
        totals=sum_rows(rows),
        open_receivable=open_receivable(rows),
        current_year_month=current_key,
    )
