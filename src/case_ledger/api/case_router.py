"""Case ledger API router.

Read-only JSON endpoints over the normalizers and the statement engine:
- GET  /cases/{case_id}            normalized case detail + progress hints
- GET  /orgs/{org_slug}/statement  fetch monthly history, then reconcile
- POST /finance/statement          reconcile snapshots supplied in the body
"""

import dataclasses
import logging
from datetime import date as _date
from decimal import Decimal
from enum import Enum
from typing import Any, Awaitable, Callable

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from src.case_ledger.common.errors import ApiError, MissingCaseIdError
from src.case_ledger.config.settings import LedgerSettings
from src.case_ledger.integrations.case_api_client import CaseApiClient
from src.case_ledger.integrations.metrics_history_client import fetch_monthly_history
from src.case_ledger.integrations.metrics_payload import normalize_metrics_snapshot
from src.case_ledger.use_cases.accounting_period import last_year_months
from src.case_ledger.use_cases.case_progress import (
    build_timeline,
    case_error_message,
    is_payment_settled,
    is_processing_stuck,
    polling_interval_seconds,
    status_label,
)
from src.case_ledger.use_cases.financial_statement import build_financial_statement

logger = logging.getLogger(__name__)

case_router = APIRouter(tags=["Case Ledger"])

HistoryFetcher = Callable[..., Awaitable[list]]


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------


class StatementRequest(BaseModel):
    snapshots: list[Any]
    as_of: str | None = None


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def get_settings() -> LedgerSettings:
    return LedgerSettings.from_env()


def get_case_api_client(settings: LedgerSettings = Depends(get_settings)) -> CaseApiClient:
    return CaseApiClient(
        base_url=settings.api_base_url,
        token=settings.api_token,
        timeout_seconds=settings.timeout_seconds,
    )


def get_history_fetcher() -> HistoryFetcher:
    return fetch_monthly_history


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------


def to_jsonable(value: Any) -> Any:
    """Convert normalized records (dataclasses, enums, Decimals) into JSON data."""

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict) or hasattr(value, "items"):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def _parse_as_of(as_of: str | None) -> _date | None:
    if not as_of:
        return None
    try:
        return _date.fromisoformat(as_of)
    except ValueError:
        raise HTTPException(status_code=400, detail="as_of must be an ISO date (YYYY-MM-DD)")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@case_router.get("/cases/{case_id}")
def get_case(case_id: str, client: CaseApiClient = Depends(get_case_api_client)):
    """Fetch one case detail from the backend and return its canonical form."""

    try:
        detail = client.get_case_detail(case_id)
    except MissingCaseIdError as e:
        logger.error(f"Backend returned an unidentifiable case for {case_id}: {e}")
        raise HTTPException(status_code=404, detail="Caso não encontrado.")
    except ApiError as e:
        raise HTTPException(status_code=e.status, detail=e.message)

    record = detail.case
    return {
        "detail": to_jsonable(detail),
        "progress": {
            "status_label": status_label(record.status),
            "status_raw": record.status_raw,
            "payment_settled": is_payment_settled(record, detail.payment),
            "stuck": is_processing_stuck(record),
            "poll_seconds": polling_interval_seconds(record, detail.payment),
            "error_message": case_error_message(record),
            "timeline": to_jsonable(
                build_timeline(record, payment=detail.payment, documents=detail.documents)
            ),
        },
    }


@case_router.get("/orgs/{org_slug}/statement")
async def get_org_statement(
    org_slug: str,
    months: int | None = Query(default=None, ge=1, le=36),
    as_of: str | None = None,
    settings: LedgerSettings = Depends(get_settings),
    fetch_history: HistoryFetcher = Depends(get_history_fetcher),
):
    """Fetch the last N months of metrics in parallel and reconcile them."""

    today = _parse_as_of(as_of) or _date.today()
    wanted = last_year_months(months or settings.history_months, today)
    snapshots = await fetch_history(
        org_slug=org_slug,
        months=wanted,
        base_url=settings.api_base_url,
        token=settings.api_token,
        timeout_seconds=settings.timeout_seconds,
    )

    statement = build_financial_statement(
        snapshots,
        partner_share_per_case=settings.partner_share_per_case,
        operational_cost_per_case=settings.operational_cost_per_case,
        today=today,
    )
    return {
        "org_slug": org_slug,
        "requested_months": wanted,
        "missing_months": [m for m, s in zip(wanted, snapshots) if s is None],
        "statement": to_jsonable(statement),
    }


@case_router.post("/finance/statement")
def post_statement(body: StatementRequest, settings: LedgerSettings = Depends(get_settings)):
    """Reconcile snapshots that the caller already fetched."""

    today = _parse_as_of(body.as_of)
    snapshots = [normalize_metrics_snapshot(raw) for raw in body.snapshots]
    statement = build_financial_statement(
        snapshots,
        partner_share_per_case=settings.partner_share_per_case,
        operational_cost_per_case=settings.operational_cost_per_case,
        today=today,
    )
    return {
        "skipped": sum(1 for s in snapshots if s is None),
        "statement": to_jsonable(statement),
    }
