"""Parallel monthly-metrics fetch.

Issues one request per month concurrently. Each month is isolated: a failure
(transport error, HTTP error, bad body) resolves to None for that month instead
of failing the batch. Failed months are not retried and not zero-filled.

There is no cancellation; a caller that no longer wants the result ignores it.
Timeouts belong to the transport.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from src.case_ledger.common.errors import ApiError, api_error_from_response
from src.case_ledger.integrations.metrics_payload import (
    MonthlyMetricsSnapshot,
    normalize_metrics_snapshot,
)

logger = logging.getLogger(__name__)


async def fetch_org_metrics(
    client: httpx.AsyncClient,
    *,
    org_slug: str,
    year_month: str,
) -> MonthlyMetricsSnapshot | None:
    resp = await client.get(f"/orgs/{org_slug}/metrics", params={"year_month": year_month})
    if resp.status_code >= 400:
        raise api_error_from_response(resp.status_code, resp.text)
    return normalize_metrics_snapshot(resp.json(), year_month=year_month)


async def _fetch_or_none(
    client: httpx.AsyncClient, *, org_slug: str, year_month: str
) -> MonthlyMetricsSnapshot | None:
    try:
        return await fetch_org_metrics(client, org_slug=org_slug, year_month=year_month)
    except (httpx.HTTPError, ApiError, ValueError) as e:
        logger.warning(f"Metrics fetch failed for {org_slug} {year_month}: {e}")
        return None


async def fetch_monthly_history(
    *,
    org_slug: str,
    months: list[str],
    base_url: str,
    token: str | None = None,
    timeout_seconds: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[MonthlyMetricsSnapshot | None]:
    """Fetch every month in parallel; the result is aligned with `months`."""

    headers: dict[str, Any] = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"

    async with httpx.AsyncClient(
        base_url=base_url.rstrip("/"),
        headers=headers,
        timeout=timeout_seconds,
        transport=transport,
    ) as client:
        results = await asyncio.gather(
            *(_fetch_or_none(client, org_slug=org_slug, year_month=m) for m in months)
        )

    failed = sum(1 for r in results if r is None)
    if failed:
        logger.info(f"Monthly history for {org_slug}: {failed}/{len(months)} month(s) unavailable")
    return list(results)
