"""Case management backend connector.

Purpose
- Provide a small, testable wrapper for *read-only* backend calls.
- Hand every response body to the normalizers; callers only see canonical records.

This module is intentionally independent of FastAPI.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from src.case_ledger.common.errors import api_error_from_response
from src.case_ledger.config.settings import LedgerSettings
from src.case_ledger.integrations.case_payload import (
    CaseDetail,
    CaseRecord,
    normalize_case,
    normalize_case_detail,
    normalize_case_list,
)
from src.case_ledger.integrations.metrics_payload import (
    MonthlyMetricsSnapshot,
    normalize_metrics_snapshot,
)

logger = logging.getLogger(__name__)


class CaseApiClient:
    def __init__(
        self,
        *,
        base_url: str,
        token: str | None = None,
        timeout_seconds: int = 30,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout_seconds = timeout_seconds

    @classmethod
    def from_env(cls) -> "CaseApiClient":
        settings = LedgerSettings.from_env()
        return cls(
            base_url=settings.api_base_url,
            token=settings.api_token,
            timeout_seconds=settings.timeout_seconds,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _request_json(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        resp = requests.request(
            method,
            url,
            headers=self._headers(),
            params=params,
            timeout=self._timeout_seconds,
        )
        logger.debug(f"{method} {url} -> {resp.status_code}")

        if resp.status_code >= 400:
            raise api_error_from_response(resp.status_code, resp.text)
        if resp.status_code == 204:
            return None
        return resp.json()

    def list_cases(self, *, org_slug: str | None = None) -> list[CaseRecord]:
        params = {"org_slug": org_slug} if org_slug else None
        return normalize_case_list(self._request_json("GET", "/cases", params=params))

    def get_case(self, case_id: str) -> CaseRecord:
        return normalize_case(self._request_json("GET", f"/cases/{case_id}"))

    def get_case_detail(self, case_id: str) -> CaseDetail:
        return normalize_case_detail(self._request_json("GET", f"/cases/{case_id}/detail"))

    def get_org_metrics(self, org_slug: str, year_month: str) -> MonthlyMetricsSnapshot | None:
        raw = self._request_json(
            "GET", f"/orgs/{org_slug}/metrics", params={"year_month": year_month}
        )
        return normalize_metrics_snapshot(raw, year_month=year_month)
