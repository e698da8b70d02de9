from __future__ import annotations

import json
from decimal import Decimal

import pytest

from src.case_ledger.common.errors import ApiError, MissingCaseIdError, api_error_from_response
from src.case_ledger.integrations.case_api_client import CaseApiClient
from src.case_ledger.integrations.case_status import CaseStatus


class _FakeResp:
    def __init__(self, status_code: int, payload, text: str | None = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self):
        return self._payload


def _client() -> CaseApiClient:
    return CaseApiClient(base_url="https://api.example/v1/", token="tok", timeout_seconds=5)


def test_get_case_sends_auth_and_normalizes(monkeypatch) -> None:
    seen = {}

    def fake_request(method, url, headers=None, params=None, timeout=None):
        seen.update(method=method, url=url, headers=headers, timeout=timeout)
        return _FakeResp(200, {"case": {"id": "c1", "status": "paid_processing"}, "worker": {"name": "Ana"}})

    monkeypatch.setattr("requests.request", fake_request)

    rec = _client().get_case("c1")
    assert rec.id == "c1"
    assert rec.status is CaseStatus.PAID_PROCESSING
    assert rec.worker.name == "Ana"
    assert seen["method"] == "GET"
    assert seen["url"] == "https://api.example/v1/cases/c1"
    assert seen["headers"]["Authorization"] == "Bearer tok"
    assert seen["timeout"] == 5


def test_client_without_token_omits_authorization(monkeypatch) -> None:
    seen = {}

    def fake_request(method, url, headers=None, params=None, timeout=None):
        seen["headers"] = headers
        return _FakeResp(200, [])

    monkeypatch.setattr("requests.request", fake_request)

    assert CaseApiClient(base_url="https://api.example").list_cases() == []
    assert "Authorization" not in seen["headers"]


def test_list_cases_passes_org_filter(monkeypatch) -> None:
    seen = {}

    def fake_request(method, url, headers=None, params=None, timeout=None):
        seen["params"] = params
        return _FakeResp(200, {"data": [{"id": "a"}, {"caseId": "b"}]})

    monkeypatch.setattr("requests.request", fake_request)

    cases = _client().list_cases(org_slug="sind-a")
    assert [c.id for c in cases] == ["a", "b"]
    assert seen["params"] == {"org_slug": "sind-a"}


def test_get_case_detail_hits_detail_path(monkeypatch) -> None:
    seen = {}

    def fake_request(method, url, headers=None, params=None, timeout=None):
        seen["url"] = url
        return _FakeResp(
            200,
            {
                "case": {"id": "c1"},
                "workflowLogs": [{"id": "l1", "step": "ocr", "created_at": "2025-03-01T00:00:00Z"}],
            },
        )

    monkeypatch.setattr("requests.request", fake_request)

    detail = _client().get_case_detail("c1")
    assert seen["url"].endswith("/cases/c1/detail")
    assert len(detail.workflow_logs) == 1


def test_get_org_metrics_uses_requested_month(monkeypatch) -> None:
    seen = {}

    def fake_request(method, url, headers=None, params=None, timeout=None):
        seen.update(url=url, params=params)
        return _FakeResp(200, {"statusCounts": {"paid": 3}, "paidCount": 3, "grossAmount": "263.70"})

    monkeypatch.setattr("requests.request", fake_request)

    snap = _client().get_org_metrics("sind-a", "2025-03")
    assert seen["url"].endswith("/orgs/sind-a/metrics")
    assert seen["params"] == {"year_month": "2025-03"}
    assert snap.year_month == "2025-03"
    assert snap.gross_amount == Decimal("263.70")


def test_http_error_raises_api_error_with_backend_message(monkeypatch) -> None:
    def fake_request(method, url, headers=None, params=None, timeout=None):
        return _FakeResp(404, {"error": "not_found", "message": "Case not found"})

    monkeypatch.setattr("requests.request", fake_request)

    with pytest.raises(ApiError) as exc:
        _client().get_case("missing")
    assert exc.value.status == 404
    assert exc.value.code == "not_found"
    assert exc.value.message == "Case not found"


def test_no_content_response_is_missing_case(monkeypatch) -> None:
    def fake_request(method, url, headers=None, params=None, timeout=None):
        return _FakeResp(204, None, text="")

    monkeypatch.setattr("requests.request", fake_request)

    with pytest.raises(MissingCaseIdError):
        _client().get_case("c1")


def test_api_error_from_plain_text_body() -> None:
    err = api_error_from_response(502, "Bad Gateway")
    assert err.status == 502
    assert err.code is None
    assert err.message == "Bad Gateway"
    assert err.details == "Bad Gateway"


def test_api_error_from_empty_body() -> None:
    err = api_error_from_response(500, "")
    assert err.message == "HTTP error 500"
    assert str(err) == "HTTP error 500"


def test_from_env_reads_connection_settings(monkeypatch, case_api_env_vars) -> None:
    for name, value in case_api_env_vars.items():
        monkeypatch.setenv(name, value)
    monkeypatch.setenv("CASE_API_TIMEOUT_SECONDS", "7")

    client = CaseApiClient.from_env()
    assert client.base_url == "http://test-case-api"
    assert client._headers()["Authorization"] == "Bearer test_token"
