from __future__ import annotations

from decimal import Decimal

import pytest

from src.case_ledger.common.errors import MissingCaseIdError
from src.case_ledger.integrations.analysis_payload import FinalClassification
from src.case_ledger.integrations.case_payload import (
    Company,
    Payment,
    SupportRequest,
    Worker,
    normalize_case,
    normalize_case_detail,
    normalize_case_list,
)
from src.case_ledger.integrations.case_status import CaseStatus


def test_flat_and_nested_shapes_normalize_to_equal_records() -> None:
    flat = {
        "id": "c1",
        "status": "paid_processing",
        "created_at": "2025-03-02T10:00:00Z",
        "worker_name": "Ana Souza",
        "worker_cpf": "123.456.789-00",
        "company_name": "ACME Ltda",
        "company_cnpj": "00.000.000/0001-00",
    }
    nested = {
        "case": {"id": "c1", "status": "paid_processing", "createdAt": "2025-03-02T10:00:00Z"},
        "worker": {"name": "Ana Souza", "cpf": "123.456.789-00"},
        "company": {"name": "ACME Ltda", "cnpj": "00.000.000/0001-00"},
    }

    a = normalize_case(flat)
    b = normalize_case(nested)

    assert a == b
    assert a.worker == Worker(name="Ana Souza", tax_id="123.456.789-00")
    assert a.company == Company(name="ACME Ltda", tax_id="00.000.000/0001-00")
    assert a.status is CaseStatus.PAID_PROCESSING


def test_case_level_keys_win_over_siblings() -> None:
    rec = normalize_case({"status": "draft", "case": {"id": "x", "status": "done"}})
    assert rec.id == "x"
    assert rec.status is CaseStatus.DONE


@pytest.mark.parametrize("payload", [{"status": "paid_processing"}, {"id": "   "}, {"case": {}}, "c1", None])
def test_missing_case_id_raises(payload) -> None:
    with pytest.raises(MissingCaseIdError):
        normalize_case(payload)


def test_unknown_status_keeps_raw_value() -> None:
    rec = normalize_case({"case_id": 7, "status": "archived"})
    assert rec.id == "7"
    assert rec.status is CaseStatus.AWAITING_PAYMENT
    assert rec.status_raw == "archived"


def test_absent_worker_and_company_are_none() -> None:
    rec = normalize_case({"id": "c", "worker": {"name": " "}, "company": "ACME"})
    assert rec.worker is None
    assert rec.company is None
    assert rec.documents == ()
    assert rec.analysis is None
    assert rec.payment is None


def test_nested_payment_with_localized_amount() -> None:
    rec = normalize_case(
        {
            "id": "c",
            "payment": {
                "id": "p1",
                "status": "approved",
                "amount": "87,90",
                "init_point": "https://pay.example/p1",
                "approved_at": "2025-03-02T11:00:00Z",
            },
        }
    )
    assert rec.payment == Payment(
        id="p1",
        status="approved",
        amount=Decimal("87.90"),
        payment_url="https://pay.example/p1",
        paid_at="2025-03-02T11:00:00Z",
    )


def test_flat_payment_fields() -> None:
    rec = normalize_case({"id": "c", "payment_status": "pending", "payment_amount": 87.9})
    assert rec.payment is not None
    assert rec.payment.id is None
    assert rec.payment.status == "pending"
    assert rec.payment.amount == Decimal("87.9")


def test_telemetry_and_organization_fields() -> None:
    rec = normalize_case(
        {
            "id": "c",
            "submit_attempts": "2",
            "processing_started_at": "2025-03-02T10:00:00Z",
            "last_n8n_callback_status": "error",
            "last_error_code": "ocr_failed",
            "organization": {"slug": "sind-a", "name": "Sindicato A"},
            "manual_override_paid": True,
            "union_code_applied": "SIND10",
        }
    )
    assert rec.telemetry.submit_attempts == 2
    assert rec.telemetry.processing_started_at == "2025-03-02T10:00:00Z"
    assert rec.telemetry.last_callback_status == "error"
    assert rec.telemetry.last_error_code == "ocr_failed"
    assert rec.org_slug == "sind-a"
    assert rec.org_name == "Sindicato A"
    assert rec.manual_override_paid is True
    assert rec.union_code_applied == "SIND10"


def test_manual_override_requires_a_real_boolean() -> None:
    assert normalize_case({"id": "c", "manual_override_paid": "true"}).manual_override_paid is False


def test_embedded_analysis_is_normalized() -> None:
    rec = normalize_case(
        {"id": "c", "analysis": [{"summary": "old"}, {"finalClassification": "ATENDE_INTEGRALMENTE"}]}
    )
    assert rec.analysis is not None
    assert rec.analysis.final_classification is FinalClassification.ATENDE_INTEGRALMENTE


def test_case_list_shapes() -> None:
    assert [c.id for c in normalize_case_list([{"id": "a"}, {"id": "b"}])] == ["a", "b"]
    assert [c.id for c in normalize_case_list({"data": [{"id": "a"}]})] == ["a"]
    assert [c.id for c in normalize_case_list({"id": "z"})] == ["z"]
    assert normalize_case_list(None) == []
    assert normalize_case_list({}) == []


def test_detail_fields_win_over_case_fields() -> None:
    detail = normalize_case_detail(
        {
            "case": {
                "id": "c1",
                "status": "processing",
                "worker_name": "Ana",
                "documents": [{"id": "d1", "type": "ppp_input"}],
                "analysis": {"summary": "case-level"},
            },
            "worker": {"name": "Bia"},
            "documents": [{"id": "d2", "type": "ppp_result"}],
            "analysis": {"summary": "detail-level"},
            "workflowLogs": [{"id": "l1", "step": "ocr", "created_at": "2025-03-02T10:00:00Z"}],
        }
    )
    assert detail.case.id == "c1"
    assert detail.worker.name == "Bia"
    assert [d.id for d in detail.documents] == ["d2"]
    assert detail.analysis.summary == "detail-level"
    assert [log.id for log in detail.workflow_logs] == ["l1"]


def test_detail_falls_back_to_case_fields() -> None:
    detail = normalize_case_detail(
        {
            "case": {
                "id": "c1",
                "worker": {"name": "Ana"},
                "company": {"cnpj": "00"},
                "documents": [{"id": "d1"}],
                "analysis": {"flags": ["F"]},
                "payment": {"id": "p1", "status": "approved"},
                "workflow_logs": [{"id": "l1", "step": "submit", "createdAt": "2025-03-02T10:00:00Z"}],
            },
            "analysis": "{broken",
        }
    )
    assert detail.worker == Worker(name="Ana")
    assert detail.company == Company(name=None, tax_id="00")
    assert [d.id for d in detail.documents] == ["d1"]
    assert detail.analysis.flags == ("F",)
    assert detail.payment.id == "p1"
    assert [log.step for log in detail.workflow_logs] == ["submit"]


def test_detail_without_logs_has_empty_log_list() -> None:
    detail = normalize_case_detail({"id": "c1", "workflowLogs": "nope"})
    assert detail.workflow_logs == ()


def test_detail_support_request_from_detail_level() -> None:
    detail = normalize_case_detail(
        {
            "case": {"id": "c1"},
            "supportRequest": {
                "status": "open",
                "message": "help",
                "created_at": "2025-03-02T10:00:00Z",
                "priority": "high",
                "sla_overdue": True,
            },
        }
    )
    assert detail.support_request == SupportRequest(
        id=None,
        status="open",
        message="help",
        created_at="2025-03-02T10:00:00Z",
        priority="high",
        sla_overdue=True,
    )


def test_detail_support_request_falls_back_to_case_level() -> None:
    detail = normalize_case_detail(
        {
            "case": {
                "id": "c1",
                "support_request": {"id": "s1", "status": "resolved", "resolved_at": "2025-03-03"},
            },
            "support_request": {"priority": "low"},
        }
    )
    assert detail.support_request.id == "s1"
    assert detail.support_request.resolved_at == "2025-03-03"
    assert detail.support_request.sla_overdue is False


def test_detail_without_support_request() -> None:
    assert normalize_case_detail({"id": "c1", "supportRequest": "x"}).support_request is None
