"""Case payload normalization.

Turns the raw JSON body of a case (flat, or nested under `case`; worker/company
as objects or as flat `worker_name`/`company_cnpj` siblings) into one immutable
CaseRecord. Equivalent data in any supported shape yields an equal record.

The only thing that raises is a payload with no resolvable id.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from src.case_ledger.common.errors import MissingCaseIdError
from src.case_ledger.integrations.analysis_payload import CaseAnalysis, normalize_analysis
from src.case_ledger.integrations.case_documents import (
    CaseDocument,
    WorkflowLogEntry,
    normalize_documents,
    normalize_workflow_logs,
)
from src.case_ledger.integrations.case_status import CaseStatus, classify_case_status
from src.case_ledger.integrations.field_resolver import (
    resolve_decimal,
    resolve_field,
    resolve_int,
    resolve_mapping,
    resolve_text,
)

CASE_ID_PATHS = ("id", "case_id", "caseId")


@dataclass(frozen=True, slots=True)
class Worker:
    name: str | None
    tax_id: str | None = None
    birth_date: str | None = None


@dataclass(frozen=True, slots=True)
class Company:
    name: str | None
    tax_id: str | None = None


@dataclass(frozen=True, slots=True)
class Payment:
    id: str | None
    status: str | None
    amount: Decimal | None = None
    payment_url: str | None = None
    created_at: str | None = None
    paid_at: str | None = None


@dataclass(frozen=True, slots=True)
class ProcessingTelemetry:
    submit_attempts: int = 0
    last_submit_at: str | None = None
    processing_started_at: str | None = None
    last_callback_status: str | None = None
    last_callback_at: str | None = None
    last_callback_error: str | None = None
    last_error_code: str | None = None
    last_error_message: str | None = None
    last_error_step: str | None = None
    last_error_at: str | None = None


@dataclass(frozen=True, slots=True)
class CaseRecord:
    id: str
    status: CaseStatus
    status_raw: str | None
    created_at: str | None
    updated_at: str | None
    worker: Worker | None
    company: Company | None
    documents: tuple[CaseDocument, ...]
    analysis: CaseAnalysis | None
    payment: Payment | None
    telemetry: ProcessingTelemetry
    org_slug: str | None = None
    org_name: str | None = None
    manual_override_paid: bool = False
    union_code_applied: str | None = None


@dataclass(frozen=True, slots=True)
class SupportRequest:
    id: str | None
    status: str | None
    message: str | None = None
    created_at: str | None = None
    resolved_at: str | None = None
    priority: str | None = None
    sla_overdue: bool = False


@dataclass(frozen=True, slots=True)
class CaseDetail:
    case: CaseRecord
    worker: Worker | None
    company: Company | None
    documents: tuple[CaseDocument, ...]
    analysis: CaseAnalysis | None
    payment: Payment | None
    workflow_logs: tuple[WorkflowLogEntry, ...]
    support_request: SupportRequest | None = None


def _case_view(payload: dict[str, Any]) -> dict[str, Any]:
    """Flatten `{"case": {...}, ...siblings}` so case-level keys win over siblings."""

    nested = payload.get("case")
    if not isinstance(nested, dict):
        return payload
    view = {k: v for k, v in payload.items() if k != "case"}
    view.update(nested)
    return view


def normalize_worker(view: Any) -> Worker | None:
    nested = resolve_mapping(view, ("worker", "workers"))
    name = resolve_text(nested, ("name", "full_name")) or resolve_text(
        view, ("worker_name", "workerName")
    )
    tax_id = resolve_text(nested, ("cpf", "tax_id", "taxId")) or resolve_text(
        view, ("worker_cpf", "workerCPF", "workerCpf")
    )
    birth_date = resolve_text(nested, ("birth_date", "birthDate")) or resolve_text(
        view, ("worker_birth_date", "workerBirthDate")
    )
    if name is None and tax_id is None and birth_date is None:
        return None
    return Worker(name=name, tax_id=tax_id, birth_date=birth_date)


def normalize_company(view: Any) -> Company | None:
    nested = resolve_mapping(view, ("company", "companies"))
    name = resolve_text(nested, ("name", "legal_name")) or resolve_text(
        view, ("company_name", "companyName")
    )
    tax_id = resolve_text(nested, ("cnpj", "tax_id", "taxId")) or resolve_text(
        view, ("company_cnpj", "companyCNPJ", "companyCnpj")
    )
    if name is None and tax_id is None:
        return None
    return Company(name=name, tax_id=tax_id)


def normalize_payment(view: Any) -> Payment | None:
    nested = resolve_mapping(view, ("payment", "payments"))
    if nested is not None:
        source: Any = nested
        paths = {
            "id": ("id", "payment_id"),
            "status": ("status", "payment_status"),
            "amount": ("amount", "gross_amount", "value"),
            "url": ("payment_url", "paymentUrl", "init_point"),
            "created": ("created_at", "createdAt"),
            "paid": ("paid_at", "paidAt", "approved_at"),
        }
    else:
        source = view
        paths = {
            "id": ("payment_id",),
            "status": ("payment_status", "paymentStatus"),
            "amount": ("payment_amount", "paymentAmount"),
            "url": ("payment_url", "paymentUrl"),
            "created": ("payment_created_at",),
            "paid": ("paid_at", "paidAt"),
        }

    payment = Payment(
        id=resolve_text(source, paths["id"]),
        status=resolve_text(source, paths["status"]),
        amount=resolve_decimal(source, paths["amount"]),
        payment_url=resolve_text(source, paths["url"]),
        created_at=resolve_text(source, paths["created"]),
        paid_at=resolve_text(source, paths["paid"]),
    )
    if payment.id is None and payment.status is None and payment.payment_url is None:
        return None
    return payment


def normalize_support_request(raw: Any) -> SupportRequest | None:
    if not isinstance(raw, dict):
        return None
    support = SupportRequest(
        id=resolve_text(raw, ("id", "support_request_id")),
        status=resolve_text(raw, ("status",)),
        message=resolve_text(raw, ("message", "description")),
        created_at=resolve_text(raw, ("created_at", "createdAt")),
        resolved_at=resolve_text(raw, ("resolved_at", "resolvedAt")),
        priority=resolve_text(raw, ("priority",)),
        sla_overdue=resolve_field(raw, ("sla_overdue", "slaOverdue")) is True,
    )
    if support.id is None and support.status is None and support.message is None:
        return None
    return support


def normalize_telemetry(view: Any) -> ProcessingTelemetry:
    return ProcessingTelemetry(
        submit_attempts=resolve_int(
            view, ("submit_attempts", "submit_attempt_count", "submitAttempts"), 0
        ),
        last_submit_at=resolve_text(view, ("last_submit_at", "lastSubmitAt")),
        processing_started_at=resolve_text(
            view, ("processing_started_at", "processingStartedAt")
        ),
        last_callback_status=resolve_text(
            view, ("last_callback_status", "last_n8n_callback_status")
        ),
        last_callback_at=resolve_text(view, ("last_callback_at", "last_n8n_callback_at")),
        last_callback_error=resolve_text(
            view, ("last_callback_error", "last_n8n_callback_error")
        ),
        last_error_code=resolve_text(view, ("last_error_code", "lastErrorCode")),
        last_error_message=resolve_text(view, ("last_error_message", "lastErrorMessage")),
        last_error_step=resolve_text(view, ("last_error_step", "lastErrorStep")),
        last_error_at=resolve_text(view, ("last_error_at", "lastErrorAt")),
    )


def normalize_case(payload: Any) -> CaseRecord:
    """Normalize a single case payload.

    Raises MissingCaseIdError when no identifier can be resolved.
    """

    if not isinstance(payload, dict):
        raise MissingCaseIdError("Backend response for a case is not an object.")

    view = _case_view(payload)
    case_id = resolve_text(view, CASE_ID_PATHS)
    if case_id is None:
        raise MissingCaseIdError()

    classified = classify_case_status(resolve_field(view, ("status", "case_status")))

    return CaseRecord(
        id=case_id,
        status=classified.status,
        status_raw=classified.raw,
        created_at=resolve_text(view, ("created_at", "createdAt")),
        updated_at=resolve_text(view, ("updated_at", "updatedAt")),
        worker=normalize_worker(view),
        company=normalize_company(view),
        documents=normalize_documents(resolve_field(view, ("documents", "case_documents"), [])),
        analysis=normalize_analysis(
            resolve_field(view, ("analysis", "case_analysis", "analyses"))
        ),
        payment=normalize_payment(view),
        telemetry=normalize_telemetry(view),
        org_slug=resolve_text(view, ("org_slug", "orgSlug", "organization.slug")),
        org_name=resolve_text(view, ("org_name", "orgName", "organization.name")),
        manual_override_paid=resolve_field(view, ("manual_override_paid",)) is True,
        union_code_applied=resolve_text(view, ("union_code_applied", "unionCodeApplied")),
    )


def normalize_case_list(raw: Any) -> list[CaseRecord]:
    """Normalize a list endpoint response: a list, `{"data": [...]}`, or one case."""

    items = raw if isinstance(raw, list) else resolve_field(raw, ("data", "items", "cases"))
    if not isinstance(items, list):
        return [normalize_case(raw)] if raw else []
    return [normalize_case(item) for item in items]


def normalize_case_detail(payload: Any) -> CaseDetail:
    """Normalize a detail payload (case + worker/company/documents/analysis/logs/support).

    Detail-level fields win; anything the detail omits falls back to what the
    nested case carries.
    """

    record = normalize_case(payload)
    detail: dict[str, Any] = payload

    worker = record.worker
    if isinstance(detail.get("worker"), dict):
        worker = normalize_worker({"worker": detail["worker"]}) or record.worker

    company = record.company
    if isinstance(detail.get("company"), dict):
        company = normalize_company({"company": detail["company"]}) or record.company

    documents = record.documents
    raw_docs = resolve_field(detail, ("documents", "case_documents"))
    if isinstance(raw_docs, list):
        documents = normalize_documents(raw_docs)

    analysis = normalize_analysis(resolve_field(detail, ("analysis", "case_analysis")))
    if analysis is None:
        analysis = record.analysis

    payment = record.payment
    if isinstance(detail.get("payment"), dict):
        payment = normalize_payment({"payment": detail["payment"]}) or record.payment

    raw_logs = resolve_field(
        detail, ("workflowLogs", "workflow_logs", "case.workflowLogs", "case.workflow_logs")
    )
    support_request = normalize_support_request(
        resolve_mapping(detail, ("supportRequest", "support_request"))
    ) or normalize_support_request(
        resolve_mapping(detail, ("case.supportRequest", "case.support_request"))
    )

    return CaseDetail(
        case=record,
        worker=worker,
        company=company,
        documents=documents,
        analysis=analysis,
        payment=payment,
        workflow_logs=normalize_workflow_logs(raw_logs),
        support_request=support_request,
    )
