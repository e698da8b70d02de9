"""Case progress interpretation.

Read-only helpers that answer presentation questions about a normalized case:
is it paid, is it stuck, which timeline step is active, which message explains
its last error. They only interpret what the backend reported.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from src.case_ledger.integrations.case_documents import CaseDocument, find_document
from src.case_ledger.integrations.case_payload import CaseRecord, Payment
from src.case_ledger.integrations.case_status import CaseStatus

logger = logging.getLogger(__name__)

STUCK_PROCESSING_THRESHOLD = timedelta(minutes=15)
FAST_POLL_SECONDS = 10
SLOW_POLL_SECONDS = 30

_POST_PAYMENT_STATUSES = frozenset(
    {
        CaseStatus.READY_TO_PROCESS,
        CaseStatus.PROCESSING,
        CaseStatus.PAID_PROCESSING,
        CaseStatus.DONE,
        CaseStatus.PENDING_INFO,
        CaseStatus.ERROR,
    }
)
_PROCESSING_STATUSES = frozenset({CaseStatus.PROCESSING, CaseStatus.PAID_PROCESSING})

RESULT_DOCUMENT_TYPES = ("ppp_result", "ppp_output")


def _default_catalog_path() -> Path:
    # case_progress.py -> use_cases -> case_ledger -> src -> repo_root
    return Path(__file__).resolve().parents[3] / "data" / "case_messages.yaml"


@lru_cache(maxsize=4)
def load_message_catalog(path: str | None = None) -> dict[str, Any]:
    """Load the status/error-code display catalog."""

    catalog_path = Path(path) if path else _default_catalog_path()
    if not catalog_path.exists():
        raise FileNotFoundError(f"Message catalog not found: {catalog_path}")
    with open(catalog_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_payment_settled(case: CaseRecord, payment: Payment | None = None) -> bool:
    payment = payment or case.payment
    if payment is not None and payment.status == "approved":
        return True
    if case.manual_override_paid:
        return True
    return case.status in _POST_PAYMENT_STATUSES


def is_processing_stuck(
    case: CaseRecord,
    *,
    now: datetime | None = None,
    threshold: timedelta = STUCK_PROCESSING_THRESHOLD,
) -> bool:
    """True when processing started over `threshold` ago with no callback since."""

    if case.status is not CaseStatus.PROCESSING:
        return False

    started_at = _parse_timestamp(case.telemetry.processing_started_at)
    if started_at is None:
        return False

    now = now or datetime.now(timezone.utc)
    if now - started_at <= threshold:
        return False

    callback_at = _parse_timestamp(case.telemetry.last_callback_at)
    return callback_at is None or callback_at < started_at


def polling_interval_seconds(case: CaseRecord, payment: Payment | None = None) -> int | None:
    """How often a viewer should refresh this case, or None to stop polling."""

    if case.status in _PROCESSING_STATUSES:
        return FAST_POLL_SECONDS
    if case.status is CaseStatus.READY_TO_PROCESS and is_payment_settled(case, payment):
        return SLOW_POLL_SECONDS
    return None


@dataclass(frozen=True, slots=True)
class TimelineStep:
    id: str
    title: str
    done: bool
    active: bool


def build_timeline(
    case: CaseRecord,
    *,
    payment: Payment | None = None,
    documents: tuple[CaseDocument, ...] | None = None,
) -> list[TimelineStep]:
    paid = is_payment_settled(case, payment)
    processing = case.status in _PROCESSING_STATUSES
    done = case.status is CaseStatus.DONE
    has_result = find_document(
        case.documents if documents is None else documents, *RESULT_DOCUMENT_TYPES
    ) is not None

    return [
        TimelineStep(id="case", title="Caso criado", done=True, active=not paid),
        TimelineStep(
            id="payment",
            title="Pagamento",
            done=paid,
            active=not paid and case.status is CaseStatus.AWAITING_PAYMENT,
        ),
        TimelineStep(
            id="processing",
            title="Processamento",
            done=done,
            active=processing or case.status is CaseStatus.ERROR,
        ),
        TimelineStep(
            id="result",
            title="Resultado",
            done=done and has_result,
            active=done and has_result,
        ),
    ]


def status_label(status: CaseStatus | str | None, catalog: dict[str, Any] | None = None) -> str:
    if status is None:
        return "-"
    key = status.value if isinstance(status, CaseStatus) else str(status)
    labels = (catalog or load_message_catalog()).get("statuses") or {}
    return str(labels.get(key) or key)


def resolve_error_message(
    code: str | None,
    message: str | None = None,
    catalog: dict[str, Any] | None = None,
) -> str:
    """Explicit backend message first, then the catalog entry for `code`."""

    if message and message.strip():
        return message.strip()
    catalog = catalog or load_message_catalog()
    messages = catalog.get("error_codes") or {}
    key = (code or "").strip().lower()
    if key and key in messages:
        return str(messages[key])
    if key:
        logger.debug(f"No catalog message for error code {key!r}")
    return str(catalog.get("default_error_message") or "")


def case_error_message(case: CaseRecord, catalog: dict[str, Any] | None = None) -> str | None:
    """Message for a case's last error, or None when nothing went wrong."""

    telemetry = case.telemetry
    if case.status is not CaseStatus.ERROR and not telemetry.last_error_code:
        return None
    return resolve_error_message(
        telemetry.last_error_code, telemetry.last_error_message, catalog
    )
