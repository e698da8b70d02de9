"""Case status vocabulary.

The backend owns the state machine; this module only interprets what it reports.
Anything outside the closed vocabulary degrades to AWAITING_PAYMENT while the raw
value is kept for diagnostics. No fuzzy matching: a typo of "processing" is still
unknown.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class CaseStatus(str, Enum):
    AWAITING_PAYMENT = "awaiting_payment"
    AWAITING_PDF = "awaiting_pdf"
    READY_TO_PROCESS = "ready_to_process"
    PROCESSING = "processing"
    PAID_PROCESSING = "paid_processing"
    DONE = "done"
    PENDING_INFO = "pending_info"
    ERROR = "error"


DEFAULT_CASE_STATUS = CaseStatus.AWAITING_PAYMENT

_BY_VALUE = {member.value: member for member in CaseStatus}


@dataclass(frozen=True, slots=True)
class StatusClassification:
    status: CaseStatus
    raw: str | None

    @property
    def recognized(self) -> bool:
        return self.raw is None or self.raw.lower() in _BY_VALUE


def classify_case_status(raw_status: Any) -> StatusClassification:
    """Map an arbitrary backend status into (canonical status, raw string)."""

    if raw_status is None:
        return StatusClassification(status=DEFAULT_CASE_STATUS, raw=None)

    raw = str(raw_status)
    member = _BY_VALUE.get(raw.lower())
    if member is not None:
        return StatusClassification(status=member, raw=raw)

    logger.warning(f"Unknown case status {raw!r}; using {DEFAULT_CASE_STATUS.value}")
    return StatusClassification(status=DEFAULT_CASE_STATUS, raw=raw)
