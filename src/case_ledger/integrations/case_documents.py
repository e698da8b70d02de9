"""Document and workflow-log normalization.

Both inputs are "a list of unknown-shape entries". Each entry is mapped on its
own; entries that cannot be identified are dropped, and a bad entry never
invalidates the rest of the batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from src.case_ledger.integrations.field_resolver import (
    resolve_mapping,
    resolve_text,
)

logger = logging.getLogger(__name__)

DEFAULT_DOCUMENT_TYPE = "PPP"

DOCUMENT_ID_PATHS = ("id", "document_id", "case_document_id", "file_url", "fileUrl")
DOCUMENT_TYPE_PATHS = ("type", "document_type", "file_type")
DOCUMENT_NAME_PATHS = ("fileName", "file_name", "original_name", "filename", "file", "name")
DOCUMENT_URL_PATHS = ("url", "file_url", "fileUrl", "signed_url")

LOG_ID_PATHS = ("id", "log_id", "event_id")
LOG_STEP_PATHS = ("step", "step_name", "event", "event_type")
LOG_STATUS_PATHS = ("status", "step_status")
LOG_MESSAGE_PATHS = ("message", "detail", "description")
LOG_METADATA_PATHS = ("metadata", "meta", "details", "payload")
LOG_CREATED_PATHS = ("created_at", "createdAt", "timestamp")


@dataclass(frozen=True, slots=True)
class CaseDocument:
    id: str
    type: str
    file_name: str | None = None
    url: str | None = None


@dataclass(frozen=True, slots=True)
class WorkflowLogEntry:
    id: str
    step: str
    created_at: str
    status: str | None = None
    message: str | None = None
    metadata: Mapping[str, Any] | None = None


def normalize_document(raw: Any, index: int) -> CaseDocument | None:
    if not isinstance(raw, dict):
        return None

    doc_id = resolve_text(raw, DOCUMENT_ID_PATHS) or f"doc-{index}"
    doc_type = resolve_text(raw, DOCUMENT_TYPE_PATHS, DEFAULT_DOCUMENT_TYPE)
    return CaseDocument(
        id=doc_id,
        type=doc_type,
        file_name=resolve_text(raw, DOCUMENT_NAME_PATHS),
        url=resolve_text(raw, DOCUMENT_URL_PATHS),
    )


def normalize_documents(raw_docs: Any) -> tuple[CaseDocument, ...]:
    """Normalize a raw document array. Non-lists yield an empty tuple."""

    if not isinstance(raw_docs, (list, tuple)):
        return ()

    docs: list[CaseDocument] = []
    for index, raw in enumerate(raw_docs):
        doc = normalize_document(raw, index)
        if doc is None:
            logger.debug(f"Dropping document entry #{index}: not an object")
            continue
        docs.append(doc)
    return tuple(docs)


def find_document(
    documents: tuple[CaseDocument, ...], *doc_types: str
) -> CaseDocument | None:
    """Return the first document whose type matches, trying `doc_types` in order."""

    for wanted in doc_types:
        for doc in documents:
            if doc.type == wanted:
                return doc
    return None


def normalize_workflow_log(raw: Any) -> WorkflowLogEntry | None:
    if not isinstance(raw, dict):
        return None

    log_id = resolve_text(raw, LOG_ID_PATHS)
    created_at = resolve_text(raw, LOG_CREATED_PATHS)
    if log_id is None or created_at is None:
        return None

    metadata = resolve_mapping(raw, LOG_METADATA_PATHS)
    return WorkflowLogEntry(
        id=log_id,
        step=resolve_text(raw, LOG_STEP_PATHS, "unknown"),
        created_at=created_at,
        status=resolve_text(raw, LOG_STATUS_PATHS),
        message=resolve_text(raw, LOG_MESSAGE_PATHS),
        metadata=dict(metadata) if metadata is not None else None,
    )


def normalize_workflow_logs(raw_logs: Any) -> tuple[WorkflowLogEntry, ...]:
    if not isinstance(raw_logs, (list, tuple)):
        return ()

    entries: list[WorkflowLogEntry] = []
    for index, raw in enumerate(raw_logs):
        entry = normalize_workflow_log(raw)
        if entry is None:
            logger.debug(f"Dropping workflow log entry #{index}: missing id or created_at")
            continue
        entries.append(entry)
    return tuple(entries)
