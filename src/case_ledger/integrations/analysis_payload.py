"""Helpers for unwrapping analysis payloads into one canonical record.

Upstream systems have wrapped the same analysis under `results`, `rules_result`
and `analysis`, sometimes all at once and sometimes pointing back at the object
that contains them. Payloads also arrive as JSON strings or as a history list
whose last element is the latest run.

Rules:
- Never raises. Unparsable JSON, wrong types and unknown tokens degrade to None.
- Every field is resolved on the current object first, then on each nested
  wrapper in WRAPPER_KEYS order.
- An analysis with no blocks, no classification, no summary and no flags is
  "no analysis yet" and normalizes to None.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, TypeVar

from src.case_ledger.integrations.field_resolver import as_text, resolve_field, resolve_text

logger = logging.getLogger(__name__)

T = TypeVar("T")

WRAPPER_KEYS = ("results", "rules_result", "analysis")
MAX_UNWRAP_DEPTH = 16
MAX_FINDINGS_WITH_EVIDENCE = 50
MAX_EVIDENCE_EXCERPT_CHARS = 200


class FinalClassification(str, Enum):
    ATENDE_INTEGRALMENTE = "ATENDE_INTEGRALMENTE"
    POSSUI_INCONSISTENCIAS_SANAVEIS = "POSSUI_INCONSISTENCIAS_SANAVEIS"
    NAO_POSSUI_VALIDADE_TECNICA = "NAO_POSSUI_VALIDADE_TECNICA"


# Older engines reported a numeric `conclusion` instead of a classification token.
_LEGACY_CONCLUSIONS = {
    1: FinalClassification.ATENDE_INTEGRALMENTE,
    2: FinalClassification.POSSUI_INCONSISTENCIAS_SANAVEIS,
    3: FinalClassification.NAO_POSSUI_VALIDADE_TECNICA,
}


class BlockStatus(str, Enum):
    APPROVED = "APPROVED"
    PENDING = "PENDING"
    REPROVED = "REPROVED"
    NOT_EVALUATED = "NOT_EVALUATED"


FINDING_LEVELS = ("INFO", "WARNING", "CRITICAL")
FORMAL_CONFORMITY_TOKENS = ("CONFORME", "NAO_CONFORME")
TECHNICAL_CONFORMITY_TOKENS = ("CONFORME", "PENDENTE", "NAO_CONFORME")
PROBATIVE_VALUE_TOKENS = ("SUFICIENTE", "INSUFICIENTE", "INEXISTENTE")
CONFIDENCE_LEVEL_TOKENS = ("ALTO", "MODERADO", "BAIXO")


@dataclass(frozen=True, slots=True)
class BlockFinding:
    code: str
    level: str
    message: str


@dataclass(frozen=True, slots=True)
class AnalysisBlock:
    id: str | None
    title: str | None
    text: str | None
    compliant: bool
    issues: tuple[str, ...]
    status: BlockStatus
    findings: tuple[BlockFinding, ...]


@dataclass(frozen=True, slots=True)
class EvidenceFinding:
    field_ref: str | None
    explanation: str | None
    evidence_excerpt: str | None
    severity: str


@dataclass(frozen=True, slots=True)
class CaseAnalysis:
    id: str | None
    case_id: str | None
    created_at: str | None
    final_classification: FinalClassification | None
    blocks: tuple[AnalysisBlock, ...]
    summary: str | None
    flags: tuple[str, ...]
    formal_conformity: str | None = None
    technical_conformity: str | None = None
    probative_value: str | None = None
    confidence_level: str | None = None
    failure_type: str | None = None
    findings_with_evidence: tuple[EvidenceFinding, ...] = ()

    @property
    def classified(self) -> bool:
        return self.final_classification is not None


# ---------------------------------------------------------------------------
# Small parsing helpers
# ---------------------------------------------------------------------------


def _parse_maybe_json(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    text = value.strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        logger.debug("Ignoring analysis payload that is not valid JSON")
        return None


def _token(value: Any, allowed: Iterable[str]) -> str | None:
    if value is None or isinstance(value, (dict, list, tuple)):
        return None
    token = str(value).strip().upper()
    return token if token in allowed else None


def _token_free(value: Any) -> str | None:
    text = as_text(value)
    return text.upper() if text else None


def _issue_text(issue: Any) -> str | None:
    """Coerce one issue entry to a display string."""

    if isinstance(issue, dict):
        field = as_text(issue.get("field")) or ""
        problem = as_text(issue.get("problem")) or as_text(issue.get("message")) or ""
        if field and problem:
            return f"{field}: {problem}"
        return field or problem or None
    return as_text(issue)


def derive_probative_value(
    formal_conformity: str | None, technical_conformity: str | None
) -> str | None:
    """Derive probative value from the conformity pair.

    NAO_CONFORME formal evidence has no probative value; otherwise it is sufficient
    only when the technical side is CONFORME. With neither token known there is
    nothing to derive from.
    """

    if formal_conformity is None and technical_conformity is None:
        return None
    if formal_conformity == "NAO_CONFORME":
        return "INEXISTENTE"
    if technical_conformity == "CONFORME":
        return "SUFICIENTE"
    return "INSUFICIENTE"


# ---------------------------------------------------------------------------
# Blocks and findings
# ---------------------------------------------------------------------------


def _normalize_block_finding(raw: Any) -> BlockFinding | None:
    if not isinstance(raw, dict):
        return None
    return BlockFinding(
        code=resolve_text(raw, ("code", "finding_code"), ""),
        level=_token(raw.get("level") or raw.get("severity"), FINDING_LEVELS) or "INFO",
        message=resolve_text(raw, ("message", "text", "description"), ""),
    )


def normalize_block(raw: Any, block_id: str | None = None) -> AnalysisBlock | None:
    """Normalize a single analysis block; returns None for non-objects."""

    if not isinstance(raw, dict):
        return None

    status = BlockStatus(
        _token(raw.get("status"), [s.value for s in BlockStatus])
        or BlockStatus.NOT_EVALUATED.value
    )

    explicit = resolve_field(raw, ("compliant", "is_compliant", "conforme"))
    compliant = explicit if isinstance(explicit, bool) else status is BlockStatus.APPROVED

    raw_issues = resolve_field(raw, ("issues", "erros", "errors"), [])
    issues = tuple(
        text
        for text in (_issue_text(i) for i in (raw_issues if isinstance(raw_issues, list) else []))
        if text is not None
    )

    raw_findings = raw.get("findings")
    findings = tuple(
        f
        for f in (_normalize_block_finding(x) for x in (raw_findings if isinstance(raw_findings, list) else []))
        if f is not None
    )

    return AnalysisBlock(
        id=resolve_text(raw, ("id", "block_id", "code")) or block_id,
        title=resolve_text(raw, ("title", "name", "label")),
        text=resolve_text(raw, ("text", "description", "content")),
        compliant=compliant,
        issues=issues,
        status=status,
        findings=findings,
    )


def normalize_blocks(raw_blocks: Any) -> tuple[AnalysisBlock, ...]:
    """Normalize a block list, or the legacy mapping keyed by block id."""

    if isinstance(raw_blocks, dict):
        pairs = [(str(key), value) for key, value in raw_blocks.items()]
    elif isinstance(raw_blocks, list):
        pairs = [(None, value) for value in raw_blocks]
    else:
        return ()

    blocks: list[AnalysisBlock] = []
    for block_id, raw in pairs:
        block = normalize_block(raw, block_id)
        if block is not None:
            blocks.append(block)
    return tuple(blocks)


def normalize_evidence_finding(raw: Any) -> EvidenceFinding | None:
    """Normalize a finding-with-evidence.

    A CRITICAL claim with no supporting excerpt is downgraded to WARNING.
    """

    if not isinstance(raw, dict):
        return None

    field_ref = resolve_text(raw, ("field_ref", "fieldRef", "field"))
    explanation = resolve_text(raw, ("explanation", "problem", "message"))
    if field_ref is None and explanation is None:
        return None

    excerpt = resolve_text(raw, ("evidence_excerpt", "evidenceExcerpt", "evidence", "excerpt"))
    if excerpt is not None:
        excerpt = excerpt[:MAX_EVIDENCE_EXCERPT_CHARS]

    severity = _token(raw.get("severity") or raw.get("level"), FINDING_LEVELS) or "INFO"
    if severity == "CRITICAL" and not excerpt:
        severity = "WARNING"

    return EvidenceFinding(
        field_ref=field_ref,
        explanation=explanation,
        evidence_excerpt=excerpt,
        severity=severity,
    )


def normalize_evidence_findings(raw_findings: Any) -> tuple[EvidenceFinding, ...]:
    if not isinstance(raw_findings, list):
        return ()
    findings: list[EvidenceFinding] = []
    for raw in raw_findings:
        finding = normalize_evidence_finding(raw)
        if finding is None:
            continue
        findings.append(finding)
        if len(findings) >= MAX_FINDINGS_WITH_EVIDENCE:
            break
    return tuple(findings)


# ---------------------------------------------------------------------------
# Unwrapping
# ---------------------------------------------------------------------------


def _own_classification(value: Mapping[str, Any]) -> FinalClassification | None:
    raw = resolve_field(value, ("finalClassification", "final_classification", "classification"))
    token = _token(raw, [c.value for c in FinalClassification])
    if token is not None:
        return FinalClassification(token)
    if raw is not None:
        logger.debug(f"Ignoring unknown final classification {raw!r}")

    conclusion = value.get("conclusion")
    if isinstance(conclusion, bool):
        return None
    try:
        return _LEGACY_CONCLUSIONS.get(int(conclusion)) if conclusion is not None else None
    except (TypeError, ValueError):
        return None


def _own_flags(value: Mapping[str, Any]) -> tuple[str, ...]:
    raw = value.get("flags")
    if not isinstance(raw, list):
        return ()
    return tuple(text for text in (as_text(f) for f in raw) if text is not None)


def _first(own: T | None, nested: list[CaseAnalysis], pick: Callable[[CaseAnalysis], T | None]) -> T | None:
    # Empty own values (e.g. `blocks: []`) fall through to the wrappers.
    if own:
        return own
    for result in nested:
        value = pick(result)
        if value:
            return value
    return None


def normalize_analysis(raw: Any) -> CaseAnalysis | None:
    """Normalize an analysis payload of any supported shape into a CaseAnalysis."""

    return _normalize(raw, active=frozenset(), memo={}, depth=0)


def _normalize(
    raw: Any,
    *,
    active: frozenset[int],
    memo: dict[int, tuple[Any, CaseAnalysis | None]],
    depth: int,
) -> CaseAnalysis | None:
    if depth > MAX_UNWRAP_DEPTH:
        logger.debug("Analysis payload nested too deeply; ignoring remainder")
        return None

    value = _parse_maybe_json(raw)

    if isinstance(value, list):
        if not value:
            return None
        return _normalize(value[-1], active=active, memo=memo, depth=depth + 1)

    if not isinstance(value, dict):
        return None

    # memo holds each visited object so its id cannot be reused by a later parse.
    key = id(value)
    if key in active:
        logger.debug("Skipping analysis wrapper that points back at an enclosing payload")
        return None
    if key in memo:
        return memo[key][1]

    inner_active = active | {key}
    nested: list[CaseAnalysis] = []
    for wrapper in WRAPPER_KEYS:
        child = value.get(wrapper)
        if child is None or child is value:
            continue
        result = _normalize(child, active=inner_active, memo=memo, depth=depth + 1)
        if result is not None:
            nested.append(result)

    blocks = _first(
        normalize_blocks(value.get("blocks")), nested, lambda r: r.blocks
    ) or ()
    final_classification = _first(
        _own_classification(value), nested, lambda r: r.final_classification
    )
    summary = _first(
        resolve_text(value, ("summary", "summary_text", "resumo")), nested, lambda r: r.summary
    )
    flags = _first(_own_flags(value), nested, lambda r: r.flags) or ()

    if not blocks and final_classification is None and summary is None and not flags:
        memo[key] = (value, None)
        return None

    formal = _first(
        _token(resolve_field(value, ("formal_conformity", "formalConformity")), FORMAL_CONFORMITY_TOKENS),
        nested,
        lambda r: r.formal_conformity,
    )
    technical = _first(
        _token(
            resolve_field(value, ("technical_conformity", "technicalConformity")),
            TECHNICAL_CONFORMITY_TOKENS,
        ),
        nested,
        lambda r: r.technical_conformity,
    )
    probative = _first(
        _token(resolve_field(value, ("probative_value", "probativeValue")), PROBATIVE_VALUE_TOKENS),
        nested,
        lambda r: r.probative_value,
    ) or derive_probative_value(formal, technical)

    result = CaseAnalysis(
        id=_first(resolve_text(value, ("id", "analysis_id")), nested, lambda r: r.id),
        case_id=_first(resolve_text(value, ("case_id", "caseId")), nested, lambda r: r.case_id),
        created_at=_first(
            resolve_text(value, ("created_at", "createdAt")), nested, lambda r: r.created_at
        ),
        final_classification=final_classification,
        blocks=blocks,
        summary=summary,
        flags=flags,
        formal_conformity=formal,
        technical_conformity=technical,
        probative_value=probative,
        confidence_level=_first(
            _token(resolve_field(value, ("confidence_level", "confidenceLevel")), CONFIDENCE_LEVEL_TOKENS),
            nested,
            lambda r: r.confidence_level,
        ),
        failure_type=_first(
            _token_free(resolve_field(value, ("failure_type", "failureType"))),
            nested,
            lambda r: r.failure_type,
        ),
        findings_with_evidence=_first(
            normalize_evidence_findings(
                resolve_field(value, ("findings_with_evidence", "findingsWithEvidence"))
            ),
            nested,
            lambda r: r.findings_with_evidence,
        )
        or (),
    )
    memo[key] = (value, result)
    return result
