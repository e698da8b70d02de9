"""Pick one value for a field that the backend has spelled several ways.

Case payloads have shipped with snake_case, camelCase, flat and nested spellings
of the same concept over time. Each caller lists the spellings in priority
order; the first one that is present and not None wins.

Paths support one level of nesting: "worker.name" reads payload["worker"]["name"].
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

_MISSING = object()

_EXPONENT_RE = re.compile(r"\d[eE]")
_SCIENTIFIC_RE = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)[eE][+-]?\d+")


def _lookup(record: Mapping[str, Any], path: str) -> Any:
    head, sep, tail = path.partition(".")
    value = record.get(head, _MISSING)
    if not sep:
        return value
    if not isinstance(value, dict):
        return _MISSING
    return value.get(tail, _MISSING)


def resolve_field(record: Any, paths: Iterable[str], default: Any = None) -> Any:
    """Return the first present, non-None value among `paths`, else `default`."""

    if not isinstance(record, dict):
        return default
    for path in paths:
        value = _lookup(record, path)
        if value is _MISSING or value is None:
            continue
        return value
    return default


def as_text(value: Any) -> str | None:
    """Stringify a scalar; None, containers and blank strings become None."""

    if value is None or value is _MISSING or isinstance(value, (dict, list, tuple)):
        return None
    text = str(value).strip()
    return text or None


def as_int(value: Any, default: int | None = None) -> int | None:
    if value is None or isinstance(value, (bool, dict, list, tuple)):
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        try:
            return int(float(str(value).strip()))
        except (ValueError, OverflowError):
            return default


def resolve_text(record: Any, paths: Iterable[str], default: str | None = None) -> str | None:
    """Like `resolve_field`, but stringifies and skips blank strings.

    Used for identifiers and other keys where "" would be a fabricated value.
    """

    if not isinstance(record, dict):
        return default
    for path in paths:
        text = as_text(_lookup(record, path))
        if text is not None:
            return text
    return default


def resolve_mapping(record: Any, paths: Iterable[str]) -> Mapping[str, Any] | None:
    """Return the first value among `paths` that is a mapping."""

    if not isinstance(record, dict):
        return None
    for path in paths:
        value = _lookup(record, path)
        if isinstance(value, dict):
            return value
    return None


def resolve_int(record: Any, paths: Iterable[str], default: int | None = None) -> int | None:
    return as_int(resolve_field(record, paths), default)


def parse_amount(value: Any) -> Decimal | None:
    """Parse a monetary value into Decimal.

    Handles:
    - numbers (int/float/Decimal)
    - strings with currency symbols, thousands separators or parentheses
    - blanks
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        amount = Decimal(str(value))
        return amount if amount.is_finite() else None

    s = str(value).strip()
    if s == "" or s.lower() in {"-", "n/a", "na"}:
        return None

    negative = False
    if s.startswith("(") and s.endswith(")"):
        negative = True
        s = s[1:-1].strip()

    # Exponent notation is only read as a whole; stripping the marker would change the value.
    if _EXPONENT_RE.search(s):
        if not _SCIENTIFIC_RE.fullmatch(s):
            return None
        amount = Decimal(s)
        if not amount.is_finite():
            return None
        return -amount if negative else amount

    # "1.234,56" (pt-BR) vs "1,234.56"
    if "," in s and "." in s and s.rfind(",") > s.rfind("."):
        s = s.replace(".", "").replace(",", ".")
    elif "," in s and "." not in s:
        s = s.replace(",", ".")
    s = re.sub(r"[^0-9.\-]", "", s)
    if s == "":
        return None

    try:
        amount = Decimal(s)
    except InvalidOperation:
        return None
    return -amount if negative else amount


def resolve_decimal(record: Any, paths: Iterable[str]) -> Decimal | None:
    for path in paths:
        amount = parse_amount(resolve_field(record, (path,)))
        if amount is not None:
            return amount
    return None
