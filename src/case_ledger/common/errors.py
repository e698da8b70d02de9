"""Error taxonomy for the case ledger.

Only two things are ever raised out of this package:
- MissingCaseIdError: a case payload without any resolvable identifier.
- ApiError: the backend answered with an HTTP error.

Everything else that is malformed degrades to a documented default.
"""

from __future__ import annotations

import json
from typing import Any


class MissingCaseIdError(ValueError):
    """The backend returned a case payload that cannot be identified."""

    def __init__(self, message: str = "Backend response has no case identifier.") -> None:
        super().__init__(message)


class ApiError(RuntimeError):
    def __init__(
        self,
        *,
        status: int,
        code: str | None = None,
        message: str | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message or code or f"HTTP error {status}")
        self.status = status
        self.code = code
        self.message = message or code or f"HTTP error {status}"
        self.details = details

    def __repr__(self) -> str:
        return f"ApiError(status={self.status!r}, code={self.code!r}, message={self.message!r})"


def api_error_from_response(status: int, text: str | None) -> ApiError:
    """Build an ApiError from an error response body (JSON or plain text)."""

    text = text or ""
    parsed: Any = None
    if text.strip():
        try:
            parsed = json.loads(text)
        except ValueError:
            parsed = None

    body = parsed if isinstance(parsed, dict) else {}
    message = (
        body.get("message")
        or body.get("error")
        or (parsed if isinstance(parsed, str) else "")
        or text
        or f"HTTP error {status}"
    )
    code = body.get("code") or body.get("error_code") or body.get("error") or body.get("type")
    return ApiError(
        status=status,
        code=str(code) if code is not None else None,
        message=str(message),
        details=parsed if parsed is not None else text,
    )
