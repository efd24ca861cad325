"""Human-readable close reasons."""

from __future__ import annotations

from constants import CLOSE_REASON_ERROR_HINT, CLOSE_REASON_MARKER


def extract_close_reason(reason: str | None) -> str:
    """
    Strip the diagnostic prelude from a server close reason.

    "... [ERROR] Quota exceeded" -> "Quota exceeded"

    Only applies when the reason mentions an error and the marker is not at
    the very start; one delimiter character after the marker is skipped.
    Otherwise the raw reason is returned verbatim ("" for None).
    """
    reason = reason or ""
    if CLOSE_REASON_ERROR_HINT not in reason.lower():
        return reason

    marker_index = reason.find(CLOSE_REASON_MARKER)
    if marker_index > 0:
        return reason[marker_index + len(CLOSE_REASON_MARKER) + 1:]
    return reason
