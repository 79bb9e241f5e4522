"""
Presentation helpers for error listeners.

build_notification turns a ReportedError into the title, message and
display duration a toast-style listener needs.
"""

from pydantic import BaseModel, Field

from resilience_layer.models.enums import ErrorCategory, ErrorKind, Severity
from resilience_layer.reporting.models import ReportedError

TITLES_BY_KIND: dict[ErrorKind, str] = {
    ErrorKind.NETWORK: "Connection Error",
    ErrorKind.AUTHENTICATION: "Authentication Error",
    ErrorKind.AUTHORIZATION: "Access Denied",
    ErrorKind.VALIDATION: "Validation Error",
    ErrorKind.NOT_FOUND: "Not Found",
    ErrorKind.RATE_LIMITED: "Rate Limited",
    ErrorKind.CONFLICT: "Conflict",
    ErrorKind.CIRCUIT_OPEN: "Service Unavailable",
}

TITLES_BY_CATEGORY: dict[ErrorCategory, str] = {
    ErrorCategory.DATABASE: "System Error",
    ErrorCategory.TIMEOUT: "Timeout Error",
    ErrorCategory.NETWORK: "Connection Error",
    ErrorCategory.SERVER: "Server Error",
}

DEFAULT_TITLE = "Unexpected Error"

DURATION_BY_SEVERITY: dict[Severity, float] = {
    Severity.CRITICAL: 8.0,
    Severity.HIGH: 6.0,
    Severity.MEDIUM: 4.0,
    Severity.LOW: 3.0,
}


class Notification(BaseModel):
    """What a listener shows to the end user."""

    error_id: str
    title: str
    message: str
    severity: Severity
    duration_seconds: float = Field(..., gt=0)


def build_notification(record: ReportedError) -> Notification:
    """
    Build a user notification for a reported error.

    Repeated errors get a " (N times)" suffix.

    Example:
        >>> note = build_notification(record)  # record.occurrence_count == 3
        >>> note.message
        'Connection problem. Please check your internet and try again. (3 times)'
    """
    title = TITLES_BY_KIND.get(record.kind) or TITLES_BY_CATEGORY.get(
        record.category, DEFAULT_TITLE
    )
    message = record.user_message
    if record.occurrence_count > 1:
        message = f"{message} ({record.occurrence_count} times)"

    return Notification(
        error_id=record.id,
        title=title,
        message=message,
        severity=record.severity,
        duration_seconds=DURATION_BY_SEVERITY[record.severity],
    )
