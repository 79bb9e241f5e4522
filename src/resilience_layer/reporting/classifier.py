"""
Category, severity and user-facing message for reported errors.

The kind decides the baseline; SERVER, CLIENT and INTERNAL reports are
refined by message heuristics ("database"/"sql" and "timeout").
"""

from typing import NamedTuple

from resilience_layer.models.enums import ErrorCategory, ErrorKind, Severity


class Classification(NamedTuple):
    category: ErrorCategory
    severity: Severity
    user_message: str


USER_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.AUTHENTICATION: "Please log in again to continue.",
    ErrorCategory.AUTHORIZATION: "You don't have permission to perform this action.",
    ErrorCategory.NETWORK: "Connection problem. Please check your internet and try again.",
    ErrorCategory.TIMEOUT: "The request took too long. Please try again.",
    ErrorCategory.VALIDATION: "Please check your input and try again.",
    ErrorCategory.NOT_FOUND: "The requested item was not found.",
    ErrorCategory.CONFLICT: "This item was changed elsewhere. Please refresh and try again.",
    ErrorCategory.RATE_LIMIT: "Too many requests. Please wait a moment and try again.",
    ErrorCategory.SERVER: "The server ran into a problem. Please try again later.",
    ErrorCategory.DATABASE: "A system error occurred. Our team has been notified.",
    ErrorCategory.CIRCUIT_OPEN: "This service is temporarily unavailable. Please try again shortly.",
    ErrorCategory.CLIENT: "An error occurred. Please try again.",
    ErrorCategory.SYSTEM: "An unexpected error occurred. Please try again.",
}

_BY_KIND: dict[ErrorKind, tuple[ErrorCategory, Severity]] = {
    ErrorKind.AUTHENTICATION: (ErrorCategory.AUTHENTICATION, Severity.MEDIUM),
    ErrorKind.AUTHORIZATION: (ErrorCategory.AUTHORIZATION, Severity.MEDIUM),
    ErrorKind.NETWORK: (ErrorCategory.NETWORK, Severity.HIGH),
    ErrorKind.TIMEOUT: (ErrorCategory.TIMEOUT, Severity.HIGH),
    ErrorKind.VALIDATION: (ErrorCategory.VALIDATION, Severity.LOW),
    ErrorKind.NOT_FOUND: (ErrorCategory.NOT_FOUND, Severity.LOW),
    ErrorKind.CONFLICT: (ErrorCategory.CONFLICT, Severity.MEDIUM),
    ErrorKind.RATE_LIMITED: (ErrorCategory.RATE_LIMIT, Severity.MEDIUM),
    ErrorKind.SERVER: (ErrorCategory.SERVER, Severity.CRITICAL),
    ErrorKind.CIRCUIT_OPEN: (ErrorCategory.CIRCUIT_OPEN, Severity.HIGH),
    ErrorKind.CLIENT: (ErrorCategory.CLIENT, Severity.MEDIUM),
    ErrorKind.INTERNAL: (ErrorCategory.SYSTEM, Severity.HIGH),
}

_REFINED_KINDS = frozenset({ErrorKind.SERVER, ErrorKind.CLIENT, ErrorKind.INTERNAL})


def _at_least(severity: Severity, floor: Severity) -> Severity:
    if Severity.get_ordinal(severity) >= Severity.get_ordinal(floor):
        return severity
    return floor


def classify_report(kind: ErrorKind, message: str) -> Classification:
    """
    Classify a report for display and logging.

    Examples:
        >>> classify_report(ErrorKind.INTERNAL, "SQL constraint violated").category
        <ErrorCategory.DATABASE: 'database'>
        >>> classify_report(ErrorKind.NOT_FOUND, "no such booking").severity
        <Severity.LOW: 'low'>
    """
    category, severity = _BY_KIND[kind]

    if kind in _REFINED_KINDS:
        lowered = message.lower()
        if "database" in lowered or "sql" in lowered:
            category, severity = ErrorCategory.DATABASE, Severity.CRITICAL
        elif "timeout" in lowered or "timed out" in lowered:
            category, severity = ErrorCategory.TIMEOUT, _at_least(severity, Severity.HIGH)

    return Classification(category, severity, USER_MESSAGES[category])
