"""
Unit tests for report classification and user notifications.
"""

import pytest

from resilience_layer.models.enums import ErrorCategory, ErrorKind, Severity
from resilience_layer.reporting import ReportedError, build_notification, classify_report


def make_record(**overrides) -> ReportedError:
    """Helper to create a ReportedError with sensible defaults."""
    kind = overrides.pop("kind", ErrorKind.NETWORK)
    message = overrides.pop("message", "Connection refused")
    classification = classify_report(kind, message)
    fields = {
        "id": "err_test",
        "fingerprint": "abc",
        "message": message,
        "kind": kind,
        "first_seen": 0.0,
        "last_seen": 0.0,
        "severity": classification.severity,
        "category": classification.category,
        "user_message": classification.user_message,
    }
    fields.update(overrides)
    return ReportedError(**fields)


# ============================================================================
# classify_report
# ============================================================================


@pytest.mark.parametrize(
    "kind,category,severity",
    [
        (ErrorKind.AUTHENTICATION, ErrorCategory.AUTHENTICATION, Severity.MEDIUM),
        (ErrorKind.AUTHORIZATION, ErrorCategory.AUTHORIZATION, Severity.MEDIUM),
        (ErrorKind.NETWORK, ErrorCategory.NETWORK, Severity.HIGH),
        (ErrorKind.TIMEOUT, ErrorCategory.TIMEOUT, Severity.HIGH),
        (ErrorKind.VALIDATION, ErrorCategory.VALIDATION, Severity.LOW),
        (ErrorKind.NOT_FOUND, ErrorCategory.NOT_FOUND, Severity.LOW),
        (ErrorKind.RATE_LIMITED, ErrorCategory.RATE_LIMIT, Severity.MEDIUM),
        (ErrorKind.SERVER, ErrorCategory.SERVER, Severity.CRITICAL),
        (ErrorKind.CIRCUIT_OPEN, ErrorCategory.CIRCUIT_OPEN, Severity.HIGH),
        (ErrorKind.INTERNAL, ErrorCategory.SYSTEM, Severity.HIGH),
    ],
)
def test_classification_by_kind(kind, category, severity):
    result = classify_report(kind, "something failed")

    assert result.category == category
    assert result.severity == severity
    assert result.user_message


def test_message_heuristics_refine_untyped_errors():
    assert classify_report(ErrorKind.INTERNAL, "SQL syntax error").category == ErrorCategory.DATABASE
    assert classify_report(ErrorKind.INTERNAL, "upstream timeout").category == ErrorCategory.TIMEOUT
    assert classify_report(ErrorKind.CLIENT, "request timed out").severity == Severity.HIGH


def test_heuristics_do_not_apply_to_specific_kinds():
    """Test a validation error mentioning a database keeps its category."""
    result = classify_report(ErrorKind.VALIDATION, "database field 'email' is invalid")

    assert result.category == ErrorCategory.VALIDATION


def test_server_timeout_stays_critical():
    result = classify_report(ErrorKind.SERVER, "Gateway timeout")

    assert result.category == ErrorCategory.TIMEOUT
    assert result.severity == Severity.CRITICAL


# ============================================================================
# build_notification
# ============================================================================


def test_notification_title_and_duration_by_kind():
    note = build_notification(make_record(kind=ErrorKind.NETWORK))

    assert note.title == "Connection Error"
    assert note.duration_seconds == 6.0
    assert note.message == "Connection problem. Please check your internet and try again."
    assert note.error_id == "err_test"


def test_notification_count_suffix():
    note = build_notification(make_record(occurrence_count=3))

    assert note.message.endswith(" (3 times)")


@pytest.mark.parametrize(
    "kind,message,title,duration",
    [
        (ErrorKind.INTERNAL, "database down", "System Error", 8.0),
        (ErrorKind.INTERNAL, "upstream timeout", "Timeout Error", 6.0),
        (ErrorKind.INTERNAL, "bad state", "Unexpected Error", 6.0),
        (ErrorKind.NOT_FOUND, "no booking", "Not Found", 3.0),
        (ErrorKind.AUTHENTICATION, "expired", "Authentication Error", 4.0),
        (ErrorKind.CIRCUIT_OPEN, "open", "Service Unavailable", 6.0),
    ],
)
def test_notification_titles(kind, message, title, duration):
    note = build_notification(make_record(kind=kind, message=message))

    assert note.title == title
    assert note.duration_seconds == duration
