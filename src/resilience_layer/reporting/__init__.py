"""
Error reporting: fingerprint deduplication, throttling and subscribers.

Main Components:
    - ErrorReporter: report(), subscribe(), queries and maintenance
    - ReportedError: Immutable record handed to listeners
    - ThrottleConfig: Window and caps for report throttling
    - build_notification: Title/message/duration for display listeners
"""

from resilience_layer.reporting.classifier import Classification, classify_report
from resilience_layer.reporting.fingerprint import compute_fingerprint
from resilience_layer.reporting.models import (
    THROTTLED_REPORT_ID,
    UNRECORDED_REPORT_ID,
    ErrorStats,
    ReportedError,
    ThrottleStats,
)
from resilience_layer.reporting.notifications import Notification, build_notification
from resilience_layer.reporting.reporter import ErrorReporter, Subscription
from resilience_layer.reporting.throttle import ThrottleConfig, ThrottleWindow

__all__ = [
    "Classification",
    "ErrorReporter",
    "ErrorStats",
    "Notification",
    "ReportedError",
    "Subscription",
    "THROTTLED_REPORT_ID",
    "ThrottleConfig",
    "ThrottleStats",
    "ThrottleWindow",
    "UNRECORDED_REPORT_ID",
    "build_notification",
    "classify_report",
    "compute_fingerprint",
]
