"""
Data models for reported errors.

Records are immutable snapshots: the reporter replaces a record wholesale
when it consolidates a repeat occurrence, so a listener can keep the
instance it was handed.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from resilience_layer.models.enums import ErrorCategory, ErrorKind, Severity

# Returned by report() when a throttled report had no record to fold into
THROTTLED_REPORT_ID = "throttled"

# Returned by report() when recording failed inside the reporter
UNRECORDED_REPORT_ID = "unrecorded"


class ReportedError(BaseModel):
    """
    A deduplicated error as seen by subscribers.

    Timestamps are seconds from the reporter's clock (wall clock by default).
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(..., description="Stable id returned by report()")
    fingerprint: str = Field(..., description="Identity used for deduplication")
    message: str
    kind: ErrorKind
    first_seen: float
    last_seen: float
    occurrence_count: int = Field(default=1, ge=1)
    severity: Severity
    category: ErrorCategory
    user_message: str = Field(..., description="Message suitable for end users")
    context: dict[str, Any] = Field(default_factory=dict)
    stack: Optional[str] = None
    handled: bool = False
    status_code: Optional[int] = None


class ThrottleStats(BaseModel):
    """State of the current throttling window."""

    total_in_window: int = Field(..., ge=0)
    window_start: float
    is_throttling: bool


class ErrorStats(BaseModel):
    """
    Aggregate view of stored errors.

    Breakdowns are weighted by occurrence count.
    """

    total_errors: int = Field(..., ge=0, description="Sum of occurrence counts")
    unique_errors: int = Field(..., ge=0, description="Number of stored records")
    by_kind: dict[str, int] = Field(default_factory=dict)
    by_category: dict[str, int] = Field(default_factory=dict)
    by_severity: dict[str, int] = Field(default_factory=dict)
    throttle: ThrottleStats
