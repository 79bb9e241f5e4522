"""
Error report throttling.

A fixed window counts every report and every report per fingerprint. Once
either cap is reached, further reports in the window are folded into the
existing record (if any) without notifying listeners. The window is reset
wholesale when it elapses.
"""

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class ThrottleConfig:
    """
    Throttling limits.

    Attributes:
        window_seconds: Length of the counting window
        max_errors_per_window: Cap on all reports in one window
        max_same_errors_per_window: Cap on reports sharing a fingerprint
    """

    window_seconds: float = 60.0
    max_errors_per_window: int = 30
    max_same_errors_per_window: int = 5

    def __post_init__(self) -> None:
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        if self.max_errors_per_window < 1:
            raise ValueError("max_errors_per_window must be >= 1")
        if self.max_same_errors_per_window < 1:
            raise ValueError("max_same_errors_per_window must be >= 1")

    def with_overrides(self, **changes: Any) -> "ThrottleConfig":
        """Return a copy with the given fields replaced (validated again)."""
        return replace(self, **changes)


@dataclass
class ThrottleWindow:
    """Counters for the current throttling window."""

    window_start: float
    total_count: int = 0
    per_fingerprint_count: dict[str, int] = field(default_factory=dict)

    def roll(self, now: float, config: ThrottleConfig) -> bool:
        """Start a new window if the current one has elapsed. Returns True on reset."""
        if now - self.window_start < config.window_seconds:
            return False
        self.window_start = now
        self.total_count = 0
        self.per_fingerprint_count = {}
        return True

    def is_throttled(self, fingerprint: str, config: ThrottleConfig) -> bool:
        if self.total_count >= config.max_errors_per_window:
            return True
        return self.per_fingerprint_count.get(fingerprint, 0) >= config.max_same_errors_per_window

    def record(self, fingerprint: str) -> None:
        self.total_count += 1
        self.per_fingerprint_count[fingerprint] = (
            self.per_fingerprint_count.get(fingerprint, 0) + 1
        )
