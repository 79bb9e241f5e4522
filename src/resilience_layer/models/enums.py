"""
Enumerations shared across the resilience layer.

All enums are closed taxonomies - no values outside these sets are permitted.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """
    Discriminant of the operation error taxonomy.

    Network-layer kinds (NETWORK, TIMEOUT) are always retryable, SERVER and
    RATE_LIMITED are retryable with backoff. Client-side kinds are surfaced
    immediately. CIRCUIT_OPEN is raised by the breaker itself.
    """

    NETWORK = "network"
    TIMEOUT = "timeout"
    SERVER = "server"
    RATE_LIMITED = "rate_limited"
    CLIENT = "client"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    CIRCUIT_OPEN = "circuit_open"
    INTERNAL = "internal"


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class Severity(str, Enum):
    """
    Severity of a reported error.

    Ordered from low to critical (can be used for ordinal comparisons).
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def get_ordinal(cls, severity: "Severity") -> int:
        """Get ordinal value for severity (0=low, 1=medium, 2=high, 3=critical)."""
        order = [cls.LOW, cls.MEDIUM, cls.HIGH, cls.CRITICAL]
        return order.index(severity)


class ErrorCategory(str, Enum):
    """Display category assigned to a reported error."""

    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NETWORK = "network"
    TIMEOUT = "timeout"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    RATE_LIMIT = "rate_limit"
    SERVER = "server"
    DATABASE = "database"
    CIRCUIT_OPEN = "circuit_open"
    CLIENT = "client"
    SYSTEM = "system"
