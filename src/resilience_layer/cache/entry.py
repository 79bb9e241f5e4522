"""
Cache entry and statistics models.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """
    A cached value with its lifetime.

    Entries are immutable: a refresh replaces the entry wholesale.
    """

    value: T
    created_at: float
    expires_at: float

    def age(self, now: float) -> float:
        return now - self.created_at

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class CacheStats(BaseModel):
    """Point-in-time statistics of a ResponseCache."""

    name: str
    total_entries: int = Field(..., ge=0)
    valid_entries: int = Field(..., ge=0)
    expired_entries: int = Field(..., ge=0)
    pending_requests: int = Field(..., ge=0)
    max_size: int = Field(..., ge=1)
    hits: int = Field(..., ge=0)
    misses: int = Field(..., ge=0)
    hit_rate: float = Field(..., ge=0.0, le=1.0, description="hits / (hits + misses)")
