"""
Injectable time sources.

Every component takes a clock and (where it waits) a sleep function, so
tests can drive time explicitly.
"""

from typing import Callable, Protocol

Clock = Callable[[], float]


class SleepFunc(Protocol):
    """Protocol for injectable sleep function."""

    async def __call__(self, seconds: float) -> None: ...
