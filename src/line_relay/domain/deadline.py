"""Request-scoped deadline shared read-only by per-event tasks."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass(frozen=True)
class RequestDeadline:
    """Absolute monotonic deadline for one inbound webhook request."""

    expires_at: float
    clock: Callable[[], float] = field(default=time.monotonic, compare=False, repr=False)

    @classmethod
    def after(
        cls,
        timeout_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> RequestDeadline:
        """Return a deadline that expires `timeout_seconds` from now."""

        return cls(expires_at=clock() + timeout_seconds, clock=clock)

    def remaining(self, *, margin_seconds: float = 0.0) -> float:
        """Return seconds left before `deadline - margin`, never below zero."""

        return max(0.0, self.expires_at - margin_seconds - self.clock())

    def expired(self) -> bool:
        return self.remaining() <= 0.0
