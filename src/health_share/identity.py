"""
Caller identities, the clock and identifier generation.

The identity provider in front of the control plane authenticates callers and
hands over an opaque token per call. The core only stores and compares it.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol
from uuid import uuid4


@dataclass(frozen=True)
class Identity:
    """Opaque caller identifier issued by an external identity provider."""
    
    value: str
    
    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value:
            raise ValueError("Identity value must be a non-empty string")
    
    def __str__(self) -> str:
        return self.value


class Clock(Protocol):
    """Source of timezone-aware UTC timestamps."""
    
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock that never goes backwards, even if the system time does."""
    
    def __init__(self) -> None:
        self._last: datetime | None = None
        self._lock = threading.Lock()
    
    def now(self) -> datetime:
        current = datetime.now(timezone.utc)
        with self._lock:
            if self._last is not None and current < self._last:
                current = self._last
            self._last = current
        return current


def new_id() -> str:
    """Allocate an identifier for a record or share request."""
    return str(uuid4())
