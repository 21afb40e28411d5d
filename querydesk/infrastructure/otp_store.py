"""One-time-code registry for email verification.

Codes are kept per email with an absolute expiry. Nothing sweeps the registry in
the background: callers check expiry when they look a code up, and storing a new
code drops entries that expired unused.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Callable, Dict, Optional, Protocol


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class OTPEntry:
    code: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


class OTPStore(Protocol):
    """Key-value store mapping email -> OTPEntry."""

    def now(self) -> datetime:
        ...

    def put(self, email: str, code: str, ttl: timedelta) -> OTPEntry:
        ...

    def get(self, email: str) -> Optional[OTPEntry]:
        ...

    def delete(self, email: str) -> None:
        ...


class InMemoryOTPStore:
    """Process-local OTPStore; fine for a single worker, swap it out for more."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._entries: Dict[str, OTPEntry] = {}
        self._lock = Lock()

    def now(self) -> datetime:
        return self._clock()

    def put(self, email: str, code: str, ttl: timedelta) -> OTPEntry:
        """Store a code, dropping any entries that expired without being used."""
        now = self._clock()
        entry = OTPEntry(code=code, expires_at=now + ttl)
        with self._lock:
            for stale in [key for key, old in self._entries.items() if old.is_expired(now)]:
                del self._entries[stale]
            self._entries[email] = entry
        return entry

    def get(self, email: str) -> Optional[OTPEntry]:
        with self._lock:
            return self._entries.get(email)

    def delete(self, email: str) -> None:
        with self._lock:
            self._entries.pop(email, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
