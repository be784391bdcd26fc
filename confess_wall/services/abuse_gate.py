"""Fixed-window request limiting keyed by client address."""

import logging
import threading
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

logger = logging.getLogger(__name__)

BLOCK_REASON = "Too many requests in short time."


@dataclass(frozen=True)
class AbuseRecord:
    """Audit entry describing a blocked request."""

    timestamp: str
    client_key: str
    country: str
    user_agent: str
    reason: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Admission:
    """Outcome of an admission check."""

    allowed: bool
    record: Optional[AbuseRecord] = None


@dataclass
class _Window:
    started_at: float
    count: int


class AbuseGate:
    """Count requests per client in fixed windows and block the excess."""

    def __init__(
        self,
        window_seconds: float,
        max_requests: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._last_prune = clock()

    def admit(
        self,
        client_key: str,
        country: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Admission:
        """
        Count one request for `client_key` and decide whether it may proceed.

        Args:
            client_key: Client network address.
            country: Country hint header, if the proxy supplied one.
            user_agent: User-Agent header.

        Returns:
            Admission with allowed=False and an AbuseRecord once the client
            exceeds max_requests in the current window.
        """
        now = self._clock()
        with self._lock:
            if now - self._last_prune >= self.window_seconds:
                self._prune_locked(now)

            window = self._windows.get(client_key)
            if window is None or now - window.started_at >= self.window_seconds:
                window = _Window(started_at=now, count=0)
                self._windows[client_key] = window

            window.count += 1
            count = window.count

        if count <= self.max_requests:
            return Admission(allowed=True)

        record = AbuseRecord(
            timestamp=datetime.now(timezone.utc).isoformat(),
            client_key=client_key,
            country=country or "Unknown",
            user_agent=user_agent or "Unknown",
            reason=BLOCK_REASON,
        )
        logger.warning(
            "Blocked %s: %d requests within %.0fs (limit %d)",
            client_key,
            count,
            self.window_seconds,
            self.max_requests,
        )
        return Admission(allowed=False, record=record)

    def remaining(self, client_key: str) -> int:
        """Requests left for `client_key` in its current window."""
        now = self._clock()
        with self._lock:
            window = self._windows.get(client_key)
            if window is None or now - window.started_at >= self.window_seconds:
                return self.max_requests
            return max(0, self.max_requests - window.count)

    def prune(self) -> int:
        """Drop expired windows. Returns how many were removed."""
        with self._lock:
            return self._prune_locked(self._clock())

    def _prune_locked(self, now: float) -> int:
        expired = [
            key
            for key, window in self._windows.items()
            if now - window.started_at >= self.window_seconds
        ]
        for key in expired:
            del self._windows[key]
        self._last_prune = now
        return len(expired)
