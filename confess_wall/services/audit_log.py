"""Append-only log of blocked requests."""

import asyncio
import json
import logging
import threading
from pathlib import Path

from .abuse_gate import AbuseRecord

logger = logging.getLogger(__name__)


class AuditLog:
    """Write one JSON line per blocked request."""

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()

    def write(self, record: AbuseRecord) -> None:
        line = json.dumps(record.to_dict(), ensure_ascii=False)
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")

    async def record(self, record: AbuseRecord) -> None:
        """Append `record`. Failures are logged, the block still stands."""
        try:
            await asyncio.to_thread(self.write, record)
        except OSError as e:
            logger.error("Failed to write audit record for %s: %s", record.client_key, e)

