# storage.py
import json
import logging
import threading
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from models import EnrichmentJob, EnrichmentResult

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class EnrichmentStore:
    """
    In-memory correlation store for async enrichment jobs, keyed by request id.

    Nothing survives a restart, and nothing is shared between processes: a poll
    that lands on an instance which never saw the callback reports not-found.
    Handlers run in a threadpool, so every access goes through the lock.
    """

    def __init__(self, retention_minutes: int = 30):
        self.retention = timedelta(minutes=retention_minutes)
        self._jobs: Dict[str, EnrichmentJob] = {}
        self._lock = threading.Lock()

    def create_pending(self, request_id: str) -> EnrichmentJob:
        # No collision check: callers must use random ids (uuid4)
        job = EnrichmentJob(request_id=request_id, status="pending", created_at=_now())
        with self._lock:
            self._jobs[request_id] = job
        return job

    def complete(self, request_id: str, payload: EnrichmentResult) -> EnrichmentJob:
        # Overwrites whatever is there, including an unknown id or an earlier completion
        job = EnrichmentJob(request_id=request_id, status="complete", payload=payload, created_at=_now())
        with self._lock:
            self._jobs[request_id] = job
        return job

    def get(self, request_id: str) -> Optional[EnrichmentJob]:
        with self._lock:
            return self._jobs.get(request_id)

    def discard(self, request_id: str):
        with self._lock:
            self._jobs.pop(request_id, None)

    def sweep(self, now: Optional[datetime] = None) -> int:
        """Drop jobs older than the retention window. Returns how many were removed."""
        cutoff = (now or _now()) - self.retention
        with self._lock:
            stale = [rid for rid, job in self._jobs.items() if job.created_at < cutoff]
            for rid in stale:
                del self._jobs[rid]
        if stale:
            logger.debug("Swept %d expired enrichment jobs", len(stale))
        return len(stale)

    def __len__(self):
        with self._lock:
            return len(self._jobs)


class CallbackLog:
    """Bounded history of raw callback bodies, newest last. Debug only."""

    def __init__(self, capacity: int = 20):
        self._entries = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def append(self, raw: str, note: Optional[str] = None):
        with self._lock:
            self._entries.append({"received_at": _now(), "raw": raw, "note": note})

    def entries(self) -> List[dict]:
        with self._lock:
            return list(self._entries)

    def render(self) -> str:
        entries = self.entries()
        if not entries:
            return "No callbacks received yet.\n"
        blocks = []
        for i, entry in enumerate(reversed(entries), start=1):
            try:
                body = json.dumps(json.loads(entry["raw"]), indent=2)
            except (ValueError, RecursionError):
                body = entry["raw"]
            header = f"#{i}  {entry['received_at'].isoformat()}"
            if entry["note"]:
                header += f"  [{entry['note']}]"
            blocks.append(f"{header}\n{body}")
        return f"Last {len(entries)} callback payloads (newest first)\n\n" + "\n\n".join(blocks) + "\n"
