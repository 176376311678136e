"""
Process-wide counters and timings shared by concurrent uploads.
"""

from __future__ import annotations

import uuid
from threading import Lock
from typing import Any


# ============================================================================
# THREAD-SAFE STATS
# ============================================================================


class ThreadSafeStats:
    def __init__(self):
        self._lock = Lock()
        self._stats: dict[str, Any] = {
            "run_id": uuid.uuid4().hex,
            "uploads_started": 0,
            "uploads_completed": 0,
            "uploads_failed": 0,
            "embed_batches": 0,
            "embed_fallback_batches": 0,
            "embeddings_created": 0,
            "embeddings_failed": 0,
            "vector_chunks": 0,
            "sessions_saved": 0,
            "sessions_failed": 0,
        }

    def increment(self, key: str, amount: int = 1) -> None:
        with self._lock:
            self._stats[key] = self._stats.get(key, 0) + amount

    def get(self, key: str, default: Any = 0) -> Any:
        with self._lock:
            return self._stats.get(key, default)

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            return self._stats.copy()

    def observe_timing(self, key: str, value: float) -> None:
        with self._lock:
            count_key = f"{key}_count"
            sum_key = f"{key}_sum"
            max_key = f"{key}_max"
            self._stats[count_key] = self._stats.get(count_key, 0) + 1
            self._stats[sum_key] = self._stats.get(sum_key, 0.0) + float(value)
            if float(value) > float(self._stats.get(max_key, 0.0)):
                self._stats[max_key] = float(value)


__all__ = ["ThreadSafeStats"]
