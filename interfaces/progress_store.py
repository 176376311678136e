# ProgressStore port
from __future__ import annotations

import json
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol, cast

from redis import Redis

from config.constant import PROGRESS_KEY_PREFIX, PROGRESS_TTL_SECONDS


class Stage(str, Enum):
    READING = "reading"
    PARSING = "parsing"
    ANALYZING = "analyzing"
    FINALIZING = "finalizing"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (Stage.COMPLETE, Stage.ERROR)


@dataclass(frozen=True)
class ProgressState:
    stage: Stage
    progress: int
    message: str
    total: int = 0
    processed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage": self.stage.value,
            "progress": self.progress,
            "message": self.message,
            "total": self.total,
            "processed": self.processed,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ProgressState":
        return cls(
            stage=Stage(payload["stage"]),
            progress=int(payload.get("progress", 0)),
            message=str(payload.get("message", "")),
            total=int(payload.get("total", 0)),
            processed=int(payload.get("processed", 0)),
        )


class ProgressStore(Protocol):
    def get(self, upload_id: str) -> Optional[ProgressState]: ...
    def set(self, upload_id: str, state: ProgressState) -> None: ...
    def delete(self, upload_id: str) -> None: ...
    def sweep_expired(self) -> int: ...


class InMemoryProgressStore:
    """Process-local store; entries expire ``ttl_seconds`` after their last write."""

    def __init__(
        self,
        ttl_seconds: int = PROGRESS_TTL_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[ProgressState, float]] = {}

    def get(self, upload_id: str) -> Optional[ProgressState]:
        with self._lock:
            entry = self._entries.get(upload_id)
            if entry is None:
                return None
            state, expires_at = entry
            if expires_at <= self._clock():
                del self._entries[upload_id]
                return None
            return state

    def set(self, upload_id: str, state: ProgressState) -> None:
        with self._lock:
            self._entries[upload_id] = (state, self._clock() + self._ttl_seconds)

    def delete(self, upload_id: str) -> None:
        with self._lock:
            self._entries.pop(upload_id, None)

    def sweep_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, (_, expires_at) in self._entries.items()
                       if expires_at <= now]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisProgressStore:
    """Redis-backed ProgressStore using JSON-encoded records with a key TTL."""

    def __init__(
        self,
        client: Redis,
        *,
        prefix: str = PROGRESS_KEY_PREFIX,
        ttl_seconds: int = PROGRESS_TTL_SECONDS,
    ):
        self._client = client
        self._prefix = prefix
        self._ttl_seconds = int(ttl_seconds)

    def _key(self, upload_id: str) -> str:
        return f"{self._prefix}{upload_id}"

    def get(self, upload_id: str) -> Optional[ProgressState]:
        raw = self._client.get(self._key(upload_id))
        if not raw:
            return None
        try:
            if isinstance(raw, (bytes, bytearray)):
                raw_text = raw.decode("utf-8")
            elif isinstance(raw, str):
                raw_text = raw
            else:
                return None
            payload = cast(dict[str, Any], json.loads(raw_text))
            return ProgressState.from_dict(payload)
        except (TypeError, KeyError, ValueError):
            return None

    def set(self, upload_id: str, state: ProgressState) -> None:
        self._client.set(
            self._key(upload_id),
            json.dumps(state.to_dict(), ensure_ascii=False),
            ex=self._ttl_seconds,
        )

    def delete(self, upload_id: str) -> None:
        self._client.delete(self._key(upload_id))

    def sweep_expired(self) -> int:
        # Redis expires keys on its own.
        return 0


__all__ = [
    "Stage",
    "ProgressState",
    "ProgressStore",
    "InMemoryProgressStore",
    "RedisProgressStore",
]
