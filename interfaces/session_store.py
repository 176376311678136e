# SessionStore port
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Optional, Protocol

from redis import Redis

from config.constant import SESSION_KEY_PREFIX


@dataclass(frozen=True)
class SessionSummary:
    session_id: str
    participant_name: str
    message_count: int
    collection_name: str
    detected_languages: list[str] = field(default_factory=list)
    is_active: bool = True
    display_name: str = ""
    owner_id: Optional[str] = None
    embedding_count: int = 0
    created_at_iso: str = ""
    statistics: Optional[dict[str, Any]] = None


class SessionStore(Protocol):
    def create_session(self, summary: SessionSummary) -> None: ...


class RedisSessionStore:
    """Redis-backed SessionStore; one JSON document per session, no expiry."""

    def __init__(self, client: Redis, *, prefix: str = SESSION_KEY_PREFIX):
        self._client = client
        self._prefix = prefix

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}{session_id}"

    def create_session(self, summary: SessionSummary) -> None:
        self._client.set(
            self._key(summary.session_id),
            json.dumps(asdict(summary), ensure_ascii=False),
        )


class NoOpSessionStore:
    """No-op SessionStore for runs without a session backend."""

    def create_session(self, summary: SessionSummary) -> None:
        # pylint: disable=unused-argument
        return None


__all__ = [
    "SessionSummary",
    "SessionStore",
    "RedisSessionStore",
    "NoOpSessionStore",
]
