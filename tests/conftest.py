from __future__ import annotations

import threading
from typing import Any, Callable, Optional

import pytest

from interfaces.progress_store import InMemoryProgressStore, ProgressState


def header_line(
    sender: str,
    text: str,
    *,
    minute: int = 0,
    day: int = 1,
) -> str:
    """A line in the primary ``[DD/MM/YYYY, HH:MM:SS] Name: text`` grammar."""
    return f"[{day:02d}/03/2024, 10:{minute:02d}:00] {sender}: {text}"


def make_export(sender: str, count: int, *, start_minute: int = 0) -> list[str]:
    return [
        header_line(sender, f"message number {i} from {sender}",
                    minute=start_minute + i)
        for i in range(count)
    ]


class StubEmbedder:
    """Deterministic embedder; ``fail_when`` decides which calls raise."""

    def __init__(
        self,
        *,
        dimension: int = 4,
        fail_when: Optional[Callable[[list[str]], bool]] = None,
        drop_last_for_batches: bool = False,
        error: Optional[Exception] = None,
    ):
        self.dimension = dimension
        self.fail_when = fail_when
        self.drop_last_for_batches = drop_last_for_batches
        self.error = error
        self.calls: list[list[str]] = []
        self._lock = threading.Lock()

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        with self._lock:
            self.calls.append(list(texts))
        if self.error is not None:
            raise self.error
        if self.fail_when is not None and self.fail_when(texts):
            raise RuntimeError("embedding provider unavailable")
        vectors = [[float(len(text))] * self.dimension for text in texts]
        if self.drop_last_for_batches and len(texts) > 1:
            return vectors[:-1]
        return vectors


class StubVectorStore:
    def __init__(
        self,
        *,
        existing: tuple[str, ...] = (),
        exists_error: Optional[Exception] = None,
        upsert_error: Optional[Exception] = None,
        fail_on_chunk: Optional[int] = None,
    ):
        self.collections: dict[str, dict[str, Any]] = {
            name: {"dimension": 4, "metric": "cosine"} for name in existing}
        self.exists_error = exists_error
        self.upsert_error = upsert_error
        self.fail_on_chunk = fail_on_chunk
        self.upserts: list[tuple[str, list[dict[str, Any]]]] = []

    def collection_exists(self, name: str) -> bool:
        if self.exists_error is not None:
            raise self.exists_error
        return name in self.collections

    def create_collection(self, name: str, *, dimension: int, metric: str) -> None:
        self.collections[name] = {"dimension": dimension, "metric": metric}

    def upsert(self, name: str, records: list[dict[str, Any]]) -> None:
        if self.upsert_error is not None:
            raise self.upsert_error
        if self.fail_on_chunk is not None and len(self.upserts) + 1 == self.fail_on_chunk:
            raise RuntimeError("pinecone upsert timed out")
        self.upserts.append((name, list(records)))

    @property
    def written(self) -> list[dict[str, Any]]:
        return [record for _, chunk in self.upserts for record in chunk]


class StubSessionStore:
    def __init__(self, *, error: Optional[Exception] = None):
        self.error = error
        self.sessions: list[Any] = []

    def create_session(self, summary: Any) -> None:
        if self.error is not None:
            raise self.error
        self.sessions.append(summary)


class StubClassifier:
    def __init__(self, reply: str = "English", *, error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.samples: list[str] = []

    def classify(self, sample_text: str) -> str:
        self.samples.append(sample_text)
        if self.error is not None:
            raise self.error
        return self.reply


class RecordingProgressStore(InMemoryProgressStore):
    """In-memory store that also keeps every write in order."""

    def __init__(self):
        super().__init__()
        self.history: list[tuple[str, ProgressState]] = []

    def set(self, upload_id: str, state: ProgressState) -> None:
        self.history.append((upload_id, state))
        super().set(upload_id, state)

    def states(self, upload_id: str) -> list[ProgressState]:
        return [state for key, state in self.history if key == upload_id]


class FakeRedis:
    """Just enough of redis.Redis for the JSON-backed stores."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, Optional[int]] = {}

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str, ex: Optional[int] = None, nx: bool = False) -> bool:
        if nx and key in self.data:
            return False
        self.data[key] = value
        self.ttls[key] = ex
        return True

    def delete(self, key: str) -> int:
        self.ttls.pop(key, None)
        return 1 if self.data.pop(key, None) is not None else 0


@pytest.fixture()
def embedder():
    return StubEmbedder()


@pytest.fixture()
def vector_store():
    return StubVectorStore()


@pytest.fixture()
def session_store():
    return StubSessionStore()


@pytest.fixture()
def classifier():
    return StubClassifier("Dutch, English")


@pytest.fixture()
def progress_store():
    return RecordingProgressStore()


@pytest.fixture()
def fake_redis():
    return FakeRedis()
