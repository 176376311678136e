"""
Embedding Batcher.

Messages are embedded in fixed-size batches, one batch at a time. A batch
that raises, or returns a different number of vectors than it was given,
is retried message by message; each message gets exactly one more attempt.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

from chat_export.types import Message
from config.constant import (
    EMBED_BATCH_SIZE,
    EMBED_LOSS_WARN_RATIO,
    EMBED_PACING_SECONDS,
    PROGRESS_ANALYZING_END,
    PROGRESS_ANALYZING_START,
)
from ingest_exceptions import ConfigError, EmbeddingPipelineExhaustedError
from interfaces.embedder import Embedder
from .progress import ProgressTracker, Stage, interpolate
from .stats import ThreadSafeStats

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmbeddingRecord:
    id: str
    vector: list[float]
    metadata: dict[str, Any]

    def to_vector(self) -> dict[str, Any]:
        """Pinecone upsert shape."""
        return {"id": self.id, "values": self.vector, "metadata": self.metadata}


@dataclass(frozen=True)
class EmbeddingReport:
    records: list[EmbeddingRecord] = field(default_factory=list)
    attempted: int = 0
    failed_count: int = 0
    fallback_batches: int = 0

    @property
    def loss_ratio(self) -> float:
        return self.failed_count / self.attempted if self.attempted else 0.0


class EmbeddingBatcher:
    def __init__(
        self,
        embedder: Embedder,
        *,
        batch_size: int = EMBED_BATCH_SIZE,
        pacing_seconds: float = EMBED_PACING_SECONDS,
        loss_warn_ratio: float = EMBED_LOSS_WARN_RATIO,
        stats: Optional[ThreadSafeStats] = None,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._embedder = embedder
        self._batch_size = max(1, batch_size)
        self._pacing_seconds = max(0.0, pacing_seconds)
        self._loss_warn_ratio = loss_warn_ratio
        self._stats = stats
        self._id_factory = id_factory
        self._sleep = sleep

    def _count(self, key: str, amount: int = 1) -> None:
        if self._stats is not None:
            self._stats.increment(key, amount)

    def _record(self, message: Message, index: int, vector: list[float]) -> EmbeddingRecord:
        return EmbeddingRecord(
            id=self._id_factory(),
            vector=list(vector),
            metadata={
                "timestamp": message.timestamp,
                "sender": message.sender,
                "index": index,
                "content": message.content,
            },
        )

    def _embed_batch(self, texts: list[str], batch_no: int) -> Optional[list[list[float]]]:
        try:
            vectors = self._embedder.embed_texts(texts)
        except ConfigError:
            raise
        except Exception as error:  # pylint: disable=broad-except
            logger.warning(
                "Embedding batch %d failed (%s); retrying %d messages individually",
                batch_no,
                error,
                len(texts),
            )
            return None
        if len(vectors) != len(texts):
            logger.warning(
                "Embedding batch %d returned %d vectors for %d messages; "
                "retrying individually",
                batch_no,
                len(vectors),
                len(texts),
            )
            return None
        return vectors

    def _embed_one(self, message: Message, index: int) -> Optional[EmbeddingRecord]:
        try:
            vectors = self._embedder.embed_texts([message.content])
        except ConfigError:
            raise
        except Exception as error:  # pylint: disable=broad-except
            logger.debug("Embedding message %d failed: %s", index, error)
            return None
        if len(vectors) != 1:
            return None
        return self._record(message, index, vectors[0])

    def embed_messages(
        self,
        messages: Sequence[Message],
        *,
        tracker: Optional[ProgressTracker] = None,
        checkpoint: Optional[Callable[[], None]] = None,
    ) -> EmbeddingReport:
        """
        Embed ``messages`` and return the produced records plus loss counts.

        Raises:
            EmbeddingPipelineExhaustedError: when no record could be produced.
            ConfigError: when the provider rejects the credentials or model.
        """
        total = len(messages)
        records: list[EmbeddingRecord] = []
        failed = 0
        fallback_batches = 0
        batch_count = (total + self._batch_size - 1) // self._batch_size

        for batch_no, start in enumerate(range(0, total, self._batch_size), start=1):
            if checkpoint is not None:
                checkpoint()
            batch = messages[start:start + self._batch_size]
            started_at = time.perf_counter()
            vectors = self._embed_batch([m.content for m in batch], batch_no)
            self._count("embed_batches")

            if vectors is not None:
                for offset, (message, vector) in enumerate(zip(batch, vectors)):
                    records.append(self._record(message, start + offset, vector))
            else:
                fallback_batches += 1
                self._count("embed_fallback_batches")
                for offset, message in enumerate(batch):
                    if checkpoint is not None:
                        checkpoint()
                    record = self._embed_one(message, start + offset)
                    if record is None:
                        failed += 1
                    else:
                        records.append(record)

            if self._stats is not None:
                self._stats.observe_timing(
                    "embed_batch_seconds", time.perf_counter() - started_at)

            processed = min(start + len(batch), total)
            if tracker is not None:
                tracker.update(
                    Stage.ANALYZING,
                    interpolate(PROGRESS_ANALYZING_START,
                                PROGRESS_ANALYZING_END, processed, total),
                    f"Analyzing conversation... ({processed}/{total})",
                    total=total,
                    processed=processed,
                )
            if self._pacing_seconds and batch_no < batch_count:
                self._sleep(self._pacing_seconds)

        self._count("embeddings_created", len(records))
        self._count("embeddings_failed", failed)

        if not records:
            raise EmbeddingPipelineExhaustedError(total)

        report = EmbeddingReport(
            records=records,
            attempted=total,
            failed_count=failed,
            fallback_batches=fallback_batches,
        )
        if report.loss_ratio > self._loss_warn_ratio:
            logger.warning(
                "High embedding loss: %d/%d messages failed (%.0f%%); continuing",
                failed,
                total,
                report.loss_ratio * 100,
            )
        return report


__all__ = [
    "EmbeddingRecord",
    "EmbeddingReport",
    "EmbeddingBatcher",
]
