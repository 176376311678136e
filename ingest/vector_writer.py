"""
Vector Store Writer: create-if-absent collection plus chunked upserts.
Any failure here is fatal for the upload.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Optional

from config.constant import (
    DEFAULT_METRIC,
    DIMENSION,
    PROGRESS_FINALIZING_END,
    PROGRESS_FINALIZING_START,
    UPSERT_CHUNK_SIZE,
)
from ingest_exceptions import VectorStoreError
from interfaces.vector_store import VectorStore
from .embedding_batcher import EmbeddingRecord
from .progress import ProgressTracker, Stage, interpolate
from .stats import ThreadSafeStats

logger = logging.getLogger(__name__)


class VectorStoreWriter:
    def __init__(
        self,
        store: VectorStore,
        *,
        dimension: int = DIMENSION,
        metric: str = DEFAULT_METRIC,
        chunk_size: int = UPSERT_CHUNK_SIZE,
        stats: Optional[ThreadSafeStats] = None,
    ):
        self._store = store
        self._dimension = dimension
        self._metric = metric
        self._chunk_size = max(1, chunk_size)
        self._stats = stats

    def ensure_collection(self, name: str) -> bool:
        """Create ``name`` when missing. Returns True if it was created."""
        try:
            exists = self._store.collection_exists(name)
        except Exception as error:  # pylint: disable=broad-except
            raise VectorStoreError(
                f"Vector collection check failed for '{name}': {error}") from error
        if exists:
            logger.info("Using existing collection '%s'", name)
            return False
        try:
            self._store.create_collection(
                name, dimension=self._dimension, metric=self._metric)
        except Exception as error:  # pylint: disable=broad-except
            raise VectorStoreError(
                f"Vector collection create failed for '{name}': {error}") from error
        return True

    def write(
        self,
        name: str,
        records: Sequence[EmbeddingRecord],
        *,
        tracker: Optional[ProgressTracker] = None,
        checkpoint: Optional[Callable[[], None]] = None,
    ) -> int:
        """Upsert ``records`` chunk by chunk; returns the number written."""
        chunks = [records[i:i + self._chunk_size]
                  for i in range(0, len(records), self._chunk_size)]
        written = 0
        for i, chunk in enumerate(chunks):
            if checkpoint is not None:
                checkpoint()
            try:
                self._store.upsert(name, [record.to_vector() for record in chunk])
            except Exception as error:  # pylint: disable=broad-except
                raise VectorStoreError(
                    f"Vector upsert failed for chunk {i + 1}/{len(chunks)} "
                    f"of '{name}': {error}"
                ) from error
            written += len(chunk)
            if self._stats is not None:
                self._stats.increment("vector_chunks")
            if tracker is not None:
                tracker.update(
                    Stage.FINALIZING,
                    interpolate(PROGRESS_FINALIZING_START,
                                PROGRESS_FINALIZING_END, i + 1, len(chunks)),
                    f"Storing in vector database... ({i + 1}/{len(chunks)} chunks)",
                    processed=written,
                )
        logger.info("Wrote %d vectors to '%s' in %d chunks",
                    written, name, len(chunks))
        return written


__all__ = ["VectorStoreWriter"]
