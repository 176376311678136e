"""
Upload pipeline.

Runs one upload end to end on the calling thread:

    reading -> parsing/filtering -> ensure collection -> analyzing
    (embedding batches) -> finalizing (vector chunks, statistics,
    languages, session record) -> complete

Every failure ends the run in the ``error`` stage with a message the
caller can act on. Language detection and the session record are
best-effort and never fail the run.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from chat_export.filters import select_participant_messages
from chat_export.parser import ChatExportParser
from chat_export.statistics import compute_message_statistics, detect_languages
from config.constant import (
    COLLECTION_NAME_PREFIX,
    LANGUAGE_SAMPLE_SIZE,
    MIN_PARTICIPANT_MESSAGES,
    PROGRESS_ANALYZING_START,
    PROGRESS_FINALIZING_END,
    PROGRESS_FINALIZING_START,
    PROGRESS_PARSED,
    PROGRESS_PARSING_START,
    PROGRESS_READING_START,
)
from ingest_exceptions import (
    EmptyFileError,
    InsufficientMessagesError,
    PipelineCancelledError,
    UnexpectedError,
    describe_failure,
    wrap_exception,
)
from interfaces.language_classifier import LanguageClassifier
from interfaces.session_store import SessionSummary
from .embedding_batcher import EmbeddingBatcher
from .progress import ProgressTracker, Stage
from .session_finalizer import SessionFinalizer
from .stats import ThreadSafeStats
from .vector_writer import VectorStoreWriter

if TYPE_CHECKING:
    from .context import PipelineContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadJob:
    upload_id: str
    session_id: str
    file_content: str
    selected_participant: str
    display_name: str
    owner_id: Optional[str] = None

    @property
    def collection_name(self) -> str:
        return f"{COLLECTION_NAME_PREFIX}{self.session_id}"


@dataclass(frozen=True)
class PipelineResult:
    upload_id: str
    session_id: str
    collection_name: str
    message_count: int
    embedding_count: int
    failed_embeddings: int
    detected_languages: list[str] = field(default_factory=list)
    statistics: Optional[dict[str, Any]] = None
    session_saved: bool = False


class UploadPipeline:
    def __init__(
        self,
        *,
        batcher: EmbeddingBatcher,
        writer: VectorStoreWriter,
        finalizer: SessionFinalizer,
        parser: Optional[ChatExportParser] = None,
        language_classifier: Optional[LanguageClassifier] = None,
        min_messages: int = MIN_PARTICIPANT_MESSAGES,
        language_sample_size: int = LANGUAGE_SAMPLE_SIZE,
        stats: Optional[ThreadSafeStats] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._parser = parser or ChatExportParser()
        self._batcher = batcher
        self._writer = writer
        self._finalizer = finalizer
        self._language_classifier = language_classifier
        self._min_messages = min_messages
        self._language_sample_size = language_sample_size
        self._stats = stats
        self._clock = clock

    @classmethod
    def from_context(cls, ctx: "PipelineContext") -> "UploadPipeline":
        config = ctx.config
        return cls(
            batcher=EmbeddingBatcher(
                ctx.embedder,
                batch_size=config.embed_batch,
                pacing_seconds=config.embed_pacing_seconds,
                loss_warn_ratio=config.embed_loss_warn_ratio,
                stats=ctx.stats,
            ),
            writer=VectorStoreWriter(
                ctx.vector_store,
                dimension=config.dimension,
                metric=config.metric,
                chunk_size=config.upsert_batch,
                stats=ctx.stats,
            ),
            finalizer=SessionFinalizer(ctx.session_store, stats=ctx.stats),
            language_classifier=ctx.language_classifier,
            min_messages=config.min_messages,
            language_sample_size=config.language_sample_size,
            stats=ctx.stats,
        )

    def _count(self, key: str) -> None:
        if self._stats is not None:
            self._stats.increment(key)

    def _checkpoint(
        self,
        cancel_event: Optional[threading.Event],
        deadline: Optional[float],
    ) -> Callable[[], None]:
        def check() -> None:
            if cancel_event is not None and cancel_event.is_set():
                raise PipelineCancelledError("Upload was cancelled")
            if deadline is not None and self._clock() >= deadline:
                raise PipelineCancelledError(
                    "Upload timed out before it could finish")
        return check

    def run(
        self,
        job: UploadJob,
        tracker: ProgressTracker,
        *,
        cancel_event: Optional[threading.Event] = None,
        deadline: Optional[float] = None,
    ) -> Optional[PipelineResult]:
        """Run ``job``; returns None when the upload ended in ``error``."""
        started_at = time.perf_counter()
        self._count("uploads_started")
        try:
            result = self._run(job, tracker, self._checkpoint(cancel_event, deadline))
        except Exception as error:  # pylint: disable=broad-except
            self._fail(job, tracker, error)
            return None
        finally:
            if self._stats is not None:
                self._stats.observe_timing(
                    "upload_seconds", time.perf_counter() - started_at)
        self._count("uploads_completed")
        return result

    def _fail(self, job: UploadJob, tracker: ProgressTracker, error: Exception) -> None:
        self._count("uploads_failed")
        wrapped = wrap_exception(error)
        if isinstance(wrapped, UnexpectedError):
            logger.error("Upload %s failed: %s", job.upload_id, error, exc_info=error)
        else:
            logger.warning("Upload %s failed (%s): %s",
                           job.upload_id, type(wrapped).__name__, error)
        # Foreign exception text stays out of the user-facing message.
        total = error.count if isinstance(error, InsufficientMessagesError) else 0
        tracker.fail(describe_failure(error), total=total, processed=0)

    def _run(
        self,
        job: UploadJob,
        tracker: ProgressTracker,
        checkpoint: Callable[[], None],
    ) -> PipelineResult:
        tracker.update(Stage.READING, PROGRESS_READING_START,
                       "Reading and validating file...")
        if not job.file_content or not job.file_content.strip():
            raise EmptyFileError()
        report = self._parser.validate(job.file_content)
        if not report.is_valid:
            logger.info("Upload %s pre-check: %s",
                        job.upload_id, "; ".join(report.errors))

        checkpoint()
        tracker.update(Stage.PARSING, PROGRESS_PARSING_START,
                       "Parsing chat messages...")
        corpus = self._parser.parse(job.file_content)
        messages = select_participant_messages(
            corpus, job.selected_participant, min_messages=self._min_messages)
        total = len(messages)
        logger.info(
            "Upload %s: %d messages for %r (%d%% of lines parsed)",
            job.upload_id,
            total,
            job.selected_participant,
            corpus.success_rate,
        )
        tracker.update(Stage.PARSING, PROGRESS_PARSED,
                       f"Found {total} messages", total=total, processed=0)

        checkpoint()
        collection_name = job.collection_name
        self._writer.ensure_collection(collection_name)

        tracker.update(Stage.ANALYZING, PROGRESS_ANALYZING_START,
                       "Creating embeddings for AI analysis...",
                       total=total, processed=0)
        embedded = self._batcher.embed_messages(
            messages, tracker=tracker, checkpoint=checkpoint)

        checkpoint()
        tracker.update(Stage.FINALIZING, PROGRESS_FINALIZING_START,
                       "Storing in vector database...")
        written = self._writer.write(
            collection_name, embedded.records,
            tracker=tracker, checkpoint=checkpoint)

        tracker.update(Stage.FINALIZING, PROGRESS_FINALIZING_END,
                       "Finalizing session...")
        statistics = compute_message_statistics(messages)
        languages = detect_languages(
            messages,
            self._language_classifier,
            sample_size=self._language_sample_size,
        )
        saved = self._finalizer.finalize(SessionSummary(
            session_id=job.session_id,
            participant_name=job.selected_participant,
            message_count=total,
            collection_name=collection_name,
            detected_languages=languages,
            is_active=True,
            display_name=job.display_name,
            owner_id=job.owner_id,
            embedding_count=written,
            created_at_iso=datetime.now(timezone.utc).isoformat(),
            statistics=statistics.to_dict() if statistics else None,
        ))

        tracker.complete("Ready to chat!", total=total, processed=written)
        logger.info("Upload %s complete: %d/%d messages stored in '%s'",
                    job.upload_id, written, total, collection_name)
        return PipelineResult(
            upload_id=job.upload_id,
            session_id=job.session_id,
            collection_name=collection_name,
            message_count=total,
            embedding_count=written,
            failed_embeddings=embedded.failed_count,
            detected_languages=languages,
            statistics=statistics.to_dict() if statistics else None,
            session_saved=saved,
        )


__all__ = [
    "UploadJob",
    "PipelineResult",
    "UploadPipeline",
]
