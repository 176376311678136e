"""
Request-side entry points: start an upload, poll it, cancel it.

``start_upload`` validates the request, seeds the progress record
synchronously and hands the pipeline run to a supervised thread pool, so a
poll issued right after it returns always finds a record.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING, Any, Optional

from config.constant import (
    MAX_CONCURRENT_UPLOADS,
    PROGRESS_READING_START,
    UPLOAD_TIMEOUT_SECONDS,
)
from ingest_exceptions import ValidationError
from interfaces.progress_store import ProgressState, ProgressStore
from .pipeline import UploadJob, UploadPipeline
from .progress import ProgressTracker, Stage

if TYPE_CHECKING:
    from .context import PipelineContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadRequest:
    file_content: str
    selected_participant: str
    display_name: str
    owner_id: Optional[str] = None


@dataclass(frozen=True)
class UploadAccepted:
    session_id: str
    upload_id: str
    status: str = "processing"


# ============================================================================
# BACKGROUND RUNNER
# ============================================================================


class BackgroundRunner:
    """Thread pool whose task failures are always logged with the upload id."""

    def __init__(
        self,
        max_workers: int = MAX_CONCURRENT_UPLOADS,
        *,
        thread_name_prefix: str = "chat-upload",
    ):
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix=thread_name_prefix,
        )

    def submit(self, upload_id: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        future = self._executor.submit(fn, *args, **kwargs)
        future.add_done_callback(partial(self._log_outcome, upload_id))
        return future

    @staticmethod
    def _log_outcome(upload_id: str, future: Future) -> None:
        if future.cancelled():
            logger.warning("Upload %s was cancelled before it started", upload_id)
            return
        error = future.exception()
        if error is not None:
            logger.error(
                "Upload %s crashed outside the pipeline: %s",
                upload_id,
                error,
                exc_info=error,
            )

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


# ============================================================================
# UPLOAD SERVICE
# ============================================================================


class UploadService:
    def __init__(
        self,
        pipeline: UploadPipeline,
        progress_store: ProgressStore,
        *,
        runner: Optional[BackgroundRunner] = None,
        upload_timeout_seconds: float = UPLOAD_TIMEOUT_SECONDS,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
        clock: Callable[[], float] = time.monotonic,
    ):
        self._pipeline = pipeline
        self._progress_store = progress_store
        self._runner = runner or BackgroundRunner()
        self._upload_timeout_seconds = upload_timeout_seconds
        self._id_factory = id_factory
        self._clock = clock
        self._lock = threading.Lock()
        self._cancel_events: dict[str, threading.Event] = {}
        self._futures: dict[str, Future] = {}

    @classmethod
    def from_context(cls, ctx: "PipelineContext") -> "UploadService":
        return cls(
            UploadPipeline.from_context(ctx),
            ctx.progress_store,
            runner=BackgroundRunner(ctx.config.max_concurrent_uploads),
            upload_timeout_seconds=ctx.config.upload_timeout_seconds,
        )

    def start_upload(self, request: UploadRequest) -> UploadAccepted:
        """
        Validate ``request``, seed progress and schedule the pipeline run.

        Raises:
            ValidationError: when the participant or display name is blank.
        """
        if not (request.selected_participant or "").strip() or \
                not (request.display_name or "").strip():
            raise ValidationError(
                "selectedParticipant and displayName are required")

        swept = self._progress_store.sweep_expired()
        if swept:
            logger.debug("Swept %d expired progress records", swept)

        session_id = self._id_factory()
        upload_id = self._id_factory()
        tracker = ProgressTracker(self._progress_store, upload_id)
        tracker.update(Stage.READING, PROGRESS_READING_START,
                       "Reading and validating file...")

        job = UploadJob(
            upload_id=upload_id,
            session_id=session_id,
            file_content=request.file_content,
            selected_participant=request.selected_participant,
            display_name=request.display_name,
            owner_id=request.owner_id,
        )
        cancel_event = threading.Event()
        deadline = self._clock() + self._upload_timeout_seconds
        with self._lock:
            self._cancel_events[upload_id] = cancel_event
        try:
            future = self._runner.submit(
                upload_id, self._run_job, job, tracker, cancel_event, deadline)
        except RuntimeError:
            with self._lock:
                self._cancel_events.pop(upload_id, None)
            tracker.fail("Upload service is shutting down. Please try again.")
            raise
        with self._lock:
            # A fast run may already have cleaned up after itself.
            if upload_id in self._cancel_events:
                self._futures[upload_id] = future

        logger.info("Upload %s accepted (session %s, participant %r)",
                    upload_id, session_id, request.selected_participant)
        return UploadAccepted(session_id=session_id, upload_id=upload_id)

    def _run_job(
        self,
        job: UploadJob,
        tracker: ProgressTracker,
        cancel_event: threading.Event,
        deadline: float,
    ) -> None:
        try:
            self._pipeline.run(job, tracker, cancel_event=cancel_event, deadline=deadline)
        finally:
            with self._lock:
                self._cancel_events.pop(job.upload_id, None)
                self._futures.pop(job.upload_id, None)

    def get_progress(self, upload_id: str) -> Optional[ProgressState]:
        """Current progress, or None when the id is unknown or expired."""
        return self._progress_store.get(upload_id)

    def cancel(self, upload_id: str) -> bool:
        """Ask a running upload to stop. Returns False if it is not running."""
        with self._lock:
            event = self._cancel_events.get(upload_id)
        if event is None:
            return False
        event.set()
        logger.info("Upload %s cancellation requested", upload_id)
        return True

    def wait(self, upload_id: str, timeout: Optional[float] = None) -> None:
        """Block until the upload's background task finishes."""
        with self._lock:
            future = self._futures.get(upload_id)
        if future is not None:
            future.exception(timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        if not wait:
            with self._lock:
                events = list(self._cancel_events.values())
            for event in events:
                event.set()
        self._runner.shutdown(wait=wait)


__all__ = [
    "UploadRequest",
    "UploadAccepted",
    "BackgroundRunner",
    "UploadService",
]
