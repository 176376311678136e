"""
Progress tracking for a single upload.

Stage bands:
    reading 5-15, parsing 15-25, analyzing 30-80, finalizing 85-100,
    complete 100, error 0 (reachable from any stage).

Within a run progress never decreases, except that ``error`` always resets
it to 0. ``complete`` and ``error`` are terminal: later writes are dropped.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from config.constant import PROGRESS_COMPLETE
from interfaces.progress_store import ProgressState, ProgressStore, Stage

logger = logging.getLogger(__name__)


def interpolate(start: int, end: int, done: int, total: int) -> int:
    """Linear position of ``done/total`` inside the ``start..end`` band."""
    if total <= 0:
        return end
    done = max(0, min(done, total))
    return start + round((end - start) * done / total)


class ProgressTracker:
    """Single writer of one upload's progress record."""

    def __init__(
        self,
        store: ProgressStore,
        upload_id: str,
        *,
        initial: Optional[ProgressState] = None,
    ):
        self._store = store
        self.upload_id = upload_id
        self._lock = threading.Lock()
        self._state: Optional[ProgressState] = initial

    @property
    def state(self) -> Optional[ProgressState]:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state is not None and self._state.stage.is_terminal

    def update(
        self,
        stage: Stage,
        progress: int,
        message: str,
        *,
        total: Optional[int] = None,
        processed: Optional[int] = None,
    ) -> Optional[ProgressState]:
        """
        Write a complete new record. Returns the stored state, or None when
        the upload already reached a terminal stage.
        """
        with self._lock:
            current = self._state
            if current is not None and current.stage.is_terminal:
                logger.warning(
                    "Upload %s: ignoring %s update after terminal stage %s",
                    self.upload_id,
                    stage.value,
                    current.stage.value,
                )
                return None

            progress = max(0, min(int(progress), PROGRESS_COMPLETE))
            if stage is Stage.ERROR:
                progress = 0
            elif current is not None and progress < current.progress:
                logger.debug(
                    "Upload %s: clamping progress %d to %d",
                    self.upload_id,
                    progress,
                    current.progress,
                )
                progress = current.progress

            state = ProgressState(
                stage=stage,
                progress=progress,
                message=message,
                total=total if total is not None else (current.total if current else 0),
                processed=processed if processed is not None else (
                    current.processed if current else 0),
            )
            self._store.set(self.upload_id, state)
            self._state = state
            return state

    def fail(self, message: str, *, total: int = 0, processed: int = 0) -> Optional[ProgressState]:
        return self.update(Stage.ERROR, 0, message, total=total, processed=processed)

    def complete(
        self,
        message: str = "Ready to chat!",
        *,
        total: Optional[int] = None,
        processed: Optional[int] = None,
    ) -> Optional[ProgressState]:
        return self.update(
            Stage.COMPLETE,
            PROGRESS_COMPLETE,
            message,
            total=total,
            processed=processed,
        )


__all__ = [
    "Stage",
    "ProgressState",
    "interpolate",
    "ProgressTracker",
]
