"""
Session Finalizer: best-effort write of the session summary record.
"""

from __future__ import annotations

import logging
from typing import Optional

from interfaces.session_store import SessionStore, SessionSummary
from .stats import ThreadSafeStats

logger = logging.getLogger(__name__)


class SessionFinalizer:
    def __init__(self, store: SessionStore, *, stats: Optional[ThreadSafeStats] = None):
        self._store = store
        self._stats = stats

    def finalize(self, summary: SessionSummary) -> bool:
        """Persist ``summary``. Failures are logged and reported as False."""
        try:
            self._store.create_session(summary)
        except Exception as error:  # pylint: disable=broad-except
            logger.warning(
                "Could not save session %s (%s): %s",
                summary.session_id,
                summary.collection_name,
                error,
            )
            if self._stats is not None:
                self._stats.increment("sessions_failed")
            return False
        if self._stats is not None:
            self._stats.increment("sessions_saved")
        return True


__all__ = [
    "SessionSummary",
    "SessionFinalizer",
]
