"""
Ingest package exports.
"""

from .context import PipelineContext
from .progress import ProgressTracker, interpolate
from .embedding_batcher import EmbeddingBatcher, EmbeddingRecord, EmbeddingReport
from .vector_writer import VectorStoreWriter
from .session_finalizer import SessionFinalizer
from .pipeline import UploadJob, UploadPipeline, PipelineResult
from .upload_service import (
    BackgroundRunner,
    UploadAccepted,
    UploadRequest,
    UploadService,
)
from .stats import ThreadSafeStats

__all__ = [
    "PipelineContext",
    "ProgressTracker",
    "interpolate",
    "EmbeddingBatcher",
    "EmbeddingRecord",
    "EmbeddingReport",
    "VectorStoreWriter",
    "SessionFinalizer",
    "UploadJob",
    "UploadPipeline",
    "PipelineResult",
    "BackgroundRunner",
    "UploadAccepted",
    "UploadRequest",
    "UploadService",
    "ThreadSafeStats",
]
