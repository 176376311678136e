"""
Interfaces package exports.
"""

from .vector_store import VectorStore, PineconeVectorStore
from .embedder import Embedder, OpenAIEmbedder
from .language_classifier import LanguageClassifier, OpenAILanguageClassifier
from .progress_store import (
    Stage,
    ProgressState,
    ProgressStore,
    InMemoryProgressStore,
    RedisProgressStore,
)
from .session_store import (
    SessionSummary,
    SessionStore,
    RedisSessionStore,
    NoOpSessionStore,
)

__all__ = [
    "VectorStore",
    "PineconeVectorStore",
    "Embedder",
    "OpenAIEmbedder",
    "LanguageClassifier",
    "OpenAILanguageClassifier",
    "Stage",
    "ProgressState",
    "ProgressStore",
    "InMemoryProgressStore",
    "RedisProgressStore",
    "SessionSummary",
    "SessionStore",
    "RedisSessionStore",
    "NoOpSessionStore",
]
