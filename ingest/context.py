"""
Pipeline Context module.
This module defines the PipelineContext class, which holds the
configuration plus lazily-built clients and ports for chat uploads.
"""
import logging
import threading
import tiktoken
import httpx
from pinecone import Pinecone
from openai import OpenAI
from redis import Redis, ConnectionPool
from interfaces import (
    Embedder,
    InMemoryProgressStore,
    LanguageClassifier,
    NoOpSessionStore,
    OpenAIEmbedder,
    OpenAILanguageClassifier,
    PineconeVectorStore,
    ProgressStore,
    RedisProgressStore,
    RedisSessionStore,
    SessionStore,
    VectorStore,
)
from ingest_exceptions import ConfigError
from config import (
    PipelineConfig,
    REDIS_POOL_MAX_CONNECTIONS,
    REDIS_POOL_SOCKET_TIMEOUT_S,
    REDIS_POOL_SOCKET_CONNECT_TIMEOUT_S,
    REDIS_POOL_HEALTH_CHECK_INTERVAL_S,
)
from .stats import ThreadSafeStats


# ============================================================================
# PIPELINE CONTEXT
# ============================================================================


class PipelineContext:
    """
    Container for all upload dependencies.
    Clients are created on first use and shared across uploads.
    """

    def __init__(self, config: PipelineConfig):
        """
        Initialise pipeline context.

        Args:
            config: Pipeline configuration
        """
        self.config = config

        logging.basicConfig(
            level=config.log_level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        self.logger = logging.getLogger(__name__)

        self._lock = threading.RLock()
        self._pinecone = None
        self._openai = None
        self._encoder = None
        self._redis = None
        self._vector_store: VectorStore | None = None
        self._embedder: Embedder | None = None
        self._language_classifier: LanguageClassifier | None = None
        self._session_store: SessionStore | None = None
        self._progress_store: ProgressStore | None = None
        self.stats = ThreadSafeStats()

    @property
    def pinecone(self) -> Pinecone:
        """Get Pinecone client (lazy init)."""
        with self._lock:
            if self._pinecone is None:
                self._pinecone = Pinecone(api_key=self.config.pinecone_api_key)
            return self._pinecone

    @property
    def openai(self) -> OpenAI:
        """Get OpenAI client (lazy init)."""
        with self._lock:
            if self._openai is None:
                timeout = httpx.Timeout(
                    timeout=self.config.openai_timeout,
                    connect=self.config.openai_connect_timeout,
                    read=self.config.openai_read_timeout,
                    write=self.config.openai_write_timeout,
                    pool=self.config.openai_pool_timeout,
                )
                self._openai = OpenAI(
                    api_key=self.config.openai_api_key,
                    timeout=timeout,
                )
            return self._openai

    @property
    def redis(self) -> Redis:
        """Get Redis client (lazy init)."""
        with self._lock:
            if self._redis is None:
                if not self.config.redis_host or not self.config.redis_port:
                    raise ConfigError("REDIS_HOST/REDIS_PORT not set")
                pool = ConnectionPool(
                    host=self.config.redis_host,
                    port=self.config.redis_port,
                    username=self.config.redis_username or None,
                    password=self.config.redis_password or None,
                    max_connections=REDIS_POOL_MAX_CONNECTIONS,
                    socket_timeout=REDIS_POOL_SOCKET_TIMEOUT_S,
                    socket_connect_timeout=REDIS_POOL_SOCKET_CONNECT_TIMEOUT_S,
                    health_check_interval=REDIS_POOL_HEALTH_CHECK_INTERVAL_S,
                    decode_responses=True,
                )
                self._redis = Redis(connection_pool=pool)
            return self._redis

    @property
    def encoder(self):
        """Get tiktoken encoder (lazy init)."""
        with self._lock:
            if self._encoder is None:
                try:
                    self._encoder = tiktoken.encoding_for_model(
                        self.config.embed_model
                    )
                except KeyError:
                    self._encoder = tiktoken.get_encoding("cl100k_base")
            return self._encoder

    @property
    def embedder(self) -> Embedder:
        """Get embeddings wrapper (lazy init)."""
        with self._lock:
            if self._embedder is None:
                self._embedder = OpenAIEmbedder(
                    self.openai,
                    model=self.config.embed_model,
                    encoder=self.encoder,
                )
            return self._embedder

    @property
    def vector_store(self) -> VectorStore:
        """Get VectorStore wrapper (lazy init)."""
        with self._lock:
            if self._vector_store is None:
                self._vector_store = PineconeVectorStore(
                    self.pinecone,
                    cloud=self.config.pinecone_cloud,
                    region=self.config.pinecone_region,
                )
            return self._vector_store

    @property
    def language_classifier(self) -> LanguageClassifier:
        with self._lock:
            if self._language_classifier is None:
                self._language_classifier = OpenAILanguageClassifier(
                    self.openai, model=self.config.language_model)
            return self._language_classifier

    @property
    def session_store(self) -> SessionStore:
        with self._lock:
            if self._session_store is None:
                if self.config.session_backend == "redis":
                    self._session_store = RedisSessionStore(self.redis)
                else:
                    self._session_store = NoOpSessionStore()
            return self._session_store

    @property
    def progress_store(self) -> ProgressStore:
        with self._lock:
            if self._progress_store is None:
                if self.config.progress_backend == "redis":
                    self._progress_store = RedisProgressStore(
                        self.redis, ttl_seconds=self.config.progress_ttl_seconds)
                else:
                    self._progress_store = InMemoryProgressStore(
                        ttl_seconds=self.config.progress_ttl_seconds)
            return self._progress_store
