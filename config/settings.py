#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Configuration settings for the chat ingestion pipeline.
Loaded from the environment (and a local .env) with validation.
"""

from dataclasses import dataclass
import os
import logging

from dotenv import load_dotenv

from ingest_exceptions import ConfigError
from .constant import (
    DEFAULT_EMBED_MODEL,
    DEFAULT_METRIC,
    DEFAULT_PINECONE_CLOUD,
    DEFAULT_PINECONE_REGION,
    DIMENSION,
    EMBED_BATCH_SIZE,
    EMBED_LOSS_WARN_RATIO,
    EMBED_PACING_SECONDS,
    LANGUAGE_MODEL,
    LANGUAGE_SAMPLE_SIZE,
    MAX_CONCURRENT_UPLOADS,
    MIN_PARTICIPANT_MESSAGES,
    OPENAI_CONNECT_TIMEOUT_S,
    OPENAI_POOL_TIMEOUT_S,
    OPENAI_READ_TIMEOUT_S,
    OPENAI_TIMEOUT_DEFAULT_S,
    OPENAI_WRITE_TIMEOUT_S,
    PROGRESS_TTL_SECONDS,
    SUPPORTED_DIMENSIONS,
    SUPPORTED_METRICS,
    UPLOAD_TIMEOUT_SECONDS,
    UPSERT_CHUNK_SIZE,
)

load_dotenv()

PROGRESS_BACKENDS = ("memory", "redis")
SESSION_BACKENDS = ("redis", "none")


# ===========================================================================
# PIPELINE CONFIGURATION
# ===========================================================================


@dataclass
class PipelineConfig:
    """Centralised configuration for chat uploads."""

    openai_api_key: str
    pinecone_api_key: str
    redis_host: str = ""
    redis_port: int = 0
    redis_username: str = ""
    redis_password: str = ""

    embed_model: str = DEFAULT_EMBED_MODEL
    dimension: int = DIMENSION
    metric: str = DEFAULT_METRIC
    pinecone_cloud: str = DEFAULT_PINECONE_CLOUD
    pinecone_region: str = DEFAULT_PINECONE_REGION

    embed_batch: int = EMBED_BATCH_SIZE
    upsert_batch: int = UPSERT_CHUNK_SIZE
    embed_pacing_seconds: float = EMBED_PACING_SECONDS
    embed_loss_warn_ratio: float = EMBED_LOSS_WARN_RATIO
    min_messages: int = MIN_PARTICIPANT_MESSAGES

    language_model: str = LANGUAGE_MODEL
    language_sample_size: int = LANGUAGE_SAMPLE_SIZE

    progress_backend: str = "memory"
    progress_ttl_seconds: int = PROGRESS_TTL_SECONDS
    session_backend: str = "redis"

    max_concurrent_uploads: int = MAX_CONCURRENT_UPLOADS
    upload_timeout_seconds: float = UPLOAD_TIMEOUT_SECONDS
    openai_timeout: float = OPENAI_TIMEOUT_DEFAULT_S
    openai_connect_timeout: float = OPENAI_CONNECT_TIMEOUT_S
    openai_read_timeout: float = OPENAI_READ_TIMEOUT_S
    openai_write_timeout: float = OPENAI_WRITE_TIMEOUT_S
    openai_pool_timeout: float = OPENAI_POOL_TIMEOUT_S
    log_level: str = "INFO"

    # -----------------------------------------------------------------------
    # ENVIRONMENT LOADERS
    # -----------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        oai_key = os.getenv("OPENAI_API_KEY")
        api_key = os.getenv("PINECONE_API_KEY")
        if not oai_key:
            raise ConfigError("OPENAI_API_KEY not set")
        if not api_key:
            raise ConfigError("PINECONE_API_KEY not set")
        defaults = PipelineConfig(openai_api_key="", pinecone_api_key="")

        return cls(
            openai_api_key=oai_key,
            pinecone_api_key=api_key,
            redis_host=os.getenv("REDIS_HOST", defaults.redis_host),
            redis_port=int(os.getenv("REDIS_PORT") or defaults.redis_port),
            redis_username=os.getenv("REDIS_USERNAME", defaults.redis_username),
            redis_password=os.getenv("REDIS_PASSWORD", defaults.redis_password),
            embed_model=os.getenv("EMBED_MODEL", defaults.embed_model),
            dimension=int(os.getenv("DIMENSION", str(defaults.dimension))),
            metric=os.getenv("VECTOR_METRIC", defaults.metric),
            pinecone_cloud=os.getenv("PINECONE_CLOUD", defaults.pinecone_cloud),
            pinecone_region=os.getenv(
                "PINECONE_REGION", defaults.pinecone_region),
            embed_batch=int(
                os.getenv("EMBED_BATCH", str(defaults.embed_batch))),
            upsert_batch=int(
                os.getenv("UPSERT_BATCH", str(defaults.upsert_batch))),
            embed_pacing_seconds=float(
                os.getenv("EMBED_PACING_SECONDS",
                          str(defaults.embed_pacing_seconds))),
            embed_loss_warn_ratio=float(
                os.getenv("EMBED_LOSS_WARN_RATIO",
                          str(defaults.embed_loss_warn_ratio))),
            min_messages=int(
                os.getenv("MIN_MESSAGES", str(defaults.min_messages))),
            language_model=os.getenv("LANGUAGE_MODEL", defaults.language_model),
            language_sample_size=int(
                os.getenv("LANGUAGE_SAMPLE_SIZE",
                          str(defaults.language_sample_size))),
            progress_backend=os.getenv(
                "PROGRESS_BACKEND", defaults.progress_backend).lower(),
            progress_ttl_seconds=int(
                os.getenv("PROGRESS_TTL_SECONDS",
                          str(defaults.progress_ttl_seconds))),
            session_backend=os.getenv(
                "SESSION_BACKEND", defaults.session_backend).lower(),
            max_concurrent_uploads=int(
                os.getenv("MAX_CONCURRENT_UPLOADS",
                          str(defaults.max_concurrent_uploads))),
            upload_timeout_seconds=float(
                os.getenv("UPLOAD_TIMEOUT_SECONDS",
                          str(defaults.upload_timeout_seconds))),
            openai_timeout=float(
                os.getenv("OPENAI_TIMEOUT", str(defaults.openai_timeout))),
            openai_connect_timeout=float(
                os.getenv("OPENAI_CONNECT_TIMEOUT",
                          str(defaults.openai_connect_timeout))),
            openai_read_timeout=float(
                os.getenv("OPENAI_READ_TIMEOUT",
                          str(defaults.openai_read_timeout))),
            openai_write_timeout=float(
                os.getenv("OPENAI_WRITE_TIMEOUT",
                          str(defaults.openai_write_timeout))),
            openai_pool_timeout=float(
                os.getenv("OPENAI_POOL_TIMEOUT",
                          str(defaults.openai_pool_timeout))),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
        )

    @property
    def uses_redis(self) -> bool:
        return self.progress_backend == "redis" or self.session_backend == "redis"

    # -----------------------------------------------------------------------
    # VALIDATION
    # -----------------------------------------------------------------------

    def validate(self) -> None:

        if self.dimension not in SUPPORTED_DIMENSIONS:
            raise ConfigError(f"Invalid embedding dimension: {self.dimension}")

        if self.metric not in SUPPORTED_METRICS:
            raise ConfigError(f"Invalid vector metric: {self.metric}")

        if self.embed_batch < 1 or self.embed_batch > 2048:
            raise ConfigError("embed_batch out of range (1-2048)")

        if self.upsert_batch < 1 or self.upsert_batch > 1000:
            raise ConfigError("upsert_batch out of range (1-1000)")

        if self.embed_pacing_seconds < 0:
            raise ConfigError("embed_pacing_seconds must be >= 0")
        if not 0 <= self.embed_loss_warn_ratio <= 1:
            raise ConfigError("embed_loss_warn_ratio out of range (0-1)")
        if self.min_messages < 1:
            raise ConfigError("min_messages must be >= 1")
        if self.language_sample_size < 1:
            raise ConfigError("language_sample_size must be >= 1")

        if self.progress_backend not in PROGRESS_BACKENDS:
            raise ConfigError(
                f"Invalid progress_backend: {self.progress_backend}")
        if self.session_backend not in SESSION_BACKENDS:
            raise ConfigError(
                f"Invalid session_backend: {self.session_backend}")
        if self.progress_ttl_seconds < 1:
            raise ConfigError("progress_ttl_seconds must be >= 1")

        if self.max_concurrent_uploads < 1:
            raise ConfigError("max_concurrent_uploads must be >= 1")
        if self.upload_timeout_seconds <= 0:
            raise ConfigError("upload_timeout_seconds must be > 0")
        if self.openai_timeout <= 0:
            raise ConfigError("openai_timeout must be > 0")
        if self.openai_connect_timeout <= 0:
            raise ConfigError("openai_connect_timeout must be > 0")
        if self.openai_read_timeout <= 0:
            raise ConfigError("openai_read_timeout must be > 0")
        if self.openai_write_timeout <= 0:
            raise ConfigError("openai_write_timeout must be > 0")
        if self.openai_pool_timeout <= 0:
            raise ConfigError("openai_pool_timeout must be > 0")
        if self.openai_timeout > self.upload_timeout_seconds:
            logging.warning(
                "openai_timeout (%.1fs) exceeds upload_timeout_seconds (%.1fs); "
                "the upload deadline may still abort long requests.",
                self.openai_timeout,
                self.upload_timeout_seconds,
            )

        if self.uses_redis:
            if not self.redis_host or not self.redis_port:
                raise ConfigError(
                    "redis_host/redis_port must be set when a Redis backend is selected")
            if self.redis_username and not self.redis_password:
                raise ConfigError(
                    "redis_password must be set when redis_username is provided"
                )
            logging.info(
                "Redis target: %s:%s",
                self.redis_host,
                self.redis_port,
            )


__all__ = [
    "PROGRESS_BACKENDS",
    "SESSION_BACKENDS",
    "PipelineConfig",
]
