#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Constants for chat ingestion configuration.
"""

from __future__ import annotations

# ===========================================================================
# EMBEDDING / VECTOR STORE
# ===========================================================================
DEFAULT_EMBED_MODEL = "text-embedding-3-small"
DIMENSION = 1536
DEFAULT_METRIC = "cosine"
SUPPORTED_DIMENSIONS = (1536, 3072)
SUPPORTED_METRICS = ("cosine", "dotproduct", "euclidean")
DEFAULT_PINECONE_CLOUD = "aws"
DEFAULT_PINECONE_REGION = "us-east-1"
COLLECTION_NAME_PREFIX = "session-"

EMBED_BATCH_SIZE = 100
UPSERT_CHUNK_SIZE = 100
EMBED_PACING_SECONDS = 0.0
EMBED_LOSS_WARN_RATIO = 0.3
EMBED_MAX_INPUT_TOKENS = 8191
EMBED_MAX_RETRIES = 3
RETRY_EXP_MULTIPLIER = 2
RETRY_EXP_MIN = 1
RETRY_EXP_MAX = 10

# ===========================================================================
# LANGUAGE DETECTION
# ===========================================================================
LANGUAGE_MODEL = "gpt-4o-mini"
LANGUAGE_SAMPLE_SIZE = 10
LANGUAGE_MAX_TOKENS = 30
LANGUAGE_SYSTEM_PROMPT = "You are a language detection expert."
LANGUAGE_USER_PROMPT = (
    "Detect the language(s) used in the following chat messages. "
    "Reply with a comma-separated list of language names "
    "(in English, e.g. 'Dutch, Danish, English').\n\n{sample}"
)
UNKNOWN_LANGUAGE = "unknown"

# ===========================================================================
# PARSING / FILTERING
# ===========================================================================
MIN_PARTICIPANT_MESSAGES = 10
MIN_MESSAGE_CHARS = 3
VALIDATION_MIN_LINES = 5
TWO_DIGIT_YEAR_PIVOT = 50
PREVIEW_MAX_MESSAGES = 5
PREVIEW_MIN_CHARS = 10
PREVIEW_MAX_CHARS = 80

# Matched case-insensitively as substrings of the message content.
CHAT_SYSTEM_MESSAGES: tuple[str, ...] = (
    "<Media omitted>",
    "Messages and calls are end-to-end encrypted",
    "This message was deleted",
    "You deleted this message",
    "image omitted",
    "video omitted",
    "audio omitted",
    "document omitted",
    "GIF omitted",
    "sticker omitted",
    "Contact card omitted",
    "Location omitted",
    "Missed voice call",
    "Missed video call",
    "Voice call",
    "Video call",
)

# LRM, RLM, LRE, RLE, PDF
DIRECTIONAL_CONTROL_CHARS: tuple[str, ...] = (
    "\u200e",
    "\u200f",
    "\u202a",
    "\u202b",
    "\u202c",
)

# ===========================================================================
# STATISTICS
# ===========================================================================
VERY_SHORT_MESSAGE_CHARS = 10
TERMINAL_PUNCTUATION = (".", "!", "?")
EMOJI_RANGES: tuple[tuple[int, int], ...] = (
    (0x1F600, 0x1F64F),
    (0x1F300, 0x1F5FF),
    (0x1F680, 0x1F6FF),
    (0x1F1E0, 0x1F1FF),
    (0x2600, 0x26FF),
    (0x2700, 0x27BF),
)

# ===========================================================================
# PROGRESS
# ===========================================================================
PROGRESS_READING_START = 5
PROGRESS_PARSING_START = 15
PROGRESS_PARSED = 25
PROGRESS_ANALYZING_START = 30
PROGRESS_ANALYZING_END = 80
PROGRESS_FINALIZING_START = 85
PROGRESS_FINALIZING_END = 95
PROGRESS_COMPLETE = 100
PROGRESS_TTL_SECONDS = 60 * 60
PROGRESS_KEY_PREFIX = "chat_ingest:progress:"
SESSION_KEY_PREFIX = "chat_ingest:session:"

# ===========================================================================
# RUNTIME
# ===========================================================================
MAX_CONCURRENT_UPLOADS = 4
UPLOAD_TIMEOUT_SECONDS = 15 * 60
OPENAI_TIMEOUT_DEFAULT_S = 60.0
OPENAI_CONNECT_TIMEOUT_S = 10.0
OPENAI_READ_TIMEOUT_S = 60.0
OPENAI_WRITE_TIMEOUT_S = 60.0
OPENAI_POOL_TIMEOUT_S = 30.0

REDIS_POOL_MAX_CONNECTIONS = 20
REDIS_POOL_SOCKET_TIMEOUT_S = 5.0
REDIS_POOL_SOCKET_CONNECT_TIMEOUT_S = 5.0
REDIS_POOL_HEALTH_CHECK_INTERVAL_S = 30.0


__all__ = [
    "DEFAULT_EMBED_MODEL",
    "DIMENSION",
    "DEFAULT_METRIC",
    "SUPPORTED_DIMENSIONS",
    "SUPPORTED_METRICS",
    "DEFAULT_PINECONE_CLOUD",
    "DEFAULT_PINECONE_REGION",
    "COLLECTION_NAME_PREFIX",
    "EMBED_BATCH_SIZE",
    "UPSERT_CHUNK_SIZE",
    "EMBED_PACING_SECONDS",
    "EMBED_LOSS_WARN_RATIO",
    "EMBED_MAX_INPUT_TOKENS",
    "EMBED_MAX_RETRIES",
    "RETRY_EXP_MULTIPLIER",
    "RETRY_EXP_MIN",
    "RETRY_EXP_MAX",
    "LANGUAGE_MODEL",
    "LANGUAGE_SAMPLE_SIZE",
    "LANGUAGE_MAX_TOKENS",
    "LANGUAGE_SYSTEM_PROMPT",
    "LANGUAGE_USER_PROMPT",
    "UNKNOWN_LANGUAGE",
    "MIN_PARTICIPANT_MESSAGES",
    "MIN_MESSAGE_CHARS",
    "VALIDATION_MIN_LINES",
    "TWO_DIGIT_YEAR_PIVOT",
    "PREVIEW_MAX_MESSAGES",
    "PREVIEW_MIN_CHARS",
    "PREVIEW_MAX_CHARS",
    "CHAT_SYSTEM_MESSAGES",
    "DIRECTIONAL_CONTROL_CHARS",
    "VERY_SHORT_MESSAGE_CHARS",
    "TERMINAL_PUNCTUATION",
    "EMOJI_RANGES",
    "PROGRESS_READING_START",
    "PROGRESS_PARSING_START",
    "PROGRESS_PARSED",
    "PROGRESS_ANALYZING_START",
    "PROGRESS_ANALYZING_END",
    "PROGRESS_FINALIZING_START",
    "PROGRESS_FINALIZING_END",
    "PROGRESS_COMPLETE",
    "PROGRESS_TTL_SECONDS",
    "PROGRESS_KEY_PREFIX",
    "SESSION_KEY_PREFIX",
    "MAX_CONCURRENT_UPLOADS",
    "UPLOAD_TIMEOUT_SECONDS",
    "OPENAI_TIMEOUT_DEFAULT_S",
    "OPENAI_CONNECT_TIMEOUT_S",
    "OPENAI_READ_TIMEOUT_S",
    "OPENAI_WRITE_TIMEOUT_S",
    "OPENAI_POOL_TIMEOUT_S",
    "REDIS_POOL_MAX_CONNECTIONS",
    "REDIS_POOL_SOCKET_TIMEOUT_S",
    "REDIS_POOL_SOCKET_CONNECT_TIMEOUT_S",
    "REDIS_POOL_HEALTH_CHECK_INTERVAL_S",
]
