# Embedder port
from __future__ import annotations

import logging
import random
import time
from typing import Any, Optional, Protocol

from openai import (
    APIError,
    APIConnectionError,
    APITimeoutError,
    RateLimitError,
    AuthenticationError,
    PermissionDeniedError,
    BadRequestError,
    NotFoundError,
    ConflictError,
    UnprocessableEntityError,
    OpenAI,
)

from config.constant import (
    DEFAULT_EMBED_MODEL,
    EMBED_MAX_INPUT_TOKENS,
    EMBED_MAX_RETRIES,
    RETRY_EXP_MAX,
    RETRY_EXP_MIN,
    RETRY_EXP_MULTIPLIER,
)
from ingest_exceptions import ConfigError, EmbeddingError

logger = logging.getLogger(__name__)


class Embedder(Protocol):
    def embed_texts(self, texts: list[str]) -> list[list[float]]: ...


class OpenAIEmbedder:
    """
    OpenAI embeddings with retry and backoff.

    One call embeds one batch. Vectors are returned in input order; callers
    must still check the count. Auth and model errors raise ConfigError and
    are not retried, everything else that survives retries raises
    EmbeddingError.
    """

    def __init__(
        self,
        client: OpenAI,
        *,
        model: str = DEFAULT_EMBED_MODEL,
        encoder: Any = None,
        max_input_tokens: int = EMBED_MAX_INPUT_TOKENS,
        max_retries: int = EMBED_MAX_RETRIES,
        timeout: Optional[float] = None,
    ):
        self._client = client
        self._model = model
        self._encoder = encoder
        self._max_input_tokens = max_input_tokens
        self._max_retries = max(1, max_retries)
        self._timeout = timeout

    def _sleep_backoff(self, attempt: int) -> None:
        # Exponential backoff with jitter.
        base = min(RETRY_EXP_MAX, RETRY_EXP_MIN * (RETRY_EXP_MULTIPLIER ** attempt))
        time.sleep(min(RETRY_EXP_MAX, base + random.random()))

    def _truncate(self, text: str) -> str:
        if self._encoder is None:
            return text
        tokens = self._encoder.encode(text)
        if len(tokens) <= self._max_input_tokens:
            return text
        return self._encoder.decode(tokens[: self._max_input_tokens])

    def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        inputs = [self._truncate(text) for text in texts]

        for attempt in range(self._max_retries):
            last_attempt = attempt >= self._max_retries - 1
            try:
                res = self._client.embeddings.create(
                    model=self._model,
                    input=inputs,
                    timeout=self._timeout,
                )
                ordered = sorted(res.data, key=lambda item: item.index)
                return [item.embedding for item in ordered]
            except RateLimitError as error:
                if last_attempt:
                    raise EmbeddingError(f"embedding rate limited: {error}") from error
                logger.warning("Embedding rate limited (attempt %d)", attempt + 1)
                self._sleep_backoff(attempt)
            except (APIConnectionError, APITimeoutError) as error:
                if last_attempt:
                    raise EmbeddingError(f"embedding network error: {error}") from error
                logger.warning("Embedding network error (attempt %d): %s",
                               attempt + 1, error)
                self._sleep_backoff(attempt)
            except (AuthenticationError, PermissionDeniedError) as error:
                raise ConfigError(f"OpenAI API key rejected: {error}") from error
            except NotFoundError as error:
                raise ConfigError(
                    f"Embedding model '{self._model}' not found: {error}") from error
            except (BadRequestError, UnprocessableEntityError, ConflictError) as error:
                raise EmbeddingError(f"embedding request rejected: {error}") from error
            except APIError as error:
                if last_attempt:
                    raise EmbeddingError(f"embedding API error: {error}") from error
                self._sleep_backoff(attempt)
        raise EmbeddingError("embedding failed after retries")


__all__ = [
    "Embedder",
    "OpenAIEmbedder",
]
