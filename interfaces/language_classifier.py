# LanguageClassifier port
from __future__ import annotations

from typing import Protocol

from openai import OpenAI

from config.constant import (
    LANGUAGE_MAX_TOKENS,
    LANGUAGE_MODEL,
    LANGUAGE_SYSTEM_PROMPT,
    LANGUAGE_USER_PROMPT,
)


class LanguageClassifier(Protocol):
    def classify(self, sample_text: str) -> str: ...


class OpenAILanguageClassifier:
    """Returns a comma-separated list of language names for a text sample."""

    def __init__(
        self,
        client: OpenAI,
        *,
        model: str = LANGUAGE_MODEL,
        max_tokens: int = LANGUAGE_MAX_TOKENS,
    ):
        self._client = client
        self._model = model
        self._max_tokens = max_tokens

    def classify(self, sample_text: str) -> str:
        response = self._client.chat.completions.create(
            model=self._model,
            messages=[
                {"role": "system", "content": LANGUAGE_SYSTEM_PROMPT},
                {"role": "user",
                 "content": LANGUAGE_USER_PROMPT.format(sample=sample_text)},
            ],
            max_tokens=self._max_tokens,
            temperature=0,
        )
        return response.choices[0].message.content or ""


__all__ = [
    "LanguageClassifier",
    "OpenAILanguageClassifier",
]
