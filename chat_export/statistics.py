"""
Descriptive statistics and best-effort language detection for a
participant's messages.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any, Optional

from config.constant import (
    EMOJI_RANGES,
    LANGUAGE_SAMPLE_SIZE,
    TERMINAL_PUNCTUATION,
    UNKNOWN_LANGUAGE,
    VERY_SHORT_MESSAGE_CHARS,
)
from .types import Message

if TYPE_CHECKING:
    from interfaces.language_classifier import LanguageClassifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MessageStatistics:
    total_messages: int
    avg_characters: float
    avg_words: float
    median_characters: int
    shortest: int
    longest: int
    very_short_percent: int
    without_punctuation_percent: int
    emoji_percent: int
    single_word_percent: int
    question_percent: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def contains_emoji(text: str) -> bool:
    for char in text:
        code = ord(char)
        if any(low <= code <= high for low, high in EMOJI_RANGES):
            return True
    return False


def _percent(count: int, total: int) -> int:
    return round(100 * count / total) if total else 0


def compute_message_statistics(messages: Sequence[Message]) -> Optional[MessageStatistics]:
    """Return corpus statistics, or None for an empty sequence."""
    if not messages:
        return None

    contents = [message.content for message in messages]
    total = len(contents)
    lengths = sorted(len(content) for content in contents)
    word_counts = [len(content.split()) for content in contents]

    return MessageStatistics(
        total_messages=total,
        avg_characters=round(sum(lengths) / total, 1),
        avg_words=round(sum(word_counts) / total, 1),
        median_characters=lengths[total // 2],
        shortest=lengths[0],
        longest=lengths[-1],
        very_short_percent=_percent(
            sum(1 for length in lengths if length <= VERY_SHORT_MESSAGE_CHARS), total),
        without_punctuation_percent=_percent(
            sum(1 for content in contents
                if not content.rstrip().endswith(TERMINAL_PUNCTUATION)), total),
        emoji_percent=_percent(
            sum(1 for content in contents if contains_emoji(content)), total),
        single_word_percent=_percent(
            sum(1 for count in word_counts if count == 1), total),
        question_percent=_percent(
            sum(1 for content in contents if "?" in content), total),
    )


def detect_languages(
    messages: Sequence[Message],
    classifier: "LanguageClassifier | None",
    *,
    sample_size: int = LANGUAGE_SAMPLE_SIZE,
) -> list[str]:
    """
    Ask the classifier for the language(s) of the first ``sample_size``
    messages. Never raises: any failure yields ``["unknown"]``.
    """
    if classifier is None or not messages:
        return [UNKNOWN_LANGUAGE]

    sample = "\n".join(message.content for message in messages[:sample_size])
    try:
        reply = classifier.classify(sample)
    except Exception as error:  # pylint: disable=broad-except
        logger.warning("Language detection failed: %s", error)
        return [UNKNOWN_LANGUAGE]

    languages = [part.strip() for part in (reply or "").split(",") if part.strip()]
    return languages or [UNKNOWN_LANGUAGE]


__all__ = [
    "MessageStatistics",
    "contains_emoji",
    "compute_message_statistics",
    "detect_languages",
]
