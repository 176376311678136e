"""Tests for message statistics and best-effort language detection."""
from __future__ import annotations

import pytest

from chat_export import Message, compute_message_statistics, detect_languages
from chat_export.statistics import contains_emoji
from conftest import StubClassifier


def _messages(*contents: str) -> list[Message]:
    return [
        Message(sender="Ann", content=content, timestamp="01/03/2024, 10:00:00")
        for content in contents
    ]


def test_statistics_for_known_corpus():
    messages = _messages(
        "hi!!",                        # 4 chars, punctuated
        "how are you doing today?",    # 24 chars, question
        "great \N{GRINNING FACE}",     # 7 chars, emoji, no punctuation
        "sure",                        # 4 chars, single word
    )

    stats = compute_message_statistics(messages)

    assert stats.total_messages == 4
    assert stats.avg_characters == round((4 + 24 + 7 + 4) / 4, 1)
    assert stats.avg_words == round((1 + 5 + 2 + 1) / 4, 1)
    assert stats.shortest == 4
    assert stats.longest == 24
    assert stats.median_characters == 7
    assert stats.very_short_percent == 75
    assert stats.without_punctuation_percent == 50
    assert stats.emoji_percent == 25
    assert stats.single_word_percent == 50
    assert stats.question_percent == 25


def test_statistics_empty_sequence():
    assert compute_message_statistics([]) is None


def test_statistics_to_dict_is_plain():
    stats = compute_message_statistics(_messages("hello there."))
    payload = stats.to_dict()
    assert payload["total_messages"] == 1
    assert payload["without_punctuation_percent"] == 0


@pytest.mark.parametrize(
    "text,expected",
    [
        ("sun \N{BLACK SUN WITH RAYS}", True),
        ("rocket \N{ROCKET}", True),
        ("plain text", False),
        ("accents \N{LATIN SMALL LETTER E WITH ACUTE}", False),
    ],
)
def test_contains_emoji(text, expected):
    assert contains_emoji(text) is expected


class TestDetectLanguages:

    def test_splits_comma_separated_reply(self):
        classifier = StubClassifier("Dutch, English ,  ")
        assert detect_languages(_messages("hallo daar"), classifier) == ["Dutch", "English"]

    def test_sample_is_first_messages_one_per_line(self):
        classifier = StubClassifier("English")
        messages = _messages(*(f"message {i}" for i in range(15)))

        detect_languages(messages, classifier, sample_size=10)

        lines = classifier.samples[0].split("\n")
        assert lines == [f"message {i}" for i in range(10)]

    def test_missing_classifier(self):
        assert detect_languages(_messages("hello"), None) == ["unknown"]

    def test_provider_error(self):
        classifier = StubClassifier(error=RuntimeError("quota exceeded"))
        assert detect_languages(_messages("hello"), classifier) == ["unknown"]

    def test_empty_reply(self):
        assert detect_languages(_messages("hello"), StubClassifier("")) == ["unknown"]
