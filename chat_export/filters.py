"""
Participant selection and content normalisation for parsed chat messages.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace

from config.constant import (
    DIRECTIONAL_CONTROL_CHARS,
    MIN_MESSAGE_CHARS,
    MIN_PARTICIPANT_MESSAGES,
)
from ingest_exceptions import (
    InsufficientMessagesError,
    NoMessagesForParticipantError,
)
from .types import Message, ParsedCorpus

logger = logging.getLogger(__name__)

_DIRECTIONAL_TABLE = {ord(char): None for char in DIRECTIONAL_CONTROL_CHARS}


def strip_directional_marks(
    text: str,
    chars: Iterable[str] | None = None,
) -> str:
    """Remove bidi marks and embedding controls, then trim whitespace."""
    table = _DIRECTIONAL_TABLE if chars is None else {
        ord(char): None for char in chars}
    return text.translate(table).strip()


def filter_messages_by_sender(
    messages: Sequence[Message],
    sender: str,
    *,
    min_chars: int = MIN_MESSAGE_CHARS,
) -> list[Message]:
    """
    Keep ``sender``'s non-system messages longer than ``min_chars``.

    Content is cleaned before the length check, so running the filter over
    its own output returns the same sequence. Input messages are not mutated.
    """
    kept: list[Message] = []
    for message in messages:
        if message.sender != sender or message.is_system_message:
            continue
        cleaned = strip_directional_marks(message.content)
        if len(cleaned) <= min_chars:
            continue
        kept.append(message if cleaned == message.content
                    else replace(message, content=cleaned))
    return kept


def select_participant_messages(
    corpus: ParsedCorpus,
    participant: str,
    *,
    min_messages: int = MIN_PARTICIPANT_MESSAGES,
) -> list[Message]:
    """Filter the corpus for one participant and enforce the minimum count."""
    selected = filter_messages_by_sender(corpus.messages, participant)
    if not selected:
        logger.info(
            "No messages for participant %r (known: %s)",
            participant,
            ", ".join(sorted(corpus.participants)) or "none",
        )
        raise NoMessagesForParticipantError(participant)
    if len(selected) < min_messages:
        raise InsufficientMessagesError(len(selected), participant, min_messages)
    return selected


__all__ = [
    "strip_directional_marks",
    "filter_messages_by_sender",
    "select_participant_messages",
]
