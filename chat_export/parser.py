"""
Line-oriented parser for chat-export text files.

The parser walks the export one non-blank line at a time. Lines carrying a
recognised header become messages; header-less lines are folded into the
previous retained message as continuations. Placeholder lines (media
omitted, deleted messages, call notices) are counted and dropped.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from config.constant import (
    CHAT_SYSTEM_MESSAGES,
    PREVIEW_MAX_CHARS,
    PREVIEW_MAX_MESSAGES,
    PREVIEW_MIN_CHARS,
    VALIDATION_MIN_LINES,
)
from ingest_exceptions import EmptyCorpusError
from .filters import strip_directional_marks
from .grammars import (
    HEADER_GRAMMARS,
    HeaderGrammar,
    HeaderMatch,
    match_header,
    parse_header_date,
)
from .types import Message, ParsedCorpus, ParsingStats, ValidationReport

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = (
    "[DD/MM/YYYY, HH:MM:SS] Name: Message",
    "DD/MM/YYYY, HH:MM - Name: Message",
    "[DD.MM.YY, HH:MM:SS] Name: Message",
    "MM/DD/YYYY, HH:MM AM - Name: Message",
)


def _non_blank_lines(text: str) -> list[str]:
    return [line for line in text.splitlines() if line.strip()]


def _sort_by_date(messages: list[Message]) -> list[Message]:
    # Dated messages are reordered among their own slots; undated stay put.
    slots = [i for i, message in enumerate(messages)
             if message.parsed_date is not None]
    ordered = sorted((messages[i] for i in slots),
                     key=lambda message: message.parsed_date)
    result = list(messages)
    for slot, message in zip(slots, ordered):
        result[slot] = message
    return result


def _date_range(messages: list[Message]) -> str:
    if not messages:
        return "Unknown"
    first = messages[0].timestamp.split(",")[0]
    last = messages[-1].timestamp.split(",")[0]
    return first if first == last else f"{first} - {last}"


def _preview(messages: list[Message]) -> list[str]:
    lines: list[str] = []
    for message in messages:
        if message.is_system_message or len(message.content) <= PREVIEW_MIN_CHARS:
            continue
        snippet = message.content[:PREVIEW_MAX_CHARS]
        if len(message.content) > PREVIEW_MAX_CHARS:
            snippet += "..."
        lines.append(f"{message.sender}: {snippet}")
        if len(lines) >= PREVIEW_MAX_MESSAGES:
            break
    return lines


class ChatExportParser:
    """Turns raw export text into a ParsedCorpus."""

    def __init__(
        self,
        grammars: tuple[HeaderGrammar, ...] = HEADER_GRAMMARS,
        system_messages: Iterable[str] = CHAT_SYSTEM_MESSAGES,
    ):
        self.grammars = grammars
        self._system_markers = tuple(marker.lower() for marker in system_messages)

    def match_header(self, line: str) -> HeaderMatch | None:
        return match_header(strip_directional_marks(line), self.grammars)

    def is_system_message(self, content: str) -> bool:
        lowered = strip_directional_marks(content).lower()
        return any(marker in lowered for marker in self._system_markers)

    def _to_message(self, header: HeaderMatch) -> Message:
        return Message(
            sender=header.sender,
            content=header.content,
            timestamp=header.timestamp,
            parsed_date=parse_header_date(
                header.date_text,
                header.time_text,
                header.period,
                day_first=header.day_first,
            ),
            is_system_message=self.is_system_message(header.content),
            grammar=header.grammar,
        )

    def parse(self, text: str) -> ParsedCorpus:
        """
        Parse ``text`` into a corpus of retained (non-system) messages.

        Raises:
            EmptyCorpusError: when no message survives parsing.
        """
        lines = _non_blank_lines(text)
        stats = ParsingStats(total_lines=len(lines))
        messages: list[Message] = []
        participants: set[str] = set()

        for line in lines:
            header = self.match_header(line.strip())
            if header is None:
                if messages:
                    messages[-1].append_continuation(line.strip())
                    stats.continuation_lines += 1
                else:
                    stats.errors += 1
                continue

            message = self._to_message(header)
            if message.is_system_message:
                stats.skipped_system_messages += 1
                continue
            messages.append(message)
            participants.add(message.sender)
            stats.successfully_parsed += 1

        if not messages:
            raise EmptyCorpusError(
                f"No valid chat messages found. Parsed {stats.total_lines} lines, "
                f"found {stats.errors} errors. Supported formats: "
                + "; ".join(SUPPORTED_FORMATS)
            )

        messages = _sort_by_date(messages)
        logger.debug(
            "Parsed %d/%d lines (%d system, %d continuation, %d errors)",
            stats.successfully_parsed,
            stats.total_lines,
            stats.skipped_system_messages,
            stats.continuation_lines,
            stats.errors,
        )
        return ParsedCorpus(
            messages=messages,
            participants=frozenset(participants),
            success_rate=stats.success_rate,
            stats=stats,
            date_range=_date_range(messages),
            preview=_preview(messages),
        )

    def validate(self, text: str) -> ValidationReport:
        """Cheap pre-check: non-empty, long enough, at least one header line."""
        errors: list[str] = []
        suggestions: list[str] = []

        if not text or not text.strip():
            return ValidationReport(is_valid=False, errors=["File is empty"])

        lines = _non_blank_lines(text)
        if len(lines) < VALIDATION_MIN_LINES:
            errors.append("File seems too short to be a chat export")
            suggestions.append("Make sure you exported the full chat history")

        if not any(self.match_header(line.strip()) for line in lines):
            errors.append("No valid chat message format detected")
            suggestions.append('Make sure you exported the chat "Without Media"')
            suggestions.append(
                f"File should contain lines like: {SUPPORTED_FORMATS[0]}")

        return ValidationReport(
            is_valid=not errors,
            errors=errors,
            suggestions=suggestions,
        )


_DEFAULT_PARSER = ChatExportParser()


def parse_chat_export(text: str) -> ParsedCorpus:
    return _DEFAULT_PARSER.parse(text)


def validate_export(text: str) -> ValidationReport:
    return _DEFAULT_PARSER.validate(text)


__all__ = [
    "SUPPORTED_FORMATS",
    "ChatExportParser",
    "parse_chat_export",
    "validate_export",
]
