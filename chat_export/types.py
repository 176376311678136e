"""
Shared types for parsed chat exports.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class Message:
    """A single chat message recovered from an export line."""

    sender: str
    content: str
    timestamp: str
    parsed_date: Optional[datetime] = None
    is_system_message: bool = False
    grammar: str = ""

    def append_continuation(self, text: str) -> None:
        """Fold a header-less follow-up line into this message."""
        self.content = f"{self.content} {text}"


@dataclass
class ParsingStats:
    total_lines: int = 0
    successfully_parsed: int = 0
    skipped_system_messages: int = 0
    continuation_lines: int = 0
    errors: int = 0

    @property
    def success_rate(self) -> int:
        if self.total_lines == 0:
            return 0
        return round(100 * self.successfully_parsed / self.total_lines)


@dataclass(frozen=True)
class ParsedCorpus:
    messages: list[Message]
    participants: frozenset[str]
    success_rate: int
    stats: ParsingStats
    date_range: str = "Unknown"
    preview: list[str] = field(default_factory=list)

    @property
    def total_messages(self) -> int:
        return len(self.messages)


@dataclass(frozen=True)
class ValidationReport:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)


__all__ = [
    "Message",
    "ParsingStats",
    "ParsedCorpus",
    "ValidationReport",
]
