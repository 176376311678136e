"""
Header grammars for chat-export lines.

Each grammar recognises one date/time/sender punctuation variant. They are
tried in priority order and the first match wins for a line.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from config.constant import TWO_DIGIT_YEAR_PIVOT

_DATE_SPLIT = re.compile(r"[/.]")


@dataclass(frozen=True)
class HeaderMatch:
    grammar: str
    date_text: str
    time_text: str
    period: str
    sender: str
    content: str
    day_first: bool = True

    @property
    def timestamp(self) -> str:
        suffix = f" {self.period}" if self.period else ""
        return f"{self.date_text}, {self.time_text}{suffix}"


@dataclass(frozen=True)
class HeaderGrammar:
    """A named header pattern; ``day_first`` is False for US month/day dates."""

    name: str
    pattern: re.Pattern[str]
    day_first: bool = True

    def match(self, line: str) -> Optional[HeaderMatch]:
        found = self.pattern.match(line)
        if found is None:
            return None
        groups = found.groupdict()
        return HeaderMatch(
            grammar=self.name,
            date_text=groups["date"],
            time_text=groups["time"],
            period=(groups.get("period") or "").upper(),
            sender=groups["sender"].strip(),
            content=groups["content"].strip(),
            day_first=self.day_first,
        )


HEADER_GRAMMARS: tuple[HeaderGrammar, ...] = (
    # [DD/MM/YYYY, HH:MM:SS] Name: text (optional AM/PM)
    HeaderGrammar(
        name="bracketed_slash",
        pattern=re.compile(
            r"^\[(?P<date>\d{1,2}/\d{1,2}/\d{2,4}), (?P<time>\d{1,2}:\d{2}:\d{2})"
            r"(?:\s?(?P<period>[AaPp][Mm]))?\]\s*(?P<sender>[^:]+):\s*(?P<content>.+)$"
        ),
    ),
    # [DD/MM/YY, HH:MM:SS AM] Name: text
    HeaderGrammar(
        name="bracketed_slash_12h",
        pattern=re.compile(
            r"^\[(?P<date>\d{1,2}/\d{1,2}/\d{2}), (?P<time>\d{1,2}:\d{2}:\d{2})"
            r"\s(?P<period>[AaPp][Mm])\]\s*(?P<sender>[^:]+):\s*(?P<content>.+)$"
        ),
    ),
    # DD/MM/YYYY, HH:MM - Name: text
    HeaderGrammar(
        name="dashed_slash",
        pattern=re.compile(
            r"^(?P<date>\d{1,2}/\d{1,2}/\d{4}), (?P<time>\d{1,2}:\d{2})"
            r"\s?-\s*(?P<sender>[^:]+):\s*(?P<content>.+)$"
        ),
    ),
    # [DD.MM.YY, HH:MM:SS] Name: text
    HeaderGrammar(
        name="bracketed_dotted",
        pattern=re.compile(
            r"^\[(?P<date>\d{1,2}\.\d{1,2}\.\d{2,4}), (?P<time>\d{1,2}:\d{2}:\d{2})"
            r"\]\s*(?P<sender>[^:]+):\s*(?P<content>.+)$"
        ),
    ),
    # MM/DD/YYYY, HH:MM AM - Name: text
    HeaderGrammar(
        name="us_dashed_12h",
        pattern=re.compile(
            r"^(?P<date>\d{1,2}/\d{1,2}/\d{4}), (?P<time>\d{1,2}:\d{2})"
            r"\s(?P<period>[AaPp][Mm])\s-\s(?P<sender>[^:]+):\s*(?P<content>.+)$"
        ),
        day_first=False,
    ),
)


def match_header(
    line: str,
    grammars: tuple[HeaderGrammar, ...] = HEADER_GRAMMARS,
) -> Optional[HeaderMatch]:
    """Return the first grammar match for ``line`` or None."""
    for grammar in grammars:
        header = grammar.match(line)
        if header is not None:
            return header
    return None


def expand_year(year: int) -> int:
    if year >= 100:
        return year
    return 1900 + year if year >= TWO_DIGIT_YEAR_PIVOT else 2000 + year


def parse_header_date(
    date_text: str,
    time_text: str,
    period: str = "",
    *,
    day_first: bool = True,
) -> Optional[datetime]:
    """
    Build a datetime from header fragments.

    Two-digit years pivot at 50 and a 12-hour period is folded into the hour.
    Returns None for anything that does not form a real calendar date.
    """
    try:
        first, second, year = (int(part) for part in _DATE_SPLIT.split(date_text))
        time_parts = [int(part) for part in time_text.split(":")]
    except ValueError:
        return None

    day, month = (first, second) if day_first else (second, first)
    hours, minutes = time_parts[0], time_parts[1]
    seconds = time_parts[2] if len(time_parts) > 2 else 0

    period = period.upper()
    if period == "PM" and hours != 12:
        hours += 12
    elif period == "AM" and hours == 12:
        hours = 0

    try:
        return datetime(expand_year(year), month, day, hours, minutes, seconds)
    except ValueError:
        return None


__all__ = [
    "HeaderMatch",
    "HeaderGrammar",
    "HEADER_GRAMMARS",
    "match_header",
    "expand_year",
    "parse_header_date",
]
