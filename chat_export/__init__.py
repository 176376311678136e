"""
Chat export package exports.
"""

from .types import Message, ParsingStats, ParsedCorpus, ValidationReport
from .grammars import HeaderGrammar, HeaderMatch, HEADER_GRAMMARS, parse_header_date
from .parser import ChatExportParser, parse_chat_export, validate_export
from .filters import (
    strip_directional_marks,
    filter_messages_by_sender,
    select_participant_messages,
)
from .statistics import MessageStatistics, compute_message_statistics, detect_languages

__all__ = [
    "Message",
    "ParsingStats",
    "ParsedCorpus",
    "ValidationReport",
    "HeaderGrammar",
    "HeaderMatch",
    "HEADER_GRAMMARS",
    "parse_header_date",
    "ChatExportParser",
    "parse_chat_export",
    "validate_export",
    "strip_directional_marks",
    "filter_messages_by_sender",
    "select_participant_messages",
    "MessageStatistics",
    "compute_message_statistics",
    "detect_languages",
]
