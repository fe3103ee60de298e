"""Parsing of the structured expert roster embedded in brainlift documents."""

import logging
import re
from typing import List, Optional

from .models import ExpertMention

logger = logging.getLogger(__name__)


class RosterParser:
    """Extracts ExpertMention entries from a document's "DOK1: Experts" section."""

    SECTION_MARKER = "DOK1: Experts"
    DEFAULT_WINDOW = 5000

    BLOCK_SPLIT_PATTERN = re.compile(r"- Expert \d+", re.IGNORECASE)
    WHO_PATTERN = re.compile(r"- Who:[ \t]*([^;\n]+)", re.IGNORECASE)
    WHERE_PATTERN = re.compile(r"- Where:[ \t]*(.+)", re.IGNORECASE)
    FOCUS_PATTERN = re.compile(r"- Focus:[ \t]*(.+)", re.IGNORECASE)
    HANDLE_PATTERN = re.compile(r"@[A-Za-z0-9_]+")

    def __init__(self, window: int = DEFAULT_WINDOW):
        """Initialize parser.

        Args:
            window: Number of characters scanned after the section marker
        """
        self.window = window

    def parse(self, document_text: str) -> List[ExpertMention]:
        """Parse the roster section; a document without one yields an empty list."""
        if not document_text:
            return []

        marker_index = document_text.find(self.SECTION_MARKER)
        if marker_index == -1:
            logger.debug("No expert roster section found in document")
            return []

        section = document_text[marker_index:marker_index + self.window]
        blocks = self.BLOCK_SPLIT_PATTERN.split(section)

        mentions = []
        for block in blocks[1:]:
            mention = self._parse_block(block)
            if mention is not None:
                mentions.append(mention)

        logger.info(f"Parsed {len(mentions)} experts from roster section")
        return mentions

    def _parse_block(self, block: str) -> Optional[ExpertMention]:
        who_match = self.WHO_PATTERN.search(block)
        if not who_match:
            return None

        name = re.sub(r"[;.]$", "", who_match.group(1).strip()).strip()
        if not name:
            return None

        return ExpertMention(
            name=name,
            handle=self._extract_handle(block),
            focus_description=self._extract_focus(block),
        )

    def _extract_handle(self, block: str) -> Optional[str]:
        where_match = self.WHERE_PATTERN.search(block)
        if not where_match:
            return None

        handle_match = self.HANDLE_PATTERN.search(where_match.group(1))
        return handle_match.group(0) if handle_match else None

    def _extract_focus(self, block: str) -> str:
        focus_match = self.FOCUS_PATTERN.search(block)
        return focus_match.group(1).strip() if focus_match else ""


def parse_roster(document_text: str, window: int = RosterParser.DEFAULT_WINDOW) -> List[ExpertMention]:
    """Module-level shortcut for RosterParser(window).parse(document_text)."""
    return RosterParser(window).parse(document_text)
