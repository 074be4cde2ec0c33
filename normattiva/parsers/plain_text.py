"""
Plain-text fallback over a whole Act page.

Used only on the single-document path, where a complete Act page is saved
to disk instead of being crawled article by article. Markup is flattened to
lines, then articles are sliced between consecutive "Art. N." boundaries;
when no boundary is found, a line state machine collects lines under the
most recent article header.
"""

import logging
import re
from typing import List, Optional

from normattiva.models import ProvisionRecord
from normattiva.parsers.base import (
    ORDINALS_RE,
    ParseStrategy,
    clean_heading,
    collapse_whitespace,
    decode_entities,
    strip_amendment_markers,
    strip_tags,
)

logger = logging.getLogger(__name__)

_NUMBER = rf"\d+(?:-(?:{ORDINALS_RE}))?"

ARTICLE_BOUNDARY = re.compile(
    rf"Art\.\s*({_NUMBER})\s*(?:\.\s*)?\n?\s*(?:\(([^)]*)\))?\s*\n?"
    rf"([\s\S]*?)(?=Art\.\s*{_NUMBER}\s*(?:\.|\Z)|\Z)",
    re.IGNORECASE,
)
ARTICLE_LINE = re.compile(
    rf"^Art\.\s*({_NUMBER})\s*(?:\.\s*)?(?:\(([^)]*)\))?", re.IGNORECASE
)


def flatten(document_html: str) -> str:
    """Markup -> text with one line per block element."""
    text = decode_entities(strip_tags(document_html, keep_lines=True))
    return text.replace("\r\n", "\n")


class PlainTextStrategy(ParseStrategy):
    """Regex slicing on 'Art. N' boundaries with a line-oriented fallback."""

    name = "plain_text"

    def try_parse(self, article_html: str) -> Optional[ProvisionRecord]:
        provisions = self.try_parse_all(article_html)
        return provisions[0] if provisions else None

    def try_parse_all(self, document_html: str) -> List[ProvisionRecord]:
        text = flatten(document_html or "")

        provisions = self._slice_boundaries(text)
        if not provisions:
            provisions = self._scan_lines(text)
            if provisions:
                logger.debug(f"Line scan recovered {len(provisions)} articles")
        return provisions

    def _slice_boundaries(self, text: str) -> List[ProvisionRecord]:
        provisions = []
        for match in ARTICLE_BOUNDARY.finditer(text):
            provision = self.build_provision(
                match.group(1).lower(),
                clean_heading(match.group(2) or ""),
                strip_amendment_markers(match.group(3) or ""),
            )
            if provision:
                provisions.append(provision)
        return provisions

    def _scan_lines(self, text: str) -> List[ProvisionRecord]:
        provisions = []
        current: Optional[str] = None
        heading = ""
        lines: List[str] = []

        def flush():
            if current and lines:
                provision = self.build_provision(
                    current, heading, strip_amendment_markers(" ".join(lines))
                )
                if provision:
                    provisions.append(provision)

        for raw in text.split("\n"):
            line = collapse_whitespace(raw)
            if not line:
                continue

            header = ARTICLE_LINE.match(line)
            if header:
                flush()
                current = header.group(1).lower()
                heading = clean_heading(header.group(2) or "")
                lines = []
                remainder = line[header.end():].strip()
                if remainder:
                    lines.append(remainder)
            elif current:
                lines.append(line)

        flush()
        return provisions
