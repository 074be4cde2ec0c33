"""
Abstract base strategy for normattiva article markup.

Defines the interface every markup dialect must implement, plus the
post-processing shared by all of them. Extraction is structural-pattern
based: no DOM tree is built.
"""

import html
import re
from abc import ABC, abstractmethod
from typing import List, Optional

from normattiva.models import ProvisionRecord

# Bodies shorter than this are markup-only or placeholder articles
MIN_BODY_LENGTH = 5

# Latin ordinal suffixes for articles inserted after the original numbering
ORDINAL_SUFFIXES = [
    "bis", "ter", "quater", "quinquies", "sexies",
    "septies", "octies", "novies", "decies",
]

# Historical texts number inserted articles further than the modern markup does
LONG_ORDINAL_SUFFIXES = ORDINAL_SUFFIXES + [
    "undecies", "duodecies", "terdecies", "quaterdecies", "quinquiesdecies",
    "sexiesdecies", "septiesdecies", "octiesdecies", "noviesdecies", "vicies",
]


def ordinal_alternation(suffixes: List[str]) -> str:
    """Regex alternation over suffixes, longest first."""
    return "|".join(sorted(suffixes, key=len, reverse=True))


ORDINALS_RE = ordinal_alternation(ORDINAL_SUFFIXES)
LONG_ORDINALS_RE = ordinal_alternation(LONG_ORDINAL_SUFFIXES)

_SCRIPT_STYLE = re.compile(r"<(script|style)\b[^>]*>[\s\S]*?</\1>", re.IGNORECASE)
_LINE_BREAKS = re.compile(r"<br\s*/?>|</p>|</div>|</h\d>|</li>", re.IGNORECASE)
_TAGS = re.compile(r"<[^>]+>")
_AMENDMENT_MARKERS = re.compile(r"\(\(|\)\)")
_WHITESPACE = re.compile(r"\s+")


def strip_tags(fragment: str, keep_lines: bool = False) -> str:
    """Remove markup; block ends become newlines when keep_lines is set."""
    text = _SCRIPT_STYLE.sub(" ", fragment or "")
    text = _LINE_BREAKS.sub("\n" if keep_lines else " ", text)
    return _TAGS.sub(" ", text)


def decode_entities(text: str) -> str:
    """Decode numeric and named HTML entities (&#224; &agrave; &nbsp;)."""
    return html.unescape(text).replace("\xa0", " ")


def strip_amendment_markers(text: str) -> str:
    """Drop the (( )) brackets around amended passages, keeping their contents."""
    return _AMENDMENT_MARKERS.sub("", text)


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def clean_text(fragment: str) -> str:
    """Markup fragment -> normalized plain text."""
    return collapse_whitespace(strip_amendment_markers(decode_entities(strip_tags(fragment))))


def clean_heading(fragment: str) -> str:
    """Heading text without surrounding single parentheses: '(Oggetto)' -> 'Oggetto'."""
    heading = clean_text(fragment)
    if heading.startswith("(") and heading.endswith(")"):
        heading = heading[1:-1].strip()
    return heading


def build_token(number: str, suffix: Optional[str] = None) -> str:
    """Reference token: '4' + 'BIS' -> '4-bis'."""
    number = str(int(number)) if number.isdigit() else number.strip()
    return f"{number}-{suffix.lower()}" if suffix else number


class ParseStrategy(ABC):
    """
    Abstract base class for one article markup dialect.

    Subclasses must implement:
    - try_parse(): Parse a single article fragment, None when the dialect
      does not apply or the article carries no usable text

    Document-level strategies override try_parse_all() to return every
    article found in a full Act page.
    """

    name: str = "base"

    @abstractmethod
    def try_parse(self, article_html: str) -> Optional[ProvisionRecord]:
        """
        Parse one article's markup into a provision.

        Args:
            article_html: Raw markup of one article

        Returns:
            ProvisionRecord, or None if this dialect cannot parse it
        """
        pass

    def try_parse_all(self, document_html: str) -> List[ProvisionRecord]:
        """Parse every article of a document. Default: a single article."""
        provision = self.try_parse(document_html)
        return [provision] if provision else []

    def build_provision(
        self, token: str, heading: str, body: str
    ) -> Optional[ProvisionRecord]:
        """Apply the minimum-length guard and build the record."""
        body = collapse_whitespace(body)
        if len(body) < MIN_BODY_LENGTH:
            return None
        return ProvisionRecord.from_token(token, title=heading, content=body)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
