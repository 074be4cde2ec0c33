"""
Akoma Ntoso styled article markup.

Articles served by caricaArticolo for post-1990 Acts look like:

    <h2 class="article-num-akn" id="art_1">Art. 1</h2>
    <div class="article-heading-akn">(Oggetto)</div>
    <div class="art-commi-div-akn">
      <div class="art-comma-div-akn">
        <span class="comma-num-akn">1. </span>
        <span class="art_text_in_comma">Il trattamento ...</span>
      </div>
      ...
    </div>

or carry a single unnumbered body in <span class="art-just-text-akn">.
"""

import logging
import re
from typing import List, Optional

from normattiva.models import ProvisionRecord
from normattiva.parsers.base import (
    ORDINALS_RE,
    ParseStrategy,
    build_token,
    clean_heading,
    clean_text,
)

logger = logging.getLogger(__name__)


def _class_element(css_class: str, tags: str) -> re.Pattern:
    return re.compile(
        rf'<({tags})\b[^>]*class="[^"]*\b{css_class}\b[^"]*"[^>]*>([\s\S]*?)</\1\s*>',
        re.IGNORECASE,
    )


ARTICLE_NUM = _class_element("article-num-akn", r"h\d|div|span|p")
ARTICLE_HEADING = _class_element("article-heading-akn", r"h\d|div|span|p")
COMMA_OPEN = re.compile(
    r'<div\b[^>]*class="[^"]*\bart-comma-div-akn\b[^"]*"[^>]*>', re.IGNORECASE
)
DIV_TAG = re.compile(r"<(/?)div\b[^>]*>", re.IGNORECASE)

# The body span may nest inline spans; it ends at the </span> that closes a block
JUST_TEXT = re.compile(
    r'<span\b[^>]*class="[^"]*\bart-just-text-akn\b[^"]*"[^>]*>([\s\S]*?)</span>'
    r"(?=(?:\s|<br\s*/?>)*(?:</div|<div|</p|<p\b|\Z))",
    re.IGNORECASE,
)
COMMA_NUM = re.compile(
    r'<span\b[^>]*class="[^"]*\bcomma-num-akn\b[^"]*"[^>]*>[\s\S]*?</span>',
    re.IGNORECASE,
)

ARTICLE_LABEL = re.compile(
    rf"(?:Art(?:icolo)?\.?\s*)?(\d+)(?:[\s-]*({ORDINALS_RE}))?\b", re.IGNORECASE
)
LEADING_NUMBERING = re.compile(
    rf"^\d+(?:[\s-]*(?:{ORDINALS_RE}))?\s*\.\s*", re.IGNORECASE
)
MARKER_ARTIFACT = re.compile(r"[\s()\[\].,;:\-]*")


def comma_blocks(article_html: str) -> List[str]:
    """
    Inner markup of each numbered paragraph (comma) block.

    Paragraphs may wrap amendments or lists in nested <div>s, so a block
    ends at the </div> that balances its opening tag. An unbalanced block
    runs up to the next paragraph, or to the end of the fragment.
    """
    opens = list(COMMA_OPEN.finditer(article_html))
    blocks = []
    for i, opening in enumerate(opens):
        limit = opens[i + 1].start() if i + 1 < len(opens) else len(article_html)
        end = limit
        depth = 1
        for tag in DIV_TAG.finditer(article_html, opening.end(), limit):
            depth += -1 if tag.group(1) else 1
            if depth == 0:
                end = tag.start()
                break
        blocks.append(article_html[opening.end():end])
    return blocks


class AknArticleStrategy(ParseStrategy):
    """Structured markup: numbered heading element plus span or comma bodies."""

    name = "akn"

    def try_parse(self, article_html: str) -> Optional[ProvisionRecord]:
        num_match = ARTICLE_NUM.search(article_html or "")
        if not num_match:
            return None

        label = ARTICLE_LABEL.search(clean_text(num_match.group(2)))
        if not label:
            logger.debug(f"Unreadable article number: {num_match.group(2)[:80]!r}")
            return None
        token = build_token(label.group(1), label.group(2))

        heading_match = ARTICLE_HEADING.search(article_html)
        heading = clean_heading(heading_match.group(2)) if heading_match else ""

        body = self._body(article_html)
        if body is None:
            return None

        return self.build_provision(token, heading, body)

    def try_parse_all(self, document_html: str) -> List[ProvisionRecord]:
        """Split a full Act page at each article number element."""
        starts = [m.start() for m in ARTICLE_NUM.finditer(document_html or "")]
        provisions = []
        for start, end in zip(starts, starts[1:] + [len(document_html)]):
            provision = self.try_parse(document_html[start:end])
            if provision:
                provisions.append(provision)
        return provisions

    def _body(self, article_html: str) -> Optional[str]:
        just_text = JUST_TEXT.search(article_html)
        if just_text:
            return clean_text(just_text.group(1))

        paragraphs: List[str] = []
        for block in comma_blocks(article_html):
            text = clean_text(COMMA_NUM.sub(" ", block))
            text = LEADING_NUMBERING.sub("", text)
            if not text or MARKER_ARTIFACT.fullmatch(text):
                continue
            paragraphs.append(text)

        if not paragraphs:
            return None
        return " ".join(paragraphs)
