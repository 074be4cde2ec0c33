"""
Legacy attachment article markup.

Pre-Republic and older republican Acts are served as one preformatted
container:

    <div class="attachment-just-text">
      <div style="text-align: center;">Art. 3-quinquiesdecies.</div>
      <div style="text-align: center;">(Disposizioni transitorie)</div>
      <br/>
      Le disposizioni ...
    </div>
"""

import logging
import re
from typing import List, Optional, Tuple

from normattiva.models import ProvisionRecord
from normattiva.parsers.base import (
    LONG_ORDINALS_RE,
    ParseStrategy,
    build_token,
    clean_heading,
    clean_text,
)

logger = logging.getLogger(__name__)

CONTAINER = re.compile(
    r'<div\b[^>]*class="[^"]*\battachment-just-text\b[^"]*"[^>]*>([\s\S]*)</div\s*>',
    re.IGNORECASE,
)
BLOCK = re.compile(r"<(div|p|span|center)\b([^>]*)>([\s\S]*?)</\1\s*>", re.IGNORECASE)
CENTERED_ATTRS = re.compile(
    r"""text-align\s*:\s*center|align\s*=\s*["']?center|class\s*=\s*["'][^"']*\bcenter""",
    re.IGNORECASE,
)
LABEL = re.compile(
    rf"Art(?:icolo)?\.?\s*(\d+)(?:[\s-]*({LONG_ORDINALS_RE}))?\s*\.?", re.IGNORECASE
)
SEPARATORS = re.compile(r"(?:\s|<br\s*/?>|<hr\b[^>]*>|&nbsp;)*", re.IGNORECASE)


def _is_centered(block: re.Match) -> bool:
    return block.group(1).lower() == "center" or bool(CENTERED_ATTRS.search(block.group(2)))


class AttachmentArticleStrategy(ParseStrategy):
    """Single attachment container with a centered 'Art. N.' label."""

    name = "attachment"

    def try_parse(self, article_html: str) -> Optional[ProvisionRecord]:
        labels = self._labels(article_html)
        if not labels:
            return None
        token, start, end = labels[0]
        return self._provision(token, article_html[start:end])

    def try_parse_all(self, document_html: str) -> List[ProvisionRecord]:
        """Every labelled article of the container, sliced label to label."""
        provisions = []
        for token, start, end in self._labels(document_html):
            provision = self._provision(token, document_html[start:end])
            if provision:
                provisions.append(provision)
        return provisions

    def _labels(self, html_text: str) -> List[Tuple[str, int, int]]:
        """(token, body start, body end) for each centered label in the container."""
        container = CONTAINER.search(html_text or "")
        if not container:
            return []

        found = []
        for block in BLOCK.finditer(html_text, container.start(1), container.end(1)):
            if not _is_centered(block):
                continue
            label = LABEL.fullmatch(clean_text(block.group(3)))
            if label:
                found.append((build_token(label.group(1), label.group(2)), block.end(), block.start()))

        if not found:
            logger.debug("Attachment container without a centered article label")
            return []

        labels = []
        for i, (token, body_start, _) in enumerate(found):
            body_end = found[i + 1][2] if i + 1 < len(found) else container.end(1)
            labels.append((token, body_start, body_end))
        return labels

    def _provision(self, token: str, remainder: str) -> Optional[ProvisionRecord]:
        heading, remainder = self._take_heading(remainder)
        return self.build_provision(token, heading, clean_text(remainder))

    def _take_heading(self, remainder: str) -> Tuple[str, str]:
        """Consume a following centered '(...)' heading or empty delimiter block."""
        position = SEPARATORS.match(remainder).end()
        block = BLOCK.match(remainder, position)
        if not block or not _is_centered(block):
            return "", remainder

        text = clean_text(block.group(3))
        if text.startswith("(") and text.endswith(")"):
            return clean_heading(block.group(3)), remainder[block.end():]
        if not text:
            return "", remainder[block.end():]
        return "", remainder
