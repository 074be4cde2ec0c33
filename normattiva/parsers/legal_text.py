import logging
from typing import List, Optional, Sequence

from normattiva.models import ProvisionRecord
from normattiva.parsers.base import ParseStrategy

logger = logging.getLogger(__name__)


def default_article_strategies() -> List[ParseStrategy]:
    from normattiva.parsers import ARTICLE_STRATEGIES, get_strategy
    return [get_strategy(name) for name in ARTICLE_STRATEGIES]


def default_document_strategies() -> List[ParseStrategy]:
    from normattiva.parsers import DOCUMENT_STRATEGIES, get_strategy
    return [get_strategy(name) for name in DOCUMENT_STRATEGIES]


class LegalTextParser:
    """
    Ordered chain of markup strategies; the first one that succeeds wins.

    parse() handles one article fetched through caricaArticolo and tries the
    structured and attachment dialects. parse_document() handles a whole Act
    page on the single-document path and adds the plain-text fallback.
    """

    def __init__(
        self,
        strategies: Optional[Sequence[ParseStrategy]] = None,
        document_strategies: Optional[Sequence[ParseStrategy]] = None,
    ):
        self.strategies = list(strategies) if strategies is not None else default_article_strategies()
        self.document_strategies = (
            list(document_strategies)
            if document_strategies is not None
            else default_document_strategies()
        )

    def parse(self, article_html: str) -> Optional[ProvisionRecord]:
        """Parse one article, or None when no strategy recognizes it."""
        for strategy in self.strategies:
            try:
                provision = strategy.try_parse(article_html)
            except Exception as e:
                logger.warning(f"{strategy.name} strategy failed: {e}")
                continue
            if provision is not None:
                return provision
        return None

    def parse_document(self, document_html: str) -> List[ProvisionRecord]:
        """Parse every article of a full Act page."""
        for strategy in self.document_strategies:
            try:
                provisions = strategy.try_parse_all(document_html)
            except Exception as e:
                logger.warning(f"{strategy.name} strategy failed: {e}")
                continue
            if provisions:
                logger.debug(f"{strategy.name} strategy parsed {len(provisions)} articles")
                return provisions
        return []
