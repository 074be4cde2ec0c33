"""
Parser module for normattiva article markup.

This module provides the abstract strategy base class and one strategy per
markup dialect, chained by LegalTextParser in a fixed order.

Usage:
    from normattiva.parsers import LegalTextParser, get_strategy

    parser = LegalTextParser()
    provision = parser.parse(article_html)

    attachment = get_strategy("attachment")
"""

from .base import ParseStrategy
from .legal_text import LegalTextParser

# Order matters: the first strategy that returns a provision wins
ARTICLE_STRATEGIES = ("akn", "attachment")
DOCUMENT_STRATEGIES = ("akn", "attachment", "plain_text")


def get_strategy(name: str) -> ParseStrategy:
    """
    Factory function to get a markup strategy by name.

    Args:
        name: Strategy name ("akn", "attachment", "plain_text")

    Returns:
        Strategy instance

    Raises:
        ValueError: If the strategy name is unknown
    """
    name = name.lower()

    if name == "akn":
        from .akn import AknArticleStrategy
        return AknArticleStrategy()
    elif name == "attachment":
        from .attachment import AttachmentArticleStrategy
        return AttachmentArticleStrategy()
    elif name == "plain_text":
        from .plain_text import PlainTextStrategy
        return PlainTextStrategy()
    else:
        raise ValueError(
            f"Unsupported strategy: {name}. "
            f"Supported: {', '.join(DOCUMENT_STRATEGIES)}"
        )


__all__ = [
    "ARTICLE_STRATEGIES",
    "DOCUMENT_STRATEGIES",
    "LegalTextParser",
    "ParseStrategy",
    "get_strategy",
]
