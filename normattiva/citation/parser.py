"""
Italian legal citation parser.

Parses citations like:
    "Art. 1, Decreto legislativo 30 giugno 2003, n. 196"   (full date)
    "Art. 1, D.Lgs. 196/2003"                               (short)
    "Art. 4-bis, D.Lgs. 196/2003"                           (with suffix)
    "Art. 1, comma 1, D.Lgs. 196/2003"                      (with comma)
    "dlgs-196-2003, art. 1"                                 (identifier)
    "Art. 615-ter, Codice Penale"                           (named code)
"""

import logging
from typing import Sequence

from normattiva.citation.grammar import CITATION_GRAMMARS, CitationGrammar
from normattiva.models import ParsedCitation

logger = logging.getLogger(__name__)


def invalid_citation(text: str) -> ParsedCitation:
    return ParsedCitation(
        valid=False,
        type="unknown",
        error=f'Could not parse Italian citation: "{text}"',
    )


def parse_citation(
    citation: str, grammars: Sequence[CitationGrammar] = CITATION_GRAMMARS
) -> ParsedCitation:
    """
    Parse a citation string; the first grammar matching the whole input wins.

    Never raises: anything unparseable (including non-string input) comes
    back as ParsedCitation(valid=False) with a diagnostic error.
    """
    if not isinstance(citation, str):
        return invalid_citation(str(citation))

    trimmed = citation.strip()
    for grammar in grammars:
        parsed = grammar.match(trimmed)
        if parsed is not None:
            logger.debug(f"Citation {trimmed!r} matched grammar {grammar.name}")
            return parsed

    return invalid_citation(trimmed)
