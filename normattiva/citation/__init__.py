"""
Citation parsing, formatting and validation for Italian legal citations.

Usage:
    from normattiva.citation import CitationValidator, format_citation, parse_citation

    parsed = parse_citation("Art. 1, D.Lgs. 196/2003")
    format_citation(parsed, "full")   # "Art. 1, Decreto legislativo n. 196/2003"
    CitationValidator(corpus).validate("Art. 1, D.Lgs. 196/2003")
"""

from .formatter import format_citation
from .grammar import CITATION_GRAMMARS, CitationGrammar, get_grammar
from .parser import parse_citation
from .validator import CitationValidator

__all__ = [
    "CITATION_GRAMMARS",
    "CitationGrammar",
    "CitationValidator",
    "format_citation",
    "get_grammar",
    "parse_citation",
]
