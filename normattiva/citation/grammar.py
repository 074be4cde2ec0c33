"""
Ordered grammar table for Italian legal citations.

Each entry pairs a pattern with an extractor. The parser tries entries in
table order and the first whose pattern matches the whole trimmed input
wins, so precedence between overlapping surface forms is the table order:

    comma_short  Art. 1, comma 2, D.Lgs. 196/2003
    identifier   dlgs-196-2003, art. 4-bis, comma 1
    codice       Art. 615-ter, Codice Penale
    full_date    Art. 1, Decreto legislativo 30 giugno 2003, n. 196
    short        Art. 1, D.Lgs. 196/2003
"""

import re
from typing import Callable, List, Optional

from normattiva.models import ParsedCitation
from normattiva.statute_id import resolve_type

ARTICLE_SUFFIXES = [
    "bis", "ter", "quater", "quinquies", "sexies",
    "septies", "octies", "novies", "decies",
]
_SUFFIXES = "|".join(sorted(ARTICLE_SUFFIXES, key=len, reverse=True))

ITALIAN_MONTHS = [
    "gennaio", "febbraio", "marzo", "aprile", "maggio", "giugno",
    "luglio", "agosto", "settembre", "ottobre", "novembre", "dicembre",
]

_ARTICLE = rf"Art(?:\.|icolo)?\s*(?P<article>\d+)(?:[-\s](?P<suffix>{_SUFFIXES}))?"
_OPTIONAL_COMMA = r"\s*(?:,\s*(?:comma\s+(?P<comma>\d+)\s*,\s*)?)?(?:,\s*)?"
_SHORT_TYPE = (
    r"(?P<kind>D\.Lgs\.?|D\.L\.?|D\.P\.R\.?|R\.D\.?|L\.?|Legge|Decreto\s+legislativo|"
    r"Decreto-legge|Decreto\s+legge|Decreto\s+del\s+Presidente\s+della\s+Repubblica|Regio\s+decreto)"
)
_FULL_TYPE = (
    r"(?P<kind>Decreto\s+legislativo|Decreto-legge|Decreto\s+legge|Legge|Regio\s+decreto|"
    r"Decreto\s+del\s+Presidente\s+della\s+Repubblica|D\.P\.R\.?)"
)
_NUMBER_YEAR = r"(?:n\.?\s*)?(?P<number>\d+)\s*/\s*(?P<year>\d{4})"


class CitationGrammar:
    """One surface form: a full-input pattern and its extractor."""

    def __init__(
        self,
        name: str,
        pattern: str,
        extract: Callable[[re.Match], ParsedCitation],
    ):
        self.name = name
        self.pattern = re.compile(pattern, re.IGNORECASE)
        self.extract = extract

    def match(self, text: str) -> Optional[ParsedCitation]:
        """Parse text if the whole of it matches this grammar."""
        match = self.pattern.fullmatch(text)
        return self.extract(match) if match else None

    def __repr__(self) -> str:
        return f"<CitationGrammar {self.name}>"


def document_id(doc_type: str, number: int, year: int) -> str:
    return f"{doc_type}-{number}-{year}"


def _article_fields(match: re.Match) -> dict:
    suffix = match.group("suffix")
    return {
        "article": str(int(match.group("article"))),
        "suffix": suffix.lower() if suffix else None,
        "comma": match.group("comma") or None,
    }


def _numbered(match: re.Match, doc_type: str) -> ParsedCitation:
    number = int(match.group("number"))
    year = int(match.group("year"))
    return ParsedCitation(
        valid=True,
        type=doc_type,
        number=number,
        year=year,
        document_id=document_id(doc_type, number, year),
        **_article_fields(match),
    )


def _extract_typed(match: re.Match) -> ParsedCitation:
    return _numbered(match, resolve_type(match.group("kind")) or "unknown")


def _extract_identifier(match: re.Match) -> ParsedCitation:
    return _numbered(match, match.group("kind").lower())


def _extract_codice(match: re.Match) -> ParsedCitation:
    title = re.sub(r"\s+", " ", match.group("title")).strip()
    return ParsedCitation(valid=True, type="codice", title=title, **_article_fields(match))


CITATION_GRAMMARS: List[CitationGrammar] = [
    CitationGrammar(
        "comma_short",
        rf"{_ARTICLE}\s*,\s*comma\s+(?P<comma>\d+)\s*,\s*{_SHORT_TYPE}\s+{_NUMBER_YEAR}",
        _extract_typed,
    ),
    CitationGrammar(
        "identifier",
        r"(?P<kind>legge|dlgs|dl|dpr|rd)-(?P<number>\d+)-(?P<year>\d{4})\s*,?\s*"
        rf"art\.?\s*(?P<article>\d+)(?:[-\s](?P<suffix>{_SUFFIXES}))?"
        r"(?:\s*,?\s*comma\s+(?P<comma>\d+))?",
        _extract_identifier,
    ),
    CitationGrammar(
        "codice",
        rf"{_ARTICLE}{_OPTIONAL_COMMA}(?P<title>Codice(?:\s+[\w']+)+)",
        _extract_codice,
    ),
    CitationGrammar(
        "full_date",
        rf"{_ARTICLE}{_OPTIONAL_COMMA}{_FULL_TYPE}\s+(?P<day>\d{{1,2}})\s+"
        rf"(?P<month>{'|'.join(ITALIAN_MONTHS)})\s+(?P<year>\d{{4}})\s*,?\s*n\.?\s*(?P<number>\d+)",
        _extract_typed,
    ),
    CitationGrammar(
        "short",
        rf"{_ARTICLE}{_OPTIONAL_COMMA}{_SHORT_TYPE}\s+{_NUMBER_YEAR}",
        _extract_typed,
    ),
]


def get_grammar(name: str) -> CitationGrammar:
    for grammar in CITATION_GRAMMARS:
        if grammar.name == name:
            return grammar
    raise ValueError(f"Unknown citation grammar: {name}")
