"""
Extract references to EU directives and regulations from provision text.

Finds citations like "Regolamento (UE) 2016/679", "Direttiva 95/46/CE" or
"Regolamento n. 2016/679" and creates CrossReference records keyed by the
foreign instrument id "<type>:<year>/<number>".

Usage:
    from normattiva.crossrefs import extract_cross_references

    refs = extract_cross_references(provision.content)
"""

import logging
import re
from typing import Iterable, List, Optional, Set, Tuple

from pydantic import ValidationError

from normattiva.models import CrossReference, ProvisionRecord

logger = logging.getLogger(__name__)

CONTEXT_CHARS = 120

_KIND = r"(Regolamento|Direttiva|Regulation|Directive)"
_COMMUNITY = r"(UE|CE|CEE|EU|EC|EEC|Euratom)"

# (pattern, layout): layout names the order of the captured groups after the kind
EU_PATTERNS = [
    # Regolamento (UE) 2016/679
    (re.compile(rf"\b{_KIND}\s*\({_COMMUNITY}\)\s*(?:n\.?\s*)?(\d{{2,4}})/(\d{{1,4}})\b", re.IGNORECASE),
     ("community", "year", "number")),

    # Direttiva 95/46/CE
    (re.compile(rf"\b{_KIND}\s*(?:n\.?\s*)?(\d{{2,4}})/(\d{{1,4}})/{_COMMUNITY}\b", re.IGNORECASE),
     ("year", "number", "community")),

    # Regolamento n. 2016/679 (no community: defaults to EU)
    (re.compile(rf"\b{_KIND}\s*(?:n\.?\s*)?(\d{{2,4}})/(\d{{1,4}})\b", re.IGNORECASE),
     ("year", "number")),
]

IMPLEMENTS_PATTERN = re.compile(
    r"\b(?:implement|attua|recepi|traspos|supplement|compl(?:y|ies)|dà attuazione|in attuazione)",
    re.IGNORECASE,
)
ARTICLE_PATTERN = re.compile(
    r"\b(?:Article|Art\.?|articolo)\s+(\d+[A-Za-z]?(?:\(\d+\))?)", re.IGNORECASE
)

COMMUNITY_ALIASES = {
    "UE": "EU", "EU": "EU",
    "CE": "EC", "EC": "EC",
    "CEE": "EEC", "EEC": "EEC",
    "EURATOM": "Euratom",
}


def normalize_eu_year(raw_year: str) -> int:
    """
    Normalize a year token to four digits.

    Two-digit years pivot at 50: "96" -> 1996, "16" -> 2016.
    Returns 0 for a non-numeric token.
    """
    raw_year = raw_year.strip()
    if not raw_year.isdigit():
        return 0
    year = int(raw_year)
    if len(raw_year) == 2:
        return 1900 + year if year >= 50 else 2000 + year
    return year


def normalize_community(value: Optional[str]) -> str:
    if not value:
        return "EU"
    return COMMUNITY_ALIASES.get(value.upper(), "EU")


def build_instrument_id(instrument_type: str, year: int, number: int) -> str:
    return f"{instrument_type}:{year}/{number}"


def classify_relation(context: str) -> str:
    return "implements" if IMPLEMENTS_PATTERN.search(context) else "references"


def extract_article(context: str) -> Optional[str]:
    match = ARTICLE_PATTERN.search(context)
    return match.group(1) if match else None


def extract_cross_references(text: str) -> List[CrossReference]:
    """
    Extract all EU instrument references from a provision body.

    Patterns are applied in order; within one text, only the first
    occurrence of each (instrument id, pinpoint article) is kept.

    Returns:
        List of CrossReference records (is_primary always False here)
    """
    if not text or not text.strip():
        return []

    refs = []
    seen: Set[Tuple[str, str]] = set()

    for pattern, layout in EU_PATTERNS:
        for match in pattern.finditer(text):
            kind = match.group(1).lower()
            instrument_type = "regulation" if kind in ("regolamento", "regulation") else "directive"
            fields = dict(zip(layout, match.groups()[1:]))

            year = normalize_eu_year(fields["year"])
            number = int(fields["number"])
            if year <= 0 or number <= 0:
                continue

            start = max(0, match.start() - CONTEXT_CHARS)
            end = min(len(text), match.end() + CONTEXT_CHARS)
            context = re.sub(r"\s+", " ", text[start:end]).strip()

            instrument_id = build_instrument_id(instrument_type, year, number)
            article = extract_article(context)
            key = (instrument_id, article or "")
            if key in seen:
                continue

            try:
                ref = CrossReference(
                    instrument_type=instrument_type,
                    community=normalize_community(fields.get("community")),
                    year=year,
                    number=number,
                    instrument_id=instrument_id,
                    article=article,
                    context=context,
                    relation=classify_relation(context),
                    matched_text=match.group(0),
                )
            except ValidationError:
                # Three-digit tokens and similar never denote an EU year
                logger.debug(f"Skipping implausible EU reference: {match.group(0)!r}")
                continue

            seen.add(key)
            refs.append(ref)

    return refs


def mark_primary_implementations(
    act_id: str,
    refs: Iterable[CrossReference],
    seen: Optional[Set[Tuple[str, str]]] = None,
) -> Set[Tuple[str, str]]:
    """
    Flag the first 'implements' reference of each (Act, instrument) pair.

    Args:
        act_id: Owning Act id
        refs: References in provision order; updated in place
        seen: Pairs already marked (pass the return value across provisions)

    Returns:
        The updated set of marked (act_id, instrument_id) pairs
    """
    seen = set() if seen is None else seen
    for ref in refs:
        ref.is_primary = False
        if ref.relation != "implements":
            continue
        key = (act_id, ref.instrument_id)
        if key not in seen:
            ref.is_primary = True
            seen.add(key)
    return seen


def annotate_provisions(act_id: str, provisions: List[ProvisionRecord]) -> List[ProvisionRecord]:
    """
    Recompute metadata.eu_references for every provision of one Act.

    Earlier annotations are discarded; primary marking runs across the
    provisions in order.
    """
    seen: Set[Tuple[str, str]] = set()
    annotated = []
    for provision in provisions:
        refs = extract_cross_references(provision.content)
        mark_primary_implementations(act_id, refs, seen)

        metadata = dict(provision.metadata or {})
        metadata.pop("eu_references", None)
        if refs:
            metadata["eu_references"] = [ref.model_dump() for ref in refs]
        annotated.append(provision.model_copy(update={"metadata": metadata or None}))
    return annotated
