"""
Italian statute identifiers.

Acts are identified as <type>-<number>-<year>:

    dlgs-196-2003   Decreto legislativo 30 giugno 2003, n. 196
    legge-633-1941  Legge 22 aprile 1941, n. 633
    dl-82-2021      Decreto-legge 14 giugno 2021, n. 82
    dpr-445-2000    D.P.R. 28 dicembre 2000, n. 445
    rd-262-1942     Regio decreto 16 marzo 1942, n. 262 (Codice Civile)

Named codes ("Codice Privacy", "Codice Civile") resolve by title.
"""

import re
from typing import List, Optional

TYPE_ABBREVIATIONS = {
    "d.lgs.": "dlgs",
    "d.lgs": "dlgs",
    "dlgs": "dlgs",
    "decreto legislativo": "dlgs",
    "d.l.": "dl",
    "d.l": "dl",
    "dl": "dl",
    "decreto-legge": "dl",
    "decreto legge": "dl",
    "l.": "legge",
    "l": "legge",
    "legge": "legge",
    "d.p.r.": "dpr",
    "d.p.r": "dpr",
    "dpr": "dpr",
    "decreto del presidente della repubblica": "dpr",
    "r.d.": "rd",
    "r.d": "rd",
    "rd": "rd",
    "regio decreto": "rd",
}

CANONICAL_ID = re.compile(r"^(legge|dlgs|dl|dpr|rd)-\d+-\d{4}$")

# "D.Lgs. 196/2003", "Legge n. 633/1941", "D.Lgs. 196/2003 (Codice Privacy)"
SHORT_FORM = re.compile(
    r"^(D\.Lgs\.?|D\.L\.?|D\.P\.R\.?|R\.D\.?|L\.?|Legge|Decreto\s+legislativo|"
    r"Decreto-legge|Decreto\s+legge|Decreto\s+del\s+Presidente\s+della\s+Repubblica|Regio\s+decreto)"
    r"\s+(?:n\.?\s*)?(\d+)\s*/\s*(\d{4})\b",
    re.IGNORECASE,
)


def resolve_type(raw: str) -> Optional[str]:
    """Map a spelled-out or abbreviated instrument type to its code."""
    key = re.sub(r"\s+", " ", raw.lower()).strip()
    return TYPE_ABBREVIATIONS.get(key)


def is_valid_statute_id(statute_id: str) -> bool:
    return bool(statute_id) and bool(statute_id.strip())


def normalize_document_identifier(text: str) -> Optional[str]:
    """
    Parse a user-supplied identifier into a canonical Act id.

    "D.Lgs. 196/2003" -> "dlgs-196-2003"; canonical ids pass through;
    anything else (e.g. a title) -> None.
    """
    trimmed = (text or "").strip()
    if CANONICAL_ID.match(trimmed.lower()):
        return trimmed.lower()

    match = SHORT_FORM.match(trimmed)
    if not match:
        return None

    doc_type = resolve_type(match.group(1)) or re.sub(r"[.\s]", "", match.group(1).lower())
    return f"{doc_type}-{int(match.group(2))}-{match.group(3)}"


def statute_id_candidates(text: str) -> List[str]:
    """Spellings worth trying when looking an identifier up, most literal first."""
    raw = (text or "").strip()
    lowered = raw.lower()
    candidates = [lowered, raw]

    normalized = normalize_document_identifier(raw)
    if normalized:
        candidates.append(normalized)
    if " " in lowered:
        candidates.append(re.sub(r"\s+", "-", lowered))
    if "-" in lowered:
        candidates.append(lowered.replace("-", " "))

    # dict preserves first-seen order
    return list(dict.fromkeys(c for c in candidates if c))


def resolve_existing_statute_id(store, text: str) -> Optional[str]:
    """
    Resolve free text to the id of an Act present in the store.

    Order: exact id, then its spelling variants (normalized id first among
    the non-literal ones), case-insensitive exact title or
    short_name, then substring of title or short_name preferring the
    shortest title.

    Args:
        store: DocumentStore to search
        text: Id, short citation or (part of) a title

    Returns:
        Act id, or None
    """
    if not is_valid_statute_id(text or ""):
        return None
    text = text.strip()

    if store.get_document(text) is not None:
        return text

    for candidate in statute_id_candidates(text):
        if store.get_document(candidate) is not None:
            return candidate

    needle = text.lower()
    documents = list(store.documents())

    for document in documents:
        if document.title.lower() == needle or (document.short_name or "").lower() == needle:
            return document.id

    matches = [
        document for document in documents
        if needle in document.title.lower() or needle in (document.short_name or "").lower()
    ]
    if not matches:
        return None
    return min(matches, key=lambda d: len(d.title)).id
