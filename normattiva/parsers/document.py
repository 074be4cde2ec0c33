"""
Single-document ingestion path.

Converts a saved full Act page (instead of a per-article crawl) into a seed
record, using the document-level strategy chain.
"""

import logging
import re
from typing import Optional

from normattiva import config
from normattiva.corpus import dedupe_provisions
from normattiva.crossrefs import annotate_provisions
from normattiva.models import SeedRecord
from normattiva.parsers.legal_text import LegalTextParser

logger = logging.getLogger(__name__)

ITALIAN_MONTHS = {
    "gennaio": 1, "febbraio": 2, "marzo": 3, "aprile": 4,
    "maggio": 5, "giugno": 6, "luglio": 7, "agosto": 8,
    "settembre": 9, "ottobre": 10, "novembre": 11, "dicembre": 12,
}

URN_TYPES = {
    "dlgs": "decreto.legislativo",
    "dl": "decreto-legge",
    "legge": "legge",
    "dpr": "decreto.del.presidente.della.repubblica",
    "rd": "regio.decreto",
    "rdl": "regio.decreto-legge",
    "dll": "decreto.legislativo.luogotenenziale",
    "lc": "legge.costituzionale",
}

ITALIAN_DATE = re.compile(
    rf"^(\d{{1,2}})(?:°|º)?\s+({'|'.join(ITALIAN_MONTHS)})\s+(\d{{4}})$", re.IGNORECASE
)


def parse_italian_date(text: str) -> Optional[str]:
    """"30 giugno 2003" -> "2003-06-30"; None when not a valid Italian date."""
    match = ITALIAN_DATE.match((text or "").strip())
    if not match:
        return None
    day = int(match.group(1))
    month = ITALIAN_MONTHS[match.group(2).lower()]
    if not 1 <= day <= 31:
        return None
    return f"{match.group(3)}-{month:02d}-{day:02d}"


def build_normattiva_urn(doc_type: str, date: str, number: int) -> str:
    """urn:nir:stato:decreto.legislativo:2003-06-30;196"""
    return f"urn:nir:stato:{URN_TYPES.get(doc_type, doc_type)}:{date};{number}"


def build_act_url(urn: str) -> str:
    return f"{config.BASE_URL.rstrip('/')}/uri-res/N2Ls?{urn}"


def parse_act_html(
    html: str,
    doc_type: str,
    number: int,
    year: int,
    title: str,
    date: Optional[str] = None,
    parser: Optional[LegalTextParser] = None,
) -> SeedRecord:
    """
    Parse a complete Act page into a seed record.

    Args:
        html: Full page markup
        doc_type: Instrument type code (legge, dlgs, ...)
        number: Act number
        year: Act year
        title: Act title
        date: Issuance date (YYYY-MM-DD); defaults to January 1st of year
        parser: Strategy chain to use (default: LegalTextParser())

    Returns:
        SeedRecord with deduplicated, EU-annotated provisions
    """
    parser = parser or LegalTextParser()
    act_id = f"{doc_type}-{number}-{year}"
    issued = date or f"{year}-01-01"

    provisions, stats = dedupe_provisions(parser.parse_document(html))
    if stats.duplicate_refs:
        logger.info(f"{act_id}: collapsed {stats.duplicate_refs} duplicate articles")
    if not provisions:
        logger.warning(f"{act_id}: no articles recognized")

    return SeedRecord(
        id=act_id,
        type=doc_type,
        title=title,
        short_name=title,
        status="in_force",
        issued_date=issued,
        url=build_act_url(build_normattiva_urn(doc_type, issued, number)),
        provisions=annotate_provisions(act_id, provisions),
    )
