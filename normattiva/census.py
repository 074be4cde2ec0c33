"""
Census of Italian legislation on normattiva.it.

Enumerates Acts by crawling the chronological listing
(/ricerca/elencoPerData/anno/<YYYY>) newest year first, classifies each
entry by act type, and keeps the result in data/census.json together with
the ingestion status the orchestrator writes back.

Pre-Republic codes (civil code, criminal code, ...) are not in the
republican listing and come from a curated list.

Usage:
    store = CensusStore(config.CENSUS_PATH)
    builder = CensusBuilder(client, store, StateManager(state_path))
    builder.run(from_year=2020)
"""

import logging
import math
import re
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from tqdm import tqdm

from normattiva import PIPELINE_VERSION, config
from normattiva.common import StateManager, load_json, save_json
from normattiva.http import CrawlSession, FetchError, RateLimitedSessionClient
from normattiva.models import CensusFile, CensusLaw, CensusSummary, TypeSummary
from normattiva.parsers.base import collapse_whitespace, decode_entities, strip_tags

logger = logging.getLogger(__name__)

FIRST_REPUBLIC_YEAR = 1946
DEFAULT_PAGE_SIZE = 20

# Listing display name -> (type code, URN type, label)
TYPE_MAP: Dict[str, Tuple[str, str, str]] = {
    "LEGGE": ("legge", "legge", "Legge"),
    "LEGGE COSTITUZIONALE": ("lc", "legge.costituzionale", "Legge Costituzionale"),
    "DECRETO LEGISLATIVO": ("dlgs", "decreto.legislativo", "Decreto Legislativo"),
    "DECRETO-LEGGE": ("dl", "decreto-legge", "Decreto-Legge"),
    "DECRETO DEL PRESIDENTE DELLA REPUBBLICA": (
        "dpr", "decreto.del.presidente.della.repubblica", "D.P.R."),
    "DECRETO DEL PRESIDENTE DEL CONSIGLIO DEI MINISTRI": (
        "dpcm", "decreto.del.presidente.del.consiglio.dei.ministri", "D.P.C.M."),
    "REGIO DECRETO": ("rd", "regio.decreto", "Regio Decreto"),
    "REGIO DECRETO-LEGGE": ("rdl", "regio.decreto-legge", "R.D.L."),
    "REGIO DECRETO LEGISLATIVO": ("rdlgs", "regio.decreto.legislativo", "R.D.Lgs."),
    "DECRETO": ("decreto", "decreto", "Decreto"),
    "DECRETO LEGISLATIVO DEL CAPO PROVVISORIO DELLO STATO": (
        "dlcps", "decreto.legislativo.del.capo.provvisorio.dello.stato", "D.L.C.P.S."),
    "DECRETO LEGISLATIVO LUOGOTENENZIALE": (
        "dll", "decreto.legislativo.luogotenenziale", "D.L.L."),
    "DECRETO LUOGOTENENZIALE": ("dluo", "decreto.luogotenenziale", "D.Luo."),
    "DECRETO DEL CAPO DEL GOVERNO": ("dcg", "decreto.del.capo.del.governo", "D.C.G."),
    "COSTITUZIONE": ("cost", "costituzione", "Costituzione"),
    "DELIBERAZIONE": ("del", "deliberazione", "Deliberazione"),
    "ORDINANZA": ("ord", "ordinanza", "Ordinanza"),
    "REGOLAMENTO": ("reg", "regolamento", "Regolamento"),
}

INCLUDED_TYPES = set(TYPE_MAP)
TYPE_PREFIXES = sorted(TYPE_MAP, key=len, reverse=True)


def _pre_republic(act_id: str, title: str, number: int, issued: str) -> CensusLaw:
    urn = f"urn:nir:stato:regio.decreto:{issued};{number}"
    return CensusLaw(
        id=act_id,
        title=title,
        type="rd",
        number=number,
        year=int(issued[:4]),
        date=issued,
        urn=urn,
        url=f"{config.BASE_URL}/uri-res/N2Ls?{urn}",
        category="Codici",
        classification="pre_republic",
    )


PRE_REPUBLIC_ACTS: List[CensusLaw] = [
    _pre_republic("rd-262-1942", "Codice Civile", 262, "1942-03-16"),
    _pre_republic("rd-1398-1930", "Codice Penale", 1398, "1930-10-19"),
    _pre_republic("rd-1443-1930", "Codice di Procedura Penale (1930)", 1443, "1930-10-19"),
    _pre_republic("rd-1326-1942", "Codice della Navigazione", 1326, "1942-03-30"),
    _pre_republic(
        "rd-267-1942",
        "Disposizioni per l'attuazione del Codice civile e disposizioni transitorie",
        267,
        "1942-03-30",
    ),
]

ITALIAN_MONTHS = {
    "gennaio": "01", "febbraio": "02", "marzo": "03", "aprile": "04",
    "maggio": "05", "giugno": "06", "luglio": "07", "agosto": "08",
    "settembre": "09", "ottobre": "10", "novembre": "11", "dicembre": "12",
}

ENTRY_BLOCK = re.compile(r'<div\s+id="collapseDiv_\d+"[^>]*>[\s\S]*?</div>\s*</div>\s*</div>')
CODICE_REDAZIONALE = re.compile(r'codiceRedazionale=([^&"]+)')
DATA_PUBBLICAZIONE = re.compile(r'dataPubblicazioneGazzetta=([^&"]+)')
LINK_TEXT = re.compile(r'class="font-weight-semibold"[\s\S]*?>([\s\S]*?)</a>')
ACT_HEADLINE = re.compile(
    rf"^([\w\s'-]+?)\s+(\d{{1,2}})\s+({'|'.join(ITALIAN_MONTHS)})\s+(\d{{4}})\s*,?\s*n\.\s*(\d+)",
    re.IGNORECASE,
)
DESCRIPTION = re.compile(r"<p>\s*\[([\s\S]*?)\]\s*</p>")
TOTAL_COUNT = re.compile(r"Sono stati trovati\s+([\d.]+)\s+atti")


def _plain(fragment: str) -> str:
    return collapse_whitespace(decode_entities(strip_tags(fragment)))


def parse_year_page(html: str) -> List[Dict]:
    """
    Parse the act entries of one chronological listing page.

    Each entry is a collapseDiv block whose link reads
    "DECRETO LEGISLATIVO 27 Dicembre 2024, n. 209", followed by the
    bracketed description paragraph.

    Returns:
        List of dicts with codice_redazionale, data_pubblicazione,
        tipo_display, date_text (YYYY-MM-DD), number, description
    """
    entries = []
    for block_match in ENTRY_BLOCK.finditer(html or ""):
        block = block_match.group(0)

        codice = CODICE_REDAZIONALE.search(block)
        if not codice:
            continue
        published = DATA_PUBBLICAZIONE.search(block)

        link = LINK_TEXT.search(block)
        if not link:
            continue
        headline = ACT_HEADLINE.match(_plain(link.group(1)))
        if not headline:
            continue

        month = ITALIAN_MONTHS[headline.group(3).lower()]
        description = ""
        described = DESCRIPTION.search(block)
        if described:
            # Trailing "(24G00123)" is the gazette reference code
            description = re.sub(r"\([^)]*\)\s*$", "", _plain(described.group(1))).strip()

        entries.append({
            "codice_redazionale": codice.group(1),
            "data_pubblicazione": published.group(1) if published else "",
            "tipo_display": headline.group(1).strip().upper(),
            "date_text": f"{headline.group(4)}-{month}-{int(headline.group(2)):02d}",
            "number": int(headline.group(5)),
            "description": description,
        })
    return entries


def extract_total_count(html: str) -> int:
    """Result count of a listing page; handles "222" and "1.265"."""
    match = TOTAL_COUNT.search(html or "")
    if not match:
        return 0
    return int(match.group(1).replace(".", ""))


def resolve_type(tipo_display: str) -> Optional[Tuple[str, str, str]]:
    """(code, urn type, label) for a listing display name: exact, then longest prefix."""
    if tipo_display in TYPE_MAP:
        return TYPE_MAP[tipo_display]
    for name in TYPE_PREFIXES:
        if tipo_display.startswith(name):
            return TYPE_MAP[name]
    return None


def classify_act(tipo_display: str) -> Tuple[str, Optional[str]]:
    """(classification, exclusion reason) for a listing display name."""
    if tipo_display in INCLUDED_TYPES:
        return "ingestable", None
    if any(tipo_display.startswith(name) for name in INCLUDED_TYPES):
        return "ingestable", None
    return "excluded", f"Unknown act type: {tipo_display}"


def build_census_law(entry: Dict, base_url: str = config.BASE_URL) -> CensusLaw:
    """Turn a parsed listing entry into a census record."""
    tipo = entry["tipo_display"]
    type_info = resolve_type(tipo)
    classification, reason = classify_act(tipo)

    if type_info:
        code, urn_type, label = type_info
    else:
        code = re.sub(r"\s+", "_", tipo.lower())
        urn_type, label = code, tipo

    year = int(entry["date_text"][:4])
    number = entry["number"]
    urn = f"urn:nir:stato:{urn_type}:{entry['date_text']};{number}"

    return CensusLaw(
        id=f"{code}-{number}-{year}",
        title=entry["description"] or f"{label} {entry['date_text']}, n. {number}",
        type=code,
        number=number,
        year=year,
        date=entry["date_text"],
        urn=urn,
        url=f"{base_url.rstrip('/')}/uri-res/N2Ls?{urn}",
        codice_redazionale=entry["codice_redazionale"],
        category=label,
        classification=classification,
        exclusion_reason=reason,
    )


class CensusStore:
    """
    The census JSON file: known Acts plus their ingestion status.

    Laws are kept by id; save() recomputes the summary and writes the laws
    newest year first.
    """

    def __init__(self, path: Union[str, Path] = config.CENSUS_PATH):
        self.path = Path(path)
        self.census = CensusFile()
        self.laws: Dict[str, CensusLaw] = {}
        self.load()

    def load(self) -> None:
        data = load_json(self.path)
        if data is None:
            logger.info(f"No existing census at {self.path}")
            return
        self.census = CensusFile.model_validate(data)
        self.laws = {law.id: law for law in self.census.laws}
        logger.info(f"Loaded census with {len(self.laws)} laws from {self.path}")

    def __len__(self) -> int:
        return len(self.laws)

    def get(self, law_id: str) -> Optional[CensusLaw]:
        return self.laws.get(law_id)

    def add(self, law: CensusLaw) -> bool:
        """Add a law unless its id is already known. Returns True if added."""
        if law.id in self.laws:
            return False
        self.laws[law.id] = law
        return True

    def pending(
        self,
        doc_type: Optional[str] = None,
        from_year: Optional[int] = None,
        act_id: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[CensusLaw]:
        """
        Laws to ingest: ingestable or pre-Republic, filtered, newest year
        first then number ascending, truncated to limit.
        """
        laws = [
            law for law in self.laws.values()
            if law.classification in ("ingestable", "pre_republic")
        ]
        if act_id:
            laws = [law for law in laws if law.id == act_id]
        if doc_type:
            laws = [law for law in laws if law.type == doc_type]
        if from_year:
            laws = [law for law in laws if law.year >= from_year]

        laws.sort(key=lambda law: (-law.year, law.number))
        if limit:
            laws = laws[:limit]
        return laws

    def update_law(
        self, law_id: str, provision_count: int, outcome: Optional[str] = None
    ) -> None:
        """Record the result of ingesting one Act."""
        law = self.laws.get(law_id)
        if law is None:
            logger.warning(f"Census has no law {law_id}")
            return
        law.ingested = provision_count > 0
        law.provision_count = provision_count
        law.ingestion_date = date.today().isoformat()
        if outcome:
            law.ingestion_outcome = outcome
        self.census.summary.ingested = sum(1 for law in self.laws.values() if law.ingested)

    def recompute_summary(self) -> CensusSummary:
        by_type: Dict[str, TypeSummary] = {}
        for law in self.laws.values():
            stat = by_type.setdefault(law.type, TypeSummary(type=law.type, type_label=law.category))
            stat.total += 1
            if law.classification == "excluded":
                stat.excluded += 1
            else:
                stat.ingestable += 1

        laws = list(self.laws.values())
        summary = CensusSummary(
            total_laws=len(laws),
            ingestable=sum(1 for law in laws if law.classification != "excluded"),
            excluded=sum(1 for law in laws if law.classification == "excluded"),
            pre_republic=sum(1 for law in laws if law.classification == "pre_republic"),
            ingested=sum(1 for law in laws if law.ingested),
            by_type=sorted(by_type.values(), key=lambda s: s.total, reverse=True),
        )
        self.census.summary = summary
        return summary

    def save(self, year_range: Optional[Dict[str, int]] = None) -> None:
        """Write the census file."""
        self.recompute_summary()
        if year_range:
            self.census.year_range = year_range
        self.census.census_date = date.today().isoformat()
        self.census.agent = f"normattiva.census {PIPELINE_VERSION}"
        self.census.laws = sorted(self.laws.values(), key=lambda law: (-law.year, -law.number))
        save_json(self.census.model_dump(), self.path)
        logger.debug(f"Census saved: {len(self.laws)} laws")


class CensusBuilder:
    """Crawl the chronological listing into a CensusStore."""

    def __init__(
        self,
        client: RateLimitedSessionClient,
        store: CensusStore,
        state: Optional[StateManager] = None,
        base_url: str = config.BASE_URL,
    ):
        self.client = client
        self.store = store
        self.state = state
        self.base_url = base_url.rstrip("/")

    def _get(self, url: str, session: CrawlSession) -> str:
        result = self.client.fetch(url, session)
        if result.status != 200:
            raise FetchError(url, f"HTTP {result.status} for {url}")
        return result.body

    def fetch_year(self, year: int) -> List[Dict]:
        """
        Fetch every listing page of one year.

        A fresh session is opened per year: pagination URLs are resolved
        against the listing the session last opened.
        """
        session = CrawlSession(f"census-{year}")
        first_page = self._get(f"{self.base_url}/ricerca/elencoPerData/anno/{year}", session)
        total = extract_total_count(first_page)
        entries = parse_year_page(first_page)
        logger.info(f"Year {year}: {total} acts, {len(entries)} on first page")

        if total > len(entries):
            per_page = len(entries) or DEFAULT_PAGE_SIZE
            total_pages = math.ceil(total / per_page)

            # Page k+2 of the listing lives at /ricerca/elencoPerData/<k>
            for page_index in range(total_pages - 1):
                url = f"{self.base_url}/ricerca/elencoPerData/{page_index}"
                try:
                    page_entries = parse_year_page(self._get(url, session))
                except FetchError as e:
                    logger.warning(f"Year {year} page {page_index + 2} failed: {e}")
                    break
                if not page_entries:
                    logger.info(f"Year {year} page {page_index + 2} empty, stopping pagination")
                    break
                entries.extend(page_entries)

        logger.info(f"Year {year}: parsed {len(entries)} entries")
        return entries

    def run(
        self,
        from_year: int = FIRST_REPUBLIC_YEAR,
        to_year: Optional[int] = None,
        resume: bool = False,
        pre_republic: bool = False,
    ) -> CensusFile:
        """
        Crawl years newest first, saving the census after each year.

        Args:
            from_year: Oldest year to crawl
            to_year: Newest year to crawl (default: current year)
            resume: Skip years recorded as processed by an earlier run
            pre_republic: Add the curated pre-Republic codes

        Returns:
            The saved CensusFile
        """
        to_year = to_year or date.today().year
        year_range = {"from": from_year, "to": to_year}

        processed = set()
        if self.state is not None:
            if resume:
                processed = set(self.state.processed_years())
                logger.info(f"Resuming: {len(processed)} years already processed")
            else:
                self.state.reset()

        if pre_republic or len(self.store) == 0:
            added = sum(1 for act in PRE_REPUBLIC_ACTS if self.store.add(act.model_copy()))
            logger.info(f"Added {added} pre-Republic acts")

        years = [y for y in range(to_year, from_year - 1, -1) if y not in processed]
        for year in tqdm(years, desc="Census years"):
            try:
                entries = self.fetch_year(year)
            except FetchError as e:
                logger.error(f"Year {year} failed: {e}")
                self.store.save(year_range)
                continue

            added = excluded = 0
            for entry in entries:
                law = build_census_law(entry, self.base_url)
                if self.store.add(law):
                    added += 1
                    if law.classification == "excluded":
                        excluded += 1
            logger.info(
                f"Year {year}: {added - excluded} ingestable, {excluded} excluded "
                f"(running total: {len(self.store)})"
            )

            self.store.save(year_range)
            if self.state is not None:
                self.state.mark_year_processed(year)

        self.store.save(year_range)
        summary = self.store.census.summary
        logger.info(
            f"Census complete: {summary.total_laws} laws, {summary.ingestable} ingestable, "
            f"{summary.excluded} excluded, {summary.pre_republic} pre-Republic"
        )
        return self.store.census
