"""
Pydantic models for pipeline data validation.

This module defines the records flowing through the normattiva pipeline:
seed records (Acts and their Provisions), EU cross-references, parsed
citations and their validation results, ephemeral crawl results and the
census of known Acts.

Seed and census records correspond to the JSON files written under data/.

Usage:
    from normattiva.models import ProvisionRecord, SeedRecord

    provision = ProvisionRecord.from_token(
        "4-bis", title="Trattamento", content="Il trattamento dei dati..."
    )
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

ActStatus = Literal["in_force", "amended", "repealed", "not_yet_in_force"]
ActOutcome = Literal["success", "partial", "failed"]
Classification = Literal["ingestable", "excluded", "pre_republic"]
DocumentType = Literal["legge", "dlgs", "dl", "dpr", "rd", "codice", "unknown"]
CitationStyle = Literal["full", "short", "pinpoint"]
InstrumentType = Literal["directive", "regulation"]
Community = Literal["EU", "EC", "EEC", "Euratom"]
Relation = Literal["implements", "references"]


# =============================================================================
# Seed Models (Acts and Provisions)
# =============================================================================


class ProvisionRecord(BaseModel):
    """
    One numbered article of an Act.

    Output of: normattiva/parsers (one per parsed article)
    Consumed by: normattiva/corpus.py
    """

    provision_ref: str = Field(
        ..., description="Lookup key: 'art' + reference token, lowercase ('art4-bis')"
    )
    section: str = Field(..., description="Bare reference token: '4-bis'")
    title: str = Field(default="", description="Article heading, without parentheses")
    content: str = Field(..., description="Normalized article body text")
    metadata: Optional[Dict[str, Any]] = Field(
        None, description="Derived annotations (EU references)"
    )

    @field_validator("provision_ref")
    @classmethod
    def lowercase_ref(cls, v: str) -> str:
        """Ensure provision_ref is lowercase."""
        return v.lower()

    @classmethod
    def from_token(cls, token: str, title: str = "", content: str = "") -> "ProvisionRecord":
        """Build a provision from a reference token such as '615-ter'."""
        token = token.strip().lower()
        return cls(
            provision_ref=f"art{token}",
            section=token,
            title=title or "",
            content=content,
        )

    model_config = {"str_strip_whitespace": True}


class SeedRecord(BaseModel):
    """
    Normalized, persist-ready output of parsing one Act.

    Output of: normattiva/orchestrator.py, normattiva/parsers/document.py
    Consumed by: normattiva/corpus.py (and the external store builder)
    """

    id: str = Field(..., description="Stable identifier: 'dlgs-196-2003'")
    type: str = Field(..., description="Instrument type code: legge, dlgs, dl, dpr, rd, ...")
    title: str = Field(..., description="Act title")
    short_name: str = Field(default="", description="Short name used for lookups")
    status: ActStatus = Field(default="in_force", description="Lifecycle status")
    issued_date: Optional[str] = Field(None, description="Issuance date, YYYY-MM-DD")
    url: str = Field(default="", description="Source locator on normattiva.it")
    provisions: List[ProvisionRecord] = Field(default_factory=list)

    @field_validator("issued_date")
    @classmethod
    def validate_date_format(cls, v: Optional[str]) -> Optional[str]:
        """Validate date is in YYYY-MM-DD format."""
        if v is None or v == "":
            return None
        try:
            datetime.strptime(v, "%Y-%m-%d")
            return v
        except ValueError:
            raise ValueError(f"issued_date must be in YYYY-MM-DD format, got: {v}")

    model_config = {"str_strip_whitespace": True}


class DedupStats(BaseModel):
    """Counters from collapsing provisions that share a reference token."""

    duplicate_refs: int = 0
    conflicting_duplicates: int = Field(
        0, description="Duplicates whose normalized bodies differed"
    )

    def merge(self, other: "DedupStats") -> None:
        self.duplicate_refs += other.duplicate_refs
        self.conflicting_duplicates += other.conflicting_duplicates


# =============================================================================
# Cross-Reference Models
# =============================================================================


class CrossReference(BaseModel):
    """
    Citation, inside a provision body, of an EU directive or regulation.

    Output of: normattiva/crossrefs.py
    Consumed by: normattiva/corpus.py
    """

    instrument_type: InstrumentType
    community: Community = "EU"
    year: int = Field(..., description="Four-digit year", ge=1900, le=2100)
    number: int = Field(..., gt=0)
    instrument_id: str = Field(..., description="'regulation:2016/679'")
    article: Optional[str] = Field(None, description="Pinpoint article, if cited")
    context: str = Field(default="", description="Surrounding text (±120 chars)")
    relation: Relation = "references"
    matched_text: str = Field(..., description="Literal citation text")
    is_primary: bool = Field(
        default=False,
        description="First 'implements' reference for its (Act, instrument) pair",
    )


# =============================================================================
# Citation Models
# =============================================================================


class ParsedCitation(BaseModel):
    """Structured form of a free-text Italian legal citation."""

    valid: bool
    type: DocumentType = "unknown"
    title: Optional[str] = None
    year: Optional[int] = None
    number: Optional[int] = None
    article: Optional[str] = None
    comma: Optional[str] = None
    suffix: Optional[str] = Field(None, description="bis/ter/quater/... suffix")
    document_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def article_ref(self) -> Optional[str]:
        """Article token including its suffix ('4-bis')."""
        if not self.article:
            return None
        return f"{self.article}-{self.suffix}" if self.suffix else self.article


class ValidationResult(BaseModel):
    """Outcome of checking a citation against the corpus."""

    citation: ParsedCitation
    document_exists: bool = False
    provision_exists: bool = False
    document_title: Optional[str] = None
    status: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)


# =============================================================================
# Crawl Models (ephemeral)
# =============================================================================


class ArticleTarget(BaseModel):
    """One article fetch target derived from an Act landing page."""

    url: str
    primary_index: int
    sub_index: int = 0
    version: int = 0


class FetchResult(BaseModel):
    """A completed HTTP exchange."""

    url: str
    status: int
    body: str = ""
    headers: Dict[str, str] = Field(default_factory=dict)


class FetchFailure(BaseModel):
    """A URL that could not be fetched inside a batch."""

    url: str
    status: Optional[int] = None
    error: str


class BatchResult(BaseModel):
    """Per-URL outcomes of a batch fetch; failures never abort the batch."""

    successes: List[FetchResult] = Field(default_factory=list)
    failures: List[FetchFailure] = Field(default_factory=list)


# =============================================================================
# Census Models
# =============================================================================


class CensusLaw(BaseModel):
    """
    A known Act with its ingestion status.

    Output of: normattiva/census.py
    Consumed by: normattiva/orchestrator.py
    """

    id: str
    title: str
    type: str
    number: int
    year: int
    date: str = Field(default="", description="Issuance date, YYYY-MM-DD")
    urn: str = Field(default="", description="urn:nir:stato:<type>:<date>;<number>")
    url: str = ""
    codice_redazionale: str = ""
    category: str = ""
    classification: Classification = "ingestable"
    exclusion_reason: Optional[str] = None
    ingested: bool = False
    provision_count: int = 0
    ingestion_date: Optional[str] = None
    ingestion_outcome: Optional[ActOutcome] = None


class TypeSummary(BaseModel):
    """Aggregate counts for one instrument type."""

    type: str
    type_label: str = ""
    total: int = 0
    ingestable: int = 0
    excluded: int = 0


class CensusSummary(BaseModel):
    """Aggregate counts over the whole census."""

    total_laws: int = 0
    ingestable: int = 0
    excluded: int = 0
    pre_republic: int = 0
    ingested: int = 0
    by_type: List[TypeSummary] = Field(default_factory=list)


class CensusFile(BaseModel):
    """The census JSON document."""

    schema_version: str = "1.0"
    jurisdiction: str = "IT"
    jurisdiction_name: str = "Italy"
    portal: str = "https://www.normattiva.it"
    census_date: str = ""
    agent: str = "normattiva.census"
    year_range: Dict[str, int] = Field(default_factory=dict)
    summary: CensusSummary = Field(default_factory=CensusSummary)
    laws: List[CensusLaw] = Field(default_factory=list)


# =============================================================================
# Ingestion Models
# =============================================================================


class ActResult(BaseModel):
    """Outcome of crawling and parsing one Act."""

    law_id: str
    outcome: ActOutcome
    provision_count: int = 0
    targets: int = Field(0, description="Article URLs found on the landing page")
    fetch_failures: int = 0
    parse_failures: int = 0
    error: Optional[str] = None


class IngestionReport(BaseModel):
    """Totals of one orchestrator run."""

    processed: int = 0
    skipped: int = Field(0, description="Acts reused from an existing seed")
    ingested: int = 0
    partial: int = 0
    failed: int = 0
    total_provisions: int = 0
    results: List[ActResult] = Field(default_factory=list)
