"""
In-memory corpus of Acts built from seed records.

The persistent store lives outside this package; everything that reads the
corpus (citation validation in particular) goes through the DocumentStore
interface, which Corpus implements over seed JSON files.

Usage:
    from normattiva.corpus import Corpus

    corpus = Corpus.from_seed_dir("data/seed")
    act = corpus.get_document("dlgs-196-2003")
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from normattiva.common import load_json
from normattiva.crossrefs import annotate_provisions
from normattiva.models import CrossReference, DedupStats, ProvisionRecord, SeedRecord

logger = logging.getLogger(__name__)


def normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def pick_preferred_provision(
    existing: ProvisionRecord, incoming: ProvisionRecord
) -> ProvisionRecord:
    """
    Resolve two extractions of the same article.

    The longer normalized body wins; ties keep the existing one. The
    heading comes from the winner, or from the loser when the winner has none.
    """
    if len(normalize_whitespace(incoming.content)) > len(normalize_whitespace(existing.content)):
        return incoming.model_copy(update={"title": incoming.title or existing.title})
    return existing.model_copy(update={"title": existing.title or incoming.title})


def dedupe_provisions(
    provisions: Iterable[ProvisionRecord],
) -> Tuple[List[ProvisionRecord], DedupStats]:
    """
    Collapse provisions sharing a provision_ref, keeping first-seen order.

    Returns:
        Tuple of (deduplicated provisions, stats)
    """
    by_ref: Dict[str, ProvisionRecord] = {}
    stats = DedupStats()

    for provision in provisions:
        ref = provision.provision_ref.strip()
        existing = by_ref.get(ref)
        if existing is None:
            by_ref[ref] = provision
            continue

        stats.duplicate_refs += 1
        if normalize_whitespace(existing.content) != normalize_whitespace(provision.content):
            stats.conflicting_duplicates += 1
        by_ref[ref] = pick_preferred_provision(existing, provision)

    return list(by_ref.values()), stats


class DocumentStore(ABC):
    """
    Read interface over the corpus of Acts.

    Subclasses must implement:
    - get_document(): Act by exact id
    - documents(): Iterate every Act
    - find_provision(): First provision matching any candidate key
    """

    @abstractmethod
    def get_document(self, document_id: str) -> Optional[SeedRecord]:
        pass

    @abstractmethod
    def documents(self) -> Iterable[SeedRecord]:
        pass

    @abstractmethod
    def find_provision(
        self, document_id: str, candidates: Sequence[str]
    ) -> Optional[ProvisionRecord]:
        """
        Find a provision whose provision_ref or section equals any candidate.

        Args:
            document_id: Act id
            candidates: Keys to try, e.g. ["4-bis", "art4-bis"]

        Returns:
            ProvisionRecord, or None if the Act has no such provision
        """
        pass


class Corpus(DocumentStore):
    """DocumentStore over seed records held in memory."""

    def __init__(self):
        self._documents: Dict[str, SeedRecord] = {}
        self.dedup_stats = DedupStats()

    def __len__(self) -> int:
        return len(self._documents)

    def add_seed(self, seed: SeedRecord) -> SeedRecord:
        """
        Insert or fully replace an Act.

        Provisions are deduplicated and their EU references recomputed,
        including primary-implementation marking.
        """
        provisions, stats = dedupe_provisions(seed.provisions)
        self.dedup_stats.merge(stats)
        if stats.duplicate_refs:
            logger.debug(
                f"{seed.id}: {stats.duplicate_refs} duplicate refs "
                f"({stats.conflicting_duplicates} conflicting)"
            )

        stored = seed.model_copy(update={"provisions": annotate_provisions(seed.id, provisions)})
        self._documents[seed.id] = stored
        return stored

    def get_document(self, document_id: str) -> Optional[SeedRecord]:
        return self._documents.get(document_id)

    def documents(self) -> Iterable[SeedRecord]:
        return list(self._documents.values())

    def find_provision(
        self, document_id: str, candidates: Sequence[str]
    ) -> Optional[ProvisionRecord]:
        document = self._documents.get(document_id)
        if document is None:
            return None
        keys = {c for c in candidates if c}
        for provision in document.provisions:
            if provision.provision_ref in keys or provision.section in keys:
                return provision
        return None

    def cross_references(self, document_id: str) -> List[Tuple[str, CrossReference]]:
        """(provision_ref, reference) pairs for one Act, in provision order."""
        document = self._documents.get(document_id)
        if document is None:
            return []
        pairs = []
        for provision in document.provisions:
            for raw in (provision.metadata or {}).get("eu_references", []):
                pairs.append((provision.provision_ref, CrossReference.model_validate(raw)))
        return pairs

    @classmethod
    def from_seed_dir(cls, seed_dir: Union[str, Path]) -> "Corpus":
        """Load every seed file in a directory (names starting with . or _ are skipped)."""
        corpus = cls()
        seed_dir = Path(seed_dir)
        if not seed_dir.exists():
            logger.warning(f"Seed directory not found: {seed_dir}")
            return corpus

        for path in sorted(seed_dir.glob("*.json")):
            if path.name.startswith((".", "_")):
                continue
            try:
                corpus.add_seed(SeedRecord.model_validate(load_json(path)))
            except (ValidationError, json.JSONDecodeError) as e:
                logger.warning(f"Invalid seed file {path.name}: {e}")

        logger.info(
            f"Loaded {len(corpus)} acts from {seed_dir} "
            f"({corpus.dedup_stats.duplicate_refs} duplicate provisions collapsed)"
        )
        return corpus
