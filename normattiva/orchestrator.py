"""
Census-driven ingestion of Acts from normattiva.it.

For each pending Act in the census:
  1. Open a fresh crawl session on the Act's landing page
  2. Extract the per-article caricaArticolo targets from its table of contents
  3. Fetch the articles in bounded concurrent batches
  4. Parse each article, deduplicate, annotate EU references
  5. Write the seed record (data/seed/<type>_<number>_<year>.json)
  6. Update the census, checkpointing every few Acts

Acts are processed one at a time. A failed Act still gets an (empty) seed
so the run never blocks on one document.

Usage:
    orchestrator = IngestionOrchestrator(client, CensusStore())
    report = orchestrator.run(doc_type="dlgs", limit=50)
"""

import json
import logging
import time
from pathlib import Path
from typing import Callable, List, Optional, Union

from tqdm import tqdm

from normattiva import config
from normattiva.article_urls import extract_article_targets
from normattiva.census import CensusStore
from normattiva.common import load_json, save_json
from normattiva.corpus import dedupe_provisions
from normattiva.crossrefs import annotate_provisions
from normattiva.http import CrawlSession, FetchError, RateLimitedSessionClient
from normattiva.models import (
    ActResult,
    CensusLaw,
    IngestionReport,
    ProvisionRecord,
    SeedRecord,
)
from normattiva.parsers import LegalTextParser
from normattiva.parsers.document import build_act_url

logger = logging.getLogger(__name__)


class IngestionOrchestrator:
    """Drive the crawl-parse-write cycle over the census."""

    def __init__(
        self,
        client: RateLimitedSessionClient,
        census: CensusStore,
        seed_dir: Union[str, Path] = config.SEED_DIR,
        parser: Optional[LegalTextParser] = None,
        base_url: str = config.BASE_URL,
        batch_width: int = config.BATCH_WIDTH,
        act_pause: float = config.ACT_PAUSE,
        checkpoint_every: int = config.CHECKPOINT_EVERY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.census = census
        self.seed_dir = Path(seed_dir)
        self.parser = parser or LegalTextParser()
        self.base_url = base_url
        self.batch_width = batch_width
        self.act_pause = act_pause
        self.checkpoint_every = max(1, checkpoint_every)
        self.sleep = sleep

    def seed_path(self, law: CensusLaw) -> Path:
        return self.seed_dir / f"{law.type}_{law.number}_{law.year}.json"

    def cached_provision_count(self, law: CensusLaw) -> int:
        """Provisions in an existing seed for this Act (0 when absent or unreadable)."""
        try:
            data = load_json(self.seed_path(law))
        except json.JSONDecodeError:
            logger.warning(f"Unreadable seed for {law.id}, re-ingesting")
            return 0
        if not data:
            return 0
        return len(data.get("provisions") or [])

    def write_seed(self, law: CensusLaw, provisions: List[ProvisionRecord]) -> SeedRecord:
        """Replace the seed file of an Act."""
        seed = SeedRecord(
            id=law.id,
            type=law.type,
            title=law.title,
            short_name=law.title,
            status="in_force",
            issued_date=law.date or None,
            url=law.url,
            provisions=provisions,
        )
        save_json(seed.model_dump(exclude_none=True), self.seed_path(law))
        return seed

    def ingest_act(self, law: CensusLaw) -> ActResult:
        """
        Crawl, parse and write one Act.

        Only a landing page that cannot be fetched is fatal; article fetch and
        parse failures downgrade the outcome to partial.

        Returns:
            ActResult (the seed file is written in every case)
        """
        session = CrawlSession(law.id)
        landing_url = law.url or build_act_url(law.urn)

        # crawling
        try:
            landing = self.client.fetch(landing_url, session)
            if landing.status != 200:
                raise FetchError(landing_url, f"HTTP {landing.status} for {landing_url}")
        except FetchError as e:
            logger.error(f"{law.id}: landing page failed: {e}")
            self.write_seed(law, [])
            return ActResult(law_id=law.id, outcome="failed", error=str(e))

        targets = extract_article_targets(landing.body, self.base_url)
        if not targets:
            logger.warning(f"{law.id}: no article links on landing page, writing empty seed")
            self.write_seed(law, [])
            return ActResult(law_id=law.id, outcome="failed", error="no article links")

        batch = self.client.fetch_batch(
            [target.url for target in targets], session, concurrency=self.batch_width
        )

        # parsing
        parsed = []
        parse_failures = 0
        for result in batch.successes:
            provision = self.parser.parse(result.body)
            if provision is None:
                parse_failures += 1
                logger.debug(f"{law.id}: unparseable article {result.url}")
            else:
                parsed.append(provision)

        provisions, stats = dedupe_provisions(parsed)
        if stats.conflicting_duplicates:
            logger.info(f"{law.id}: {stats.conflicting_duplicates} conflicting duplicate articles")
        provisions = annotate_provisions(law.id, provisions)

        # written
        self.write_seed(law, provisions)

        if not provisions:
            outcome = "failed"
        elif batch.failures or parse_failures:
            outcome = "partial"
        else:
            outcome = "success"

        logger.info(
            f"{law.id}: {outcome}, {len(provisions)} provisions from {len(targets)} articles "
            f"({len(batch.failures)} fetch failures, {parse_failures} unparsed)"
        )
        return ActResult(
            law_id=law.id,
            outcome=outcome,
            provision_count=len(provisions),
            targets=len(targets),
            fetch_failures=len(batch.failures),
            parse_failures=parse_failures,
        )

    def run(
        self,
        doc_type: Optional[str] = None,
        from_year: Optional[int] = None,
        act_id: Optional[str] = None,
        limit: Optional[int] = None,
        force: bool = False,
    ) -> IngestionReport:
        """
        Ingest pending Acts.

        Args:
            doc_type: Only Acts of this type code
            from_year: Only Acts from this year onwards
            act_id: Only this Act
            limit: Process at most this many Acts
            force: Re-fetch even when a non-empty seed exists

        Returns:
            IngestionReport with per-Act results
        """
        laws = self.census.pending(doc_type=doc_type, from_year=from_year, act_id=act_id, limit=limit)
        report = IngestionReport()
        logger.info(f"Acts to process: {len(laws)}")
        unsaved = 0

        for index, law in enumerate(tqdm(laws, desc="Ingesting acts")):
            if not force:
                cached = self.cached_provision_count(law)
                if cached:
                    report.skipped += 1
                    report.processed += 1
                    report.total_provisions += cached
                    if not law.ingested:
                        self.census.update_law(law.id, cached)
                        unsaved = self._checkpoint(unsaved + 1, report, len(laws))
                    continue

            try:
                result = self.ingest_act(law)
            except Exception as e:
                logger.error(f"{law.id}: unexpected error: {e}", exc_info=True)
                self.write_seed(law, [])
                result = ActResult(law_id=law.id, outcome="failed", error=str(e))

            report.results.append(result)
            report.total_provisions += result.provision_count
            if result.outcome == "success":
                report.ingested += 1
            elif result.outcome == "partial":
                report.partial += 1
            else:
                report.failed += 1

            self.census.update_law(law.id, result.provision_count, result.outcome)
            report.processed += 1
            unsaved = self._checkpoint(unsaved + 1, report, len(laws))

            if index < len(laws) - 1:
                self.sleep(self.act_pause)

        self.census.save()
        logger.info(
            f"Ingestion complete: {report.processed} processed, {report.skipped} cached, "
            f"{report.ingested} ingested, {report.partial} partial, {report.failed} failed, "
            f"{report.total_provisions} provisions"
        )
        return report

    def _checkpoint(self, unsaved: int, report: IngestionReport, total: int) -> int:
        """Save the census once checkpoint_every updates are pending; returns the new count."""
        if unsaved < self.checkpoint_every:
            return unsaved
        self.census.save()
        logger.info(f"Checkpoint: {report.processed}/{total} acts")
        return 0
