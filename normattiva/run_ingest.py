#!/usr/bin/env python3
"""
Ingest Acts listed in the census, article by article.

Reads data/census.json, fetches every pending Act from normattiva.it and
writes one seed file per Act under data/seed/.

Usage:
  normattiva-ingest                          # All pending acts
  normattiva-ingest --limit 50               # At most 50 acts
  normattiva-ingest --force                  # Re-fetch even if a seed exists
  normattiva-ingest --type dlgs              # Only decreti legislativi
  normattiva-ingest --id dlgs-196-2003       # A single act
  normattiva-ingest --from 2020              # Acts from 2020 onwards
"""

import argparse
from pathlib import Path

from normattiva import config
from normattiva.census import CensusStore
from normattiva.common import setup_logging
from normattiva.http import RateLimitedSessionClient
from normattiva.orchestrator import IngestionOrchestrator

logger = setup_logging(__name__)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Census-driven ingestion of Italian legislation from normattiva.it"
    )
    parser.add_argument("--limit", type=int, default=None, help="Process at most N acts")
    parser.add_argument("--force", action="store_true", help="Re-fetch acts that already have a seed")
    parser.add_argument("--type", dest="doc_type", default=None, help="Only this type code (e.g. dlgs)")
    parser.add_argument("--id", dest="act_id", default=None, help="Only this act id (e.g. dlgs-196-2003)")
    parser.add_argument("--from", dest="from_year", type=int, default=None, help="Only acts from this year on")
    parser.add_argument(
        "--census",
        default=str(config.CENSUS_PATH),
        help=f"Census file (default: {config.CENSUS_PATH})"
    )
    parser.add_argument(
        "--seed-dir",
        default=str(config.SEED_DIR),
        help=f"Seed output directory (default: {config.SEED_DIR})"
    )

    args = parser.parse_args(argv)

    census_path = Path(args.census)
    if not census_path.exists():
        logger.error(f"Census not found: {census_path}. Run normattiva-census first.")
        return 1

    census = CensusStore(census_path)
    summary = census.census.summary
    logger.info(
        f"Census: {summary.total_laws} total, {summary.ingestable} ingestable, "
        f"{summary.ingested} already ingested"
    )

    orchestrator = IngestionOrchestrator(RateLimitedSessionClient(), census, seed_dir=args.seed_dir)
    report = orchestrator.run(
        doc_type=args.doc_type,
        from_year=args.from_year,
        act_id=args.act_id,
        limit=args.limit,
        force=args.force,
    )

    logger.info("Ingestion complete!")
    logger.info(f"  Acts processed: {report.processed}")
    logger.info(f"  Acts skipped (cached): {report.skipped}")
    logger.info(f"  Acts ingested: {report.ingested}")
    logger.info(f"  Acts partial: {report.partial}")
    logger.info(f"  Acts failed: {report.failed}")
    logger.info(f"  Total provisions: {report.total_provisions}")
    logger.info(f"  Census: {census.census.summary.ingested}/{census.census.summary.ingestable} ingested")

    return 0


if __name__ == "__main__":
    exit(main())
