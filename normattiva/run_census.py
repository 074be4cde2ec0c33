#!/usr/bin/env python3
"""
Build the census of Italian legislation from normattiva.it.

Crawls the chronological listing year by year (newest first) and writes
data/census.json.

Usage:
  normattiva-census                      # Full census (1946-present)
  normattiva-census --from 2020          # Census from 2020 only
  normattiva-census --resume             # Skip years an earlier run completed
  normattiva-census --pre-republic       # Include pre-Republic codes
"""

import argparse

from normattiva import config
from normattiva.census import FIRST_REPUBLIC_YEAR, CensusBuilder, CensusStore
from normattiva.common import StateManager, setup_logging
from normattiva.http import MinIntervalRateLimiter, RateLimitedSessionClient

logger = setup_logging(__name__)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Enumerate Italian legislation from the normattiva.it chronological listing"
    )
    parser.add_argument(
        "--from",
        dest="from_year",
        type=int,
        default=FIRST_REPUBLIC_YEAR,
        help=f"Oldest year to crawl (default: {FIRST_REPUBLIC_YEAR})"
    )
    parser.add_argument(
        "--to",
        dest="to_year",
        type=int,
        default=None,
        help="Newest year to crawl (default: current year)"
    )
    parser.add_argument(
        "--resume",
        action="store_true",
        help="Skip years already processed by an earlier run"
    )
    parser.add_argument(
        "--pre-republic",
        action="store_true",
        help="Add the curated pre-Republic codes"
    )
    parser.add_argument(
        "--census",
        default=str(config.CENSUS_PATH),
        help=f"Census file (default: {config.CENSUS_PATH})"
    )

    args = parser.parse_args(argv)

    client = RateLimitedSessionClient(
        rate_limiter=MinIntervalRateLimiter(config.CENSUS_MIN_DELAY)
    )
    store = CensusStore(args.census)
    state = StateManager(str(config.STATE_DIR / "census.state"))

    logger.info(f"Building census into {args.census}")
    census = CensusBuilder(client, store, state).run(
        from_year=args.from_year,
        to_year=args.to_year,
        resume=args.resume,
        pre_republic=args.pre_republic,
    )

    summary = census.summary
    logger.info("Census complete!")
    logger.info(f"  Total laws: {summary.total_laws}")
    logger.info(f"  Ingestable: {summary.ingestable}")
    logger.info(f"  Excluded: {summary.excluded}")
    logger.info(f"  Pre-Republic: {summary.pre_republic}")
    for stat in summary.by_type:
        logger.info(
            f"  {stat.type_label or stat.type}: {stat.total} total, "
            f"{stat.ingestable} ingestable, {stat.excluded} excluded"
        )

    return 0


if __name__ == "__main__":
    exit(main())
