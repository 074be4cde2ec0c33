#!/usr/bin/env python3
"""
Parse a saved normattiva Act page into a seed record.

Usage:
  python -m normattiva.run_parse_html --html act.html --type dlgs --number 196 \
      --year 2003 --title "Codice in materia di protezione dei dati personali" \
      --date "30 giugno 2003" --out data/seed/dlgs_196_2003.json
"""

import argparse
from datetime import datetime
from pathlib import Path

from normattiva.common import save_json, setup_logging
from normattiva.parsers.document import parse_act_html, parse_italian_date

logger = setup_logging(__name__)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Parse a saved Act page into a seed JSON file")
    parser.add_argument("--html", required=True, help="Saved Act page")
    parser.add_argument("--type", dest="doc_type", required=True, help="Type code (legge, dlgs, dl, dpr, rd)")
    parser.add_argument("--number", type=int, required=True, help="Act number")
    parser.add_argument("--year", type=int, required=True, help="Act year")
    parser.add_argument("--title", required=True, help="Act title")
    parser.add_argument("--date", default=None, help='Issuance date, "30 giugno 2003" or 2003-06-30')
    parser.add_argument("--out", required=True, help="Output seed JSON file")

    args = parser.parse_args(argv)

    html_path = Path(args.html)
    if not html_path.exists():
        logger.error(f"Input file not found: {html_path}")
        return 1

    issued = None
    if args.date:
        issued = parse_italian_date(args.date) or args.date.strip()
        try:
            datetime.strptime(issued, "%Y-%m-%d")
        except ValueError:
            logger.error(f"Unreadable --date: {args.date!r}")
            return 1

    seed = parse_act_html(
        html_path.read_text(encoding="utf-8", errors="replace"),
        args.doc_type,
        args.number,
        args.year,
        args.title,
        date=issued,
    )
    save_json(seed.model_dump(exclude_none=True), Path(args.out))

    logger.info(f"Parsed {len(seed.provisions)} provisions for {seed.id}")
    logger.info(f"  Output: {args.out}")
    return 0


if __name__ == "__main__":
    exit(main())
