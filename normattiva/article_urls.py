"""
Extract per-article fetch targets from an Act landing page.

The landing page of an Act on normattiva.it does not contain the article
texts. Each entry of its table of contents carries a directive that loads one
article through the caricaArticolo endpoint, e.g.

    showArticle('/atto/caricaArticolo?art.versione=3&art.idGruppo=1
        &art.flagTipoArticolo=0&art.codiceRedazionale=003G0218
        &art.idArticolo=4&art.idSottoArticolo=2&art.idSottoArticolo1=10
        &art.dataPubblicazioneGazzetta=2003-07-29&art.progressivo=0', this)

Identity of an article is (idArticolo, idSottoArticolo); versione numbers
successive consolidated texts; a non-zero flagTipoArticolo marks a historical
snapshot that is not part of the current text.
"""

import html
import logging
import re
from typing import Dict, List, Tuple
from urllib.parse import parse_qs, urljoin, urlsplit

from normattiva import config
from normattiva.models import ArticleTarget

logger = logging.getLogger(__name__)

DIRECTIVE_PATTERN = re.compile(
    r"""((?:https?://[^\s'"<>/]+)?/?[\w./-]*caricaArticolo\?[^\s'"<>]+)""",
    re.IGNORECASE,
)

PRIMARY_PARAM = "art.idArticolo"
SUB_PARAM = "art.idSottoArticolo"
VERSION_PARAM = "art.versione"
HISTORICAL_PARAM = "art.flagTipoArticolo"


def _int_param(params: Dict[str, List[str]], name: str, default: int = 0) -> int:
    values = params.get(name)
    if not values:
        return default
    try:
        return int(values[0])
    except ValueError:
        return default


def extract_article_targets(landing_html: str, base_url: str = config.BASE_URL) -> List[ArticleTarget]:
    """
    Turn a landing page into ordered, deduplicated article targets.

    Historical snapshots are dropped, only the highest version of each
    (primary, sub) identity survives, and targets are ordered by
    (primary, sub) ascending.

    Args:
        landing_html: Raw markup of the Act landing page
        base_url: Portal root used to absolutize relative directives

    Returns:
        List of ArticleTarget
    """
    if not landing_html:
        return []

    best: Dict[Tuple[int, int], ArticleTarget] = {}
    historical = 0

    for match in DIRECTIVE_PATTERN.finditer(landing_html):
        raw = html.unescape(match.group(1))
        params = parse_qs(urlsplit(raw).query)

        if PRIMARY_PARAM not in params:
            continue
        primary = _int_param(params, PRIMARY_PARAM, default=-1)
        if primary < 0:
            continue

        flag = params.get(HISTORICAL_PARAM, ["0"])[0].strip()
        if flag not in ("", "0"):
            historical += 1
            continue

        target = ArticleTarget(
            url=urljoin(base_url.rstrip("/") + "/", raw),
            primary_index=primary,
            sub_index=_int_param(params, SUB_PARAM),
            version=_int_param(params, VERSION_PARAM),
        )
        key = (target.primary_index, target.sub_index)
        incumbent = best.get(key)
        if incumbent is None or target.version > incumbent.version:
            best[key] = target

    if historical:
        logger.debug(f"Discarded {historical} historical article snapshots")

    # TODO: (primary, sub) order is only a proxy for drafting order; check it
    # against the TOC position once inserted -bis articles can be compared.
    return [best[key] for key in sorted(best)]


def extract_article_urls(landing_html: str, base_url: str = config.BASE_URL) -> List[str]:
    """Convenience wrapper returning plain URLs."""
    return [target.url for target in extract_article_targets(landing_html, base_url)]
