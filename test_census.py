"""
Tests for the census: listing page parsing, classification, store and builder.
"""

import shutil
import tempfile
import unittest
from pathlib import Path

from normattiva.census import (
    PRE_REPUBLIC_ACTS,
    CensusBuilder,
    CensusStore,
    build_census_law,
    classify_act,
    extract_total_count,
    parse_year_page,
    resolve_type,
)
from normattiva.common import StateManager, load_json
from normattiva.models import CensusLaw, FetchResult

BASE_URL = "https://www.normattiva.it"


def entry_block(index, headline, codice, published, description):
    return f"""
<div id="collapseDiv_{index}" class="collapse show">
  <div class="boxAtto">
    <div class="risultato">
      <a href="/atto/caricaDettaglioAtto?atto.dataPubblicazioneGazzetta={published}&atto.codiceRedazionale={codice}&tipoDettaglio=originario"
         class="font-weight-semibold">{headline}</a>
      <p>[{description} ({codice})]</p>
    </div>
  </div>
</div>
"""


def listing_page(total, entries):
    blocks = "".join(entry_block(i, *entry) for i, entry in enumerate(entries))
    return f"<html><body><h3>Sono stati trovati {total} atti</h3>{blocks}</body></html>"


DLGS_ENTRY = (
    "DECRETO LEGISLATIVO 27 dicembre 2024, n. 209", "24G00223", "2024-12-31",
    "Disposizioni integrative e correttive al codice dei contratti pubblici.",
)
LEGGE_ENTRY = (
    "LEGGE 30 dicembre 2024, n. 207", "24G00229", "2024-12-31",
    "Bilancio di previsione dello Stato per l'anno finanziario 2025.",
)
COMUNICATO_ENTRY = (
    "COMUNICATO 2 gennaio 2024, n. 5", "24A00001", "2024-01-02",
    "Avviso di rettifica.",
)


class FakeClient:
    """Answers fetches from a url -> (status, body) table."""

    def __init__(self, pages):
        self.pages = pages
        self.requested = []

    def fetch(self, url, session=None):
        self.requested.append(url)
        status, body = self.pages.get(url, (404, ""))
        return FetchResult(url=url, status=status, body=body)


class TestListingParsing(unittest.TestCase):
    def test_parse_year_page(self):
        entries = parse_year_page(listing_page(2, [DLGS_ENTRY, LEGGE_ENTRY]))
        self.assertEqual(len(entries), 2)
        self.assertEqual(entries[0], {
            "codice_redazionale": "24G00223",
            "data_pubblicazione": "2024-12-31",
            "tipo_display": "DECRETO LEGISLATIVO",
            "date_text": "2024-12-27",
            "number": 209,
            "description": "Disposizioni integrative e correttive al codice dei contratti pubblici.",
        })
        self.assertEqual(entries[1]["tipo_display"], "LEGGE")

    def test_total_count(self):
        self.assertEqual(extract_total_count("Sono stati trovati 222 atti"), 222)
        self.assertEqual(extract_total_count("Sono stati trovati 1.265 atti"), 1265)
        self.assertEqual(extract_total_count("<html></html>"), 0)

    def test_classification(self):
        self.assertEqual(classify_act("DECRETO LEGISLATIVO"), ("ingestable", None))
        self.assertEqual(classify_act("DECRETO-LEGGE"), ("ingestable", None))
        classification, reason = classify_act("COMUNICATO")
        self.assertEqual(classification, "excluded")
        self.assertIn("COMUNICATO", reason)

    def test_longest_type_prefix_wins(self):
        self.assertEqual(resolve_type("REGIO DECRETO-LEGGE CONVERTITO")[0], "rdl")
        self.assertEqual(resolve_type("DECRETO LEGISLATIVO LUOGOTENENZIALE N.")[0], "dll")
        self.assertEqual(resolve_type("DECRETO LEGISLATIVO")[0], "dlgs")
        self.assertIsNone(resolve_type("COMUNICATO"))

    def test_build_census_law(self):
        entry = parse_year_page(listing_page(1, [DLGS_ENTRY]))[0]
        law = build_census_law(entry, BASE_URL)
        self.assertEqual(law.id, "dlgs-209-2024")
        self.assertEqual(law.urn, "urn:nir:stato:decreto.legislativo:2024-12-27;209")
        self.assertEqual(law.url, f"{BASE_URL}/uri-res/N2Ls?{law.urn}")
        self.assertEqual(law.category, "Decreto Legislativo")
        self.assertEqual(law.classification, "ingestable")

    def test_unknown_type_is_excluded(self):
        entry = parse_year_page(listing_page(1, [COMUNICATO_ENTRY]))[0]
        law = build_census_law(entry, BASE_URL)
        self.assertEqual(law.id, "comunicato-5-2024")
        self.assertEqual(law.classification, "excluded")


class TestCensusStore(unittest.TestCase):
    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.path = self.test_dir / "census.json"

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def law(self, doc_type, number, year, classification="ingestable"):
        return CensusLaw(
            id=f"{doc_type}-{number}-{year}", title=f"{doc_type} {number}", type=doc_type,
            number=number, year=year, classification=classification,
        )

    def test_pending_order_and_filters(self):
        store = CensusStore(self.path)
        for law in (
            self.law("legge", 10, 2020), self.law("dlgs", 5, 2021),
            self.law("dlgs", 2, 2021), self.law("comunicato", 1, 2022, "excluded"),
        ):
            store.add(law)

        self.assertEqual(
            [law.id for law in store.pending()],
            ["dlgs-2-2021", "dlgs-5-2021", "legge-10-2020"],
        )
        self.assertEqual([law.id for law in store.pending(doc_type="legge")], ["legge-10-2020"])
        self.assertEqual(len(store.pending(from_year=2021)), 2)
        self.assertEqual(len(store.pending(limit=1)), 1)
        self.assertEqual([law.id for law in store.pending(act_id="dlgs-5-2021")], ["dlgs-5-2021"])

    def test_add_keeps_existing_status(self):
        store = CensusStore(self.path)
        store.add(self.law("dlgs", 1, 2020))
        store.update_law("dlgs-1-2020", 12, "success")
        self.assertFalse(store.add(self.law("dlgs", 1, 2020)))
        self.assertTrue(store.get("dlgs-1-2020").ingested)

    def test_save_and_reload(self):
        store = CensusStore(self.path)
        store.add(self.law("dlgs", 1, 2020))
        store.add(self.law("legge", 3, 2021))
        store.add(self.law("comunicato", 1, 2021, "excluded"))
        store.update_law("dlgs-1-2020", 7, "partial")
        store.save({"from": 2020, "to": 2021})

        data = load_json(self.path)
        self.assertEqual(data["summary"]["total_laws"], 3)
        self.assertEqual(data["summary"]["ingestable"], 2)
        self.assertEqual(data["summary"]["excluded"], 1)
        self.assertEqual(data["summary"]["ingested"], 1)
        self.assertEqual(data["year_range"], {"from": 2020, "to": 2021})
        self.assertEqual(data["laws"][-1]["id"], "dlgs-1-2020")

        reloaded = CensusStore(self.path)
        self.assertEqual(len(reloaded), 3)
        self.assertEqual(reloaded.get("dlgs-1-2020").ingestion_outcome, "partial")


class TestStateManager(unittest.TestCase):
    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.path = self.test_dir / "interim" / "census.state"

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_processed_years_persist(self):
        state = StateManager(str(self.path))
        state.mark_year_processed(2024)
        state.mark_year_processed(2022)
        state.mark_year_processed(2024)

        self.assertEqual(StateManager(str(self.path)).processed_years(), [2022, 2024])

    def test_reset(self):
        state = StateManager(str(self.path))
        state.mark_year_processed(2024)
        state.reset()
        self.assertEqual(StateManager(str(self.path)).processed_years(), [])


class TestCensusBuilder(unittest.TestCase):
    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.store = CensusStore(self.test_dir / "census.json")
        self.state = StateManager(str(self.test_dir / "census.state"))

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_run_crawls_years_and_survives_failures(self):
        client = FakeClient({
            f"{BASE_URL}/ricerca/elencoPerData/anno/2024": (
                200, listing_page(3, [DLGS_ENTRY, LEGGE_ENTRY, COMUNICATO_ENTRY])
            ),
            f"{BASE_URL}/ricerca/elencoPerData/anno/2023": (500, ""),
        })
        census = CensusBuilder(client, self.store, self.state, BASE_URL).run(
            from_year=2023, to_year=2024
        )

        self.assertEqual(census.summary.total_laws, 3 + len(PRE_REPUBLIC_ACTS))
        self.assertEqual(census.summary.excluded, 1)
        self.assertEqual(census.summary.pre_republic, len(PRE_REPUBLIC_ACTS))
        self.assertEqual(self.state.get("processed_years"), [2024])
        self.assertEqual(client.requested[0], f"{BASE_URL}/ricerca/elencoPerData/anno/2024")

    def test_resume_skips_processed_years(self):
        self.state.set("processed_years", [2024])
        client = FakeClient({
            f"{BASE_URL}/ricerca/elencoPerData/anno/2023": (200, listing_page(1, [LEGGE_ENTRY])),
        })
        CensusBuilder(client, self.store, self.state, BASE_URL).run(
            from_year=2023, to_year=2024, resume=True
        )
        self.assertEqual(client.requested, [f"{BASE_URL}/ricerca/elencoPerData/anno/2023"])
        self.assertEqual(self.state.get("processed_years"), [2023, 2024])

    def test_pagination(self):
        client = FakeClient({
            f"{BASE_URL}/ricerca/elencoPerData/anno/2024": (
                200, listing_page(3, [DLGS_ENTRY, LEGGE_ENTRY])
            ),
            f"{BASE_URL}/ricerca/elencoPerData/0": (200, listing_page(3, [COMUNICATO_ENTRY])),
        })
        entries = CensusBuilder(client, self.store, self.state, BASE_URL).fetch_year(2024)
        self.assertEqual(len(entries), 3)
        self.assertEqual(client.requested[-1], f"{BASE_URL}/ricerca/elencoPerData/0")


if __name__ == "__main__":
    unittest.main()
