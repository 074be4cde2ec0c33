"""
Tests for the single-document path: a saved Act page parsed into a seed record.
"""

import shutil
import tempfile
import unittest
from pathlib import Path

from normattiva import run_parse_html
from normattiva.common import load_json
from normattiva.parsers.document import (
    build_act_url,
    build_normattiva_urn,
    parse_act_html,
    parse_italian_date,
)

ACT_PAGE = """
<html><body>
<h1>DECRETO LEGISLATIVO 10 agosto 2018, n. 101</h1>
<div class="bodyTesto">
  <h2 class="article-num-akn">Art. 1</h2>
  <div class="article-heading-akn">(Oggetto)</div>
  <div><span class="art-just-text-akn">Il presente decreto d&agrave; attuazione al Regolamento (UE) 2016/679.</span></div>
</div>
<div class="bodyTesto">
  <h2 class="article-num-akn">Art. 2</h2>
  <div><span class="art-just-text-akn">Disposizioni finali.</span></div>
</div>
<div class="bodyTesto">
  <h2 class="article-num-akn">Art. 1</h2>
  <div><span class="art-just-text-akn">Oggetto.</span></div>
</div>
</body></html>
"""


class TestDates(unittest.TestCase):
    def test_parse_italian_date(self):
        self.assertEqual(parse_italian_date("30 giugno 2003"), "2003-06-30")
        self.assertEqual(parse_italian_date("1° Gennaio 1948"), "1948-01-01")
        self.assertIsNone(parse_italian_date("32 marzo 2000"))
        self.assertIsNone(parse_italian_date("2003-06-30"))


class TestUrns(unittest.TestCase):
    def test_build_normattiva_urn(self):
        self.assertEqual(
            build_normattiva_urn("dlgs", "2003-06-30", 196),
            "urn:nir:stato:decreto.legislativo:2003-06-30;196",
        )
        self.assertEqual(
            build_normattiva_urn("rd", "1942-03-16", 262),
            "urn:nir:stato:regio.decreto:1942-03-16;262",
        )

    def test_build_act_url(self):
        self.assertTrue(build_act_url("urn:nir:stato:legge:1941-04-22;633").endswith(
            "/uri-res/N2Ls?urn:nir:stato:legge:1941-04-22;633"
        ))


class TestParseActHtml(unittest.TestCase):
    def test_seed_record(self):
        seed = parse_act_html(ACT_PAGE, "dlgs", 101, 2018, "Adeguamento al GDPR", date="2018-08-10")

        self.assertEqual(seed.id, "dlgs-101-2018")
        self.assertEqual(seed.issued_date, "2018-08-10")
        self.assertIn("decreto.legislativo:2018-08-10;101", seed.url)
        self.assertEqual([p.section for p in seed.provisions], ["1", "2"])
        self.assertEqual(seed.provisions[0].title, "Oggetto")

        refs = seed.provisions[0].metadata["eu_references"]
        self.assertEqual(refs[0]["instrument_id"], "regulation:2016/679")
        self.assertTrue(refs[0]["is_primary"])

    def test_default_issue_date(self):
        seed = parse_act_html(ACT_PAGE, "dlgs", 101, 2018, "Adeguamento al GDPR")
        self.assertEqual(seed.issued_date, "2018-01-01")

    def test_unrecognized_page(self):
        seed = parse_act_html("<html><body>Pagina vuota</body></html>", "legge", 1, 2020, "Vuota")
        self.assertEqual(seed.provisions, [])


class TestParseHtmlCommand(unittest.TestCase):
    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.html = self.test_dir / "act.html"
        self.html.write_text(ACT_PAGE, encoding="utf-8")
        self.out = self.test_dir / "seed" / "dlgs_101_2018.json"

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def run_command(self, date):
        return run_parse_html.main([
            "--html", str(self.html), "--type", "dlgs", "--number", "101",
            "--year", "2018", "--title", "Adeguamento al GDPR",
            "--date", date, "--out", str(self.out),
        ])

    def test_italian_date(self):
        self.assertEqual(self.run_command("10 agosto 2018"), 0)
        self.assertEqual(load_json(self.out)["issued_date"], "2018-08-10")

    def test_malformed_date_fails_cleanly(self):
        self.assertEqual(self.run_command("31 febbraio 2018"), 1)
        self.assertEqual(self.run_command("agosto 2018"), 1)
        self.assertFalse(self.out.exists())


if __name__ == "__main__":
    unittest.main()
