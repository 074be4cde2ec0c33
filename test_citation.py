"""
Tests for citation parsing, formatting, validation and statute id resolution.
"""

import unittest

from normattiva.citation import (
    CITATION_GRAMMARS,
    CitationValidator,
    format_citation,
    get_grammar,
    parse_citation,
)
from normattiva.corpus import Corpus
from normattiva.models import ParsedCitation, ProvisionRecord, SeedRecord
from normattiva.statute_id import (
    normalize_document_identifier,
    resolve_existing_statute_id,
    statute_id_candidates,
)

ACTS = [
    ("dlgs", 196, 2003),
    ("legge", 633, 1941),
    ("dl", 82, 2021),
    ("dpr", 445, 2000),
    ("rd", 262, 1942),
]


def provision(token, content="Testo della disposizione."):
    return ProvisionRecord.from_token(token, content=content)


def build_corpus():
    corpus = Corpus()
    corpus.add_seed(SeedRecord(
        id="dlgs-196-2003",
        type="dlgs",
        title="Codice in materia di protezione dei dati personali",
        short_name="Codice Privacy",
        issued_date="2003-06-30",
        provisions=[provision("1"), provision("4-bis")],
    ))
    corpus.add_seed(SeedRecord(
        id="rd-1398-1930",
        type="rd",
        title="Codice Penale",
        short_name="Codice Penale",
        provisions=[provision("615-ter")],
    ))
    corpus.add_seed(SeedRecord(
        id="legge-300-1970",
        type="legge",
        title="Statuto dei lavoratori",
        status="repealed",
        provisions=[provision("18")],
    ))
    return corpus


class TestParseCitation(unittest.TestCase):
    def test_short_form(self):
        parsed = parse_citation("Art. 1, D.Lgs. 196/2003")
        self.assertTrue(parsed.valid)
        self.assertEqual(parsed.type, "dlgs")
        self.assertEqual(parsed.article, "1")
        self.assertEqual(parsed.number, 196)
        self.assertEqual(parsed.year, 2003)
        self.assertEqual(parsed.document_id, "dlgs-196-2003")

    def test_named_code(self):
        parsed = parse_citation("Art. 615-ter, Codice Penale")
        self.assertTrue(parsed.valid)
        self.assertEqual(parsed.type, "codice")
        self.assertEqual(parsed.article, "615")
        self.assertEqual(parsed.suffix, "ter")
        self.assertEqual(parsed.title, "Codice Penale")
        self.assertIsNone(parsed.document_id)

    def test_full_date_form(self):
        parsed = parse_citation("Art. 1, Decreto legislativo 30 giugno 2003, n. 196")
        self.assertEqual(parsed.document_id, "dlgs-196-2003")

    def test_identifier_form(self):
        parsed = parse_citation("dlgs-196-2003, art. 4-bis, comma 1")
        self.assertEqual(parsed.document_id, "dlgs-196-2003")
        self.assertEqual(parsed.article_ref, "4-bis")
        self.assertEqual(parsed.comma, "1")

    def test_comma_grammar_takes_precedence(self):
        """A paragraph-bearing short citation matches both grammars; the comma one wins."""
        text = "Art. 1, comma 2, D.Lgs. 196/2003"
        self.assertIsNotNone(get_grammar("comma_short").match(text))
        self.assertIsNotNone(get_grammar("short").match(text))

        first = next(grammar.name for grammar in CITATION_GRAMMARS if grammar.match(text))
        self.assertEqual(first, "comma_short")
        self.assertEqual(parse_citation(text).comma, "2")

    def test_whitespace_is_trimmed(self):
        self.assertTrue(parse_citation("   Art. 1, L. 633/1941  ").valid)

    def test_unparseable_input(self):
        parsed = parse_citation("not a citation")
        self.assertFalse(parsed.valid)
        self.assertEqual(parsed.type, "unknown")
        self.assertEqual(parsed.error, 'Could not parse Italian citation: "not a citation"')

    def test_non_string_input(self):
        parsed = parse_citation(None)
        self.assertFalse(parsed.valid)
        self.assertIn("None", parsed.error)

    def test_unknown_grammar(self):
        with self.assertRaises(ValueError):
            get_grammar("bluebook")


class TestFormatCitation(unittest.TestCase):
    def test_round_trip(self):
        """format -> parse -> format yields the same structured form."""
        for doc_type, number, year in ACTS:
            original = ParsedCitation(
                valid=True, type=doc_type, number=number, year=year, article="1",
                document_id=f"{doc_type}-{number}-{year}",
            )
            for style in ("full", "short"):
                with self.subTest(act=original.document_id, style=style):
                    reparsed = parse_citation(format_citation(original, style))
                    self.assertTrue(reparsed.valid)
                    self.assertEqual(
                        (reparsed.type, reparsed.number, reparsed.year, reparsed.article),
                        (doc_type, number, year, "1"),
                    )
                    self.assertEqual(reparsed.document_id, original.document_id)

    def test_styles(self):
        parsed = parse_citation("Art. 1, comma 2, D.Lgs. 196/2003")
        self.assertEqual(format_citation(parsed, "full"), "Art. 1, comma 2, Decreto legislativo n. 196/2003")
        self.assertEqual(format_citation(parsed, "short"), "Art. 1, comma 2, D.Lgs. 196/2003")
        self.assertEqual(format_citation(parsed, "pinpoint"), "Art. 1, comma 2")

    def test_named_code(self):
        parsed = parse_citation("Art. 615-ter, Codice Penale")
        self.assertEqual(format_citation(parsed), "Art. 615-ter, Codice Penale")

    def test_invalid_renders_empty(self):
        self.assertEqual(format_citation(parse_citation("nonsense")), "")
        self.assertEqual(format_citation(ParsedCitation(valid=True, type="dlgs")), "")


class TestCitationValidator(unittest.TestCase):
    def setUp(self):
        self.validator = CitationValidator(build_corpus())

    def test_existing_article(self):
        result = self.validator.validate("Art. 4-bis, D.Lgs. 196/2003")
        self.assertTrue(result.document_exists)
        self.assertTrue(result.provision_exists)
        self.assertEqual(result.warnings, [])

    def test_missing_article_is_a_warning(self):
        result = self.validator.validate("Art. 99, D.Lgs. 196/2003")
        self.assertTrue(result.document_exists)
        self.assertFalse(result.provision_exists)
        self.assertEqual(
            result.warnings,
            ["Article 99 not found in Codice in materia di protezione dei dati personali"],
        )

    def test_missing_document(self):
        result = self.validator.validate("Art. 1, D.Lgs. 1/1999")
        self.assertFalse(result.document_exists)
        self.assertEqual(result.warnings, ['Document "dlgs-1-1999" not found in database'])

    def test_named_code_resolves_by_title(self):
        result = self.validator.validate("Art. 615-ter, Codice Penale")
        self.assertTrue(result.document_exists)
        self.assertTrue(result.provision_exists)

    def test_repealed_act(self):
        result = self.validator.validate("Art. 18, L. 300/1970")
        self.assertTrue(result.provision_exists)
        self.assertIn("This law has been repealed", result.warnings)

    def test_invalid_citation(self):
        result = self.validator.validate("gibberish")
        self.assertFalse(result.document_exists)
        self.assertEqual(result.warnings, ['Could not parse Italian citation: "gibberish"'])


class TestStatuteIds(unittest.TestCase):
    def test_normalize_short_forms(self):
        self.assertEqual(normalize_document_identifier("D.Lgs. 196/2003"), "dlgs-196-2003")
        self.assertEqual(normalize_document_identifier("Legge n. 633/1941"), "legge-633-1941")
        self.assertEqual(normalize_document_identifier("DLGS-196-2003"), "dlgs-196-2003")
        self.assertIsNone(normalize_document_identifier("Codice Privacy"))

    def test_candidates_are_unique_and_ordered(self):
        candidates = statute_id_candidates("D.Lgs. 196/2003")
        self.assertEqual(candidates[0], "d.lgs. 196/2003")
        self.assertIn("dlgs-196-2003", candidates)
        self.assertEqual(len(candidates), len(set(candidates)))

    def test_resolution_order(self):
        corpus = build_corpus()
        self.assertEqual(resolve_existing_statute_id(corpus, "dlgs-196-2003"), "dlgs-196-2003")
        self.assertEqual(resolve_existing_statute_id(corpus, "D.Lgs. 196/2003"), "dlgs-196-2003")
        self.assertEqual(resolve_existing_statute_id(corpus, "codice privacy"), "dlgs-196-2003")
        self.assertEqual(resolve_existing_statute_id(corpus, "Codice"), "rd-1398-1930")
        self.assertIsNone(resolve_existing_statute_id(corpus, "Costituzione"))
        self.assertIsNone(resolve_existing_statute_id(corpus, "   "))


if __name__ == "__main__":
    unittest.main()
