"""
Tests for the citation grammar - parsing Swedish legal citation strings.
"""

import pytest

from lagrum.citation.formatter import format_citation
from lagrum.citation.grammar import CITATION_GRAMMARS, detect_document_type, parse_citation
from lagrum.models.legal import CitationStyle, DocumentType, ProvisionRef

pytestmark = pytest.mark.unit


class TestStatuteCitations:
    def test_long_form_with_chapter_and_section(self):
        parsed = parse_citation("SFS 2018:218 3 kap. 5 §")
        assert parsed.valid is True
        assert parsed.type is DocumentType.STATUTE
        assert parsed.document_id == "2018:218"
        assert parsed.chapter == "3"
        assert parsed.section == "5"

    def test_without_sfs_prefix(self):
        parsed = parse_citation("2018:218 3 kap. 5 §")
        assert parsed.document_id == "2018:218"
        assert parsed.chapter == "3"

    def test_letter_section(self):
        parsed = parse_citation("SFS 2018:218 3 kap. 5 a §")
        assert parsed.section == "5 a"
        assert parsed.provision_ref == ProvisionRef(section="5 a", chapter="3")

    def test_glued_letter_section_is_normalised(self):
        assert parse_citation("2018:218 3 kap. 5a §").section == "5 a"

    def test_short_form(self):
        parsed = parse_citation("2018:218 3:5")
        assert parsed.document_id == "2018:218"
        assert parsed.chapter == "3"
        assert parsed.section == "5"

    def test_short_form_keeps_pinpoint_before_trailing_words(self):
        parsed = parse_citation("2018:218 9:99 första stycket")
        assert parsed.valid is True
        assert parsed.chapter == "9"
        assert parsed.section == "99"

    def test_short_form_letter_section_vs_word(self):
        assert parse_citation("2018:218 3:5 a andra stycket").section == "5 a"
        assert parse_citation("2018:218 3:5 andra stycket").section == "5"

    def test_unrecognised_short_pinpoint_is_not_dropped(self):
        parsed = parse_citation("2018:218 9:99x")
        assert parsed.valid is False

    def test_flat_section(self):
        parsed = parse_citation("SFS 2009:400 5 §")
        assert parsed.chapter is None
        assert parsed.section == "5"
        assert str(parsed.provision_ref) == "5"

    def test_chapter_only(self):
        parsed = parse_citation("SFS 2018:218 3 kap.")
        assert parsed.chapter == "3"
        assert parsed.section is None
        assert parsed.has_pinpoint is True
        assert parsed.provision_ref is None

    def test_document_only(self):
        parsed = parse_citation("SFS 2018:218")
        assert parsed.valid is True
        assert parsed.has_pinpoint is False

    def test_provision_first_form(self):
        parsed = parse_citation("3 kap. 5 § lagen (2018:218)")
        assert parsed.document_id == "2018:218"
        assert parsed.chapter == "3"
        assert parsed.section == "5"

    def test_surrounding_whitespace_is_ignored_but_raw_kept(self):
        parsed = parse_citation("  SFS 2018:218  ")
        assert parsed.document_id == "2018:218"
        assert parsed.raw == "  SFS 2018:218  "


class TestOtherDocumentTypes:
    def test_bill(self):
        parsed = parse_citation("Prop. 2017/18:105")
        assert parsed.type is DocumentType.BILL
        assert parsed.document_id == "2017/18:105"

    def test_sou(self):
        parsed = parse_citation("SOU 2023:45")
        assert parsed.type is DocumentType.SOU
        assert parsed.document_id == "2023:45"

    def test_ds(self):
        parsed = parse_citation("Ds 2022:10")
        assert parsed.type is DocumentType.DS
        assert parsed.document_id == "2022:10"

    def test_nja(self):
        parsed = parse_citation("NJA 2020 s. 45")
        assert parsed.type is DocumentType.CASE_LAW
        assert parsed.document_id == "NJA 2020"
        assert parsed.page == "45"

    @pytest.mark.parametrize(
        "citation,document_id,page",
        [
            ("HFD 2019 ref. 12", "HFD 2019", "12"),
            ("AD 2019 nr 12", "AD 2019", "12"),
            ("MD 2018 ref. 3", "MD 2018", "3"),
            ("MIG 2017 ref. 8", "MIG 2017", "8"),
            ("nja 2020 s. 45", "NJA 2020", "45"),
        ],
    )
    def test_case_law_reporters(self, citation, document_id, page):
        parsed = parse_citation(citation)
        assert parsed.type is DocumentType.CASE_LAW
        assert parsed.document_id == document_id
        assert parsed.page == page


class TestParseFailures:
    def test_empty(self):
        parsed = parse_citation("")
        assert parsed.valid is False
        assert parsed.error == "Empty citation"

    def test_whitespace_only(self):
        assert parse_citation("   ").error == "Empty citation"

    def test_none(self):
        assert parse_citation(None).valid is False

    def test_unrecognized(self):
        parsed = parse_citation("dataskyddslagen")
        assert parsed.valid is False
        assert parsed.error == 'Unrecognized citation format: "dataskyddslagen"'

    def test_failure_is_not_raised(self):
        parsed = parse_citation("Prop. abc")
        assert parsed.valid is False


class TestRoundTrip:
    @pytest.mark.parametrize(
        "citation",
        [
            "SFS 2018:218",
            "SFS 2018:218 3 kap. 5 §",
            "SFS 2018:218 3 kap. 5 a §",
            "SFS 2018:218 3 kap.",
            "SFS 2009:400 5 §",
            "Prop. 2017/18:105",
            "SOU 2023:45",
            "Ds 2022:10",
            "NJA 2020 s. 45",
            "HFD 2019 ref. 12",
            "AD 2019 nr 12",
        ],
    )
    def test_full_format_parses_back(self, citation):
        parsed = parse_citation(citation)
        reparsed = parse_citation(format_citation(parsed, CitationStyle.FULL))
        assert reparsed.valid is True
        assert (reparsed.type, reparsed.document_id, reparsed.chapter, reparsed.section, reparsed.page) == (
            parsed.type,
            parsed.document_id,
            parsed.chapter,
            parsed.section,
            parsed.page,
        )


class TestGrammarTable:
    def test_order(self):
        assert [g.name for g in CITATION_GRAMMARS] == [
            "statute_provision_first",
            "statute_short",
            "statute_long",
            "bill",
            "sou",
            "ds",
            "case_law",
        ]


class TestDetectDocumentType:
    @pytest.mark.parametrize(
        "citation,expected",
        [
            ("Prop. 2017/18:105", DocumentType.BILL),
            ("SOU 2023:45", DocumentType.SOU),
            ("Ds 2022:10", DocumentType.DS),
            ("NJA 2020 s. 45", DocumentType.CASE_LAW),
            ("SFS 2018:218", DocumentType.STATUTE),
            ("2018:218 3:5", DocumentType.STATUTE),
            ("3 kap. 5 § lagen (2018:218)", DocumentType.STATUTE),
            ("dataskyddslagen", None),
            ("", None),
        ],
    )
    def test_detect(self, citation, expected):
        assert detect_document_type(citation) is expected
