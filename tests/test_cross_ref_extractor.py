"""
Tests for cross_ref_extractor - SFS and provision references in provision text.
"""

import pytest

from lagrum.models.legal import CrossRefType
from lagrum.parsers.cross_ref_extractor import (
    ExtractedReference,
    build_cross_references,
    extract_cross_references,
)

pytestmark = pytest.mark.unit


class TestExtractCrossReferences:
    def test_empty_input(self):
        assert extract_cross_references("") == []
        assert extract_cross_references(None) == []

    def test_sfs_then_provision(self):
        refs = extract_cross_references("Se lagen (2018:218) samt 3 kap. 5 §")
        assert len(refs) == 2
        assert refs[0].target_sfs == "2018:218"
        assert refs[0].raw_text == "(2018:218)"
        assert refs[1].target_provision_ref == "3:5"
        assert refs[1].target_sfs is None

    def test_sfs_refs_emitted_before_provision_refs(self):
        text = "Enligt 2 kap. 1 § och lagen (2009:400) samt 4 kap. 2 § i förordningen (2009:641)."
        refs = extract_cross_references(text)
        assert [r.target_sfs for r in refs[:2]] == ["2009:400", "2009:641"]
        assert [r.target_provision_ref for r in refs[2:]] == ["2:1", "4:2"]

    def test_duplicates_reported_once(self):
        text = "lagen (2018:218), 3 kap. 5 §, lagen (2018:218) och 3 kap. 5 §"
        refs = extract_cross_references(text)
        assert len(refs) == 2

    def test_letter_section(self):
        refs = extract_cross_references("Av 3 kap. 5 a § framgår")
        assert refs[0].target_provision_ref == "3:5 a"

    def test_glued_letter_section_normalised(self):
        refs = extract_cross_references("Av 3 kap. 5a § framgår")
        assert refs[0].target_provision_ref == "3:5 a"

    def test_bare_section_is_not_a_provision_ref(self):
        assert extract_cross_references("Enligt 5 § gäller följande.") == []

    def test_unparenthesised_sfs_is_ignored(self):
        assert extract_cross_references("SFS 2018:218 gäller.") == []


class TestBuildCrossReferences:
    def test_sfs_ref_targets_document(self):
        edges = build_cross_references("2018:218", "1:1", [ExtractedReference("(2009:400)", target_sfs="2009:400")])
        assert len(edges) == 1
        edge = edges[0]
        assert edge.source_document_id == "2018:218"
        assert edge.source_provision_ref == "1:1"
        assert edge.target_document_id == "2009:400"
        assert edge.target_provision_ref is None
        assert edge.ref_type is CrossRefType.REFERENCES

    def test_provision_ref_targets_source_document(self):
        edges = build_cross_references("2018:218", "3:5 a", [ExtractedReference("3 kap. 5 §", target_provision_ref="3:5")])
        assert edges[0].target_document_id == "2018:218"
        assert edges[0].target_provision_ref == "3:5"

    def test_self_document_reference_dropped(self):
        edges = build_cross_references("2018:218", "1:1", extract_cross_references("Lag (2018:218) gäller."))
        assert edges == []

    def test_self_provision_reference_dropped(self):
        edges = build_cross_references("2018:218", "3:5", extract_cross_references("enligt 3 kap. 5 §"))
        assert edges == []
