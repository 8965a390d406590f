"""Tests for name-variant generation and matching."""

import pytest

from argschema.services.resource_graph.name_variants import (
    build_synonym_map,
    name_variants,
    names_match,
)


class TestSynonymMap:
    def test_is_bidirectional(self):
        table = build_synonym_map({"take": ["limit"]})
        assert table["take"] == {"limit"}
        assert table["limit"] == {"take"}

    def test_lowercases(self):
        table = build_synonym_map({"Take": ["LIMIT"]})
        assert "take" in table and "limit" in table

    def test_defaults_from_settings(self):
        assert "limit" in build_synonym_map()["take"]

    def test_empty(self):
        assert build_synonym_map({}) == {}


class TestNameVariants:
    def test_identity_and_lowercase(self):
        variants = name_variants("ToLower", synonyms={})
        assert {"ToLower", "tolower"} <= variants

    def test_hyphen_underscore_swap(self):
        assert "mv_expand" in name_variants("mv-expand", synonyms={})
        assert "bag-pack" in name_variants("bag_pack", synonyms={})

    @pytest.mark.parametrize("name", ["!contains", "not-contains", "not_contains"])
    def test_negation_styles_expand_to_all_forms(self, name):
        variants = name_variants(name, synonyms={})
        assert {"!contains", "not-contains", "not_contains", "notcontains"} <= variants

    def test_compressed_negation(self):
        variants = name_variants("notcontains", synonyms={})
        assert "not-contains" in variants
        assert "!contains" in variants

    def test_compressed_rule_can_be_disabled(self):
        variants = name_variants("notcontains", synonyms={}, compressed_prefixes=())
        assert variants == {"notcontains"}

    def test_bare_not_has_no_negated_forms(self):
        assert name_variants("not", synonyms={}) == {"not"}

    def test_synonyms_applied(self):
        synonyms = build_synonym_map({"take": ["limit"]})
        assert "limit" in name_variants("take", synonyms)
        assert "take" in name_variants("limit", synonyms)

    def test_empty_name(self):
        assert name_variants("", synonyms={}) == set()


class TestNamesMatch:
    def test_negation_styles_intersect(self):
        assert names_match("not-contains", "!contains")

    def test_positive_and_negated_do_not_intersect(self):
        assert not names_match("contains", "not-contains")
        assert not names_match("contains", "!contains")

    def test_symmetric(self):
        pairs = [("not-has", "!has"), ("mv-expand", "mv_expand"), ("take", "limit")]
        for left, right in pairs:
            assert names_match(left, right) == names_match(right, left)

    def test_case_insensitive(self):
        assert names_match("Where", "where", synonyms={})

    def test_unrelated(self):
        assert not names_match("where", "project", synonyms={})

    def test_synonym_table_override(self):
        assert not names_match("take", "limit", synonyms={})
        assert names_match("take", "limit", synonyms=build_synonym_map({"take": ["limit"]}))
