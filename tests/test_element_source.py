"""Tests for language-element sources."""

import json

import pytest

from argschema.services.resource_graph.element_source import (
    JsonElementSource,
    StaticElementSource,
    is_symbolic,
    normalize_names,
)


class TestNormalizeNames:
    def test_dedupes_and_sorts(self):
        assert normalize_names(["where", "by", "where"]) == ["by", "where"]

    def test_drops_internal_and_blank(self):
        assert normalize_names(["__hidden", "", "  ", None, "strcat"]) == ["strcat"]

    def test_symbolic_filter(self):
        names = ["==", "!=", "|", "!contains", "has", "123"]
        assert normalize_names(names, drop_symbolic=True) == ["!contains", "123", "has"]

    def test_accepts_dict_entries(self):
        assert normalize_names([{"name": "count"}, {"Name": "dcount"}]) == ["count", "dcount"]

    def test_is_symbolic(self):
        assert is_symbolic("==")
        assert is_symbolic("=~")
        assert not is_symbolic("!contains")
        assert not is_symbolic("42")


class TestStaticElementSource:
    async def test_load(self):
        source = StaticElementSource(
            keywords=["by", "=="], operators=["has", "has"], functions=["__x", "strcat"]
        )
        elements = await source.load()
        assert elements.keywords == ["by"]
        assert elements.operators == ["has"]
        assert elements.functions == ["strcat"]
        assert elements.aggregates == []


class TestJsonElementSource:
    async def test_load(self, tmp_path):
        path = tmp_path / "elements.json"
        path.write_text(
            json.dumps(
                {
                    "keywords": ["let", "by", "=="],
                    "operators": ["where", "!contains"],
                    "functions": ["strcat", "__internal"],
                    "aggregates": ["count"],
                }
            )
        )
        elements = await JsonElementSource(str(path)).load()
        assert elements.keywords == ["by", "let"]
        assert elements.operators == ["!contains", "where"]
        assert elements.functions == ["strcat"]
        assert elements.aggregates == ["count"]

    async def test_missing_keys_are_empty(self, tmp_path):
        path = tmp_path / "elements.json"
        path.write_text("{}")
        elements = await JsonElementSource(str(path)).load()
        assert elements.keywords == [] and elements.functions == []

    async def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            await JsonElementSource(str(tmp_path / "nope.json")).load()

    async def test_invalid_json(self, tmp_path):
        path = tmp_path / "elements.json"
        path.write_text("{not json")
        with pytest.raises(ValueError, match="Invalid language element dump"):
            await JsonElementSource(str(path)).load()

    async def test_non_object(self, tmp_path):
        path = tmp_path / "elements.json"
        path.write_text("[]")
        with pytest.raises(ValueError, match="must be a JSON object"):
            await JsonElementSource(str(path)).load()
