"""Tests for fenced-block snippet extraction and cleaning."""

from argschema.services.resource_graph.snippet_classifier import SnippetClassifier
from argschema.services.resource_graph.snippet_extractor import (
    clean_code_snippet,
    extract_snippets,
    format_with_pipe_newlines,
    unescape_shell,
)

TABLES = ["resources", "securityresources", "resourcecontainers"]


# ---------------------------------------------------------------------------
# Cleaning
# ---------------------------------------------------------------------------


class TestCleanCodeSnippet:
    def test_strips_html_and_decodes_entities(self):
        code = "<b>Resources</b> | where name == &quot;vm1&quot;"
        assert clean_code_snippet(code) == 'Resources | where name == "vm1"'

    def test_comparison_operators_survive(self):
        assert clean_code_snippet("T | where a < b and c > d") == "T | where a < b and c > d"

    def test_multiplication_survives(self):
        assert clean_code_snippet("T | extend x = a * b * c") == "T | extend x = a * b * c"

    def test_markdown_emphasis_removed(self):
        assert clean_code_snippet("**Resources** | take 5") == "Resources | take 5"
        assert clean_code_snippet("*Resources* | take 5") == "Resources | take 5"

    def test_inline_code_removed(self):
        assert clean_code_snippet("`Resources | take 5`") == "Resources | take 5"

    def test_list_and_quote_markers_removed(self):
        assert clean_code_snippet("- Resources | take 5") == "Resources | take 5"
        assert clean_code_snippet("1. Resources | take 5") == "Resources | take 5"
        assert clean_code_snippet("> Resources | take 5") == "Resources | take 5"

    def test_horizontal_rule_removed(self):
        assert clean_code_snippet("Resources\n---\n| take 5") == "Resources\n| take 5"

    def test_lines_trimmed_and_blank_lines_dropped(self):
        assert clean_code_snippet("  Resources  \n\n   | take 5  ") == "Resources\n| take 5"

    def test_too_short_rejected(self):
        assert clean_code_snippet("T | x") == ""
        assert clean_code_snippet("<p></p>") == ""

    def test_min_length_override(self):
        assert clean_code_snippet("T | x", min_length=3) == "T | x"


class TestShellHelpers:
    def test_unescape_markers(self):
        assert unescape_shell(r"where name == \$n") == "where name == $n"
        assert unescape_shell(r"where name == \\$n") == "where name == $n"
        assert unescape_shell(r'where name == \"x\"') == 'where name == "x"'

    def test_pipe_newlines_inserted(self):
        assert (
            format_with_pipe_newlines("Resources | where x == 1 | take 5")
            == "Resources\n| where x == 1\n| take 5"
        )

    def test_already_broken_left_alone(self):
        query = "Resources\n| where x == 1 | take 5"
        assert format_with_pipe_newlines(query) == query


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


class TestExtractSnippets:
    def test_dialects_in_priority_order(self, sample_doc):
        snippets = extract_snippets(sample_doc, SnippetClassifier(TABLES))
        assert [s.source for s in snippets] == ["kql", "cli", "powershell", "generic"]
        assert snippets[0].code == "Resources | summarize count()"
        assert snippets[1].code == "Resources\n| summarize count() by type\n| limit 10"
        assert snippets[2].code == (
            "SecurityResources\n| where type == 'microsoft.security/assessments'"
        )
        assert snippets[3].code == (
            "ResourceContainers | where type == 'microsoft.resources/subscriptions'"
        )

    def test_length_is_code_length(self, sample_doc):
        for snippet in extract_snippets(sample_doc, SnippetClassifier(TABLES)):
            assert snippet.length == len(snippet.code)

    def test_generic_blocks_need_classifier(self, sample_doc):
        sources = {s.source for s in extract_snippets(sample_doc)}
        assert "generic" not in sources

    def test_generic_block_rejected_by_classifier(self):
        doc = "```\npip install something | grep x\n```\n```\nnot a query at all here\n```"
        assert extract_snippets(doc, SnippetClassifier(TABLES)) == []

    def test_shorter_first_within_tier(self):
        doc = (
            "```kusto\nResources | project name, type | take 10\n```\n"
            "```kusto\nResources | take 5\n```"
        )
        codes = [s.code for s in extract_snippets(doc)]
        assert codes == ["Resources | take 5", "Resources | project name, type | take 10"]

    def test_native_beats_longer_and_shorter_cli(self):
        doc = (
            '```azurecli\naz graph query -q "Resources | take 1"\n```\n'
            "```kusto\nResources | project name, type, location | take 100\n```"
        )
        sources = [s.source for s in extract_snippets(doc)]
        assert sources == ["kql", "cli"]

    def test_duplicates_keep_highest_priority(self):
        doc = (
            "```\nResources | take 5 | project name\n```\n"
            "```kusto\nResources | take 5 | project name\n```"
        )
        snippets = extract_snippets(doc, SnippetClassifier(TABLES))
        assert len(snippets) == 1
        assert snippets[0].source == "kql"

    def test_cli_single_quotes_and_long_flag(self):
        doc = "```azurecli-interactive\naz graph query --query 'Resources | project name'\n```"
        snippets = extract_snippets(doc)
        assert snippets[0].code == "Resources\n| project name"
        assert snippets[0].source == "cli"

    def test_cli_escaped_markers(self):
        doc = '```azurecli\naz graph query -q "Resources | where name == \\"vm\\" | take 5"\n```'
        assert extract_snippets(doc)[0].code == 'Resources\n| where name == "vm"\n| take 5'

    def test_cli_multiline_query_kept(self):
        doc = '```azurecli\naz graph query -q "Resources\n| project name\n| limit 5"\n```'
        assert extract_snippets(doc)[0].code == "Resources\n| project name\n| limit 5"

    def test_wrapper_without_invocation_skipped(self):
        doc = "```azurecli\naz login\n```\n```powershell\nConnect-AzAccount\n```"
        assert extract_snippets(doc) == []

    def test_powershell_tag(self):
        doc = '```powershell\nSearch-AzGraph -Query "Resources | take 5"\n```'
        snippet = extract_snippets(doc)[0]
        assert snippet.source == "powershell"
        assert snippet.code == "Resources\n| take 5"

    def test_other_languages_ignored(self, sample_doc):
        codes = [s.code for s in extract_snippets(sample_doc, SnippetClassifier(TABLES))]
        assert not any("curl" in c for c in codes)

    def test_unterminated_fence(self):
        assert extract_snippets("```kusto\nResources | take 5") == []

    def test_empty_document(self):
        assert extract_snippets("") == []
        assert extract_snippets(None) == []
