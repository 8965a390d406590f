"""Tests for merging reference documentation into language-element buckets."""

from argschema.services.resource_graph.doc_merger import (
    build_language_elements,
    merge_documentation,
    merge_function_docs,
    merge_operator_docs,
)
from argschema.services.resource_graph.models import (
    AGGREGATE_CATEGORY,
    FUNCTION_CATEGORY,
    KEYWORD_CATEGORY,
    OPERATOR_CATEGORY,
    DocumentationRecord,
    ElementDoc,
    LanguageElements,
)


def doc(name: str, kind: str = "operator", category: str = "Operator") -> ElementDoc:
    return ElementDoc(
        name=name,
        kind=kind,
        category=category,
        documentation=DocumentationRecord(
            title=name, description=f"About {name}.", category=category, url=f"u/{name}"
        ),
    )


def names(elements) -> list[str]:
    return [e.name for e in elements]


# ---------------------------------------------------------------------------
# Bucket initialization
# ---------------------------------------------------------------------------


class TestBuildLanguageElements:
    def test_default_categories(self, schema_factory):
        elements = LanguageElements(
            keywords=["by", "let", "by"],
            operators=["has"],
            functions=["strcat", "count"],
            aggregates=["count", "dcount"],
        )
        schema = build_language_elements(schema_factory(), elements)
        assert names(schema.keywords) == ["by", "let"]
        assert {k.category for k in schema.keywords} == {KEYWORD_CATEGORY}
        assert schema.operators[0].category == OPERATOR_CATEGORY
        assert names(schema.functions) == ["strcat", "count", "dcount"]
        assert schema.functions[0].category == FUNCTION_CATEGORY
        assert schema.functions[2].category == AGGREGATE_CATEGORY
        assert schema.functions[2].kind == "aggregate"

    def test_tables_untouched(self, table_schema):
        schema = build_language_elements(table_schema, LanguageElements())
        assert schema.tables.keys() == table_schema.tables.keys()


# ---------------------------------------------------------------------------
# Operators
# ---------------------------------------------------------------------------


class TestMergeOperatorDocs:
    def test_negated_doc_matches_both_operator_spellings(self, element_schema):
        schema, report = merge_operator_docs(element_schema, [doc("not-contains")])
        by_name = {o.name: o for o in schema.operators}
        assert by_name["!contains"].documentation.title == "not-contains"
        assert by_name["notcontains"].documentation.title == "not-contains"
        assert by_name["!contains"].category == "Operator"
        assert by_name["contains"].documentation is None
        assert report.operators_documented == 2

    def test_keyword_migrates_to_operators(self, element_schema):
        schema, report = merge_operator_docs(element_schema, [doc("where")])
        assert "where" not in names(schema.keywords)
        where = next(o for o in schema.operators if o.name == "where")
        assert where.kind == "operator"
        assert where.documentation.title == "where"
        assert report.migrated_keywords == ["where"]

    def test_synonym_migrates_both_keywords(self, element_schema):
        schema, report = merge_operator_docs(element_schema, [doc("take")])
        assert "take" not in names(schema.keywords)
        assert "limit" not in names(schema.keywords)
        assert sorted(report.migrated_keywords) == ["limit", "take"]
        limit = next(o for o in schema.operators if o.name == "limit")
        assert limit.documentation.title == "take"

    def test_statement_documents_keyword_in_place(self, element_schema):
        schema, report = merge_operator_docs(
            element_schema, [doc("let", kind="statement", category="Statement")]
        )
        let = next(k for k in schema.keywords if k.name == "let")
        assert let.documentation.title == "let"
        assert let.category == "Statement"
        assert "let" not in names(schema.operators)
        assert report.keywords_documented == 1

    def test_unmatched_operator_doc_becomes_operator(self, element_schema):
        schema, _ = merge_operator_docs(element_schema, [doc("mv-apply")])
        added = next(o for o in schema.operators if o.name == "mv-apply")
        assert added.documentation.title == "mv-apply"
        assert added.category == "Operator"

    def test_unmatched_statement_reported(self, element_schema):
        _, report = merge_operator_docs(
            element_schema, [doc("pattern", kind="statement", category="Statement")]
        )
        assert report.unmatched_docs == ["pattern"]

    def test_undocumented_operators_kept_and_reported(self, element_schema):
        schema, report = merge_operator_docs(element_schema, [doc("not-contains")])
        assert {"contains", "has", "mv-expand"} <= set(names(schema.operators))
        assert report.unmatched_operators == ["contains", "has", "mv-expand"]

    def test_documented_first_then_original_order(self, element_schema):
        docs = [doc("where"), doc("not-contains"), doc("mv-apply")]
        schema, _ = merge_operator_docs(element_schema, docs)
        assert names(schema.operators) == [
            "mv-apply", "!contains", "notcontains", "where", "contains", "has", "mv-expand",
        ]

    def test_function_docs_ignored(self, element_schema):
        schema, report = merge_operator_docs(
            element_schema, [doc("strcat", kind="function", category="KQL function")]
        )
        assert report.operators_documented == 0
        assert names(schema.operators) == names(element_schema.operators)


# ---------------------------------------------------------------------------
# Functions / aggregates
# ---------------------------------------------------------------------------


class TestMergeFunctionDocs:
    def test_case_insensitive_name_match(self, element_schema):
        schema, report = merge_function_docs(
            element_schema, [doc("STRCAT", kind="function", category="KQL function")]
        )
        strcat = next(f for f in schema.functions if f.name == "strcat")
        assert strcat.documentation.title == "STRCAT"
        assert strcat.category == "KQL function"
        assert report.functions_documented == 1

    def test_aggregate_doc(self, element_schema):
        schema, _ = merge_function_docs(
            element_schema, [doc("count", kind="aggregate", category=AGGREGATE_CATEGORY)]
        )
        count = next(f for f in schema.functions if f.name == "count")
        assert count.kind == "aggregate"
        assert count.category == AGGREGATE_CATEGORY

    def test_documented_first_then_undocumented(self, element_schema):
        docs = [
            doc("count", kind="aggregate", category=AGGREGATE_CATEGORY),
            doc("strcat", kind="function", category="KQL function"),
        ]
        schema, report = merge_function_docs(element_schema, docs)
        assert names(schema.functions) == ["strcat", "count", "tolower", "bag_pack", "dcount"]
        assert report.unmatched_functions == ["tolower", "bag_pack", "dcount"]

    def test_unmatched_function_doc_reported_not_added(self, element_schema):
        schema, report = merge_function_docs(
            element_schema, [doc("foo", kind="function", category="KQL function")]
        )
        assert "foo" not in names(schema.functions)
        assert report.unmatched_docs == ["foo"]


# ---------------------------------------------------------------------------
# Combined pass
# ---------------------------------------------------------------------------


ALL_DOCS = [
    doc("where"),
    doc("not-contains"),
    doc("take"),
    doc("mv-apply"),
    doc("let", kind="statement", category="Statement"),
    doc("count", kind="aggregate", category=AGGREGATE_CATEGORY),
    doc("bag_pack", kind="function", category="KQL function"),
]


class TestMergeDocumentation:
    def test_idempotent(self, element_schema):
        once, _ = merge_documentation(element_schema, ALL_DOCS)
        twice, _ = merge_documentation(once, ALL_DOCS)
        assert once.to_dict() == twice.to_dict()

    def test_arrival_order_does_not_matter(self, element_schema):
        forward, _ = merge_documentation(element_schema, ALL_DOCS)
        backward, _ = merge_documentation(element_schema, list(reversed(ALL_DOCS)))
        assert forward.to_dict() == backward.to_dict()

    def test_no_entry_dropped(self, element_schema):
        schema, _ = merge_documentation(element_schema, ALL_DOCS)
        before = set(names(element_schema.keywords + element_schema.operators + element_schema.functions))
        after = set(names(schema.keywords + schema.operators + schema.functions))
        assert before <= after

    def test_no_duplicate_operators(self, element_schema):
        once, _ = merge_documentation(element_schema, ALL_DOCS)
        twice, _ = merge_documentation(once, ALL_DOCS)
        assert len(names(twice.operators)) == len(set(names(twice.operators)))

    def test_unmatched_keywords_reported(self, element_schema):
        schema, report = merge_documentation(element_schema, ALL_DOCS)
        assert names(schema.keywords) == ["by", "let"]
        assert report.unmatched_keywords == ["by"]

    def test_input_schema_not_modified(self, element_schema):
        merge_documentation(element_schema, ALL_DOCS)
        assert "where" in names(element_schema.keywords)
        assert all(o.documentation is None for o in element_schema.operators)

    def test_no_docs(self, element_schema):
        schema, report = merge_documentation(element_schema, [])
        assert schema.to_dict() == element_schema.to_dict()
        assert report.unmatched_keywords == ["by", "limit", "take", "let", "where"]
