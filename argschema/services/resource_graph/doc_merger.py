"""
Applies parsed documentation onto the schema's language-element buckets.

Operators merge first: a keyword that documentation reveals to be an operator
is moved to the operator bucket before functions are considered. Every
existing element survives a merge, documented or not.
"""

import copy
import logging
from typing import Iterable, Optional

from argschema.services.resource_graph.models import (
    AGGREGATE_CATEGORY,
    DOCUMENTED_OPERATOR_CATEGORY,
    FUNCTION_CATEGORY,
    KEYWORD_CATEGORY,
    OPERATOR_CATEGORY,
    ElementDoc,
    LanguageElement,
    LanguageElements,
    MergeReport,
    Schema,
)
from argschema.services.resource_graph.name_variants import build_synonym_map, name_variants

logger = logging.getLogger(__name__)

OPERATOR_DOC_KINDS = frozenset({"operator", "statement"})
FUNCTION_DOC_KINDS = frozenset({"function", "aggregate"})


def _ordered(docs: Iterable[ElementDoc], kinds: frozenset) -> list[ElementDoc]:
    # Arrival order of fetched pages must not affect the result
    return sorted(
        (d for d in docs if d.kind in kinds),
        key=lambda d: (d.name.lower(), d.kind, d.documentation.url),
    )


# --- Bucket initialization ---


def build_language_elements(schema: Schema, elements: LanguageElements) -> Schema:
    """Replace the element buckets with undocumented entries for every name."""
    result = copy.deepcopy(schema)

    def unique(names):
        seen: set[str] = set()
        for name in names:
            if name and name not in seen:
                seen.add(name)
                yield name

    result.keywords = [
        LanguageElement(name=n, kind="keyword", category=KEYWORD_CATEGORY)
        for n in unique(elements.keywords)
    ]
    result.operators = [
        LanguageElement(name=n, kind="operator", category=OPERATOR_CATEGORY)
        for n in unique(elements.operators)
    ]

    functions = [
        LanguageElement(name=n, kind="function", category=FUNCTION_CATEGORY)
        for n in unique(elements.functions)
    ]
    known = {f.name for f in functions}
    functions += [
        LanguageElement(name=n, kind="aggregate", category=AGGREGATE_CATEGORY)
        for n in unique(elements.aggregates)
        if n not in known
    ]
    result.functions = functions

    logger.info(
        f"Language elements: {len(result.keywords)} keywords, "
        f"{len(result.operators)} operators, {len(result.functions)} functions"
    )
    return result


# --- Operators ---


def merge_operator_docs(
    schema: Schema,
    docs: Iterable[ElementDoc],
    report: Optional[MergeReport] = None,
) -> tuple[Schema, MergeReport]:
    """Attach operator and statement docs to operators and keywords.

    An operator doc matching a keyword moves that keyword to the operator
    bucket; a statement doc documents the keyword in place. An operator doc
    matching nothing becomes a new operator entry.
    """
    result = copy.deepcopy(schema)
    report = report or MergeReport()
    synonyms = build_synonym_map()

    operators: dict[str, LanguageElement] = {}
    for op in result.operators:
        operators.setdefault(op.name, op)
    keywords = list(result.keywords)

    documented: list[str] = []
    keywords_documented: set[str] = set()

    def document_operator(element: LanguageElement, doc: ElementDoc):
        element.kind = "operator"
        element.documentation = doc.documentation
        element.category = DOCUMENTED_OPERATOR_CATEGORY
        operators[element.name] = element
        if element.name not in documented:
            documented.append(element.name)

    for doc in _ordered(docs, OPERATOR_DOC_KINDS):
        variants = name_variants(doc.name, synonyms)
        matched = False

        for op in list(operators.values()):
            if not variants.isdisjoint(name_variants(op.name, synonyms)):
                document_operator(op, doc)
                matched = True

        for keyword in list(keywords):
            if variants.isdisjoint(name_variants(keyword.name, synonyms)):
                continue
            matched = True
            if doc.kind == "operator":
                keywords.remove(keyword)
                existing = operators.get(keyword.name)
                document_operator(existing or keyword, doc)
                report.migrated_keywords.append(keyword.name)
                logger.debug(f"Moved keyword '{keyword.name}' to operators ({doc.name})")
            else:
                keyword.documentation = doc.documentation
                keyword.category = doc.category
                keywords_documented.add(keyword.name)

        if not matched:
            if doc.kind == "operator":
                document_operator(
                    LanguageElement(
                        name=doc.name, kind="operator", category=DOCUMENTED_OPERATOR_CATEGORY
                    ),
                    doc,
                )
                logger.debug(f"Added documented operator '{doc.name}'")
            else:
                report.unmatched_docs.append(doc.name)

    result.operators = [operators[name] for name in documented] + [
        op for name, op in operators.items() if name not in documented
    ]
    result.keywords = keywords

    report.operators_documented = len(documented)
    report.keywords_documented += len(keywords_documented)
    report.unmatched_operators = [op.name for op in result.operators if op.name not in documented]

    logger.info(
        f"Operators: {len(documented)} documented, "
        f"{len(report.migrated_keywords)} moved from keywords, "
        f"{len(report.unmatched_operators)} without documentation"
    )
    return result, report


# --- Functions / aggregates ---


def merge_function_docs(
    schema: Schema,
    docs: Iterable[ElementDoc],
    report: Optional[MergeReport] = None,
) -> tuple[Schema, MergeReport]:
    """Attach function and aggregate docs by case-insensitive name equality."""
    result = copy.deepcopy(schema)
    report = report or MergeReport()

    by_name: dict[str, ElementDoc] = {}
    for doc in _ordered(docs, FUNCTION_DOC_KINDS):
        by_name[doc.name.lower()] = doc

    documented: list[LanguageElement] = []
    undocumented: list[LanguageElement] = []
    used: set[str] = set()

    for fn in result.functions:
        doc = by_name.get(fn.name.lower())
        if doc is None:
            undocumented.append(fn)
            continue
        fn.documentation = doc.documentation
        fn.category = doc.category
        if doc.kind == "aggregate" or doc.category == AGGREGATE_CATEGORY:
            fn.kind = "aggregate"
        documented.append(fn)
        used.add(doc.name.lower())

    result.functions = documented + undocumented
    report.functions_documented = len(documented)
    report.unmatched_functions = [fn.name for fn in undocumented]
    report.unmatched_docs += [doc.name for key, doc in by_name.items() if key not in used]

    logger.info(
        f"Functions: {len(documented)} documented, {len(undocumented)} without documentation"
    )
    return result, report


# --- Combined pass ---


def merge_documentation(
    schema: Schema, docs: Iterable[ElementDoc]
) -> tuple[Schema, MergeReport]:
    """Merge operator docs, then function docs, then report leftover keywords."""
    docs = list(docs)
    result, report = merge_operator_docs(schema, docs)
    result, report = merge_function_docs(result, docs, report)

    report.unmatched_keywords = [k.name for k in result.keywords if k.documentation is None]
    if report.unmatched_keywords:
        logger.warning(f"{len(report.unmatched_keywords)} keywords without documentation")
    return result, report
