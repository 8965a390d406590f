"""
Assigns extracted query snippets to schema tables.

Each snippet goes to at most one table. Tables are visited longest name
first so ``securityresources`` claims its snippets before ``resources``
is considered.
"""

import copy
import logging
import re
from typing import Iterable

from argschema.services.resource_graph.models import (
    SOURCE_PRIORITY,
    Example,
    MatchReport,
    Schema,
    Snippet,
    source_rank,
)
from argschema.utils import word_pattern

logger = logging.getLogger(__name__)


# --- Relevance predicates ---


def snippet_starts_with_table(snippet: str, table: str) -> bool:
    """Strongest signal: the query opens with the table name."""
    pattern = re.compile(rf"^{re.escape(table)}\s*[|\s]", re.IGNORECASE)
    return bool(pattern.match(snippet.strip()))


def _weak_patterns(table: str) -> tuple[re.Pattern, ...]:
    t = re.escape(table)
    return (
        re.compile(rf"\bfrom\s+{t}\b", re.IGNORECASE),
        re.compile(rf"\|\s*{t}\s*\|", re.IGNORECASE),
        re.compile(rf"\|\s*{t}\s*$", re.IGNORECASE | re.MULTILINE),
    )


def is_snippet_for_table(snippet: str, table: str, all_tables: Iterable[str]) -> bool:
    """Weaker signal: a from-clause or standalone pipe-stage reference.

    Rejected when a longer table whose name contains ``table`` is also
    referenced, since the snippet is then about the longer table.
    """
    if not any(p.search(snippet) for p in _weak_patterns(table)):
        return False

    lower = table.lower()
    for other in all_tables:
        other = other.lower()
        if other != lower and lower in other:
            if word_pattern(other).search(snippet):
                return False
    return True


# --- Matching pass ---


def _dedup_pool(snippets: Iterable[Snippet]) -> list[Snippet]:
    """One entry per trimmed code (best dialect wins), in deterministic order."""
    pool: dict[str, Snippet] = {}
    for snippet in snippets:
        code = snippet.code.strip()
        if not code:
            continue
        existing = pool.get(code)
        if existing is None or source_rank(snippet.source) < source_rank(existing.source):
            pool[code] = Snippet(code=code, source=snippet.source, length=len(code))
    return sorted(pool.values(), key=lambda s: (source_rank(s.source), s.length, s.code))


def match_snippets_to_tables(
    schema: Schema, snippets: Iterable[Snippet]
) -> tuple[Schema, MatchReport]:
    """Attach snippets to tables as examples.

    Returns a new schema and a report; the input schema is not modified.
    Tables without a new match keep their previous examples, minus any code
    claimed by another table during this pass.
    """
    result = copy.deepcopy(schema)
    report = MatchReport()
    pool = _dedup_pool(snippets)

    table_keys = sorted(result.tables, key=lambda k: (-len(result.tables[k].name), k))
    all_names = [result.tables[k].name for k in table_keys]

    logger.info(f"Matching {len(pool)} snippets against {len(table_keys)} tables")

    unmatched_keys: list[str] = []
    for key in table_keys:
        table = result.tables[key]
        buckets: dict[str, list[Example]] = {source: [] for source in SOURCE_PRIORITY}

        for snippet in pool:
            if snippet.code in report.used_codes:
                continue
            starts = snippet_starts_with_table(snippet.code, table.name)
            if starts or is_snippet_for_table(snippet.code, table.name, all_names):
                buckets.setdefault(snippet.source, []).append(
                    Example(
                        code=snippet.code,
                        source=snippet.source,
                        length=snippet.length,
                        starts_with_table=starts,
                    )
                )

        examples: list[Example] = []
        for source in sorted(buckets, key=source_rank):
            bucket = sorted(
                buckets[source], key=lambda e: (not e.starts_with_table, e.length, e.code)
            )
            for example in bucket:
                examples.append(example)
                report.used_codes.add(example.code)

        if examples:
            table.examples = examples
            report.examples_per_table[table.name] = len(examples)
            breakdown = ", ".join(
                f"{s}:{sum(1 for e in examples if e.source == s)}"
                for s in SOURCE_PRIORITY
                if any(e.source == s for e in examples)
            )
            logger.debug(f"  {table.name}: {len(examples)} example(s) [{breakdown}]")
        else:
            unmatched_keys.append(key)

    # Preserved examples must not collide with codes claimed in this pass
    kept: set[str] = set()
    for key in unmatched_keys:
        table = result.tables[key]
        preserved = []
        for example in table.examples:
            code = example.code.strip()
            if code in report.used_codes or code in kept:
                continue
            kept.add(code)
            preserved.append(example)
        table.examples = preserved
        if not preserved:
            report.tables_without_examples.append(table.name)

    logger.info(
        f"Total examples matched: {report.total_matches} "
        f"({len(report.tables_without_examples)} tables without examples)"
    )
    return result, report
