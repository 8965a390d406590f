"""
Async schema generation pipeline.

Modes:
  full       tables → descriptions → examples → language elements → docs → save
  resources  load → tables → descriptions → examples → save
  examples   load → examples → save
  syntax     load → language elements → docs → save
"""

import asyncio
import logging
from typing import Awaitable, Callable, Literal, Optional

from argschema.config import (
    AZURE_DOCS_REPO,
    KQL_REFERENCE_PATH,
    KUSTO_DOCS_REPO,
    QUERY_LANGUAGE_DOC_PATH,
    SAMPLE_SEARCH_PATHS,
    SUPPORTED_TABLES_URL,
    settings,
)
from argschema.services.resource_graph.client import DocsClient
from argschema.services.resource_graph.doc_merger import (
    build_language_elements,
    merge_documentation,
)
from argschema.services.resource_graph.element_source import ElementSource, JsonElementSource
from argschema.services.resource_graph.grammar import partition_names
from argschema.services.resource_graph.markdown_parser import (
    is_reference_page,
    parse_reference_page,
)
from argschema.services.resource_graph.models import (
    ElementDoc,
    LanguageElements,
    MatchReport,
    MergeReport,
    Schema,
)
from argschema.services.resource_graph.snippet_classifier import SnippetClassifier
from argschema.services.resource_graph.snippet_extractor import extract_snippets
from argschema.services.resource_graph.storage import SchemaStorage
from argschema.services.resource_graph.table_matcher import match_snippets_to_tables
from argschema.services.resource_graph.table_parser import (
    apply_table_descriptions,
    merge_tables,
    parse_table_descriptions,
    parse_tables_html,
)
from argschema.utils import utcnow_iso

logger = logging.getLogger(__name__)

# Type alias for progress callback
ProgressCallback = Callable[[str, int, int, str], Awaitable[None]]

GenerationMode = Literal["full", "examples", "resources", "syntax"]
MODES: tuple[str, ...] = ("full", "examples", "resources", "syntax")


async def fetch_in_batches(
    client: DocsClient,
    urls: list[str],
    phase: str,
    batch_size: Optional[int] = None,
    request_delay: Optional[float] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> list[str]:
    """Fetch URLs in bounded batches with a pause between batches."""
    batch_size = batch_size or settings.batch_size
    request_delay = settings.request_delay if request_delay is None else request_delay
    total = len(urls)
    results: list[str] = []

    for start in range(0, total, batch_size):
        batch = urls[start:start + batch_size]
        results.extend(await client.fetch_many(batch))
        logger.info(
            f"  {phase}: batch {start // batch_size + 1}/{(total + batch_size - 1) // batch_size} "
            f"({len(results)}/{total} documents)"
        )
        if on_progress:
            await on_progress(phase, len(results), total, f"Fetched {len(results)}/{total}")
        if start + batch_size < total and request_delay > 0:
            await asyncio.sleep(request_delay)

    return results


# --- Pipeline stages ---


async def refresh_tables(
    schema: Schema,
    client: DocsClient,
    on_progress: Optional[ProgressCallback] = None,
) -> Schema:
    """Refresh tables and resource types, then table descriptions."""
    if on_progress:
        await on_progress("tables", 0, 0, "Fetching supported tables...")

    html = await client.fetch_text(SUPPORTED_TABLES_URL)
    tables, resource_types = parse_tables_html(html)
    if not tables:
        logger.warning("No tables found on the supported-tables page")
    schema = merge_tables(schema, tables, resource_types)

    markdown = await client.fetch_github_file(AZURE_DOCS_REPO, QUERY_LANGUAGE_DOC_PATH)
    descriptions = parse_table_descriptions(markdown)
    logger.info(f"Found descriptions for {len(descriptions)} tables")
    schema = apply_table_descriptions(schema, descriptions)

    if on_progress:
        await on_progress("tables", len(schema.tables), len(schema.tables), "Tables refreshed")
    return schema


async def refresh_examples(
    schema: Schema,
    client: DocsClient,
    on_progress: Optional[ProgressCallback] = None,
) -> tuple[Schema, MatchReport]:
    """Collect query samples from the docs repository and attach them to tables."""
    files: dict[str, dict] = {}
    for path in SAMPLE_SEARCH_PATHS:
        for f in await client.list_markdown_files(AZURE_DOCS_REPO, path):
            if f.get("download_url"):
                files.setdefault(f["path"], f)
    ordered = [files[p] for p in sorted(files)]
    logger.info(f"Found {len(ordered)} sample files")

    contents = await fetch_in_batches(
        client, [f["download_url"] for f in ordered], "examples", on_progress=on_progress
    )

    classifier = SnippetClassifier(table_names=[t.name for t in schema.tables.values()])
    snippets = []
    for f, text in zip(ordered, contents):
        found = [s for s in extract_snippets(text, classifier) if classifier(s.code)]
        logger.debug(f"  {f['name']}: {len(found)} snippets")
        snippets.extend(found)
    logger.info(f"Extracted {len(snippets)} candidate snippets")

    return match_snippets_to_tables(schema, snippets)


async def fetch_reference_docs(
    client: DocsClient,
    on_progress: Optional[ProgressCallback] = None,
) -> list[ElementDoc]:
    """Fetch and parse the KQL reference pages for operators, functions and statements."""
    listing = await client.list_markdown_files(KUSTO_DOCS_REPO, KQL_REFERENCE_PATH, recursive=False)
    pages = sorted(
        (f for f in listing if is_reference_page(f["name"]) and f.get("download_url")),
        key=lambda f: f["name"],
    )
    logger.info(f"Found {len(pages)} reference pages")

    contents = await fetch_in_batches(
        client, [f["download_url"] for f in pages], "docs", on_progress=on_progress
    )

    docs: list[ElementDoc] = []
    for f, text in zip(pages, contents):
        doc = parse_reference_page(text, f["name"])
        if doc is not None:
            docs.append(doc)

    by_kind: dict[str, int] = {}
    for doc in docs:
        by_kind[doc.kind] = by_kind.get(doc.kind, 0) + 1
    logger.info(f"Parsed reference docs: {by_kind}")
    return docs


async def refresh_syntax(
    schema: Schema,
    client: DocsClient,
    source: ElementSource,
    on_progress: Optional[ProgressCallback] = None,
) -> tuple[Schema, MergeReport, LanguageElements]:
    """Rebuild the language-element buckets and attach reference docs."""
    if on_progress:
        await on_progress("syntax", 0, 0, "Loading language elements...")
    elements = await source.load()
    schema = build_language_elements(schema, elements)

    docs = await fetch_reference_docs(client, on_progress=on_progress)
    schema, report = merge_documentation(schema, docs)
    return schema, report, elements


def log_summary(
    schema: Schema,
    match_report: Optional[MatchReport] = None,
    merge_report: Optional[MergeReport] = None,
    failures: Optional[list] = None,
):
    logger.info(
        f"Generation summary: {len(schema.tables)} tables, "
        f"{len(schema.resource_types)} resource types, {len(schema.keywords)} keywords, "
        f"{len(schema.operators)} operators, {len(schema.functions)} functions"
    )
    if match_report is not None:
        logger.info(f"  Examples matched: {match_report.total_matches}")
        if match_report.tables_without_examples:
            logger.warning(
                f"  Tables without examples ({len(match_report.tables_without_examples)}): "
                f"{', '.join(match_report.tables_without_examples)}"
            )
    if merge_report is not None:
        for label, names in (
            ("functions", merge_report.unmatched_functions),
            ("keywords", merge_report.unmatched_keywords),
            ("operators", merge_report.unmatched_operators),
        ):
            if names:
                logger.warning(f"  Unmatched {label} ({len(names)}): {', '.join(names)}")
    if failures:
        logger.warning(f"  {len(failures)} documents could not be fetched")


async def run_generation(
    mode: GenerationMode = "full",
    *,
    storage: Optional[SchemaStorage] = None,
    client: Optional[DocsClient] = None,
    element_source: Optional[ElementSource] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> dict:
    """
    Run one generation mode end to end and write the artifacts.

    Args:
        mode: full, examples, resources or syntax. All but full start from the
            schema already on disk.
        storage: where to load and save (defaults to settings paths).
        client: documentation fetcher (created and closed here if omitted).
        element_source: language-element enumeration for full/syntax modes.
        on_progress: async callback(phase, completed, total, detail).

    Returns:
        dict with: mode, paths, tables, match_report, merge_report, failures
    """
    if mode not in MODES:
        raise ValueError(f"Unknown mode '{mode}', expected one of {', '.join(MODES)}")

    storage = storage or SchemaStorage()
    element_source = element_source or JsonElementSource(settings.language_elements_path)
    owns_client = client is None
    client = client or DocsClient()

    match_report: Optional[MatchReport] = None
    merge_report: Optional[MergeReport] = None
    elements: Optional[LanguageElements] = None

    try:
        if mode == "full":
            schema = Schema()
        else:
            schema = await storage.load()

        if mode in ("full", "resources"):
            schema = await refresh_tables(schema, client, on_progress=on_progress)

        if mode in ("full", "resources", "examples"):
            schema, match_report = await refresh_examples(schema, client, on_progress=on_progress)

        if mode in ("full", "syntax"):
            schema, merge_report, elements = await refresh_syntax(
                schema, client, element_source, on_progress=on_progress
            )

        schema.last_updated = utcnow_iso()
        paths = await storage.save(schema, partition_names(schema, elements))
    except Exception:
        logger.exception(f"Schema generation failed (mode={mode})")
        raise
    finally:
        if owns_client:
            await client.close()

    log_summary(schema, match_report, merge_report, client.failures)
    if on_progress:
        await on_progress("done", 1, 1, f"Schema written ({mode})")

    return {
        "mode": mode,
        "paths": paths,
        "tables": len(schema.tables),
        "match_report": match_report,
        "merge_report": merge_report,
        "failures": list(client.failures),
    }
