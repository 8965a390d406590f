"""
Section-aware parser for KQL reference pages (Microsoft Learn Markdown).

Recognizes only the section vocabulary those pages use: the H1 title, the
description after the ``!INCLUDE`` boilerplate, and the Syntax / Parameters /
Returns / Examples H2 sections. All functions are pure.
"""

import dataclasses
import logging
import re
from typing import Iterator, Optional

from argschema.config import KQL_DOCS_URL
from argschema.services.resource_graph.models import (
    AGGREGATE_CATEGORY,
    DOCUMENTED_OPERATOR_CATEGORY,
    DocumentationRecord,
    ElementDoc,
)
from argschema.utils import sentence_case

logger = logging.getLogger(__name__)

DEFAULT_DOC_CATEGORY = "KQL function"
STATEMENT_CATEGORY = "Statement"

# Fence tags that mark the query language's own code blocks
KQL_FENCE_TAGS = frozenset({"kusto", "kql"})

# --- Section states ---

NONE = "none"
SYNTAX = "syntax"
PARAMETERS = "parameters"
RETURNS = "returns"
EXAMPLES = "examples"
OTHER = "other"
STOPPED = "stopped"

_COLLECTING = (SYNTAX, PARAMETERS, RETURNS, EXAMPLES)

# H2 header substring → section, checked in order
_H2_SECTIONS: tuple[tuple[str, str], ...] = (
    ("syntax", SYNTAX),
    ("parameter", PARAMETERS),
    ("return", RETURNS),
    ("output", RETURNS),
    ("example", EXAMPLES),
)

# --- Cleanup patterns ---

_INCLUDE_RE = re.compile(r"(?:>\s*)?\[?!\s*INCLUDE\s*\[[^\]]*\](?:\([^)]*\))?\]?")
_MONIKER_RE = re.compile(
    r':::\s*moniker\s+range="[^"]*"\s*(?::::)?[\s\S]*?:::\s*moniker-end(?:\s*:::)?'
)
_IMAGE_RE = re.compile(r":::\s*image\b[\s\S]*?:::")
_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_TABLE_SEPARATOR_RE = re.compile(r"\|\s*(-{2,})")
_BLANK_RUN_RE = re.compile(r"\n\s*\n\s*\n")
_NOTE_CALLOUT_RE = re.compile(
    r"^\s*>\s*\[!(NOTE|TIP|WARNING|IMPORTANT|CAUTION)\]", re.IGNORECASE
)

_PREVIEW_SUFFIX_RE = re.compile(r"\s+-\s*\(preview\)$", re.IGNORECASE)
_TRAILING_DASH_RE = re.compile(r"\s*-\s*$")
_QUALIFIER_RE = re.compile(r"\s*\(([^)]+)\)\s*$")
_EMPTY_PARENS_RE = re.compile(r"\s*\(\s*\)\s*$")

_FUNCTION_FILE_RE = re.compile(
    r"^(.+?)-(aggregate-function|aggregation-function|function)\.md$"
)
_OPERATOR_FILE_RE = re.compile(r"^(.+?)-operator\.md$")
_STATEMENT_FILE_RE = re.compile(r"^(.+?)-statement\.md$")


# --- Fenced code blocks ---


def iter_fenced_blocks(text: str) -> Iterator[tuple[str, str]]:
    """Yield (tag, body) for every terminated ``` fenced block.

    The tag is the lowercased first word of the info string ("" when
    untagged). Unterminated blocks at end of input are dropped.
    """
    if not text:
        return
    tag: Optional[str] = None
    body: list[str] = []
    for line in text.split("\n"):
        stripped = line.strip()
        if tag is None:
            if stripped.startswith("```"):
                info = stripped[3:].strip().split()
                tag = info[0].lower() if info else ""
                body = []
        elif stripped == "```":
            yield tag, "\n".join(body)
            tag = None
        else:
            body.append(line)


# --- Normalization ---


def clean_markdown(text: str) -> str:
    """Strip links, directives and embeds; normalize tables and blank runs."""
    if not text:
        return ""
    text = _INCLUDE_RE.sub("", text)
    text = _MONIKER_RE.sub("", text)
    text = _IMAGE_RE.sub("", text)
    text = _LINK_RE.sub(r"\1", text)
    text = text.replace(":heavy_check_mark:", "*True*")
    text = _TABLE_SEPARATOR_RE.sub(r"|:\1", text)
    text = _BLANK_RUN_RE.sub("\n\n", text)
    return text.strip()


def strip_note_callouts(text: str) -> str:
    """Delete ``> [!NOTE]``-style callouts and their continuing quote lines."""
    kept: list[str] = []
    in_callout = False
    for line in text.split("\n"):
        if _NOTE_CALLOUT_RE.match(line):
            in_callout = True
            continue
        if in_callout and line.lstrip().startswith(">"):
            continue
        in_callout = False
        kept.append(line)
    return "\n".join(kept)


def _strip_preview(title: str) -> str:
    title = _PREVIEW_SUFFIX_RE.sub("", title)
    return _TRAILING_DASH_RE.sub("", title).strip()


def extract_category(title: str) -> str:
    """'count() (aggregation function)' -> 'Aggregation function'."""
    match = _QUALIFIER_RE.search(_strip_preview(title))
    if match and match.group(1).strip().lower() != "preview":
        return sentence_case(match.group(1))
    return DEFAULT_DOC_CATEGORY


def clean_title(title: str) -> str:
    """Remove the preview suffix, the trailing qualifier and empty call parens."""
    if not title:
        return ""
    title = _strip_preview(title)
    title = _QUALIFIER_RE.sub("", title)
    title = _EMPTY_PARENS_RE.sub("", title)
    return title.strip()


# --- Section state machine ---


def _transition(state: str, stripped: str) -> tuple[str, bool, bool]:
    """Advance the section FSM by one line.

    Returns (new_state, keep_line, reset_buffer). ``stopped`` is terminal.
    Examples and other sections end at the next heading of any level unless
    that heading opens a recognized section; syntax, parameters and returns
    only end at another recognized H2.
    """
    if state == STOPPED:
        return STOPPED, False, False
    if not stripped.startswith("#"):
        return state, True, False

    if stripped.startswith("## "):
        header = stripped[3:].lower()
        for needle, section in _H2_SECTIONS:
            if needle in header:
                return section, False, True
        if "related" in header:
            return STOPPED, False, False
        if state == NONE:
            return OTHER, False, False
        if state in (EXAMPLES, OTHER):
            return STOPPED, False, False
        return state, False, False

    if state in (EXAMPLES, OTHER):
        return STOPPED, False, False
    return state, True, False


def _kql_blocks(text: str) -> str:
    blocks = [
        body.strip("\n")
        for tag, body in iter_fenced_blocks(text)
        if tag in KQL_FENCE_TAGS and body.strip()
    ]
    return "\n\n".join(blocks)


def parse_markdown_doc(content: str) -> DocumentationRecord:
    """Parse one reference page into a DocumentationRecord.

    Missing headings or sections yield empty strings; a page with no H1 has
    an empty title, which callers treat as undocumented.
    """
    content = content or ""
    title = ""
    found_include = False
    state = NONE
    description: list[str] = []
    buffers: dict[str, list[str]] = {section: [] for section in _COLLECTING}

    for line in content.split("\n"):
        stripped = line.strip()

        if not title and stripped.startswith("# "):
            title = stripped[2:].strip()
            continue

        if not found_include and "!INCLUDE" in stripped:
            found_include = True
            continue

        state, keep, reset = _transition(state, stripped)
        if reset:
            buffers[state] = []
        if not keep:
            continue

        if state == NONE:
            if found_include:
                description.append(line)
        elif state in buffers:
            buffers[state].append(line)

    description_text = strip_note_callouts("\n".join(description).strip())

    return DocumentationRecord(
        title=clean_markdown(clean_title(title)),
        description=clean_markdown(description_text),
        syntax=clean_markdown("\n".join(buffers[SYNTAX]).strip()),
        return_info=clean_markdown("\n".join(buffers[RETURNS]).strip()),
        parameters_table=clean_markdown("\n".join(buffers[PARAMETERS]).strip()),
        example=clean_markdown(_kql_blocks("\n".join(buffers[EXAMPLES]))),
        category=extract_category(title),
        source_length=len(content),
    )


# --- Page adapters (filename + text → ElementDoc) ---


def _page_url(filename: str) -> str:
    return f"{KQL_DOCS_URL}/{filename[:-3] if filename.endswith('.md') else filename}"


def parse_function_page(content: str, filename: str) -> Optional[ElementDoc]:
    """Parse a ``<name>-function.md`` / ``-aggregation-function.md`` page."""
    match = _FUNCTION_FILE_RE.match(filename)
    if not match:
        return None
    record = parse_markdown_doc(content)
    if not record.title:
        logger.debug(f"No title in {filename}, treating as undocumented")
        return None

    is_aggregate = match.group(2) != "function"
    category = record.category
    if category == DEFAULT_DOC_CATEGORY and is_aggregate:
        category = AGGREGATE_CATEGORY

    record = dataclasses.replace(record, category=category, url=_page_url(filename))
    return ElementDoc(
        name=match.group(1).replace("-", "_"),
        kind="aggregate" if is_aggregate else "function",
        category=category,
        documentation=record,
    )


def parse_operator_page(content: str, filename: str) -> Optional[ElementDoc]:
    """Parse a ``<name>-operator.md`` page; the slug keeps its hyphens."""
    match = _OPERATOR_FILE_RE.match(filename)
    if not match:
        return None
    record = parse_markdown_doc(content)
    if not record.title:
        logger.debug(f"No title in {filename}, treating as undocumented")
        return None

    title = record.title
    if title.lower().endswith(" operator"):
        title = title[: -len(" operator")].strip()

    record = dataclasses.replace(
        record,
        title=title,
        category=DOCUMENTED_OPERATOR_CATEGORY,
        url=_page_url(filename),
    )
    return ElementDoc(
        name=match.group(1),
        kind="operator",
        category=DOCUMENTED_OPERATOR_CATEGORY,
        documentation=record,
    )


def parse_statement_page(content: str, filename: str) -> Optional[ElementDoc]:
    """Parse a ``<name>-statement.md`` page (documents a keyword in place)."""
    match = _STATEMENT_FILE_RE.match(filename)
    if not match:
        return None
    record = parse_markdown_doc(content)
    if not record.title:
        logger.debug(f"No title in {filename}, treating as undocumented")
        return None

    title = record.title
    if title.lower().endswith(" statement"):
        title = title[: -len(" statement")].strip()

    record = dataclasses.replace(
        record, title=title, category=STATEMENT_CATEGORY, url=_page_url(filename)
    )
    return ElementDoc(
        name=match.group(1),
        kind="statement",
        category=STATEMENT_CATEGORY,
        documentation=record,
    )


def parse_reference_page(content: str, filename: str) -> Optional[ElementDoc]:
    """Dispatch a reference page to its adapter by filename suffix."""
    if filename.endswith("-operator.md"):
        return parse_operator_page(content, filename)
    if filename.endswith("-statement.md"):
        return parse_statement_page(content, filename)
    return parse_function_page(content, filename)


def is_reference_page(filename: str) -> bool:
    return bool(
        _FUNCTION_FILE_RE.match(filename)
        or _OPERATOR_FILE_RE.match(filename)
        or _STATEMENT_FILE_RE.match(filename)
    )
