"""
Query snippet extraction from documentation Markdown.

Scans fenced code blocks in four dialects (native KQL, Azure CLI,
Azure PowerShell, untagged) and returns cleaned, deduplicated candidates
ordered by dialect priority then length. All functions are pure.
"""

import html
import re
from typing import Callable, Optional

from argschema.config import settings
from argschema.services.resource_graph.markdown_parser import iter_fenced_blocks
from argschema.services.resource_graph.models import Snippet, source_rank

# --- Constants ---

NATIVE_TAGS = frozenset({"kql", "kusto"})
CLI_TAGS = frozenset({"azurecli", "azurecli-interactive"})
POWERSHELL_TAGS = frozenset(
    {"azurepowershell", "azurepowershell-interactive", "powershell"}
)

# Quoted query text: "..." with backslash escapes, or '...'
_QUOTED = r"""(?:"((?:[^"\\]|\\.)*)"|'([^']*)')"""

CLI_QUERY_RE = re.compile(r"az\s+graph\s+query\s+(?:-q|--query)\s+" + _QUOTED, re.DOTALL)
POWERSHELL_QUERY_RE = re.compile(r"Search-AzGraph\s+-Query\s+" + _QUOTED, re.DOTALL)

_HTML_TAG_RE = re.compile(r"</?[a-zA-Z][^>]*>")
_HR_RE = re.compile(r"^\s*(?:-{3,}|\*{3,}|_{3,})\s*$", re.MULTILINE)
_BULLET_RE = re.compile(r"^\s*[-*+]\s+", re.MULTILINE)
_NUMBERED_RE = re.compile(r"^\s*\d+\.\s+", re.MULTILINE)
_BOLD_RE = re.compile(r"\*\*([^*]+)\*\*|__([^_]+)__")
# Single-star emphasis only when hugging a word, so ``a * b`` survives
_ITALIC_RE = re.compile(r"(?<![\w*])\*(?=\S)([^*\n]+?)(?<=\S)\*(?![\w*])")
_INLINE_CODE_RE = re.compile(r"`([^`]+)`")
_BLOCKQUOTE_RE = re.compile(r"^\s*>\s?", re.MULTILINE)
_PIPE_STAGE_RE = re.compile(r"\s*\|\s*")

Classifier = Callable[[str], bool]


# --- Cleaning ---


def unescape_shell(query: str) -> str:
    """Undo shell escaping of interpolation markers and quotes."""
    return query.replace("\\\\$", "$").replace("\\$", "$").replace('\\"', '"')


def clean_code_snippet(code: str, min_length: Optional[int] = None) -> str:
    """Strip Markdown/HTML residue from a code block.

    Returns "" when the cleaned result is shorter than ``min_length``.
    """
    if not code:
        return ""
    min_length = settings.min_snippet_length if min_length is None else min_length

    text = _HTML_TAG_RE.sub("", code)
    text = html.unescape(text)
    text = _HR_RE.sub("", text)
    text = _BULLET_RE.sub("", text)
    text = _NUMBERED_RE.sub("", text)
    text = _BOLD_RE.sub(lambda m: m.group(1) or m.group(2), text)
    text = _ITALIC_RE.sub(r"\1", text)
    text = _INLINE_CODE_RE.sub(r"\1", text)
    text = _BLOCKQUOTE_RE.sub("", text)

    lines = [line.strip() for line in text.split("\n")]
    text = "\n".join(line for line in lines if line)

    return text if len(text) >= min_length else ""


def format_with_pipe_newlines(query: str) -> str:
    """Break a one-line query before each pipe stage; leave broken ones alone."""
    if "\n|" in query:
        return query
    return _PIPE_STAGE_RE.sub("\n| ", query).strip()


# --- Dialect extraction ---


def _wrapped_query(body: str, pattern: re.Pattern) -> Optional[str]:
    match = pattern.search(body)
    if not match:
        return None
    query = match.group(1) if match.group(1) is not None else match.group(2)
    return unescape_shell(query) if query else None


def extract_snippets(
    text: str,
    classifier: Optional[Classifier] = None,
    min_length: Optional[int] = None,
) -> list[Snippet]:
    """Extract candidate query snippets from one Markdown document.

    Args:
        text: raw document text; empty input yields no snippets.
        classifier: predicate gating untagged blocks. Without one, untagged
            blocks are skipped.
        min_length: reject cleaned snippets shorter than this.

    Returns:
        Snippets deduplicated by trimmed code, ordered by dialect priority
        (kql, cli, powershell, generic) and then ascending length.
    """
    if not text:
        return []

    found: dict[str, Snippet] = {}

    def add(code: str, source: str):
        code = code.strip()
        if not code:
            return
        existing = found.get(code)
        if existing is None or source_rank(source) < source_rank(existing.source):
            found[code] = Snippet(code=code, source=source, length=len(code))

    for tag, body in iter_fenced_blocks(text):
        if tag in NATIVE_TAGS:
            add(clean_code_snippet(body, min_length), "kql")

        elif tag in CLI_TAGS or tag in POWERSHELL_TAGS:
            is_cli = tag in CLI_TAGS
            query = _wrapped_query(body, CLI_QUERY_RE if is_cli else POWERSHELL_QUERY_RE)
            if query is None:
                continue
            cleaned = clean_code_snippet(query, min_length)
            if cleaned:
                add(format_with_pipe_newlines(cleaned), "cli" if is_cli else "powershell")

        elif tag == "" and classifier is not None:
            cleaned = clean_code_snippet(body, min_length)
            if cleaned and classifier(cleaned):
                add(cleaned, "generic")

    return sorted(found.values(), key=lambda s: (source_rank(s.source), s.length, s.code))
