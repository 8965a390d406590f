"""
Heuristic check that a cleaned code block is a KQL query.

Pure logic: no schema mutation. Known table names are supplied by the
caller; stage verbs are a fixed list, so the verdict does not depend on
which language elements are loaded.
"""

import re
from typing import Iterable

from argschema.config import settings

# Stage verbs common enough to identify a query without schema knowledge
COMMON_STAGE_VERBS: tuple[str, ...] = (
    "where", "project", "extend", "summarize", "join", "union", "sort",
    "order", "take", "limit", "count", "distinct", "top", "mv-expand",
)

_COMMENT_RE = re.compile(r"//.*$", re.MULTILINE)

_NOT_KQL_PATTERNS: tuple[re.Pattern, ...] = (
    # Shell commands and URLs
    re.compile(r"\b(?:curl|wget)\b|https?://", re.IGNORECASE),
    # SQL DML
    re.compile(r"\bSELECT\s+.*\s+FROM\b|\bINSERT\s+INTO\b|\bUPDATE\s+.*\s+SET\b", re.IGNORECASE),
    # HTML fragments
    re.compile(r"<(?:html|script|body|div)\b", re.IGNORECASE),
    # Portal tab headers: # [Azure CLI](#tab/azure-cli)
    re.compile(r"^#\s*\[.*\]\(#tab/.*\)"),
    re.compile(r"^#\s*\[.*(?:Portal|Azure CLI|PowerShell).*\]"),
    # Boilerplate prose
    re.compile(r"^(?:Try this query|Azure portal:|By default,|For more information)"),
)

_VERB_RE = re.compile(
    r"(?<![\w-])(?:" + "|".join(re.escape(v) for v in COMMON_STAGE_VERBS) + r")(?![\w-])",
    re.IGNORECASE,
)


def _names_pattern(names: Iterable[str]) -> "re.Pattern | None":
    # Longest first so alternation prefers the most specific name
    ordered = sorted({n for n in names if n}, key=lambda n: (-len(n), n))
    if not ordered:
        return None
    return re.compile(
        r"(?<![\w-])(?:" + "|".join(re.escape(n) for n in ordered) + r")(?![\w-])",
        re.IGNORECASE,
    )


class SnippetClassifier:
    """Decides whether a candidate snippet is plausibly KQL."""

    def __init__(
        self,
        table_names: Iterable[str] = (),
        min_length: int | None = None,
    ):
        self.min_length = settings.min_snippet_length if min_length is None else min_length
        self._table_re = _names_pattern(table_names)

    def is_kql_query(self, code: str) -> bool:
        if not code or not isinstance(code, str):
            return False

        clean = _COMMENT_RE.sub("", code).strip()
        if len(clean) < self.min_length:
            return False

        if any(p.search(clean) for p in _NOT_KQL_PATTERNS):
            return False

        if "|" not in clean:
            return False

        if self._table_re is not None and self._table_re.search(clean):
            return True
        return bool(_VERB_RE.search(clean))

    __call__ = is_kql_query
