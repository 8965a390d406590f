"""
Editor artifacts derived from the schema: the TextMate token grammar and the
completion item list.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

from argschema.services.resource_graph.models import LanguageElements, Schema

SCOPE_NAME = "source.kql.arg"

_REGEX_META_RE = re.compile(r"([\\^$.|?*+(){}\[\]!])")

# Alternation that never matches, for empty name lists
_NEVER = "(?!)"


@dataclass
class GrammarNames:
    """Name lists for highlighting, split by ambiguity with function names."""

    keywords: list[str] = field(default_factory=list)
    operators: list[str] = field(default_factory=list)
    functions: list[str] = field(default_factory=list)
    pure_keywords: list[str] = field(default_factory=list)
    pure_operators: list[str] = field(default_factory=list)
    pure_functions: list[str] = field(default_factory=list)
    tables: list[str] = field(default_factory=list)


def partition_names(
    schema: Schema, elements: Optional[LanguageElements] = None
) -> GrammarNames:
    """Classify names by the schema's buckets, then split off the ambiguous ones.

    A keyword or operator that is also a function name (``count``) is
    ambiguous and only highlighted as a function when followed by ``(``.
    Names known to the language service but absent from the schema keep the
    service's own classification.
    """
    keywords = [k.name for k in schema.keywords]
    operators = [o.name for o in schema.operators]
    functions = [f.name for f in schema.functions]

    if elements is not None:
        known = {n.lower() for n in keywords + operators}
        for name in elements.keywords:
            if name.lower() not in known:
                keywords.append(name)
                known.add(name.lower())
        for name in elements.operators:
            if name.lower() not in known:
                operators.append(name)
                known.add(name.lower())
        known_functions = {n.lower() for n in functions}
        for name in elements.functions + elements.aggregates:
            if name.lower() not in known_functions:
                functions.append(name)
                known_functions.add(name.lower())

    function_set = {f.lower() for f in functions}
    word_set = {n.lower() for n in keywords + operators}

    return GrammarNames(
        keywords=keywords,
        operators=operators,
        functions=functions,
        pure_keywords=[k for k in keywords if k.lower() not in function_set],
        pure_operators=[o for o in operators if o.lower() not in function_set],
        pure_functions=[f for f in functions if f.lower() not in word_set],
        tables=sorted(name for name in schema.tables if name),
    )


def _alternation(names: list) -> str:
    # Longest first so ``mv-expand`` wins over ``mv``
    ordered = sorted(set(names), key=lambda n: (-len(n), n))
    if not ordered:
        return _NEVER
    return "|".join(_REGEX_META_RE.sub(r"\\\1", n) for n in ordered)


def build_textmate_grammar(names: GrammarNames) -> dict:
    keywords = _alternation(names.keywords)
    operators = _alternation(names.operators)
    words = f"{operators}|{keywords}"

    return {
        "name": "Azure Resource Graph KQL",
        "scopeName": SCOPE_NAME,
        "fileTypes": ["kql"],
        "patterns": [
            {"include": "#comments"},
            {"include": "#function_calls"},
            {"include": "#keywords"},
            {"include": "#operators"},
            {"include": "#functions"},
            {"include": "#tables"},
            {"include": "#properties"},
            {"include": "#numbers"},
            {"include": "#columns"},
            {"include": "#strings"},
        ],
        "repository": {
            "comments": {
                "patterns": [
                    {"name": "comment.line.double-slash.kql", "match": "//.*$"},
                    {"name": "comment.block.kql", "begin": "/\\*", "end": "\\*/"},
                ]
            },
            "function_calls": {
                "patterns": [
                    {
                        "name": "support.function.builtin.kql",
                        "match": f"(?i)\\b({_alternation(names.functions)})(?=\\s*\\()",
                    }
                ]
            },
            "keywords": {
                "patterns": [
                    {
                        "name": "keyword.other.kql",
                        "match": f"(?i)\\b({_alternation(names.pure_keywords)})\\b",
                    }
                ]
            },
            "operators": {
                "patterns": [
                    {
                        "name": "keyword.control.kql",
                        "match": f"(?i)(?<!\\w)({_alternation(names.pure_operators)})(?!\\w)",
                    }
                ]
            },
            "functions": {
                "patterns": [
                    {
                        "name": "support.function.builtin.kql",
                        "match": f"(?i)\\b({_alternation(names.pure_functions)})\\b",
                    }
                ]
            },
            "tables": {
                "patterns": [
                    {
                        "name": "support.class.table.kql",
                        "match": f"(?i)\\b({_alternation(names.tables)})\\b",
                    }
                ]
            },
            "strings": {
                "patterns": [
                    {
                        "name": "string.quoted.verbatim.kql",
                        "begin": '@"',
                        "end": '"',
                        "patterns": [{"name": "constant.character.escape.kql", "match": '""'}],
                    },
                    {
                        "name": "string.quoted.double.kql",
                        "begin": '"',
                        "end": '"',
                        "patterns": [{"name": "constant.character.escape.kql", "match": "\\\\."}],
                    },
                    {
                        "name": "string.quoted.single.kql",
                        "begin": "'",
                        "end": "'",
                        "patterns": [{"name": "constant.character.escape.kql", "match": "\\\\."}],
                    },
                ]
            },
            "numbers": {
                "patterns": [
                    {
                        "name": "constant.numeric.kql",
                        "match": "\\b([0-9]+\\.?[0-9]*([eE][+-]?[0-9]+)?[fdm]?)\\b",
                    },
                    {"name": "constant.numeric.hex.kql", "match": "\\b0[xX][0-9a-fA-F]+\\b"},
                ]
            },
            "columns": {
                "patterns": [
                    {
                        "name": "variable.other.column.assignment.kql",
                        "match": "(?i)(?<!\\.)\\b\\w+(?=\\s*=|\\s*\\.)",
                    },
                    {
                        "name": "variable.other.column.first.kql",
                        "match": f"(?i)(?<=\\b(?:{words})\\s+)(?<!\\.)\\w+(?=\\s*[,|\\.]|\\s*$)",
                    },
                    {
                        "name": "variable.other.column.function.kql",
                        "match": "(?i)(?<=\\()\\s*(?<!\\.)\\w+(?=\\s*[,)\\.])",
                    },
                    {
                        "name": "variable.other.column.kql",
                        "match": "(?i)(?<=,\\s*)(?<!\\.)\\w+(?=\\s*[,|\\.]|\\s*$)",
                    },
                ]
            },
            "properties": {
                "patterns": [
                    {"name": "meta.other.property.kql", "match": "\\.[a-zA-Z_][a-zA-Z0-9_]*"}
                ]
            },
        },
    }


def build_completion_data(schema: Schema) -> dict:
    """Completion items grouped by kind, in schema order."""
    return {
        "tables": [
            {"label": name, "kind": "Table", "insertText": name} for name in schema.tables
        ],
        "keywords": [
            {"label": k.name, "kind": "Keyword", "insertText": k.name, "category": k.category}
            for k in schema.keywords
        ],
        "operators": [
            {"label": o.name, "kind": "Operator", "insertText": o.name, "category": o.category}
            for o in schema.operators
        ],
        "functions": [
            {
                "label": f.name,
                "kind": "Function",
                "insertText": f"{f.name}()",
                "category": f.category,
            }
            for f in schema.functions
        ],
        "resourceTypes": [
            {"label": t, "kind": "Value", "insertText": f"'{t}'"}
            for t in schema.resource_types
        ],
    }
