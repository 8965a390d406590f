"""
Schema dataclasses: tables, resource types, language elements and examples.

Pure dataclasses with no I/O dependencies. ``to_dict()`` emits the camelCase
JSON shape consumed by the editor's completion and hover providers;
``from_dict()`` reads it back for the refresh modes.
"""

from dataclasses import dataclass, field
from typing import Literal, Optional

# Snippet dialects, highest priority first: native KQL, Azure CLI wrapper,
# Azure PowerShell wrapper, untagged fence.
SnippetSource = Literal["kql", "cli", "powershell", "generic"]
SOURCE_PRIORITY: tuple[str, ...] = ("kql", "cli", "powershell", "generic")

ElementKind = Literal["keyword", "operator", "function", "aggregate"]
DocKind = Literal["operator", "function", "aggregate", "statement"]

# Default categories for elements without documentation
KEYWORD_CATEGORY = "KQL keyword"
OPERATOR_CATEGORY = "KQL operator"
FUNCTION_CATEGORY = "Function"
AGGREGATE_CATEGORY = "Aggregation function"

# Canonical category forced onto documented operators
DOCUMENTED_OPERATOR_CATEGORY = "Operator"


def source_rank(source: str) -> int:
    """Priority tier of a snippet dialect (lower sorts first)."""
    try:
        return SOURCE_PRIORITY.index(source)
    except ValueError:
        return len(SOURCE_PRIORITY)


@dataclass(frozen=True)
class DocumentationRecord:
    """Structured fields recovered from one documentation page."""

    title: str = ""
    description: str = ""
    syntax: str = ""
    return_info: str = ""
    parameters_table: str = ""
    example: str = ""
    category: str = ""
    url: str = ""
    source_length: int = 0

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "syntax": self.syntax,
            "returnInfo": self.return_info,
            "parametersTable": self.parameters_table,
            "example": self.example,
            "category": self.category,
            "url": self.url,
            "sourceLength": self.source_length,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DocumentationRecord":
        return cls(
            title=data.get("title", "") or "",
            description=data.get("description", "") or "",
            syntax=data.get("syntax", "") or "",
            return_info=data.get("returnInfo", "") or "",
            parameters_table=data.get("parametersTable", "") or "",
            example=data.get("example", "") or "",
            category=data.get("category", "") or "",
            url=data.get("url", "") or "",
            source_length=int(data.get("sourceLength", 0) or 0),
        )


@dataclass
class LanguageElement:
    """A keyword, operator, function or aggregate."""

    name: str
    kind: ElementKind
    category: str
    documentation: Optional[DocumentationRecord] = None

    def to_dict(self) -> dict:
        d = {"name": self.name, "category": self.category}
        if self.documentation is not None:
            d["documentation"] = self.documentation.to_dict()
        return d

    @classmethod
    def from_dict(cls, data, kind: ElementKind, default_category: str) -> "LanguageElement":
        # Older schema files stored undocumented keywords as bare strings
        if isinstance(data, str):
            return cls(name=data, kind=kind, category=default_category)
        doc = data.get("documentation")
        category = data.get("category") or default_category
        if kind == "function" and category == AGGREGATE_CATEGORY:
            kind = "aggregate"
        return cls(
            name=data["name"],
            kind=kind,
            category=category,
            documentation=DocumentationRecord.from_dict(doc) if doc else None,
        )


@dataclass(frozen=True)
class Snippet:
    """Candidate query example extracted from a fenced code block."""

    code: str
    source: SnippetSource
    length: int


@dataclass(frozen=True)
class Example:
    code: str
    source: SnippetSource
    length: int
    starts_with_table: bool = False

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "source": self.source,
            "length": self.length,
            "startsWithTable": self.starts_with_table,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Example":
        code = data.get("code", "")
        return cls(
            code=code,
            source=data.get("source", "generic"),
            length=int(data.get("length", len(code))),
            starts_with_table=bool(data.get("startsWithTable", False)),
        )


@dataclass
class Table:
    name: str
    description: Optional[str] = None
    resource_types: list[str] = field(default_factory=list)
    examples: list[Example] = field(default_factory=list)

    def to_dict(self) -> dict:
        d: dict = {"name": self.name}
        if self.description:
            d["description"] = self.description
        d["resourceTypes"] = list(self.resource_types)
        d["examples"] = [e.to_dict() for e in self.examples]
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "Table":
        return cls(
            name=data["name"].lower(),
            description=data.get("description"),
            resource_types=list(data.get("resourceTypes", [])),
            examples=[Example.from_dict(e) for e in data.get("examples", [])],
        )


@dataclass(frozen=True)
class ResourceType:
    """Lookup entry: fully qualified resource type → owning table."""

    type: str
    table: str

    def to_dict(self) -> dict:
        return {"type": self.type, "table": self.table}


@dataclass(frozen=True)
class ElementDoc:
    """A parsed documentation page tagged with the element it documents."""

    name: str
    kind: DocKind
    category: str
    documentation: DocumentationRecord


@dataclass
class LanguageElements:
    """Raw name enumeration from the language service."""

    keywords: list[str] = field(default_factory=list)
    operators: list[str] = field(default_factory=list)
    functions: list[str] = field(default_factory=list)
    aggregates: list[str] = field(default_factory=list)


@dataclass
class Schema:
    """The assembled knowledge base handed to the writer."""

    tables: dict[str, Table] = field(default_factory=dict)
    resource_types: dict[str, ResourceType] = field(default_factory=dict)
    keywords: list[LanguageElement] = field(default_factory=list)
    operators: list[LanguageElement] = field(default_factory=list)
    functions: list[LanguageElement] = field(default_factory=list)
    last_updated: str = ""

    def to_dict(self) -> dict:
        """Serialize to dict for JSON output."""
        return {
            "tables": {k: t.to_dict() for k, t in self.tables.items()},
            "resourceTypes": {k: r.to_dict() for k, r in self.resource_types.items()},
            "keywords": [e.to_dict() for e in self.keywords],
            "operators": [e.to_dict() for e in self.operators],
            "functions": [e.to_dict() for e in self.functions],
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Schema":
        tables = {
            name.lower(): Table.from_dict({"name": name, **t})
            for name, t in (data.get("tables") or {}).items()
        }
        resource_types = {}
        for key, rt in (data.get("resourceTypes") or {}).items():
            table = rt.get("table")
            if table is None:
                # Legacy API-path shape: {"name": ..., "tables": [...]}
                owners = rt.get("tables") or []
                table = owners[0] if owners else ""
            resource_types[key.lower()] = ResourceType(type=key.lower(), table=table.lower())
        return cls(
            tables=tables,
            resource_types=resource_types,
            keywords=[
                LanguageElement.from_dict(k, "keyword", KEYWORD_CATEGORY)
                for k in data.get("keywords") or []
            ],
            operators=[
                LanguageElement.from_dict(o, "operator", OPERATOR_CATEGORY)
                for o in data.get("operators") or []
            ],
            functions=[
                LanguageElement.from_dict(f, "function", FUNCTION_CATEGORY)
                for f in data.get("functions") or []
            ],
            last_updated=data.get("lastUpdated", ""),
        )


@dataclass
class MatchReport:
    """Diagnostics from one snippet → table matching pass."""

    used_codes: set[str] = field(default_factory=set)
    examples_per_table: dict[str, int] = field(default_factory=dict)
    tables_without_examples: list[str] = field(default_factory=list)

    @property
    def total_matches(self) -> int:
        return sum(self.examples_per_table.values())


@dataclass
class MergeReport:
    """Diagnostics from one documentation merge pass."""

    operators_documented: int = 0
    functions_documented: int = 0
    keywords_documented: int = 0
    migrated_keywords: list[str] = field(default_factory=list)
    unmatched_operators: list[str] = field(default_factory=list)
    unmatched_functions: list[str] = field(default_factory=list)
    unmatched_keywords: list[str] = field(default_factory=list)
    unmatched_docs: list[str] = field(default_factory=list)
