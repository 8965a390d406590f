"""
Table catalog parsing: tables and resource types from the supported-tables
reference page (HTML), table descriptions from the query-language page
(Markdown), and merging both into an existing schema.
"""

import copy
import logging
import re
from typing import Optional

from bs4 import BeautifulSoup

from argschema.services.resource_graph.models import ResourceType, Schema, Table

logger = logging.getLogger(__name__)

# --- Validation ---

_TABLE_NAME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9]*$")
_TABLE_IN_HEADER_RE = re.compile(r"\b(\w*resources?)\b", re.IGNORECASE)

# provider.namespace/kind[/child...]
_RESOURCE_TYPE_RE = re.compile(r"^[a-z][a-z0-9-]*(?:\.[a-z0-9-]+)+/[a-z0-9][a-z0-9_./-]*$", re.IGNORECASE)
_RESOURCE_TYPE_DENY = (
    "://",
    "learn.microsoft",
    "docs.microsoft",
    "github.com",
)
_RESOURCE_TYPE_DENY_SUFFIXES = (".md", ".html", ".htm", ".png", ".jpg", ".svg", ".json", ".yml")

_DESCRIPTION_ROW_RE = re.compile(r"\|\s*([A-Za-z]+)\s*\|\s*Yes\s*\|\s*([^|]+)\s*\|")
_ITALIC_UNDERSCORE_RE = re.compile(r"_([^_]+)_")
_INLINE_CODE_RE = re.compile(r"`([^`]+)`")

RESOURCES_TABLE_DESCRIPTION = (
    "\nThe default table if a table isn't defined in the query. "
    "Most Resource Manager resource types and properties are here"
)


def is_valid_table_name(name: Optional[str]) -> bool:
    """3-50 chars, alphanumeric with alphabetic start, names a resource collection."""
    if not name or not isinstance(name, str):
        return False
    if not 3 <= len(name) <= 50 or not _TABLE_NAME_RE.match(name):
        return False
    lower = name.lower()
    return "resources" in lower and lower != "resource"


def is_valid_resource_type(value: Optional[str]) -> bool:
    if not value or not isinstance(value, str):
        return False
    lower = value.strip().lower()
    if any(token in lower for token in _RESOURCE_TYPE_DENY):
        return False
    if lower.endswith(_RESOURCE_TYPE_DENY_SUFFIXES):
        return False
    return bool(_RESOURCE_TYPE_RE.match(lower))


def extract_table_name(header_text: str) -> Optional[str]:
    match = _TABLE_IN_HEADER_RE.search(header_text or "")
    return match.group(1).lower() if match else None


# --- Supported tables page ---


def parse_tables_html(html: str) -> tuple[dict[str, Table], dict[str, ResourceType]]:
    """Extract tables (one per ``<h2>``) and the resource types listed under each.

    Returns (tables by name, resource types by type string). Headers or list
    items that fail validation are skipped.
    """
    tables: dict[str, Table] = {}
    resource_types: dict[str, ResourceType] = {}
    if not html:
        return tables, resource_types

    soup = BeautifulSoup(html, "html.parser")
    for header in soup.find_all("h2"):
        header_text = header.get_text(" ", strip=True)
        if "resources" not in header_text.lower():
            continue
        name = extract_table_name(header_text)
        if not is_valid_table_name(name):
            logger.debug(f"Skipping header '{header_text}'")
            continue

        table = tables.setdefault(name, Table(name=name))
        for sibling in header.find_next_siblings():
            if sibling.name == "h2":
                break
            for item in sibling.find_all("li") if sibling.name != "li" else [sibling]:
                value = item.get_text(" ", strip=True).split(" ")[0].lower()
                if not is_valid_resource_type(value):
                    continue
                if value not in table.resource_types:
                    table.resource_types.append(value)
                resource_types.setdefault(value, ResourceType(type=value, table=name))

    logger.info(f"Extracted {len(tables)} tables and {len(resource_types)} resource types")
    return tables, resource_types


# --- Query-language page ---


def parse_table_descriptions(markdown: str) -> dict[str, str]:
    """Read ``| Table | Yes | Description |`` rows into {lowercase name: text}."""
    descriptions: dict[str, str] = {}
    for match in _DESCRIPTION_ROW_RE.finditer(markdown or ""):
        name = match.group(1).strip()
        text = match.group(2).strip()
        text = re.sub(r"\.$", "", text)
        text = re.sub(r"^Includes resources ", "", text)
        text = _ITALIC_UNDERSCORE_RE.sub(r"\1", text)
        text = _INLINE_CODE_RE.sub(r"\1", text).strip()

        if name.lower() == "resources":
            text = RESOURCES_TABLE_DESCRIPTION
        elif text.startswith("related to "):
            text = "Related to " + text[len("related to "):]
        elif not (
            text.startswith("Related to")
            or "management group" in text
            or "The default table" in text
        ):
            text = "Related to " + text

        descriptions[name.lower()] = text
    return descriptions


# --- Schema merge ---


def merge_tables(
    schema: Schema,
    tables: dict[str, Table],
    resource_types: dict[str, ResourceType],
) -> Schema:
    """Add or refresh tables, keeping examples and descriptions already present."""
    result = copy.deepcopy(schema)
    for name, table in tables.items():
        existing = result.tables.get(name)
        merged = copy.deepcopy(table)
        if existing is not None:
            merged.examples = existing.examples
            merged.description = existing.description or table.description
            if not merged.resource_types:
                merged.resource_types = existing.resource_types
        result.tables[name] = merged

    for key, rt in resource_types.items():
        if rt.table in result.tables:
            result.resource_types[key] = rt
    return result


def apply_table_descriptions(schema: Schema, descriptions: dict[str, str]) -> Schema:
    """Overwrite descriptions of known tables; unknown names are ignored."""
    result = copy.deepcopy(schema)
    applied = 0
    for name, text in descriptions.items():
        table = result.tables.get(name.lower())
        if table is not None:
            table.description = text
            applied += 1
    logger.info(f"Applied descriptions to {applied}/{len(result.tables)} tables")
    return result
