"""
Sources of the language-service name enumeration.

The KQL language service is not callable from Python, so its enumeration is
consumed as a JSON dump:

    {"keywords": [...], "operators": [...], "functions": [...], "aggregates": [...]}
"""

import json
import logging
import re
from typing import Iterable, Protocol

import aiofiles
import aiofiles.os

from argschema.services.resource_graph.models import LanguageElements

logger = logging.getLogger(__name__)

_NO_LETTERS_RE = re.compile(r"^[^a-zA-Z]*$")
_PUNCTUATION_RE = re.compile(r"[^\w\s]")


def is_symbolic(name: str) -> bool:
    """True for punctuation-only tokens such as ``==`` or ``|``."""
    return bool(_NO_LETTERS_RE.match(name)) and bool(_PUNCTUATION_RE.search(name))


def normalize_names(names: Iterable, drop_symbolic: bool = False) -> list[str]:
    """Dedupe and sort; drop blanks and ``__`` internals (and symbols if asked)."""
    result: set[str] = set()
    for name in names or []:
        if isinstance(name, dict):
            name = name.get("name") or name.get("Name")
        if not name or not isinstance(name, str):
            continue
        name = name.strip()
        if not name or name.startswith("__"):
            continue
        if drop_symbolic and is_symbolic(name):
            continue
        result.add(name)
    return sorted(result)


def normalize_elements(data: dict) -> LanguageElements:
    return LanguageElements(
        keywords=normalize_names(data.get("keywords"), drop_symbolic=True),
        operators=normalize_names(data.get("operators"), drop_symbolic=True),
        functions=normalize_names(data.get("functions")),
        aggregates=normalize_names(data.get("aggregates")),
    )


class ElementSource(Protocol):
    async def load(self) -> LanguageElements:
        ...


class StaticElementSource:
    """In-memory name lists."""

    def __init__(
        self,
        keywords: Iterable[str] = (),
        operators: Iterable[str] = (),
        functions: Iterable[str] = (),
        aggregates: Iterable[str] = (),
    ):
        self._data = {
            "keywords": list(keywords),
            "operators": list(operators),
            "functions": list(functions),
            "aggregates": list(aggregates),
        }

    async def load(self) -> LanguageElements:
        return normalize_elements(self._data)


class JsonElementSource:
    """Reads a JSON dump of the language-service enumeration."""

    def __init__(self, path: str):
        self.path = path

    async def load(self) -> LanguageElements:
        if not await aiofiles.os.path.exists(self.path):
            raise FileNotFoundError(f"Language element dump not found: {self.path}")
        async with aiofiles.open(self.path, encoding="utf-8") as f:
            raw = await f.read()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid language element dump {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Language element dump {self.path} must be a JSON object")

        elements = normalize_elements(data)
        logger.info(
            f"Loaded {len(elements.keywords)} keywords, {len(elements.operators)} operators, "
            f"{len(elements.functions)} functions, {len(elements.aggregates)} aggregates "
            f"from {self.path}"
        )
        return elements
