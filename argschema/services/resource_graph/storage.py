"""
Schema file storage: reads and writes the generated JSON artifacts.

Layout under ``output_dir``: ``arg-schema.json`` and ``completion-data.json``;
under ``syntax_dir``: ``kql.tmLanguage.json``.
"""

import json
import logging
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os

from argschema.config import settings
from argschema.services.resource_graph.grammar import (
    GrammarNames,
    build_completion_data,
    build_textmate_grammar,
    partition_names,
)
from argschema.services.resource_graph.models import Schema

logger = logging.getLogger(__name__)

SCHEMA_FILE = "arg-schema.json"
COMPLETION_FILE = "completion-data.json"
GRAMMAR_FILE = "kql.tmLanguage.json"


class SchemaStorage:
    """File-backed storage for the schema and its derived editor artifacts."""

    def __init__(self, output_dir: Optional[str] = None, syntax_dir: Optional[str] = None):
        self.output_dir = Path(output_dir or settings.output_dir)
        self.syntax_dir = Path(syntax_dir or settings.syntax_dir)

    @property
    def schema_path(self) -> Path:
        return self.output_dir / SCHEMA_FILE

    @property
    def completion_path(self) -> Path:
        return self.output_dir / COMPLETION_FILE

    @property
    def grammar_path(self) -> Path:
        return self.syntax_dir / GRAMMAR_FILE

    async def exists(self) -> bool:
        return await aiofiles.os.path.exists(self.schema_path)

    async def load(self) -> Schema:
        """Load the previously written schema.

        Raises FileNotFoundError when no schema exists and ValueError when the
        file is not a valid schema document.
        """
        if not await self.exists():
            raise FileNotFoundError(f"No existing schema at {self.schema_path}")
        async with aiofiles.open(self.schema_path, encoding="utf-8") as f:
            raw = await f.read()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid schema file {self.schema_path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Schema file {self.schema_path} must contain a JSON object")

        schema = Schema.from_dict(data)
        logger.info(
            f"Loaded schema: {len(schema.tables)} tables, {len(schema.keywords)} keywords, "
            f"{len(schema.operators)} operators, {len(schema.functions)} functions"
        )
        return schema

    async def _write_json(self, path: Path, payload: dict):
        await aiofiles.os.makedirs(path.parent, exist_ok=True)
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(payload, indent=2, ensure_ascii=False))
        logger.info(f"Wrote {path}")

    async def save(self, schema: Schema, names: Optional[GrammarNames] = None) -> dict:
        """Write the schema, completion data and grammar. Returns written paths."""
        names = names or partition_names(schema)
        await self._write_json(self.schema_path, schema.to_dict())
        await self._write_json(self.completion_path, build_completion_data(schema))
        await self._write_json(self.grammar_path, build_textmate_grammar(names))
        return {
            "schema": str(self.schema_path),
            "completion": str(self.completion_path),
            "grammar": str(self.grammar_path),
        }
