"""Bundled JSON schemas and validation helpers."""

from __future__ import annotations

import json
from functools import cache
from pathlib import Path
from typing import Any

import jsonschema

from ..exceptions import ClaudeInstructionsError

SCHEMA_DIR = Path(__file__).parent


@cache
def load_schema(schema_name: str) -> dict[str, Any]:
    """Load a bundled schema by name (e.g. ``config``)."""
    schema_path = SCHEMA_DIR / f"{schema_name}.schema.json"
    try:
        with schema_path.open(encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        msg = f"Failed to load schema {schema_name}: {e}"
        raise ClaudeInstructionsError(msg) from e


def validate_against_schema(
    data: Any,
    schema_name: str,
    error_cls: type[ClaudeInstructionsError],
    source: Path | None = None,
) -> None:
    """Validate data against a bundled schema.

    Raises:
        error_cls: If validation fails, with the failing path in ``details``
    """
    try:
        jsonschema.validate(data, load_schema(schema_name))
    except jsonschema.ValidationError as e:
        where = f" in {source}" if source else ""
        msg = f"Schema validation failed{where}: {e.message}"
        raise error_cls(
            msg,
            details={"path": list(e.absolute_path), "schema": schema_name},
        ) from e
