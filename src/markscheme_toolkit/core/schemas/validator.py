"""
Schema Validation Utilities

Validates imported JSON against the batch and node schemas shipped next
to this module.

Two levels of strictness:
- ``validate_batch()`` fails fast: a payload that is not a non-empty list
  with at least one object cannot be imported at all.
- ``node_shape_errors()`` / ``check_node_shape()`` are per-record. A bad
  record is reported and skipped by the importer; siblings continue.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List

import jsonschema


# Load schemas lazily
_SCHEMAS: dict[str, dict] = {}


def _load_schema(name: str) -> dict:
    """Load a schema from the schemas directory."""
    if name not in _SCHEMAS:
        schema_path = Path(__file__).parent / f"{name}.schema.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")
        with open(schema_path, "r", encoding="utf-8") as f:
            _SCHEMAS[name] = json.load(f)
    return _SCHEMAS[name]


def _format_path(parts) -> str:
    out = ""
    for p in parts:
        out += f"[{p}]" if isinstance(p, int) else (f".{p}" if out else str(p))
    return out


class BatchValidationError(Exception):
    """Raised when a whole import payload is unusable."""

    def __init__(self, message: str, path: str = "", errors: list[str] | None = None):
        super().__init__(message)
        self.path = path
        self.errors = errors or []


class NodeShapeError(ValueError):
    """Raised when a single question/part record has an unusable shape."""

    def __init__(self, message: str, path: str = "", errors: list[str] | None = None):
        super().__init__(message)
        self.path = path
        self.errors = errors or []


def validate_batch(data: Any) -> List[Any]:
    """
    Validate the outer shape of an import payload.

    Args:
        data: Decoded JSON payload

    Returns:
        The payload as a list, ready for per-record ingestion

    Raises:
        BatchValidationError: If the payload is not a non-empty list
            containing at least one object
    """
    schema = _load_schema("raw_batch")
    validator = jsonschema.Draft7Validator(schema)
    errors = list(validator.iter_errors(data))
    if errors:
        first = jsonschema.exceptions.best_match(errors)
        raise BatchValidationError(
            f"Batch validation failed: {first.message}",
            path=_format_path(first.absolute_path),
            errors=[e.message for e in errors],
        )
    return list(data)


def node_shape_errors(data: Any, path: str = "") -> List[str]:
    """
    Return shape problems for one record (empty when usable).

    Each message is prefixed with the dotted path of the offending field.
    """
    schema = _load_schema("raw_node")
    validator = jsonschema.Draft7Validator(schema)
    messages = []
    for err in validator.iter_errors(data):
        where = _format_path([path, *err.absolute_path] if path else err.absolute_path)
        messages.append(f"{where}: {err.message}" if where else err.message)
    return messages


def check_node_shape(data: Any, path: str = "") -> None:
    """
    Validate one record against the node schema.

    Raises:
        NodeShapeError: If the record is not an object or a field has an
            unusable type
    """
    errors = node_shape_errors(data, path)
    if errors:
        raise NodeShapeError(
            f"Malformed record at {path or '<root>'}: {errors[0]}",
            path=path,
            errors=errors,
        )
