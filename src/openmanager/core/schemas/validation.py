"""Shared schema validation utilities.

OpenManager validates configuration files and hook options using JSON Schema.
Schemas are stored as YAML files under ``openmanager.data/schemas/`` and
loaded in a single, consistent way across the codebase.
"""
from __future__ import annotations

from typing import Any, Dict, List

import jsonschema
from jsonschema import Draft202012Validator

from openmanager.core.exceptions import ValidationError
from openmanager.data import get_data_path, read_yaml


class SchemaValidationError(ValidationError):
    """Raised when a payload does not match its schema."""

    def __init__(self, message: str, *, errors: List[str] | None = None) -> None:
        super().__init__(message, context={"errors": list(errors or [])})
        self.errors = list(errors or [])


def load_schema(schema_name: str) -> Dict[str, Any]:
    """Load a bundled schema dict.

    Automatically appends ``.schema.yaml`` if no extension is present.

    Raises:
        FileNotFoundError: If schema file doesn't exist.
        ValueError: If schema is not a YAML mapping.
    """
    if not (schema_name.endswith(".yaml") or schema_name.endswith(".yml")):
        schema_name = f"{schema_name}.schema.yaml"

    path = get_data_path("schemas", schema_name)
    if not path.exists():
        raise FileNotFoundError(f"Schema not found: {schema_name}")

    schema = read_yaml("schemas", schema_name)
    if not isinstance(schema, dict):
        raise ValueError(f"Schema must be a YAML mapping, got {type(schema).__name__}")
    return schema


def _format_error(error: jsonschema.ValidationError) -> str:
    location = "/".join(str(p) for p in error.absolute_path)
    return f"{location or '<root>'}: {error.message}"


def validate_payload(payload: Any, schema_name: str) -> None:
    """Validate ``payload`` against a bundled schema.

    All violations are collected (not just the first) so callers can report
    them together.

    Raises:
        SchemaValidationError: If validation fails.
    """
    schema = load_schema(schema_name)
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(payload), key=lambda e: list(e.absolute_path))
    if errors:
        messages = [_format_error(e) for e in errors]
        raise SchemaValidationError(
            f"Validation failed against schema '{schema_name}': " + "; ".join(messages),
            errors=messages,
        )


__all__ = ["SchemaValidationError", "load_schema", "validate_payload"]
