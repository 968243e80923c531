"""Helpers to load and validate the playlist response JSON schema."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from .errors import SchemaError


def default_schema_path() -> Path:
    """Return the path to the bundled playlist response schema."""
    return Path(__file__).resolve().parent / "schemas" / "playlist_response.json"


@lru_cache(maxsize=1)
def load_schema(path: Optional[Path | str] = None) -> Dict[str, Any]:
    """Load and cache the response schema as a dictionary."""
    schema_path = Path(path) if path else default_schema_path()
    return json.loads(schema_path.read_text(encoding="utf-8"))


def response_format(schema: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Build the structured-output format block for the Responses API."""
    schema_dict = dict(schema or load_schema())
    # The service rejects meta keys it does not understand.
    schema_dict.pop("$schema", None)
    schema_dict.pop("title", None)
    return {
        "type": "json_schema",
        "name": "playlist",
        "schema": schema_dict,
        "strict": True,
    }


def format_errors(errors: Iterable[ValidationError]) -> str:
    """Turn jsonschema errors into a concise human-readable string."""
    parts = []
    for err in errors:
        location = ".".join(str(piece) for piece in err.absolute_path) or "<root>"
        parts.append(f"{location}: {err.message}")
    return "; ".join(parts)


def validate_playlist_payload(
    payload: Any, schema: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Validate a decoded service reply against the response schema.

    Raises SchemaError with a readable message if validation fails.
    """
    schema_dict = schema or load_schema()
    validator = Draft202012Validator(schema_dict)
    errors = list(validator.iter_errors(payload))
    if errors:
        raise SchemaError(f"Schema validation failed: {format_errors(errors)}")
    return payload
