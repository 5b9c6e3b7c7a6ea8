"""JSON Schema contracts for jsDelivr API responses.

Responses are validated with jsonschema Draft 7 before any field is read, so a
body that decodes but has the wrong shape surfaces as ``ParseError`` instead of
a ``KeyError`` deep inside a strategy.
"""

from __future__ import annotations

from typing import Any, Dict

from jsonschema import Draft7Validator

from common.errors import ParseError

RESOLVE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "version": {"type": ["string", "null"]},
    },
}

FLAT_LISTING_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["files"],
    "properties": {
        "files": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name"],
                "properties": {
                    "name": {"type": "string"},
                    "hash": {"type": "string"},
                    "size": {"type": "integer"},
                },
            },
        },
    },
}

MANIFEST_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "version": {"type": "string"},
    },
}

_VALIDATORS: Dict[int, Draft7Validator] = {}


def validate_response(schema: Dict[str, Any], data: Any, url: str) -> None:
    """Validate a decoded response body and raise on the first error.

    Raises:
        ParseError: If ``data`` does not satisfy ``schema``.
    """
    validator = _VALIDATORS.get(id(schema))
    if validator is None:
        validator = Draft7Validator(schema)
        _VALIDATORS[id(schema)] = validator
    errs = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])
    if errs:
        first = errs[0]
        path = "/".join([str(p) for p in first.path])
        raise ParseError(f"Unexpected response from {url} at '{path}': {first.message}")
