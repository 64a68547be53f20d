# -*- coding: utf-8 -*-

# Route Guard
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
JSON Schema validation adapter.

Executes Draft 2020-12 validation through the jsonschema library with format
assertion enabled, and normalizes schema wrappers to plain JSON Schema first:

  - StandardSchema-style payloads: {"~standard": {"jsonSchema": ...}}
  - Pydantic models (anything exposing model_json_schema())
  - Objects exposing to_json_schema() / toJSONSchema()
  - OpenAPI 3.0 "nullable": true, rewritten to a "null" type union

Normalization is a pure translation step; the engine never special-cases the
library a schema came from.
"""

import json
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError as JsonSchemaDefinitionError
from loguru import logger

from routeguard.config import ROOT_ISSUE_PATH
from routeguard.errors import RouteConfigError, ValidationIssue

_STANDARD_KEY = "~standard"
_STANDARD_TARGET = {"target": "draft-2020-12"}
_WRAPPER_METHODS = ("model_json_schema", "to_json_schema", "toJSONSchema")

# Keywords whose value is a single subschema
_SUBSCHEMA_KEYS = (
    "items",
    "additionalProperties",
    "unevaluatedProperties",
    "unevaluatedItems",
    "contains",
    "propertyNames",
    "not",
    "if",
    "then",
    "else",
)
# Keywords whose value maps names to subschemas
_SUBSCHEMA_MAP_KEYS = ("properties", "patternProperties", "$defs", "definitions", "dependentSchemas")
# Keywords whose value is a list of subschemas
_SUBSCHEMA_LIST_KEYS = ("allOf", "anyOf", "oneOf", "prefixItems")


@dataclass(frozen=True)
class SchemaViolation:
    """
    One error reported by the schema validator.

    Attributes:
        instance_location: JSON Pointer to the failing value ("" for root)
        keyword: Failing JSON Schema keyword
        message: Validator message
        path: Raw path segments (keys and indexes) of the failing value
    """

    instance_location: str
    keyword: str
    message: str
    path: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class SchemaValidationResult:
    """Verdict of validate(); errors are in validator traversal order."""

    valid: bool
    errors: List[SchemaViolation] = field(default_factory=list)


def _unwrap_standard(schema: Mapping[str, Any]) -> Any:
    """Extract plain JSON Schema from a StandardSchema-style payload."""
    standard = schema[_STANDARD_KEY]
    if not isinstance(standard, Mapping):
        raise RouteConfigError("'~standard' must be a mapping")

    for key in ("jsonSchema", "json_schema", "schema"):
        candidate = standard.get(key)
        if candidate is None:
            continue
        if callable(candidate):
            return candidate()
        if isinstance(candidate, Mapping) and callable(candidate.get("input")):
            return candidate["input"](_STANDARD_TARGET)
        return candidate

    vendor = standard.get("vendor", "unknown")
    raise RouteConfigError(
        f"StandardSchema from vendor '{vendor}' does not expose a JSON Schema"
    )


def _translate_nullable(schema: Any) -> Any:
    """
    Recursively rewrite OpenAPI 3.0 "nullable" into Draft 2020-12 form.

    Returns a new structure; the input is never modified.
    """
    if not isinstance(schema, Mapping):
        return schema

    result: Dict[str, Any] = {}
    for key, value in schema.items():
        if key in _SUBSCHEMA_KEYS and isinstance(value, Mapping):
            result[key] = _translate_nullable(value)
        elif key in _SUBSCHEMA_MAP_KEYS and isinstance(value, Mapping):
            result[key] = {name: _translate_nullable(sub) for name, sub in value.items()}
        elif key in _SUBSCHEMA_LIST_KEYS and isinstance(value, list):
            result[key] = [_translate_nullable(sub) for sub in value]
        else:
            result[key] = value

    if result.pop("nullable", False) is True:
        declared = result.get("type")
        if isinstance(declared, str) and declared != "null":
            result["type"] = [declared, "null"]
        elif isinstance(declared, list) and "null" not in declared:
            result["type"] = [*declared, "null"]
        elif "enum" in result and None not in result["enum"]:
            result["enum"] = [*result["enum"], None]
    return result


def normalize_schema(schema: Any) -> Any:
    """
    Translate a schema wrapper into plain JSON Schema.

    Args:
        schema: Plain JSON Schema (dict or bool) or a supported wrapper

    Returns:
        Plain JSON Schema

    Raises:
        RouteConfigError: When the object is not a recognizable schema
    """
    if isinstance(schema, bool):
        return schema

    if isinstance(schema, Mapping):
        if _STANDARD_KEY in schema:
            return normalize_schema(_unwrap_standard(schema))
        return _translate_nullable(schema)

    for method_name in _WRAPPER_METHODS:
        method = getattr(schema, method_name, None)
        if callable(method):
            return normalize_schema(method())

    raise RouteConfigError(f"Unsupported schema object of type {type(schema).__name__}")


def check_schema(schema: Any) -> Any:
    """
    Normalize a schema and verify it is valid Draft 2020-12.

    Returns:
        The normalized schema

    Raises:
        RouteConfigError: When the schema is not valid JSON Schema
    """
    normalized = normalize_schema(schema)
    try:
        Draft202012Validator.check_schema(normalized)
    except JsonSchemaDefinitionError as e:
        raise RouteConfigError(f"Invalid JSON Schema: {e.message}") from e
    return normalized


@lru_cache(maxsize=512)
def _compiled_validator(schema_text: str) -> Draft202012Validator:
    """Compile a validator for a canonical schema text (cached)."""
    return Draft202012Validator(
        json.loads(schema_text),
        format_checker=Draft202012Validator.FORMAT_CHECKER,
    )


def _validator_for(schema: Any) -> Draft202012Validator:
    try:
        schema_text = json.dumps(schema, ensure_ascii=False)
    except (TypeError, ValueError):
        logger.debug("[SchemaValidator] Schema is not JSON-serializable, compiling uncached")
        return Draft202012Validator(schema, format_checker=Draft202012Validator.FORMAT_CHECKER)
    return _compiled_validator(schema_text)


def _json_pointer(path: Sequence[Any]) -> str:
    """Render path segments as an RFC 6901 JSON Pointer."""
    if not path:
        return ""
    escaped = (str(part).replace("~", "~0").replace("/", "~1") for part in path)
    return "/" + "/".join(escaped)


def validate(data: Any, schema: Any) -> SchemaValidationResult:
    """
    Validate data against a JSON Schema (Draft 2020-12).

    Deterministic: identical (data, schema) always produce the same verdict
    and the same error order.

    Args:
        data: Instance to validate
        schema: Plain JSON Schema or a supported wrapper

    Returns:
        SchemaValidationResult with every violation found
    """
    validator = _validator_for(normalize_schema(schema))

    errors: List[SchemaViolation] = []
    for error in validator.iter_errors(data):
        path = tuple(error.absolute_path)
        errors.append(
            SchemaViolation(
                instance_location=_json_pointer(path),
                keyword=str(error.validator),
                message=error.message,
                path=path,
            )
        )

    return SchemaValidationResult(valid=not errors, errors=errors)


def to_issues(errors: Sequence[SchemaViolation]) -> List[ValidationIssue]:
    """Convert validator errors to client-facing issues with dotted paths."""
    return [
        ValidationIssue(
            path=".".join(str(part) for part in error.path) or ROOT_ISSUE_PATH,
            message=error.message,
            keyword=error.keyword,
        )
        for error in errors
    ]
