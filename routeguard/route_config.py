# -*- coding: utf-8 -*-

# Route Guard
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.

"""
Declarative per-route, per-method validation contracts.

A RouteConfig maps HTTP methods to RouteMethodConfig objects. Each method
config declares JSON Schemas for up to five request facets (headers, query,
path params, cookies, body) and for responses keyed by status:

    "200"      exact status
    "4XX"      wildcard for a hundred-range
    "default"  anything else

All objects are frozen and their mappings are read-only proxies, so one
loaded configuration can be shared by concurrent requests. Schemas are
normalized and checked when the objects are built, so a malformed contract
fails at startup instead of on the first request.

Example:
    >>> config = parse_route_config("/api/users", {
    ...     "POST": {
    ...         "body": {"application/json": {"schema": {"type": "object"}}},
    ...         "responses": {"200": {"body": {"schema": {"type": "object"}}}},
    ...     }
    ... })
    >>> config.for_method("post").body["application/json"].skip_validation is None
    True
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from loguru import logger

from routeguard.errors import RouteConfigError
from routeguard.schema_validator import check_schema

HTTP_METHODS: Tuple[str, ...] = (
    "GET",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "OPTIONS",
    "HEAD",
    "TRACE",
)

JSON_MEDIA_TYPE = "application/json"
DEFAULT_RESPONSE_KEY = "default"

_STATUS_KEY_RE = re.compile(r"^[1-5](\d\d|XX)$")

# Operation keys that document the route but do not affect validation
_DOCUMENTATION_KEYS = ("summary", "description", "tags", "operationId", "deprecated")


def normalize_status_key(key: Any) -> str:
    """
    Validate and canonicalize a response key.

    Accepts exact codes ("404", 404), wildcards ("4XX", "4xx") and "default".

    Raises:
        RouteConfigError: For anything else
    """
    text = str(key).strip()
    if text.lower() == DEFAULT_RESPONSE_KEY:
        return DEFAULT_RESPONSE_KEY
    text = text.upper()
    if not _STATUS_KEY_RE.match(text):
        raise RouteConfigError(
            f"Invalid response key '{key}': expected a 3-digit status, 'NXX' or 'default'"
        )
    return text


def _check_flag(name: str, value: Any) -> None:
    if value is not None and not isinstance(value, bool):
        raise RouteConfigError(f"'{name}' must be a boolean, got {type(value).__name__}")


def _freeze(mapping: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class ValidationSchemaConfig:
    """
    Schema plus behavior flags for one facet.

    Attributes:
        schema: JSON Schema (or a supported wrapper, normalized on construction)
        skip_validation: Explicit skip flag; None defers to defaults
        show_error_message: Explicit detail flag; None defers to defaults
    """

    schema: Any
    skip_validation: Optional[bool] = None
    show_error_message: Optional[bool] = None

    def __post_init__(self):
        _check_flag("skip_validation", self.skip_validation)
        _check_flag("show_error_message", self.show_error_message)
        object.__setattr__(self, "schema", check_schema(self.schema))


BodyDeclaration = Union[ValidationSchemaConfig, Mapping[str, ValidationSchemaConfig], None]


def _freeze_body(body: BodyDeclaration, where: str) -> Mapping[str, ValidationSchemaConfig]:
    """Normalize a body declaration to a read-only {media_type: config} map."""
    if body is None:
        return _freeze({})
    if isinstance(body, ValidationSchemaConfig):
        return _freeze({JSON_MEDIA_TYPE: body})

    frozen: Dict[str, ValidationSchemaConfig] = {}
    for media_type, config in body.items():
        if not isinstance(config, ValidationSchemaConfig):
            raise RouteConfigError(f"{where}: body for '{media_type}' must be a ValidationSchemaConfig")
        frozen[media_type.strip().lower()] = config
    return _freeze(frozen)


@dataclass(frozen=True)
class ResponseConfig:
    """
    Output contract for one response key.

    Attributes:
        body: Body schemas keyed by media type
        headers: Per-header schemas (names matched case-insensitively)
        cookies: Schema for the cookie map built from Set-Cookie headers
        description: Free-form documentation
    """

    body: BodyDeclaration = None
    headers: Mapping[str, ValidationSchemaConfig] = field(default_factory=dict)
    cookies: Optional[ValidationSchemaConfig] = None
    description: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "body", _freeze_body(self.body, "response"))
        object.__setattr__(self, "headers", _freeze(self.headers))

    def body_config_for(self, media_type: Optional[str]) -> Optional[ValidationSchemaConfig]:
        """Find the body schema for a media type, falling back to application/json."""
        if media_type and media_type in self.body:
            return self.body[media_type]
        return self.body.get(JSON_MEDIA_TYPE)


@dataclass(frozen=True)
class RouteMethodConfig:
    """
    Validation contract for one (path, method) pair.

    Attributes:
        headers: Request header map schema
        query: Query string map schema
        path_params: Router path parameter map schema
        cookies: Request cookie map schema
        body: Request body schemas keyed by media type
        responses: Output contracts keyed by "200" / "2XX" / "default"
        allowed_status_codes: If set, only statuses matching these keys may be returned
        summary: Free-form documentation
        description: Free-form documentation
    """

    headers: Optional[ValidationSchemaConfig] = None
    query: Optional[ValidationSchemaConfig] = None
    path_params: Optional[ValidationSchemaConfig] = None
    cookies: Optional[ValidationSchemaConfig] = None
    body: BodyDeclaration = None
    responses: Mapping[str, ResponseConfig] = field(default_factory=dict)
    allowed_status_codes: Optional[Tuple[str, ...]] = None
    summary: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "body", _freeze_body(self.body, "request"))

        responses: Dict[str, ResponseConfig] = {}
        for key, response in (self.responses or {}).items():
            if not isinstance(response, ResponseConfig):
                raise RouteConfigError(f"responses['{key}'] must be a ResponseConfig")
            responses[normalize_status_key(key)] = response
        object.__setattr__(self, "responses", _freeze(responses))

        if self.allowed_status_codes is not None:
            object.__setattr__(
                self,
                "allowed_status_codes",
                tuple(normalize_status_key(key) for key in self.allowed_status_codes),
            )


@dataclass(frozen=True)
class RouteConfig:
    """
    Validation contracts for every method of one route.

    Attributes:
        path: Route path ("/api/users/{user_id}"), used for logging and routing
        methods: Method name -> RouteMethodConfig
    """

    path: str = ""
    methods: Mapping[str, RouteMethodConfig] = field(default_factory=dict)

    def __post_init__(self):
        methods: Dict[str, RouteMethodConfig] = {}
        for method, config in (self.methods or {}).items():
            name = normalize_method(method)
            if not isinstance(config, RouteMethodConfig):
                raise RouteConfigError(f"{self.path} {name}: expected RouteMethodConfig")
            methods[name] = config
        object.__setattr__(self, "methods", _freeze(methods))

    def for_method(self, method: str) -> Optional[RouteMethodConfig]:
        return self.methods.get(method.upper())


def normalize_method(method: str) -> str:
    name = str(method).strip().upper()
    if name not in HTTP_METHODS:
        raise RouteConfigError(f"Unknown HTTP method '{method}'")
    return name


def match_response_config(
    responses: Mapping[str, ResponseConfig],
    status: int,
) -> Optional[ResponseConfig]:
    """
    Resolve the output contract for a status code.

    Lookup order: exact ("404") -> wildcard ("4XX") -> "default". First match wins.

    Returns:
        Matching ResponseConfig, or None when nothing applies
    """
    code = str(status)
    for key in (code, f"{code[0]}XX", DEFAULT_RESPONSE_KEY):
        config = responses.get(key)
        if config is not None:
            return config
    return None


def status_matches_keys(status: int, keys: Iterable[str]) -> bool:
    """Check whether a status is covered by any of the given response keys."""
    code = str(status)
    allowed = set(keys)
    return bool(allowed & {code, f"{code[0]}XX", DEFAULT_RESPONSE_KEY})


# ==================================================================================================
# Parsing from plain data (JSON route tables)
# ==================================================================================================

# Accepted spellings for each option (snake_case first, camelCase second)
_FLAG_ALIASES = {
    "skip_validation": ("skip_validation", "skipValidation"),
    "show_error_message": ("show_error_message", "showErrorMessage"),
}


def _pick(data: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if name in data:
            return data[name]
    return None


def _parse_schema_config(data: Any, where: str) -> Optional[ValidationSchemaConfig]:
    """
    Parse a facet declaration.

    Either {"schema": ..., "skipValidation": ..., "showErrorMessage": ...}
    or a bare JSON Schema (JSON Schema has no "schema" keyword, so the two
    forms cannot collide).
    """
    if data is None:
        return None
    if isinstance(data, ValidationSchemaConfig):
        return data
    if not isinstance(data, Mapping):
        raise RouteConfigError(f"{where}: expected a mapping, got {type(data).__name__}")

    try:
        if "schema" not in data:
            return ValidationSchemaConfig(schema=data)
        return ValidationSchemaConfig(
            schema=data["schema"],
            skip_validation=_pick(data, *_FLAG_ALIASES["skip_validation"]),
            show_error_message=_pick(data, *_FLAG_ALIASES["show_error_message"]),
        )
    except RouteConfigError as e:
        raise RouteConfigError(f"{where}: {e}") from e


def _parse_body(data: Any, where: str) -> Dict[str, ValidationSchemaConfig]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise RouteConfigError(f"{where}: expected a mapping of media types")
    # Media type maps are keyed "type/subtype"; anything else is a single
    # application/json declaration (wrapped or bare schema)
    if "schema" in data or not all("/" in str(key) for key in data):
        return {JSON_MEDIA_TYPE: _parse_schema_config(data, where)}
    return {
        media_type: _parse_schema_config(config, f"{where}['{media_type}']")
        for media_type, config in data.items()
    }


def _parse_response(data: Any, where: str) -> ResponseConfig:
    if not isinstance(data, Mapping):
        raise RouteConfigError(f"{where}: expected a mapping")
    headers = _pick(data, "headers") or {}
    if not isinstance(headers, Mapping):
        raise RouteConfigError(f"{where}.headers: expected a mapping of header names")
    return ResponseConfig(
        body=_parse_body(_pick(data, "body", "content"), f"{where}.body"),
        headers={
            name: _parse_schema_config(config, f"{where}.headers['{name}']")
            for name, config in headers.items()
        },
        cookies=_parse_schema_config(_pick(data, "cookies"), f"{where}.cookies"),
        description=_pick(data, "description"),
    )


_METHOD_KEYS = {
    "headers": ("headers",),
    "query": ("query",),
    "path_params": ("path_params", "pathParams"),
    "cookies": ("cookies",),
    "body": ("body", "requestBody"),
    "responses": ("responses",),
    "allowed_status_codes": ("allowed_status_codes", "allowedStatusCodes"),
}


def parse_method_config(data: Mapping[str, Any], where: str = "route") -> RouteMethodConfig:
    """
    Build a RouteMethodConfig from plain data.

    Raises:
        RouteConfigError: On unknown keys, bad status keys, bad flags or invalid schemas
    """
    if not isinstance(data, Mapping):
        raise RouteConfigError(f"{where}: expected a mapping")

    known = {alias for aliases in _METHOD_KEYS.values() for alias in aliases}
    unknown = sorted(set(data) - known - set(_DOCUMENTATION_KEYS))
    if unknown:
        raise RouteConfigError(f"{where}: unknown keys {unknown}")

    responses = _pick(data, *_METHOD_KEYS["responses"]) or {}
    if not isinstance(responses, Mapping):
        raise RouteConfigError(f"{where}.responses: expected a mapping of status keys")

    allowed = _pick(data, *_METHOD_KEYS["allowed_status_codes"])
    if allowed is not None and (isinstance(allowed, str) or not isinstance(allowed, Iterable)):
        raise RouteConfigError(f"{where}.allowed_status_codes: expected a list of status keys")

    return RouteMethodConfig(
        headers=_parse_schema_config(data.get("headers"), f"{where}.headers"),
        query=_parse_schema_config(data.get("query"), f"{where}.query"),
        path_params=_parse_schema_config(
            _pick(data, *_METHOD_KEYS["path_params"]), f"{where}.path_params"
        ),
        cookies=_parse_schema_config(data.get("cookies"), f"{where}.cookies"),
        body=_parse_body(_pick(data, *_METHOD_KEYS["body"]), f"{where}.body"),
        responses={
            key: _parse_response(response, f"{where}.responses['{key}']")
            for key, response in responses.items()
        },
        allowed_status_codes=tuple(allowed) if allowed is not None else None,
        summary=data.get("summary"),
        description=data.get("description"),
    )


def parse_route_config(path: str, data: Mapping[str, Any]) -> RouteConfig:
    """
    Build a RouteConfig from {METHOD: method_data}.

    Args:
        path: Route path the config belongs to
        data: Mapping of HTTP method names to method declarations

    Returns:
        Frozen RouteConfig
    """
    if not isinstance(data, Mapping):
        raise RouteConfigError(f"{path}: expected a mapping of HTTP methods")
    return RouteConfig(
        path=path,
        methods={
            normalize_method(method): parse_method_config(method_data, f"{path} {str(method).upper()}")
            for method, method_data in data.items()
        },
    )


def load_route_table(file_path: Union[str, Path]) -> Dict[str, RouteConfig]:
    """
    Load a JSON route table: {"/path": {"METHOD": {...}}}.

    Raises:
        RouteConfigError: When the file is missing, not JSON, or declares invalid contracts
    """
    path = Path(file_path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise RouteConfigError(f"Cannot read route table {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise RouteConfigError(f"Route table {path} is not valid JSON: {e}") from e

    if not isinstance(raw, Mapping):
        raise RouteConfigError(f"Route table {path} must be a JSON object")

    table = {route: parse_route_config(route, methods) for route, methods in raw.items()}
    logger.info("[RouteConfig] Loaded {} route(s) from {}", len(table), path)
    return table
