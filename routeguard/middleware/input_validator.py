# -*- coding: utf-8 -*-

# Route Guard
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Request-side validation state machine.

Facets are validated strictly in this order:

  NOT_STARTED -> VALIDATING_HEADERS -> VALIDATING_QUERY -> VALIDATING_PATH_PARAMS
              -> VALIDATING_COOKIES -> VALIDATING_BODY -> INPUTS_READY

The first failing facet moves the run to FAILED and raises
InputValidationError; later facets are never looked at, so a client always
gets exactly one facet to blame.

Every facet is extracted even when it has no schema or skip_validation is
set, so the handler always receives the raw values. For the body, JSON
parsing happens before validation: a malformed body fails even when
validation is skipped.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from loguru import logger
from starlette.requests import Request

from routeguard.defaults import REQUEST_CONTEXT, DefaultsConfig, resolve_field_config
from routeguard.errors import BodyParseError, InputValidationError
from routeguard.extractors import (
    extract_cookies,
    extract_headers,
    extract_path_params,
    extract_query,
    is_json_media_type,
    read_json_body,
    request_media_type,
)
from routeguard.route_config import JSON_MEDIA_TYPE, RouteMethodConfig, ValidationSchemaConfig
from routeguard.schema_validator import to_issues, validate


class ValidationState(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    VALIDATING_HEADERS = "VALIDATING_HEADERS"
    VALIDATING_QUERY = "VALIDATING_QUERY"
    VALIDATING_PATH_PARAMS = "VALIDATING_PATH_PARAMS"
    VALIDATING_COOKIES = "VALIDATING_COOKIES"
    VALIDATING_BODY = "VALIDATING_BODY"
    INPUTS_READY = "INPUTS_READY"
    FAILED = "FAILED"


# Labels used in "<Label> validation failed"
FACET_LABELS: Dict[str, str] = {
    "headers": "Headers",
    "query": "Query parameters",
    "path_params": "Path parameters",
    "cookies": "Cookies",
    "body": "Request body",
}


@dataclass
class ValidatedInputs:
    """
    Request facets handed to application logic.

    Facets with a schema hold validated values; facets without one hold the
    raw extracted values. body is None when the request carries no JSON body.
    """

    body: Any = None
    query: Dict[str, str] = field(default_factory=dict)
    path_params: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    cookies: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_request(cls, request: Request) -> "ValidatedInputs":
        """Extract every non-body facet without validating anything."""
        return cls(
            query=extract_query(request),
            path_params=extract_path_params(request),
            headers=extract_headers(request),
            cookies=extract_cookies(request),
        )


@dataclass(frozen=True)
class _FacetStep:
    facet: str
    state: ValidationState
    extract: Callable[[Request], Dict[str, str]]


_MAP_FACET_STEPS = (
    _FacetStep("headers", ValidationState.VALIDATING_HEADERS, extract_headers),
    _FacetStep("query", ValidationState.VALIDATING_QUERY, extract_query),
    _FacetStep("path_params", ValidationState.VALIDATING_PATH_PARAMS, extract_path_params),
    _FacetStep("cookies", ValidationState.VALIDATING_COOKIES, extract_cookies),
)


def body_config_for(
    body: Mapping[str, ValidationSchemaConfig],
    media: Optional[str],
) -> Optional[ValidationSchemaConfig]:
    """Select the body declaration for a request media type."""
    if not media:
        return None
    if media in body:
        return body[media]
    if is_json_media_type(media):
        return body.get(JSON_MEDIA_TYPE)
    return None


class InputValidationRun:
    """
    One pass of the input state machine for one request.

    Attributes:
        state: Current ValidationState
        history: Every state entered, in order (for diagnostics and tests)
        inputs: Values collected so far
    """

    def __init__(
        self,
        request: Request,
        method_config: RouteMethodConfig,
        defaults: DefaultsConfig,
        route: str = "",
        method: str = "",
    ):
        self.request = request
        self.method_config = method_config
        self.defaults = defaults
        self.route = route
        self.method = method
        self.state = ValidationState.NOT_STARTED
        self.history: List[ValidationState] = [ValidationState.NOT_STARTED]
        self.inputs = ValidatedInputs()

    def _enter(self, state: ValidationState) -> None:
        self.state = state
        self.history.append(state)

    def _fail(self, error: InputValidationError) -> None:
        self._enter(ValidationState.FAILED)
        logger.info(
            "[InputValidator] {} {}: {} validation failed ({} issue(s))",
            self.method,
            self.route,
            error.label,
            len(error.issues),
        )
        logger.debug(
            "[InputValidator] {} {} issues: {}",
            self.method,
            self.route,
            [issue.to_dict() for issue in error.issues],
        )
        raise error

    def _check(self, facet: str, value: Any, config: Optional[ValidationSchemaConfig]) -> None:
        effective = resolve_field_config(config, self.defaults, REQUEST_CONTEXT, facet)
        if not effective.should_validate:
            return

        result = validate(value, effective.schema)
        if result.valid:
            return

        self._fail(
            InputValidationError(
                facet=facet,
                label=FACET_LABELS[facet],
                issues=to_issues(result.errors),
                show_details=effective.show_error_message,
            )
        )

    async def _validate_body(self) -> None:
        media = request_media_type(self.request)
        config = body_config_for(self.method_config.body, media)

        if not is_json_media_type(media):
            if config is not None:
                logger.debug(
                    "[InputValidator] {} {}: no JSON reader for media type '{}', body left unparsed",
                    self.method,
                    self.route,
                    media,
                )
            return

        if config is None:
            # Undeclared body: best-effort parse for the handler, never a failure
            try:
                self.inputs.body = await read_json_body(self.request)
            except BodyParseError as e:
                logger.debug("[InputValidator] Undeclared body not parsed: {}", e.reason)
            return

        effective = resolve_field_config(config, self.defaults, REQUEST_CONTEXT, "body")
        try:
            self.inputs.body = await read_json_body(self.request)
        except BodyParseError as e:
            logger.warning(
                "[InputValidator] {} {}: {}", self.method, self.route, e.reason
            )
            self._fail(e.with_details(effective.show_error_message))

        self._check("body", self.inputs.body, config)

    async def run(self) -> ValidatedInputs:
        """
        Execute every step in order.

        Returns:
            ValidatedInputs for the handler

        Raises:
            InputValidationError: For the first failing facet
        """
        for step in _MAP_FACET_STEPS:
            self._enter(step.state)
            value = step.extract(self.request)
            setattr(self.inputs, step.facet, value)
            self._check(step.facet, value, getattr(self.method_config, step.facet))

        self._enter(ValidationState.VALIDATING_BODY)
        await self._validate_body()

        self._enter(ValidationState.INPUTS_READY)
        return self.inputs


async def validate_inputs(
    request: Request,
    method_config: RouteMethodConfig,
    defaults: DefaultsConfig,
    route: str = "",
    method: str = "",
) -> ValidatedInputs:
    """
    Validate every declared request facet in the fixed order.

    Raises:
        InputValidationError: For the first failing facet (BodyParseError for bad JSON)
    """
    return await InputValidationRun(request, method_config, defaults, route, method).run()
