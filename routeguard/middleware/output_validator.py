# -*- coding: utf-8 -*-

# Route Guard
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Response-side contract enforcement.

Checks run in a fixed order against the contract selected by status
(exact -> NXX -> default):

  1. Allowed status codes (when the method declares them)
  2. Body, only for JSON responses
  3. Declared headers, names matched case-insensitively
  4. Cookies from Set-Cookie headers

Any violation replaces the response with a 500. The full issue list is
always logged server-side; the client sees it only when show_error_message
resolves to True. A response without a matching contract, or a non-JSON
body, passes through untouched.
"""

import json
from typing import Any, List, Optional

from loguru import logger
from starlette.responses import JSONResponse, Response

from routeguard.config import ROOT_ISSUE_PATH
from routeguard.defaults import RESPONSE_CONTEXT, DefaultsConfig, resolve_field_config
from routeguard.errors import OutputValidationError, ValidationIssue
from routeguard.extractors import (
    extract_response_cookies,
    extract_response_headers,
    is_json_media_type,
    read_response_body,
    response_media_type,
)
from routeguard.route_config import (
    JSON_MEDIA_TYPE,
    RouteMethodConfig,
    match_response_config,
    status_matches_keys,
)
from routeguard.schema_validator import to_issues, validate

RESPONSE_BODY_LABEL = "Response body"
RESPONSE_COOKIES_LABEL = "Response cookies"
RESPONSE_STATUS_LABEL = "Response status"
ERROR_RESPONSE_BODY_LABEL = "Error response body"


def _header_label(name: str) -> str:
    return f"Response header '{name}'"


def _reject(
    facet: str,
    label: str,
    issues: List[ValidationIssue],
    show_details: bool,
    route: str,
    method: str,
    status: int,
) -> JSONResponse:
    """Log the violation in full and build the replacement 500 response."""
    logger.error(
        "[OutputValidator] {} validation failed: route={} method={} status={} issues={}",
        label,
        route,
        method,
        status,
        [issue.to_dict() for issue in issues],
    )
    return OutputValidationError(facet, label, issues, show_details).to_response()


def _check_allowed_status(
    method_config: RouteMethodConfig,
    defaults: DefaultsConfig,
    status: int,
    route: str,
    method: str,
) -> Optional[JSONResponse]:
    allowed = method_config.allowed_status_codes
    if allowed is None or status_matches_keys(status, allowed):
        return None

    effective = resolve_field_config(None, defaults, RESPONSE_CONTEXT, "body")
    if effective.skip_validation:
        return None

    issue = ValidationIssue(
        path=ROOT_ISSUE_PATH,
        message=f"Status {status} is not one of {list(allowed)}",
        keyword="status",
    )
    return _reject(
        "status", RESPONSE_STATUS_LABEL, [issue], effective.show_error_message, route, method, status
    )


async def validate_response(
    response: Response,
    method_config: RouteMethodConfig,
    defaults: DefaultsConfig,
    route: str = "",
    method: str = "",
) -> Response:
    """
    Check a handler response against the declared output contract.

    Args:
        response: Response returned by the handler
        method_config: Contract for the (route, method) pair
        defaults: Defaults in effect for the wrapped handler
        route: Route path for logging
        method: HTTP method for logging

    Returns:
        The original response (possibly re-buffered) or a 500 replacement
    """
    status = response.status_code

    rejected = _check_allowed_status(method_config, defaults, status, route, method)
    if rejected is not None:
        return rejected

    response_config = match_response_config(method_config.responses, status)
    if response_config is None:
        return response

    media = response_media_type(response)
    body_config = response_config.body_config_for(media)
    if body_config is not None and is_json_media_type(media):
        effective = resolve_field_config(body_config, defaults, RESPONSE_CONTEXT, "body")
        if effective.should_validate:
            response, raw = await read_response_body(response)
            try:
                data = json.loads(raw)
            except ValueError:
                logger.debug(
                    "[OutputValidator] {} {}: response body is not JSON, body check skipped",
                    method,
                    route,
                )
            else:
                result = validate(data, effective.schema)
                if not result.valid:
                    return _reject(
                        "body",
                        RESPONSE_BODY_LABEL,
                        to_issues(result.errors),
                        effective.show_error_message,
                        route,
                        method,
                        status,
                    )

    if response_config.headers:
        headers = extract_response_headers(response)
        for name, header_config in response_config.headers.items():
            effective = resolve_field_config(header_config, defaults, RESPONSE_CONTEXT, "headers")
            if not effective.should_validate:
                continue
            result = validate(headers.get(name.lower()), effective.schema)
            if not result.valid:
                return _reject(
                    "headers",
                    _header_label(name),
                    to_issues(result.errors),
                    effective.show_error_message,
                    route,
                    method,
                    status,
                )

    if response_config.cookies is not None:
        effective = resolve_field_config(
            response_config.cookies, defaults, RESPONSE_CONTEXT, "cookies"
        )
        if effective.should_validate:
            result = validate(extract_response_cookies(response), effective.schema)
            if not result.valid:
                return _reject(
                    "cookies",
                    RESPONSE_COOKIES_LABEL,
                    to_issues(result.errors),
                    effective.show_error_message,
                    route,
                    method,
                    status,
                )

    return response


def validate_domain_error(
    status: int,
    body: Any,
    method_config: Optional[RouteMethodConfig],
    defaults: DefaultsConfig,
    route: str = "",
    method: str = "",
) -> Optional[Response]:
    """
    Translate a domain error into a response using the declared contract.

    Args:
        status: Status carried by the domain error
        body: Body carried by the domain error
        method_config: Contract for the (route, method) pair
        defaults: Defaults in effect for the wrapped handler
        route: Route path for logging
        method: HTTP method for logging

    Returns:
        JSON response with the error's status and body, a 500 when the body
        violates its schema, or None when no body schema is declared for the
        status (the caller re-raises the original error).
    """
    if method_config is None:
        return None

    response_config = match_response_config(method_config.responses, status)
    if response_config is None:
        return None

    body_config = response_config.body_config_for(JSON_MEDIA_TYPE)
    if body_config is None:
        return None

    rejected = _check_allowed_status(method_config, defaults, status, route, method)
    if rejected is not None:
        return rejected

    effective = resolve_field_config(body_config, defaults, RESPONSE_CONTEXT, "body")
    if effective.should_validate:
        result = validate(body, effective.schema)
        if not result.valid:
            return _reject(
                "body",
                ERROR_RESPONSE_BODY_LABEL,
                to_issues(result.errors),
                effective.show_error_message,
                route,
                method,
                status,
            )

    logger.debug("[OutputValidator] {} {}: domain error {} matched its contract", method, route, status)
    return JSONResponse(body, status_code=status)
