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
Handler wrapper: binds a route contract to application logic.

wrap() turns a handler taking a RouteContext into a Starlette endpoint
taking a Request. For each request the endpoint:

  1. Validates inputs (400 on the first failing facet; the handler never runs)
  2. Calls the handler with validated inputs and the respond()/fail() helpers
  3. Translates domain errors raised by the handler through the output contract
  4. Validates the produced response (500 on violation)

Exceptions that are not domain-shaped pass through untouched so the host
framework's own error handling sees them.

Example:
    >>> async def create_user(ctx: RouteContext):
    ...     if ctx.validated.body["email"] != "example@test.com":
    ...         ctx.fail(404, {"message": "User not found"})
    ...     return ctx.respond({"success": True})
    >>> endpoint = wrap(users_config, "POST", create_user)
    >>> app.add_api_route("/api/users", endpoint, methods=["POST"])
"""

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, NoReturn, Optional, Union

from loguru import logger
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from routeguard.defaults import DefaultsConfig
from routeguard.errors import DomainError, InputValidationError, domain_error_status_and_body
from routeguard.middleware.input_validator import ValidatedInputs, validate_inputs
from routeguard.middleware.output_validator import validate_domain_error, validate_response
from routeguard.route_config import RouteConfig, RouteMethodConfig, normalize_method

ResponseInit = Union[int, Mapping[str, Any]]


def respond(data: Any, status_or_init: ResponseInit = 200) -> JSONResponse:
    """
    Build a JSON response.

    Args:
        data: JSON-serializable body
        status_or_init: Status code, or {"status": int, "headers": {...}}

    Returns:
        JSONResponse
    """
    if isinstance(status_or_init, Mapping):
        status = status_or_init.get("status", 200)
        headers = status_or_init.get("headers")
    else:
        status = status_or_init
        headers = None

    if isinstance(status, bool) or not isinstance(status, int):
        raise TypeError(f"Response status must be an integer, got {status!r}")

    return JSONResponse(data, status_code=status, headers=dict(headers) if headers else None)


def fail(status: int, body: Any = None) -> NoReturn:
    """Abort the handler with an intentional non-2xx outcome."""
    raise DomainError(status, body)


@dataclass
class RouteContext:
    """
    Everything a wrapped handler receives.

    Attributes:
        request: Underlying Starlette request
        validated: Request facets (validated where a contract exists)
        route: Route path the contract belongs to
        method: HTTP method being served
    """

    request: Request
    validated: ValidatedInputs
    route: str
    method: str

    def respond(self, data: Any, status_or_init: ResponseInit = 200) -> JSONResponse:
        return respond(data, status_or_init)

    def fail(self, status: int, body: Any = None) -> NoReturn:
        fail(status, body)


Handler = Callable[[RouteContext], Union[Response, Awaitable[Response]]]


def _attach_to_state(request: Request, context: RouteContext) -> None:
    request.state.validated = context.validated
    request.state.respond = respond
    request.state.fail = fail


async def _call_handler(handler: Handler, context: RouteContext) -> Response:
    result = handler(context)
    if inspect.isawaitable(result):
        result = await result
    if not isinstance(result, Response):
        raise TypeError(
            f"Handler for {context.method} {context.route} returned "
            f"{type(result).__name__}, expected a Response (use ctx.respond())"
        )
    return result


def _select_method_config(
    config: Union[RouteConfig, RouteMethodConfig, None],
    method: str,
) -> Optional[RouteMethodConfig]:
    if isinstance(config, RouteConfig):
        return config.for_method(method)
    return config


def wrap(
    config: Union[RouteConfig, RouteMethodConfig, None],
    method: str,
    handler: Handler,
    defaults: Optional[DefaultsConfig] = None,
) -> Callable[[Request], Awaitable[Response]]:
    """
    Wrap a handler with the validation contract for one method.

    Args:
        config: Route contract (RouteConfig, a single RouteMethodConfig, or None)
        method: HTTP method served by the endpoint
        handler: Sync or async callable taking a RouteContext, returning a Response
        defaults: Flag defaults; environment-derived defaults when None

    Returns:
        Async Starlette/FastAPI endpoint taking a Request

    Raises:
        RouteConfigError: For an unknown HTTP method
    """
    method_name = normalize_method(method)
    method_config = _select_method_config(config, method_name)
    route_path = config.path if isinstance(config, RouteConfig) else ""
    effective_defaults = defaults if defaults is not None else DefaultsConfig.from_settings()

    if method_config is None:
        logger.debug(
            "[ValidationWrapper] No contract for {} {}, handler runs unvalidated",
            method_name,
            route_path or "<route>",
        )

    async def endpoint(request: Request) -> Response:
        route = route_path or request.url.path

        if method_config is None:
            context = RouteContext(request, ValidatedInputs.from_request(request), route, method_name)
            _attach_to_state(request, context)
            return await _call_handler(handler, context)

        try:
            validated = await validate_inputs(
                request, method_config, effective_defaults, route, method_name
            )
        except InputValidationError as e:
            return e.to_response()

        context = RouteContext(request, validated, route, method_name)
        _attach_to_state(request, context)

        try:
            response = await _call_handler(handler, context)
        except Exception as exc:
            shape = domain_error_status_and_body(exc)
            if shape is None:
                raise
            status, body = shape
            translated = validate_domain_error(
                status, body, method_config, effective_defaults, route, method_name
            )
            if translated is None:
                logger.debug(
                    "[ValidationWrapper] {} {}: no contract for domain error {}, re-raising",
                    method_name,
                    route,
                    status,
                )
                raise
            return translated

        return await validate_response(
            response, method_config, effective_defaults, route, method_name
        )

    # No functools.wraps: FastAPI would inspect the handler's signature through __wrapped__
    endpoint.__name__ = getattr(handler, "__name__", "endpoint")
    endpoint.__qualname__ = getattr(handler, "__qualname__", endpoint.__name__)
    endpoint.__doc__ = getattr(handler, "__doc__", None)
    return endpoint


def guarded(
    config: Union[RouteConfig, RouteMethodConfig, None],
    method: str,
    defaults: Optional[DefaultsConfig] = None,
) -> Callable[[Handler], Callable[[Request], Awaitable[Response]]]:
    """
    Decorator form of wrap().

    Example:
        >>> @app.post("/api/users")
        ... @guarded(users_config, "POST")
        ... async def create_user(ctx: RouteContext): ...
    """

    def decorator(handler: Handler) -> Callable[[Request], Awaitable[Response]]:
        return wrap(config, method, handler, defaults)

    return decorator
