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
Route Guard - declarative request/response contracts for Starlette and FastAPI.

Modules:
    - config: Environment settings and wire constants
    - route_config: Route contracts and JSON route table loading
    - defaults: skip_validation / show_error_message resolution
    - schema_validator: JSON Schema (Draft 2020-12) adapter
    - extractors: Request/response facet extraction
    - errors: Error taxonomy and wire payloads
    - middleware: Input and output validation engine
    - wrapper: Handler wrapping and domain error translation
    - routing: Mounting a route table on Starlette routes
"""

from routeguard.config import APP_VERSION as __version__

__author__ = "Jwadow"

# Route contracts
from routeguard.route_config import (
    ResponseConfig,
    RouteConfig,
    RouteMethodConfig,
    ValidationSchemaConfig,
    load_route_table,
    parse_route_config,
)

# Defaults
from routeguard.defaults import DefaultsConfig

# Errors
from routeguard.errors import (
    BodyParseError,
    DomainError,
    InputValidationError,
    OutputValidationError,
    RouteConfigError,
    RouteGuardError,
    ValidationIssue,
    install_exception_handlers,
)

# Engine
from routeguard.middleware import ValidatedInputs, ValidationState

# Wrapping and routing
from routeguard.wrapper import RouteContext, fail, guarded, respond, wrap
from routeguard.routing import build_routes

__all__ = [
    # Version
    "__version__",

    # Route contracts
    "ResponseConfig",
    "RouteConfig",
    "RouteMethodConfig",
    "ValidationSchemaConfig",
    "load_route_table",
    "parse_route_config",

    # Defaults
    "DefaultsConfig",

    # Errors
    "BodyParseError",
    "DomainError",
    "InputValidationError",
    "OutputValidationError",
    "RouteConfigError",
    "RouteGuardError",
    "ValidationIssue",
    "install_exception_handlers",

    # Engine
    "ValidatedInputs",
    "ValidationState",

    # Wrapping and routing
    "RouteContext",
    "build_routes",
    "fail",
    "guarded",
    "respond",
    "wrap",
]
