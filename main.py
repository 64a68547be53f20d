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
Route Guard - demo server.

A small users API whose endpoints are guarded by declarative contracts.
Contracts from ROUTEGUARD_ROUTES_FILE (if set) replace the built-in ones
for the same paths.

Usage:
    # Using default settings (host: 0.0.0.0, port: 8000)
    python main.py

    # With CLI arguments (highest priority)
    python main.py --port 9000
    python main.py --host 127.0.0.1 --port 9000

    # Or directly with uvicorn
    uvicorn main:app --host 0.0.0.0 --port 8000

Try it:
    curl -X POST localhost:8000/api/users -H 'x-api-key: k' \\
         -H 'content-type: application/json' -d '{"email": "example@test.com"}'
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

import uvicorn
from fastapi import FastAPI
from loguru import logger

from routeguard.config import (
    APP_DESCRIPTION,
    APP_ENV,
    APP_TITLE,
    APP_VERSION,
    DEFAULT_SERVER_HOST,
    DEFAULT_SERVER_PORT,
    LOG_LEVEL,
    ROUTES_FILE,
    SERVER_HOST,
    SERVER_PORT,
)
from routeguard.defaults import DefaultsConfig
from routeguard.errors import RouteConfigError, install_exception_handlers
from routeguard.route_config import RouteConfig, load_route_table, parse_route_config
from routeguard.routing import build_routes
from routeguard.wrapper import RouteContext

# --- Loguru Configuration ---
logger.remove()
logger.add(
    sys.stderr,
    level=LOG_LEVEL,
    colorize=True,
    format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> - <level>{message}</level>",
)


# ==================================================================================================
# Demo contracts
# ==================================================================================================

USERS_PATH = "/api/users"
USER_DETAIL_PATH = "/api/users/{user_id}"

DEMO_ROUTES: Dict[str, RouteConfig] = {
    USERS_PATH: parse_route_config(
        USERS_PATH,
        {
            "POST": {
                "summary": "Create user",
                "headers": {
                    "showErrorMessage": True,
                    "schema": {
                        "type": "object",
                        "properties": {"x-api-key": {"type": "string", "minLength": 1}},
                        "required": ["x-api-key"],
                    },
                },
                "body": {
                    "application/json": {
                        "showErrorMessage": True,
                        "schema": {
                            "type": "object",
                            "properties": {"email": {"type": "string", "format": "email"}},
                            "required": ["email"],
                        },
                    }
                },
                "responses": {
                    "200": {
                        "description": "User created",
                        "body": {
                            "showErrorMessage": True,
                            "schema": {
                                "type": "object",
                                "properties": {"success": {"const": True}},
                                "required": ["success"],
                            },
                        },
                    },
                    "404": {
                        "description": "User not found",
                        "body": {
                            "showErrorMessage": True,
                            "schema": {
                                "type": "object",
                                "properties": {"message": {"type": "string"}},
                                "required": ["message"],
                            },
                        },
                    },
                },
            }
        },
    ),
    USER_DETAIL_PATH: parse_route_config(
        USER_DETAIL_PATH,
        {
            "GET": {
                "summary": "Get user",
                "pathParams": {
                    "type": "object",
                    "properties": {"user_id": {"type": "string", "pattern": "^[0-9]+$"}},
                    "required": ["user_id"],
                },
                "query": {
                    "type": "object",
                    "properties": {"include": {"enum": ["profile"]}},
                    "additionalProperties": False,
                },
                "cookies": {
                    "type": "object",
                    "properties": {"session_id": {"type": "string", "minLength": 1}},
                    "required": ["session_id"],
                },
                "responses": {
                    "2XX": {
                        "body": {
                            "type": "object",
                            "properties": {
                                "id": {"type": "string"},
                                "email": {"type": "string", "format": "email"},
                                "profile": {"type": "object"},
                            },
                            "required": ["id", "email"],
                        }
                    }
                },
            }
        },
    ),
}


async def create_user(ctx: RouteContext):
    """Only example@test.com is known; everyone else gets a 404."""
    email = ctx.validated.body["email"]
    logger.info("Create user request for {}", email)
    if email != "example@test.com":
        ctx.fail(404, {"message": "User not found"})
    return ctx.respond({"success": True})


def get_user(ctx: RouteContext):
    user = {"id": ctx.validated.path_params["user_id"], "email": "example@test.com"}
    if ctx.validated.query.get("include") == "profile":
        user["profile"] = {"display_name": "Example User"}
    return ctx.respond(user)


DEMO_HANDLERS: Dict[str, Dict[str, Any]] = {
    USERS_PATH: {"POST": create_user},
    USER_DETAIL_PATH: {"GET": get_user},
}


# ==================================================================================================
# Configuration
# ==================================================================================================


def load_demo_table() -> Dict[str, RouteConfig]:
    """Built-in contracts, overridden per path by ROUTES_FILE."""
    table = dict(DEMO_ROUTES)
    if ROUTES_FILE:
        table.update(load_route_table(ROUTES_FILE))
    return table


def validate_configuration() -> None:
    """
    Validate startup configuration.

    Exits with code 1 when ROUTES_FILE is set but missing, unreadable,
    declares invalid contracts, or declares a route the demo has no handler for.
    """
    if not ROUTES_FILE:
        return

    if not Path(ROUTES_FILE).is_file():
        logger.error("ROUTEGUARD_ROUTES_FILE points to a missing file: {}", ROUTES_FILE)
        sys.exit(1)

    try:
        build_routes(load_demo_table(), DEMO_HANDLERS)
    except RouteConfigError as e:
        logger.error("Route table {} is invalid: {}", ROUTES_FILE, e)
        sys.exit(1)


def create_app(
    route_table: Optional[Mapping[str, RouteConfig]] = None,
    defaults: Optional[DefaultsConfig] = None,
) -> FastAPI:
    """
    Build the demo application.

    Args:
        route_table: Contracts to mount; built-in + ROUTES_FILE when None
        defaults: Flag defaults for every wrapped handler

    Returns:
        Configured FastAPI app
    """
    if route_table is None:
        validate_configuration()
        route_table = load_demo_table()

    application = FastAPI(title=APP_TITLE, description=APP_DESCRIPTION, version=APP_VERSION)
    install_exception_handlers(application)

    @application.get("/health")
    async def health():
        return {"status": "healthy", "version": APP_VERSION}

    application.router.routes.extend(build_routes(route_table, DEMO_HANDLERS, defaults))
    logger.info("Route Guard demo ready (environment: {})", APP_ENV)
    return application


app = create_app()


# ==================================================================================================
# CLI
# ==================================================================================================


def parse_cli_args() -> argparse.Namespace:
    """
    Parse command-line arguments.

    Defaults are None so resolve_server_config() can tell "not given" apart
    from an explicit value.
    """
    parser = argparse.ArgumentParser(
        description=f"{APP_TITLE} - {APP_DESCRIPTION}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Configuration Priority (highest to lowest):
  1. CLI arguments (--host, --port)
  2. Environment variables (SERVER_HOST, SERVER_PORT)
  3. Default values (0.0.0.0:8000)

Examples:
  python main.py                          # Use defaults or env vars
  python main.py --port 9000              # Custom port
  python main.py --host 127.0.0.1         # Local connections only
        """,
    )
    parser.add_argument(
        "-H",
        "--host",
        type=str,
        default=None,
        metavar="HOST",
        help=f"Server host address (default: {DEFAULT_SERVER_HOST}, env: SERVER_HOST)",
    )
    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=None,
        metavar="PORT",
        help=f"Server port (default: {DEFAULT_SERVER_PORT}, env: SERVER_PORT)",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {APP_VERSION}",
    )
    return parser.parse_args()


def resolve_server_config(args: argparse.Namespace) -> Tuple[str, int]:
    """Resolve host and port: CLI > environment > default."""
    host = args.host if args.host is not None else SERVER_HOST
    port = args.port if args.port is not None else SERVER_PORT
    return host, port


def print_startup_banner(host: str, port: int) -> None:
    display_host = "localhost" if host == "0.0.0.0" else host
    url = f"http://{display_host}:{port}"
    print()
    print(f"  {APP_TITLE} v{APP_VERSION}")
    print(f"  Server:       {url}")
    print(f"  API docs:     {url}/docs")
    print(f"  Health check: {url}/health")
    print()


if __name__ == "__main__":
    cli_args = parse_cli_args()
    final_host, final_port = resolve_server_config(cli_args)
    print_startup_banner(final_host, final_port)
    uvicorn.run(app, host=final_host, port=final_port, log_level=LOG_LEVEL.lower())
