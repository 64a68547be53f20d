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
Route Guard Configuration.

Centralized storage for all settings, constants, and wire messages.
Loads environment variables and provides typed access to them.
"""

import os
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

_TRUTHY_VALUES: Tuple[str, ...] = ("true", "1", "yes", "enabled", "on")
_FALSY_VALUES: Tuple[str, ...] = ("false", "0", "no", "disabled", "off")


def _parse_optional_bool(raw: Optional[str]) -> Optional[bool]:
    """
    Parse a tri-state boolean environment value.

    Args:
        raw: Raw environment value or None

    Returns:
        True/False for recognized values, None when unset or unrecognized
    """
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in _TRUTHY_VALUES:
        return True
    if value in _FALSY_VALUES:
        return False
    return None


# ==================================================================================================
# Environment
# ==================================================================================================

# Deployment environment name.
# Development-like environments get detailed validation errors by default,
# everything else gets the generic wire messages.
# Falls back to ENVIRONMENT for platforms that already export it.
APP_ENV: str = os.getenv("APP_ENV", os.getenv("ENVIRONMENT", "production")).strip().lower()

# Environment names treated as development-like
DEVELOPMENT_ENVIRONMENTS: Tuple[str, ...] = ("development", "dev", "local")


def is_development_environment(env: Optional[str] = None) -> bool:
    """
    Check whether the given (or configured) environment is development-like.

    Args:
        env: Environment name; APP_ENV is used when omitted

    Returns:
        True for development/dev/local (case-insensitive)
    """
    name = APP_ENV if env is None else env
    return name.strip().lower() in DEVELOPMENT_ENVIRONMENTS


# ==================================================================================================
# Validation Defaults
# ==================================================================================================

# Global skipValidation default applied to every facet that does not set the flag.
# Unset = fall through to builtin default (validate everything).
# Example: ROUTEGUARD_SKIP_VALIDATION=true disables validation globally (not recommended).
SKIP_VALIDATION_DEFAULT: Optional[bool] = _parse_optional_bool(
    os.getenv("ROUTEGUARD_SKIP_VALIDATION")
)

# Global showErrorMessage default.
# Unset = detailed errors in development-like environments, generic otherwise.
SHOW_ERROR_MESSAGE_DEFAULT: Optional[bool] = _parse_optional_bool(
    os.getenv("ROUTEGUARD_SHOW_ERROR_MESSAGE")
)

# ==================================================================================================
# Wire Contract
# ==================================================================================================

# Status returned for every request-side validation failure
INPUT_VALIDATION_ERROR_STATUS: int = 400

# Status returned for every response-side validation failure
OUTPUT_VALIDATION_ERROR_STATUS: int = 500

# Client-visible messages when issue details are suppressed
GENERIC_INPUT_ERROR_MESSAGE: str = "Invalid request data"
GENERIC_OUTPUT_ERROR_MESSAGE: str = "Internal server error"

# Issue path used when the failing location is the document root
ROOT_ISSUE_PATH: str = "root"

# ==================================================================================================
# Route Table
# ==================================================================================================

# Optional JSON route table loaded by the demo server.
# Format: {"/path": {"POST": {"body": {...}, "responses": {...}}}}
_raw_routes_file: str = os.getenv("ROUTEGUARD_ROUTES_FILE", "")
ROUTES_FILE: str = str(Path(_raw_routes_file).expanduser()) if _raw_routes_file else ""

# ==================================================================================================
# Server Settings
# ==================================================================================================

# Server host (default: 0.0.0.0 - listen on all interfaces)
DEFAULT_SERVER_HOST: str = "0.0.0.0"
SERVER_HOST: str = os.getenv("SERVER_HOST", DEFAULT_SERVER_HOST)

# Server port (default: 8000)
# Can be overridden by CLI: python main.py --port 9000
DEFAULT_SERVER_PORT: int = 8000
SERVER_PORT: int = int(os.getenv("SERVER_PORT", str(DEFAULT_SERVER_PORT)))

# ==================================================================================================
# Logging Settings
# ==================================================================================================

# Log level for the demo server
# Available levels: TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# ==================================================================================================
# Application Version
# ==================================================================================================

APP_VERSION: str = "0.4"
APP_TITLE: str = "Route Guard"
APP_DESCRIPTION: str = (
    "Declarative per-route request/response contract enforcement for Starlette and FastAPI."
)
