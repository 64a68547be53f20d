# -*- coding: utf-8 -*-

"""
Shared fixtures for Route Guard tests.

Requests are built directly from ASGI scopes so unit tests do not need a
running application; integration tests use fastapi.testclient.TestClient.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import pytest
from loguru import logger
from starlette.requests import Request

from routeguard.defaults import DefaultsConfig
from routeguard.route_config import parse_route_config

HeaderInput = Union[Mapping[str, str], Iterable[Tuple[str, str]], None]


def _raw_headers(headers: HeaderInput) -> List[Tuple[bytes, bytes]]:
    if headers is None:
        return []
    pairs = headers.items() if isinstance(headers, Mapping) else headers
    return [(name.lower().encode("latin-1"), value.encode("latin-1")) for name, value in pairs]


def build_request(
    method: str = "GET",
    path: str = "/",
    headers: HeaderInput = None,
    query_string: str = "",
    path_params: Optional[Dict[str, Any]] = None,
    body: bytes = b"",
    disconnect: bool = False,
) -> Request:
    """
    Create a Starlette Request whose body is delivered in one message.

    With disconnect=True the client goes away before sending any body.
    """
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": query_string.encode("latin-1"),
        "headers": _raw_headers(headers),
        "path_params": path_params or {},
    }
    delivered = False

    async def receive():
        nonlocal delivered
        if delivered or disconnect:
            return {"type": "http.disconnect"}
        delivered = True
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


@pytest.fixture
def request_factory():
    """Factory building Starlette requests from plain values."""
    return build_request


@pytest.fixture
def dev_defaults():
    """Defaults for a development environment with no environment overrides."""
    return DefaultsConfig(environment="development")


@pytest.fixture
def prod_defaults():
    """Defaults for a production environment with no environment overrides."""
    return DefaultsConfig(environment="production")


@pytest.fixture
def users_route():
    """
    Contract for POST /api/users used across tests.

    Requires x-api-key, a JSON body with a valid email, and declares 200/404
    output contracts.
    """
    return parse_route_config(
        "/api/users",
        {
            "POST": {
                "headers": {
                    "type": "object",
                    "properties": {"x-api-key": {"type": "string"}},
                    "required": ["x-api-key"],
                },
                "body": {
                    "application/json": {
                        "schema": {
                            "type": "object",
                            "properties": {"email": {"type": "string", "format": "email"}},
                            "required": ["email"],
                        }
                    }
                },
                "responses": {
                    "200": {
                        "body": {
                            "type": "object",
                            "properties": {"success": {"const": True}},
                            "required": ["success"],
                        }
                    },
                    "404": {
                        "body": {
                            "type": "object",
                            "properties": {"message": {"type": "string"}},
                            "required": ["message"],
                        }
                    },
                },
            }
        },
    )


@pytest.fixture
def log_messages():
    """Capture loguru records as (level, message) tuples."""
    records: List[Tuple[str, str]] = []

    def sink(message):
        record = message.record
        records.append((record["level"].name, record["message"]))

    handler_id = logger.add(sink, level="DEBUG", format="{message}")
    yield records
    logger.remove(handler_id)
