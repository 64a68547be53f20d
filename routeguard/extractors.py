# -*- coding: utf-8 -*-

# Route Guard
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Facet extraction from Starlette requests and responses.

Request facets:
  - headers: lower-cased names, repeated headers joined with ", "
  - query: last value wins for repeated keys
  - path params: copy of the router's path_params, values as strings
  - cookies: parsed from the Cookie header, last duplicate wins
  - body: parsed JSON (Starlette caches the raw body, so the handler can
    read it again after validation)

Response facets:
  - body: bytes read without consuming the response (streaming bodies are
    drained and replaced by an equivalent buffered response)
  - headers / cookies (from every Set-Cookie header)
"""

import json
from typing import Any, Dict, Iterable, List, Optional, Tuple

from loguru import logger
from starlette.requests import ClientDisconnect, Request
from starlette.responses import Response

from routeguard.errors import BodyParseError

_JSON_MEDIA_TYPE = "application/json"


def media_type(content_type: Optional[str]) -> Optional[str]:
    """Strip parameters from a Content-Type value: "application/json; charset=utf-8" -> "application/json"."""
    if not content_type:
        return None
    return content_type.split(";", 1)[0].strip().lower() or None


def is_json_media_type(value: Optional[str]) -> bool:
    """True for application/json and structured-syntax "+json" types."""
    if not value:
        return False
    return value == _JSON_MEDIA_TYPE or value.endswith("+json")


def _join_pairs(pairs: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    result: Dict[str, str] = {}
    for name, value in pairs:
        key = name.lower()
        result[key] = f"{result[key]}, {value}" if key in result else value
    return result


def extract_headers(request: Request) -> Dict[str, str]:
    return _join_pairs(request.headers.items())


def extract_query(request: Request) -> Dict[str, str]:
    query: Dict[str, str] = {}
    for key, value in request.query_params.multi_items():
        query[key] = value
    return query


def extract_path_params(request: Request) -> Dict[str, str]:
    return {name: str(value) for name, value in request.path_params.items()}


def parse_cookie_header(header: Optional[str]) -> Dict[str, str]:
    """
    Parse a Cookie header value into a name -> value map.

    Fragments are split on ";", names and values on the first "=".
    Nameless fragments are skipped; a later duplicate overrides an earlier one.

    Example:
        >>> parse_cookie_header("session_id=abc; theme=dark; session_id=xyz")
        {'session_id': 'xyz', 'theme': 'dark'}
    """
    cookies: Dict[str, str] = {}
    if not header:
        return cookies

    for fragment in header.split(";"):
        name, _, value = fragment.strip().partition("=")
        name = name.strip()
        if not name:
            continue
        cookies[name] = value.strip()
    return cookies


def extract_cookies(request: Request) -> Dict[str, str]:
    return parse_cookie_header("; ".join(request.headers.getlist("cookie")))


def request_media_type(request: Request) -> Optional[str]:
    return media_type(request.headers.get("content-type"))


def decode_json(raw: bytes) -> Any:
    """
    Decode a JSON document.

    Raises:
        BodyParseError: For empty, non-UTF-8 or malformed input
    """
    if not raw or not raw.strip():
        raise BodyParseError("Request body is empty")
    try:
        return json.loads(raw)
    except ValueError as e:
        raise BodyParseError(f"Invalid JSON in request body: {e}") from e


async def read_json_body(request: Request) -> Any:
    """
    Read and parse the request body as JSON without consuming it.

    Raises:
        BodyParseError: When the client disconnects mid-read or the body is not JSON
    """
    try:
        raw = await request.body()
    except ClientDisconnect as e:
        logger.warning("[Extractors] Client disconnected while reading request body")
        raise BodyParseError("Request body could not be read: client disconnected") from e
    except RuntimeError as e:
        # Stream already consumed by an outer middleware without caching
        logger.warning("[Extractors] Request body stream unavailable: {}", e)
        raise BodyParseError(f"Request body could not be read: {e}") from e
    return decode_json(raw)


async def read_response_body(response: Response) -> Tuple[Response, bytes]:
    """
    Read a response body so it can be inspected and still be sent.

    Buffered responses expose .body directly and are returned unchanged.
    Streaming responses are drained and replaced by a buffered Response with
    the same status, headers and background task.

    Returns:
        (response_to_send, body_bytes)
    """
    body_iterator = getattr(response, "body_iterator", None)
    if body_iterator is None:
        return response, getattr(response, "body", b"") or b""

    chunks: List[bytes] = []
    async for chunk in body_iterator:
        chunks.append(chunk if isinstance(chunk, bytes) else chunk.encode(response.charset))
    body = b"".join(chunks)

    buffered = Response(
        content=body,
        status_code=response.status_code,
        background=response.background,
    )
    buffered.raw_headers = [
        (name, value) for name, value in response.raw_headers if name.lower() != b"content-length"
    ] + [(b"content-length", str(len(body)).encode("latin-1"))]
    return buffered, body


def response_media_type(response: Response) -> Optional[str]:
    return media_type(response.headers.get("content-type"))


def extract_response_headers(response: Response) -> Dict[str, str]:
    return _join_pairs(response.headers.items())


def extract_response_cookies(response: Response) -> Dict[str, str]:
    """Build a name -> value map from every Set-Cookie header (attributes ignored)."""
    cookies: Dict[str, str] = {}
    for header in response.headers.getlist("set-cookie"):
        pair = header.split(";", 1)[0]
        name, sep, value = pair.partition("=")
        name = name.strip()
        if not name or not sep:
            continue
        cookies[name] = value.strip().strip('"')
    return cookies
