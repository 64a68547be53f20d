# -*- coding: utf-8 -*-

# Route Guard
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Mount a route table on Starlette routes.

One Route per (path, method) pair; Starlette answers 405 itself when a path
matches but no route serves the method.
"""

from typing import Dict, List, Mapping, Optional

from loguru import logger
from starlette.routing import Route

from routeguard.defaults import DefaultsConfig
from routeguard.errors import RouteConfigError
from routeguard.route_config import RouteConfig, normalize_method
from routeguard.wrapper import Handler, wrap


def build_routes(
    table: Mapping[str, RouteConfig],
    handlers: Mapping[str, Mapping[str, Handler]],
    defaults: Optional[DefaultsConfig] = None,
) -> List[Route]:
    """
    Build wrapped Starlette routes for every handler.

    Args:
        table: Route path -> RouteConfig (e.g. from load_route_table())
        handlers: Route path -> {METHOD: handler}
        defaults: Flag defaults shared by every wrapped handler

    Returns:
        List of starlette.routing.Route

    Raises:
        RouteConfigError: When the table declares a contract that has no handler
    """
    normalized: Dict[str, Dict[str, Handler]] = {
        path: {normalize_method(method): handler for method, handler in method_handlers.items()}
        for path, method_handlers in handlers.items()
    }

    for path, config in table.items():
        served = normalized.get(path, {})
        missing = sorted(set(config.methods) - set(served))
        if missing:
            raise RouteConfigError(f"{path}: contract declared for {missing} but no handler given")

    routes: List[Route] = []
    for path, method_handlers in normalized.items():
        config = table.get(path)
        for method, handler in method_handlers.items():
            if config is None or config.for_method(method) is None:
                logger.warning("[Routing] {} {} has no contract, mounted unvalidated", method, path)
            routes.append(
                Route(
                    path,
                    endpoint=wrap(config or RouteConfig(path=path), method, handler, defaults),
                    methods=[method],
                    name=f"{method} {path}",
                )
            )

    logger.debug("[Routing] Built {} route(s)", len(routes))
    return routes
