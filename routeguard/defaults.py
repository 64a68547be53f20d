# -*- coding: utf-8 -*-

# Route Guard
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Cascading resolution of skip_validation / show_error_message flags.

Priority (first defined value wins):
  1. Explicit flag on the facet's ValidationSchemaConfig
  2. Per-field entry of the context default: {"request": {"body": False}}
  3. Context-wide boolean: {"request": True}
  4. Global boolean default given in code: skip_validation=True
  5. Environment default (ROUTEGUARD_SKIP_VALIDATION / ROUTEGUARD_SHOW_ERROR_MESSAGE)
  6. Builtin: skip_validation=False, show_error_message=<development-like env>

Resolution is a pure function of its inputs. It builds a fresh
EffectiveFieldConfig per request and never writes to the shared route config.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple, Union

from routeguard.config import (
    SHOW_ERROR_MESSAGE_DEFAULT,
    SKIP_VALIDATION_DEFAULT,
    is_development_environment,
)
from routeguard.errors import RouteConfigError
from routeguard.route_config import ValidationSchemaConfig

FLAG_NAMES: Tuple[str, ...] = ("skip_validation", "show_error_message")

REQUEST_CONTEXT = "request"
RESPONSE_CONTEXT = "response"

REQUEST_FIELDS: Tuple[str, ...] = ("headers", "query", "path_params", "body", "cookies")
RESPONSE_FIELDS: Tuple[str, ...] = ("headers", "body", "cookies")

_CONTEXT_FIELDS = {REQUEST_CONTEXT: REQUEST_FIELDS, RESPONSE_CONTEXT: RESPONSE_FIELDS}

# camelCase spellings accepted in default maps
_FIELD_ALIASES = {"path_params": ("path_params", "pathParams")}

ContextDefault = Union[bool, Mapping[str, bool]]
FlagDefault = Union[bool, Mapping[str, ContextDefault], None]


def _field_names(field_name: str) -> Tuple[str, ...]:
    return _FIELD_ALIASES.get(field_name, (field_name,))


def _snapshot(value: Any) -> Any:
    """Read-only deep copy of a default structure; booleans pass through."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: _snapshot(item) for key, item in value.items()})
    return value


def _validate_flag_default(flag: str, value: Any) -> None:
    """Reject malformed default structures early (at DefaultsConfig construction)."""
    if value is None or isinstance(value, bool):
        return
    if not isinstance(value, Mapping):
        raise RouteConfigError(f"{flag} default must be a boolean or a mapping")

    for context, context_default in value.items():
        if context not in _CONTEXT_FIELDS:
            raise RouteConfigError(f"{flag} default: unknown context '{context}'")
        if context_default is None or isinstance(context_default, bool):
            continue
        if not isinstance(context_default, Mapping):
            raise RouteConfigError(f"{flag} default for '{context}' must be a boolean or a mapping")
        allowed = {alias for name in _CONTEXT_FIELDS[context] for alias in _field_names(name)}
        for field_name, field_default in context_default.items():
            if field_name not in allowed:
                raise RouteConfigError(f"{flag} default: unknown {context} field '{field_name}'")
            if field_default is not None and not isinstance(field_default, bool):
                raise RouteConfigError(f"{flag} default for {context}.{field_name} must be a boolean")


@dataclass(frozen=True)
class DefaultsConfig:
    """
    Default flag values applied where a facet does not set them explicitly.

    Attributes:
        skip_validation: Global boolean or {"request"/"response": bool | {field: bool}}
        show_error_message: Same structure as skip_validation
        env_skip_validation: Environment-wide fallback for skip_validation
        env_show_error_message: Environment-wide fallback for show_error_message
        environment: Environment name for the builtin show_error_message default
                     (None = APP_ENV)
    """

    skip_validation: FlagDefault = None
    show_error_message: FlagDefault = None
    env_skip_validation: Optional[bool] = None
    env_show_error_message: Optional[bool] = None
    environment: Optional[str] = None

    def __post_init__(self):
        for flag in FLAG_NAMES:
            _validate_flag_default(flag, getattr(self, flag))
            object.__setattr__(self, flag, _snapshot(getattr(self, flag)))

    @classmethod
    def from_settings(
        cls,
        skip_validation: FlagDefault = None,
        show_error_message: FlagDefault = None,
    ) -> "DefaultsConfig":
        """Build defaults layered over the environment-configured booleans."""
        return cls(
            skip_validation=skip_validation,
            show_error_message=show_error_message,
            env_skip_validation=SKIP_VALIDATION_DEFAULT,
            env_show_error_message=SHOW_ERROR_MESSAGE_DEFAULT,
        )


@dataclass(frozen=True)
class EffectiveFieldConfig:
    """Per-request resolution of one facet's flags. Discarded with the request."""

    schema: Any
    skip_validation: bool
    show_error_message: bool

    @property
    def should_validate(self) -> bool:
        return self.schema is not None and not self.skip_validation


def _lookup_default(global_default: FlagDefault, context: str, field_name: str) -> Optional[bool]:
    """Walk context field -> context -> global boolean. None = not defined."""
    if global_default is None:
        return None
    if isinstance(global_default, bool):
        return global_default

    context_default = global_default.get(context)
    if isinstance(context_default, bool):
        return context_default
    if isinstance(context_default, Mapping):
        for name in _field_names(field_name):
            value = context_default.get(name)
            if isinstance(value, bool):
                return value
    return None


def builtin_default(flag: str, environment: Optional[str] = None) -> bool:
    if flag == "skip_validation":
        return False
    return is_development_environment(environment)


def resolve_flag(
    flag: str,
    field_config: Optional[ValidationSchemaConfig],
    global_default: FlagDefault,
    context: str,
    field_name: str,
    env_default: Optional[bool] = None,
    environment: Optional[str] = None,
) -> bool:
    """
    Resolve one flag for one facet.

    Args:
        flag: "skip_validation" or "show_error_message"
        field_config: Facet declaration (may be None)
        global_default: Code-level default (bool or structured)
        context: "request" or "response"
        field_name: Facet name within the context ("body", "path_params", ...)
        env_default: Environment-wide boolean fallback
        environment: Environment name for the builtin default

    Returns:
        Effective boolean value
    """
    if flag not in FLAG_NAMES:
        raise ValueError(f"Unknown flag '{flag}'")

    if field_config is not None:
        explicit = getattr(field_config, flag)
        if explicit is not None:
            return explicit

    configured = _lookup_default(global_default, context, field_name)
    if configured is not None:
        return configured

    if env_default is not None:
        return env_default

    return builtin_default(flag, environment)


def resolve_field_config(
    field_config: Optional[ValidationSchemaConfig],
    defaults: DefaultsConfig,
    context: str,
    field_name: str,
) -> EffectiveFieldConfig:
    """
    Build the effective per-request view of a facet declaration.

    Args:
        field_config: Facet declaration from the shared route config (read only)
        defaults: Defaults in effect for the wrapped handler
        context: "request" or "response"
        field_name: Facet name within the context

    Returns:
        Fresh EffectiveFieldConfig
    """
    return EffectiveFieldConfig(
        schema=field_config.schema if field_config is not None else None,
        skip_validation=resolve_flag(
            "skip_validation",
            field_config,
            defaults.skip_validation,
            context,
            field_name,
            env_default=defaults.env_skip_validation,
            environment=defaults.environment,
        ),
        show_error_message=resolve_flag(
            "show_error_message",
            field_config,
            defaults.show_error_message,
            context,
            field_name,
            env_default=defaults.env_show_error_message,
            environment=defaults.environment,
        ),
    )
