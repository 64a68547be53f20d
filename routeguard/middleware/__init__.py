# -*- coding: utf-8 -*-

# Route Guard
# Copyright (C) 2025 Jwadow
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Validation engine for wrapped route handlers.

Architecture:
    The input validator runs a fixed-order state machine over the request
    facets and raises InputValidationError on the first failure. The output
    validator checks whatever the handler produced (a response or a domain
    error) against the contract for its status and returns the response to
    send.

Execution order:
    1. Headers
    2. Query parameters
    3. Path parameters
    4. Cookies
    5. Request body
    6. Handler (outside this package)
    7. Response status, body, headers, cookies
"""

from routeguard.middleware.input_validator import (
    InputValidationRun,
    ValidatedInputs,
    ValidationState,
    validate_inputs,
)
from routeguard.middleware.output_validator import validate_domain_error, validate_response

__all__ = [
    "InputValidationRun",
    "ValidatedInputs",
    "ValidationState",
    "validate_inputs",
    "validate_domain_error",
    "validate_response",
]
