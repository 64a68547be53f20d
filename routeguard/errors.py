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
Error taxonomy and wire payload formatting for Route Guard.

Architecture:
- ValidationIssue: One schema violation as exposed to clients
- InputValidationError / BodyParseError: request-side failures (400)
- OutputValidationError: response-side failures (500)
- DomainError: intentional non-2xx outcome raised by application logic
- domain_error_handler(): host exception handler for DomainError that escaped
  the wrapper because no contract was declared for its status

Wire format (detailed):
    {"error": "Request body validation failed",
     "issues": [{"path": "email", "message": "...", "keyword": "format"}]}

Wire format (suppressed):
    {"error": "Invalid request data"}      (request side)
    {"error": "Internal server error"}     (response side)
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from starlette.requests import Request
from starlette.responses import JSONResponse

from routeguard.config import (
    GENERIC_INPUT_ERROR_MESSAGE,
    GENERIC_OUTPUT_ERROR_MESSAGE,
    INPUT_VALIDATION_ERROR_STATUS,
    OUTPUT_VALIDATION_ERROR_STATUS,
    ROOT_ISSUE_PATH,
)


@dataclass(frozen=True)
class ValidationIssue:
    """
    Single validation problem in client-facing form.

    Attributes:
        path: Dotted location inside the facet ("email", "items.0.id") or "root"
        message: Human-readable description from the validator
        keyword: JSON Schema keyword that failed ("format", "required", ...)
    """

    path: str
    message: str
    keyword: str

    def to_dict(self) -> Dict[str, str]:
        return {"path": self.path, "message": self.message, "keyword": self.keyword}


def build_error_payload(
    label: str,
    issues: Sequence[ValidationIssue],
    show_details: bool,
    generic_message: str,
) -> Dict[str, Any]:
    """
    Build the client-visible error body for a failed facet.

    Args:
        label: Facet label used in the detailed message ("Headers", "Response body")
        issues: Issues collected by the validator
        show_details: Whether issues may be exposed to the client
        generic_message: Message used when details are suppressed

    Returns:
        Detailed payload with issues, or the generic single-field payload
    """
    if not show_details:
        return {"error": generic_message}
    return {
        "error": f"{label} validation failed",
        "issues": [issue.to_dict() for issue in issues],
    }


class RouteGuardError(Exception):
    """Base class for all Route Guard errors."""


class RouteConfigError(RouteGuardError):
    """Route configuration is malformed (bad method, status key, schema or flag)."""


class FacetValidationError(RouteGuardError):
    """
    A facet failed its declared contract.

    Subclasses fix the HTTP status and the generic message; instances carry
    everything needed to render the wire payload and the server-side log.
    """

    status: int = OUTPUT_VALIDATION_ERROR_STATUS
    generic_message: str = GENERIC_OUTPUT_ERROR_MESSAGE

    def __init__(
        self,
        facet: str,
        label: str,
        issues: Sequence[ValidationIssue],
        show_details: bool,
    ):
        self.facet = facet
        self.label = label
        self.issues: List[ValidationIssue] = list(issues)
        self.show_details = show_details
        super().__init__(f"{label} validation failed ({len(self.issues)} issue(s))")

    def to_payload(self) -> Dict[str, Any]:
        return build_error_payload(
            self.label, self.issues, self.show_details, self.generic_message
        )

    def to_response(self) -> JSONResponse:
        return JSONResponse(self.to_payload(), status_code=self.status)


class InputValidationError(FacetValidationError):
    """Request facet failed validation; the handler never runs."""

    status = INPUT_VALIDATION_ERROR_STATUS
    generic_message = GENERIC_INPUT_ERROR_MESSAGE


class BodyParseError(InputValidationError):
    """Request body could not be read or parsed as JSON."""

    def __init__(self, message: str, show_details: bool = True):
        super().__init__(
            facet="body",
            label="Request body",
            issues=[ValidationIssue(path=ROOT_ISSUE_PATH, message=message, keyword="parse")],
            show_details=show_details,
        )
        self.reason = message

    def with_details(self, show_details: bool) -> "BodyParseError":
        """Return a copy rendered with the resolved showErrorMessage flag."""
        return BodyParseError(self.reason, show_details=show_details)


class OutputValidationError(FacetValidationError):
    """Response (or domain-error body) violated the declared output contract."""


class DomainError(RouteGuardError):
    """
    Intentional non-2xx outcome raised by application logic via fail().

    Attributes:
        status: HTTP status the handler wants to return
        body: JSON-serializable response body
    """

    def __init__(self, status: int, body: Any = None):
        self.status = status
        self.body = body
        super().__init__(f"Domain error {status}")


def is_domain_error(exc: BaseException) -> bool:
    """
    Check whether an exception has the domain-error shape.

    Recognition is structural: an integer status together with a body
    attribute. Exceptions from other libraries with the same shape are
    translated like DomainError.
    """
    status = getattr(exc, "status", None)
    if isinstance(status, bool) or not isinstance(status, int):
        return False
    return hasattr(exc, "body")


def domain_error_status_and_body(exc: BaseException) -> Optional[tuple]:
    """Return (status, body) for a domain-shaped exception, else None."""
    if not is_domain_error(exc):
        return None
    return exc.status, exc.body  # type: ignore[attr-defined]


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Render a DomainError that no output contract intercepted."""
    return JSONResponse(exc.body, status_code=exc.status)


def install_exception_handlers(app: Any) -> None:
    """Register Route Guard exception handlers on a Starlette/FastAPI app."""
    app.add_exception_handler(DomainError, domain_error_handler)
