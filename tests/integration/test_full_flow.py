# -*- coding: utf-8 -*-

"""
Integration tests for the complete request lifecycle.
Drives the demo application and a purpose-built app through TestClient.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from routeguard import (
    DefaultsConfig,
    RouteContext,
    install_exception_handlers,
    parse_route_config,
    wrap,
)

PROD = DefaultsConfig(environment="production")
DEV = DefaultsConfig(environment="development")


@pytest.fixture
def demo_client():
    """TestClient for the demo app from main.py."""
    from main import app

    return TestClient(app)


@pytest.fixture
def profile_route():
    """
    Contract exercising every request facet and both outcome kinds.

    404 responses require "message"; details are left to the environment default.
    """
    return parse_route_config(
        "/profiles/{profile_id}",
        {
            "PUT": {
                "headers": {"type": "object", "required": ["x-api-key"]},
                "query": {"type": "object", "properties": {"notify": {"enum": ["yes", "no"]}}},
                "pathParams": {
                    "type": "object",
                    "properties": {"profile_id": {"type": "string", "pattern": "^[a-z]+$"}},
                },
                "cookies": {
                    "type": "object",
                    "properties": {"session_id": {"type": "string"}},
                    "required": ["session_id"],
                },
                "body": {
                    "type": "object",
                    "properties": {"email": {"type": "string", "format": "email"}},
                    "required": ["email"],
                },
                "responses": {
                    "200": {
                        "body": {
                            "type": "object",
                            "properties": {"success": {"type": "boolean"}},
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


def _profile_app(route, defaults, outcome):
    """Build an app whose handler produces the given outcome callable's result."""
    seen = {}

    async def update_profile(ctx: RouteContext):
        seen["validated"] = ctx.validated
        return outcome(ctx)

    app = FastAPI()
    install_exception_handlers(app)
    app.add_api_route(
        "/profiles/{profile_id}", wrap(route, "PUT", update_profile, defaults), methods=["PUT"]
    )
    return TestClient(app), seen


VALID_REQUEST = {
    "url": "/profiles/alice?notify=yes",
    "headers": {"x-api-key": "k", "cookie": "session_id=abc"},
    "json": {"email": "alice@example.com"},
}


class TestDemoApplication:
    """End-to-end flows against main.app."""

    def test_health(self, demo_client):
        """
        What it does: Verifies the health endpoint.
        Purpose: Ensure the demo app starts with its routes mounted.
        """
        response = demo_client.get("/health")

        print(f"Health: {response.json()}")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_create_known_user(self, demo_client):
        """
        What it does: Verifies a valid request for the known user succeeds.
        Purpose: Ensure a conforming 200 passes through unchanged.
        """
        response = demo_client.post(
            "/api/users", headers={"x-api-key": "k"}, json={"email": "example@test.com"}
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}

    def test_unknown_user_is_contracted_404(self, demo_client):
        """
        What it does: Verifies the handler's fail(404) reaches the client.
        Purpose: Ensure domain errors with a matching contract are returned as declared.
        """
        response = demo_client.post(
            "/api/users", headers={"x-api-key": "k"}, json={"email": "someone@test.com"}
        )

        assert response.status_code == 404
        assert response.json() == {"message": "User not found"}

    def test_invalid_email_detailed_400(self, demo_client):
        """
        What it does: Verifies an invalid email yields a detailed 400.
        Purpose: Ensure showErrorMessage=true exposes path and keyword.
        """
        response = demo_client.post(
            "/api/users", headers={"x-api-key": "k"}, json={"email": "not-an-email"}
        )

        body = response.json()
        print(f"Body: {body}")
        assert response.status_code == 400
        assert body["error"] == "Request body validation failed"
        assert body["issues"][0]["path"] == "email"
        assert body["issues"][0]["keyword"] == "format"

    def test_get_user_with_cookie(self, demo_client):
        """
        What it does: Verifies path, query and cookie contracts on the detail route.
        Purpose: Ensure the GET example validates every map facet.
        """
        ok = demo_client.get("/api/users/42?include=profile", headers={"cookie": "session_id=abc"})
        no_cookie = demo_client.get("/api/users/42")
        bad_path = demo_client.get("/api/users/abc", headers={"cookie": "session_id=abc"})

        print(f"ok={ok.json()} no_cookie={no_cookie.status_code} bad_path={bad_path.status_code}")
        assert ok.status_code == 200
        assert ok.json()["id"] == "42"
        assert "profile" in ok.json()
        assert no_cookie.status_code == 400
        assert bad_path.status_code == 400


class TestLifecycleProperties:
    """Lifecycle guarantees checked through a purpose-built app."""

    def test_all_facets_validated_and_exposed(self, profile_route):
        """
        What it does: Verifies every facet is validated and delivered to the handler.
        Purpose: Ensure validated inputs mirror the request.
        """
        client, seen = _profile_app(profile_route, DEV, lambda ctx: ctx.respond({"success": True}))

        response = client.put(**VALID_REQUEST)

        validated = seen["validated"]
        print(f"Validated: {validated}")
        assert response.status_code == 200
        assert validated.cookies["session_id"] == "abc"
        assert validated.path_params == {"profile_id": "alice"}
        assert validated.query == {"notify": "yes"}
        assert validated.body == {"email": "alice@example.com"}

    def test_header_failure_reported_before_body(self, profile_route):
        """
        What it does: Verifies only the header failure is reported when headers and body both fail.
        Purpose: Ensure the first failing facet wins.
        """
        client, seen = _profile_app(profile_route, DEV, lambda ctx: ctx.respond({"success": True}))

        response = client.put(
            "/profiles/alice", headers={"cookie": "session_id=abc"}, json={"email": "nope"}
        )

        print(f"Body: {response.json()}")
        assert response.status_code == 400
        assert response.json()["error"] == "Headers validation failed"
        assert seen == {}

    def test_malformed_json_is_400(self, profile_route):
        """
        What it does: Verifies malformed JSON is rejected before the handler runs.
        Purpose: Ensure parse errors are client errors.
        """
        client, seen = _profile_app(profile_route, DEV, lambda ctx: ctx.respond({"success": True}))

        response = client.put(
            "/profiles/alice",
            headers={"x-api-key": "k", "cookie": "session_id=abc", "content-type": "application/json"},
            content=b"{not json",
        )

        assert response.status_code == 400
        assert response.json()["issues"][0]["keyword"] == "parse"
        assert seen == {}

    def test_generic_input_error_in_production(self, profile_route):
        """
        What it does: Verifies production hides input issue details.
        Purpose: Ensure validation internals are not exposed by default.
        """
        client, _ = _profile_app(profile_route, PROD, lambda ctx: ctx.respond({"success": True}))

        response = client.put(
            "/profiles/alice", headers={"x-api-key": "k", "cookie": "session_id=abc"}, json={}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request data"}

    def test_domain_error_matching_contract(self, profile_route):
        """
        What it does: Verifies fail(404, {"message": ...}) yields that 404.
        Purpose: Ensure conforming domain errors keep their status and body.
        """
        client, _ = _profile_app(
            profile_route, PROD, lambda ctx: ctx.fail(404, {"message": "not found"})
        )

        response = client.put(**VALID_REQUEST)

        assert response.status_code == 404
        assert response.json() == {"message": "not found"}

    def test_domain_error_violating_contract_is_generic_500(self, profile_route, log_messages):
        """
        What it does: Verifies a 404 body without "message" becomes a generic 500, never a 404.
        Purpose: Ensure malformed error bodies never reach clients while logs keep the details.
        """
        client, _ = _profile_app(profile_route, PROD, lambda ctx: ctx.fail(404, {"detail": "x"}))

        response = client.put(**VALID_REQUEST)

        print(f"Response: {response.status_code} {response.json()}")
        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
        errors = [message for level, message in log_messages if level == "ERROR"]
        assert errors
        assert "required" in errors[0]

    def test_response_violation_is_500(self, profile_route):
        """
        What it does: Verifies a handler response breaking its contract becomes a 500.
        Purpose: Ensure clients never receive malformed success data.
        """
        client, _ = _profile_app(profile_route, DEV, lambda ctx: ctx.respond({"success": "yes"}))

        response = client.put(**VALID_REQUEST)

        assert response.status_code == 500
        assert response.json()["error"] == "Response body validation failed"

    def test_uncontracted_domain_error_rendered_by_host(self, profile_route):
        """
        What it does: Verifies a domain error without a contract is re-raised to the host handler.
        Purpose: Ensure undeclared statuses keep their intended response.
        """
        client, _ = _profile_app(profile_route, DEV, lambda ctx: ctx.fail(409, {"message": "busy"}))

        response = client.put(**VALID_REQUEST)

        assert response.status_code == 409
        assert response.json() == {"message": "busy"}
