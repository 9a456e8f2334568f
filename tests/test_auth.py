"""
Request pipeline: access tokens, tenant context, envelope, guards, health.
"""

import json
import logging

from flask import g

from aiproval.middleware.logging_config import JSONFormatter, ReadableFormatter, RequestContextFilter
from aiproval.models import db
from aiproval.models.organization import Organization
from conftest import make_headers


class TestHealth:
    def test_health_needs_no_auth(self, client):
        res = client.get("/api/v1/health")
        assert res.status_code == 200
        assert res.get_json() == {"status": "ok", "app": "Aiproval"}

    def test_live_checks_database(self, client):
        res = client.get("/api/v1/health/live")
        assert res.status_code == 200
        assert res.get_json()["checks"]["database"]["status"] == "ok"


class TestAccessTokens:
    def test_missing_token_is_401(self, client):
        res = client.get("/api/v1/projects")
        assert res.status_code == 401
        body = res.get_json()
        assert body == {"success": False, "error": "Authentication required", "code": "ERR_UNAUTHORIZED"}

    def test_garbage_token_is_401(self, client, organization):
        res = client.get("/api/v1/projects", headers={"Authorization": "Bearer not-a-jwt"})
        assert res.status_code == 401

    def test_expired_token_is_401(self, client, organization):
        from aiproval.services.jwt_service import generate_access_token
        token = generate_access_token("u1", organization.id, expires_in=-10)
        res = client.get("/api/v1/projects", headers={"Authorization": f"Bearer {token}"})
        assert res.status_code == 401

    def test_token_without_org_is_403(self, client):
        res = client.get("/api/v1/projects", headers=make_headers("u1", None))
        assert res.status_code == 403
        assert res.get_json()["error"] == "Please select an organization"

    def test_unknown_org_is_403(self, client, organization):
        res = client.get("/api/v1/projects", headers=make_headers("u1", organization.id + 999))
        assert res.status_code == 403
        assert res.get_json()["error"] == "Organization not found"

    def test_deactivated_org_is_403(self, client, organization, member_headers):
        org = db.session.get(Organization, organization.id)
        org.is_active = False
        db.session.commit()
        res = client.get("/api/v1/projects", headers=member_headers)
        assert res.status_code == 403
        assert res.get_json()["error"] == "Organization is deactivated"

    def test_valid_token_reaches_route(self, client, member_headers):
        res = client.get("/api/v1/projects", headers=member_headers)
        assert res.status_code == 200
        assert res.get_json() == {"success": True, "data": {"projects": [], "total": 0}}


class TestRequestGuards:
    def test_non_json_body_is_415(self, client, admin_headers):
        res = client.post(
            "/api/v1/workflows", data="name=x",
            headers={**admin_headers, "Content-Type": "application/x-www-form-urlencoded"},
        )
        assert res.status_code == 415
        assert res.get_json()["code"] == "ERR_UNSUPPORTED_MEDIA"

    def test_unknown_api_route_uses_envelope(self, client):
        res = client.get("/api/v1/does-not-exist")
        assert res.status_code == 404
        body = res.get_json()
        assert body["success"] is False
        assert body["code"] == "ERR_NOT_FOUND"

    def test_wrong_method_is_405(self, client, member_headers):
        res = client.put("/api/v1/projects", json={}, headers=member_headers)
        assert res.status_code == 405
        assert res.get_json()["code"] == "ERR_METHOD_NOT_ALLOWED"


class TestResponseHeaders:
    def test_security_and_request_id_headers(self, client):
        res = client.get("/api/v1/health", headers={"X-Request-ID": "req-123"})
        assert res.headers["X-Content-Type-Options"] == "nosniff"
        assert res.headers["X-Frame-Options"] == "DENY"
        assert res.headers["Referrer-Policy"] == "no-referrer"
        assert "Strict-Transport-Security" in res.headers
        assert res.headers["X-Request-ID"] == "req-123"
        assert "X-Request-Duration-Ms" in res.headers


class TestLogContext:
    def _record(self, **extra):
        record = logging.LogRecord("aiproval.test", logging.INFO, __file__, 1, "hello", None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_filter_stamps_request_context(self, app):
        with app.test_request_context("/api/v1/projects"):
            g.request_id = "req123"
            g.jwt_org_id = 7
            g.jwt_user_id = "user_owner"
            record = self._record(org_id=9)
            assert RequestContextFilter().filter(record) is True
        assert record.request_id == "req123"
        assert record.user_id == "user_owner"
        assert record.org_id == 9  # explicit extra wins

    def test_filter_outside_request_is_noop(self):
        record = self._record()
        assert RequestContextFilter().filter(record) is True
        assert getattr(record, "request_id", None) is None

    def test_json_line_carries_context(self):
        line = json.loads(JSONFormatter().format(self._record(request_id="req123", mockup_id=4)))
        assert line["msg"] == "hello"
        assert line["request_id"] == "req123"
        assert line["mockup_id"] == 4
        assert "org_id" not in line

    def test_readable_line_without_color(self):
        line = ReadableFormatter(use_color=False).format(self._record(org_id=3, duration_ms=12.4))
        assert "\033[" not in line
        assert line.endswith("aiproval.test: hello  (org_id=3) [12ms]")
