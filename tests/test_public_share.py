"""
Public share access: no login, the share token is the credential.

Covers use accounting, expiry and exhaustion, password protection,
reviewer sessions (cookie and header stores), comments and decisions.
"""

from datetime import timedelta

import pytest

from aiproval.models import db
from aiproval.models.base import utcnow
from aiproval.models.share import ShareLink

PUBLIC = "/api/v1/public/share"


def _link(client, headers, mockup_id, **body):
    res = client.post(f"/api/v1/mockups/{mockup_id}/share", json=body, headers=headers)
    assert res.status_code == 201, res.get_json()
    return res.get_json()["data"]["share_link"]


def _register(client, token, **body):
    body.setdefault("email", "jane@brightmail.com")
    body.setdefault("name", "Jane Client")
    return client.post(f"{PUBLIC}/{token}/reviewer", json=body)


class TestPublicView:
    def test_view_counts_use(self, client, owner_headers, draft_mockup):
        link = _link(client, owner_headers, draft_mockup["id"])
        res = client.get(f"{PUBLIC}/{link['token']}")
        assert res.status_code == 200
        data = res.get_json()["data"]
        assert data["requires_password"] is False
        assert data["mockup"]["name"] == "Loose Sketch"
        assert data["share_link"]["use_count"] == 1
        assert "created_by" not in data["mockup"]

        again = client.get(f"{PUBLIC}/{link['token']}").get_json()["data"]
        assert again["share_link"]["use_count"] == 2

    def test_garbage_token(self, client):
        res = client.get(f"{PUBLIC}/not-a-token")
        assert res.status_code == 401
        assert res.get_json()["error"] == "Invalid or expired share token"

    def test_exhausted(self, client, owner_headers, draft_mockup):
        link = _link(client, owner_headers, draft_mockup["id"], max_uses=1)
        assert client.get(f"{PUBLIC}/{link['token']}").status_code == 200
        res = client.get(f"{PUBLIC}/{link['token']}")
        assert res.status_code == 401
        assert res.get_json()["error"] == "Share link has reached maximum uses"

    def test_expired_even_with_uses_left(self, client, owner_headers, draft_mockup):
        link = _link(client, owner_headers, draft_mockup["id"], max_uses=10)
        row = db.session.get(ShareLink, link["id"])
        row.expires_at = utcnow() - timedelta(minutes=1)
        db.session.commit()

        res = client.get(f"{PUBLIC}/{link['token']}")
        assert res.status_code == 401
        assert res.get_json()["error"] == "Share link has expired"

    def test_expired_checked_before_exhausted(self, client, owner_headers, draft_mockup):
        link = _link(client, owner_headers, draft_mockup["id"], max_uses=1)
        client.get(f"{PUBLIC}/{link['token']}")
        row = db.session.get(ShareLink, link["id"])
        row.expires_at = utcnow() - timedelta(minutes=1)
        db.session.commit()

        res = client.get(f"{PUBLIC}/{link['token']}")
        assert res.get_json()["error"] == "Share link has expired"

    def test_expired_rejects_writes(self, client, owner_headers, draft_mockup):
        link = _link(client, owner_headers, draft_mockup["id"], permissions="comment")
        row = db.session.get(ShareLink, link["id"])
        row.expires_at = utcnow() - timedelta(seconds=1)
        db.session.commit()

        res = client.post(f"{PUBLIC}/{link['token']}/comment", json={"comment_text": "Late"})
        assert res.status_code == 401

    def test_no_auth_header_needed(self, client, owner_headers, draft_mockup):
        link = _link(client, owner_headers, draft_mockup["id"])
        res = client.get(f"{PUBLIC}/{link['token']}", headers={"Authorization": "Bearer junk"})
        assert res.status_code == 200


class TestPasswordProtection:
    @pytest.fixture()
    def locked(self, client, owner_headers, draft_mockup):
        return _link(client, owner_headers, draft_mockup["id"], password="open-sesame",
                     permissions="comment")

    def test_get_requires_password_without_counting(self, client, locked):
        res = client.get(f"{PUBLIC}/{locked['token']}")
        assert res.status_code == 200
        data = res.get_json()["data"]
        assert data["requires_password"] is True
        assert data["mockup"] is None
        assert data["share_link"]["use_count"] == 0

    def test_verify(self, client, locked):
        res = client.post(f"{PUBLIC}/{locked['token']}/verify", json={"password": "open-sesame"})
        assert res.status_code == 200
        data = res.get_json()["data"]
        assert data["mockup"]["name"] == "Loose Sketch"
        assert data["share_link"]["use_count"] == 1

    def test_wrong_password(self, client, locked):
        res = client.post(f"{PUBLIC}/{locked['token']}/verify", json={"password": "nope"})
        assert res.status_code == 401
        assert res.get_json()["error"] == "Invalid password"

    def test_missing_password(self, client, locked):
        res = client.post(f"{PUBLIC}/{locked['token']}/verify", json={})
        assert res.status_code == 400
        assert res.get_json()["error"] == "Password is required"

    def test_comment_needs_password(self, client, locked):
        res = client.post(f"{PUBLIC}/{locked['token']}/comment", json={"comment_text": "Hi"})
        assert res.status_code == 400
        ok = client.post(f"{PUBLIC}/{locked['token']}/comment",
                         json={"comment_text": "Hi", "password": "open-sesame"})
        assert ok.status_code == 201


class TestReviewerSessions:
    def test_register_sets_cookie(self, client, owner_headers, draft_mockup):
        link = _link(client, owner_headers, draft_mockup["id"])
        res = _register(client, link["token"], company="Bright Co")
        assert res.status_code == 201
        data = res.get_json()["data"]
        assert data["created"] is True
        assert data["reviewer"]["email"] == "jane@brightmail.com"
        assert data["reviewer"]["company"] == "Bright Co"
        cookie = res.headers.get("Set-Cookie", "")
        assert "aiproval_public_session=" in cookie
        assert "HttpOnly" in cookie
        assert data["session_token"] not in cookie

    def test_second_register_reuses_session(self, client, owner_headers, draft_mockup):
        link = _link(client, owner_headers, draft_mockup["id"])
        first = _register(client, link["token"]).get_json()["data"]
        res = _register(client, link["token"], name="Jane Q. Client")
        assert res.status_code == 200
        second = res.get_json()["data"]
        assert second["created"] is False
        assert second["reviewer"]["id"] == first["reviewer"]["id"]
        assert second["reviewer"]["name"] == "Jane Q. Client"

    def test_register_requires_identity(self, client, owner_headers, draft_mockup):
        link = _link(client, owner_headers, draft_mockup["id"])
        res = client.post(f"{PUBLIC}/{link['token']}/reviewer", json={"name": "No Mail"})
        assert res.status_code == 400
        assert res.get_json()["error"] == "Name and email are required"

    def test_header_store(self, app, client, owner_headers, draft_mockup, monkeypatch):
        monkeypatch.setitem(app.config, "PUBLIC_SESSION_STORE", "header")
        link = _link(client, owner_headers, draft_mockup["id"], permissions="approve")
        res = _register(client, link["token"])
        session_token = res.headers.get("X-Public-Session")
        assert session_token == res.get_json()["data"]["session_token"]
        assert "Set-Cookie" not in res.headers

        without = client.post(f"{PUBLIC}/{link['token']}/approve", json={"decision": "approved"})
        assert without.status_code == 401

        with_header = client.post(f"{PUBLIC}/{link['token']}/approve",
                                  json={"decision": "approved"},
                                  headers={"X-Public-Session": session_token})
        assert with_header.status_code == 200


class TestPublicComments:
    def test_view_only_link_rejects_comments(self, client, owner_headers, draft_mockup):
        link = _link(client, owner_headers, draft_mockup["id"])
        res = client.post(f"{PUBLIC}/{link['token']}/comment", json={"comment_text": "Hi"})
        assert res.status_code == 403
        assert res.get_json()["error"] == "This share link does not allow comments"

    def test_anonymous_comment(self, client, owner_headers, draft_mockup):
        link = _link(client, owner_headers, draft_mockup["id"], permissions="comment")
        res = client.post(f"{PUBLIC}/{link['token']}/comment", json={"comment_text": "Lovely"})
        assert res.status_code == 201
        assert res.get_json()["data"]["comment"]["author_name"] == "Anonymous Reviewer"

        notes = client.get("/api/v1/notifications", headers=owner_headers).get_json()["data"]
        assert notes["notifications"][0]["title"] == "New public comment on Loose Sketch"

    def test_identity_required_for_comment(self, client, owner_headers, draft_mockup):
        link = _link(client, owner_headers, draft_mockup["id"], permissions="comment",
                     identity_required_level="comment")
        res = client.post(f"{PUBLIC}/{link['token']}/comment", json={"comment_text": "Hi"})
        assert res.status_code == 401
        assert res.get_json()["error"] == "Identity required"

        _register(client, link["token"])
        ok = client.post(f"{PUBLIC}/{link['token']}/comment", json={"comment_text": "Hi"})
        assert ok.status_code == 201
        comment = ok.get_json()["data"]["comment"]
        assert comment["author_name"] == "Jane Client"
        assert comment["author_email"] == "jane@brightmail.com"

    def test_empty_comment(self, client, owner_headers, draft_mockup):
        link = _link(client, owner_headers, draft_mockup["id"], permissions="comment")
        res = client.post(f"{PUBLIC}/{link['token']}/comment", json={"comment_text": "  "})
        assert res.status_code == 400


class TestPublicDecisions:
    def test_requires_approve_permission(self, client, owner_headers, draft_mockup):
        link = _link(client, owner_headers, draft_mockup["id"], permissions="comment")
        _register(client, link["token"])
        res = client.post(f"{PUBLIC}/{link['token']}/approve", json={"decision": "approved"})
        assert res.status_code == 403
        assert res.get_json()["error"] == "This share link does not allow approval"

    def test_requires_identity(self, client, owner_headers, draft_mockup):
        link = _link(client, owner_headers, draft_mockup["id"], permissions="approve")
        res = client.post(f"{PUBLIC}/{link['token']}/approve", json={"decision": "approved"})
        assert res.status_code == 401

    def test_invalid_decision(self, client, owner_headers, draft_mockup):
        link = _link(client, owner_headers, draft_mockup["id"], permissions="approve")
        res = client.post(f"{PUBLIC}/{link['token']}/approve", json={"decision": "maybe"})
        assert res.status_code == 400
        assert res.get_json()["error"] == "Decision must be approved or changes_requested"

    def test_decision_upserts(self, client, owner_headers, draft_mockup):
        link = _link(client, owner_headers, draft_mockup["id"], permissions="approve")
        _register(client, link["token"])
        first = client.post(f"{PUBLIC}/{link['token']}/approve",
                            json={"decision": "changes_requested", "notes": "Bigger logo"})
        assert first.status_code == 200
        second = client.post(f"{PUBLIC}/{link['token']}/approve", json={"status": "approved"})
        d1 = first.get_json()["data"]["decision"]
        d2 = second.get_json()["data"]["decision"]
        assert d2["id"] == d1["id"]
        assert d2["decision"] == "approved"
        assert d2["notes"] is None

        analytics = client.get(f"/api/v1/mockups/{draft_mockup['id']}/share/analytics",
                               headers=owner_headers).get_json()["data"]
        assert len(analytics["decisions"]) == 1
