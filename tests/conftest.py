"""
Shared pytest fixtures for the Aiproval test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - organization / other_organization: tenants
    - *_headers: Authorization headers carrying real access tokens
    - workflow / project / mockup: entities created through the API
"""

import pytest

from aiproval import create_app
from aiproval.models import db as _db
from aiproval.models.organization import Organization
from aiproval.services.jwt_service import generate_access_token

ADMIN_ID = "user_admin"
OWNER_ID = "user_owner"
REVIEWER_ID = "user_reviewer"
SECOND_REVIEWER_ID = "user_reviewer_2"
OUTSIDER_ID = "user_outsider"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield _db.session
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Tenants & principals ─────────────────────────────────────────────────


def _make_org(name, slug, **kwargs):
    org = Organization(name=name, slug=slug, **kwargs)
    _db.session.add(org)
    _db.session.commit()
    return org


@pytest.fixture()
def organization():
    return _make_org("Acme Print Co", "acme-print")


@pytest.fixture()
def other_organization():
    return _make_org("Globex Media", "globex-media")


def make_headers(user_id, org_id, role="member", name=None):
    token = generate_access_token(user_id, org_id, role=role, name=name or user_id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_headers(organization):
    return make_headers(ADMIN_ID, organization.id, role="admin", name="Ada Admin")


@pytest.fixture()
def owner_headers(organization):
    """A regular member who creates projects and mockups."""
    return make_headers(OWNER_ID, organization.id, name="Olive Owner")


@pytest.fixture()
def member_headers(owner_headers):
    return owner_headers


@pytest.fixture()
def reviewer_headers(organization):
    return make_headers(REVIEWER_ID, organization.id, name="Rita Reviewer")


@pytest.fixture()
def second_reviewer_headers(organization):
    return make_headers(SECOND_REVIEWER_ID, organization.id, name="Sam Second")


@pytest.fixture()
def outsider_headers(other_organization):
    """An admin of another organization."""
    return make_headers(OUTSIDER_ID, other_organization.id, role="admin", name="Otto Outsider")


# ── Entities (created through the API) ───────────────────────────────────

TWO_STAGES = [
    {"order": 1, "name": "Design Review", "color": "blue"},
    {"order": 2, "name": "Client Sign-off", "color": "green"},
]


@pytest.fixture()
def workflow(client, admin_headers):
    res = client.post(
        "/api/v1/workflows",
        json={"name": "Standard Review", "stages": TWO_STAGES},
        headers=admin_headers,
    )
    assert res.status_code == 201, res.get_json()
    return res.get_json()["data"]["workflow"]


@pytest.fixture()
def project(client, owner_headers, workflow):
    res = client.post(
        "/api/v1/projects",
        json={"name": "Spring Campaign", "workflow_id": workflow["id"]},
        headers=owner_headers,
    )
    assert res.status_code == 201, res.get_json()
    return res.get_json()["data"]["project"]


def add_reviewer(client, admin_headers, project_id, stage_order, user_id, user_name=None):
    res = client.post(
        f"/api/v1/projects/{project_id}/reviewers",
        json={"stage_order": stage_order, "user_id": user_id, "user_name": user_name or user_id},
        headers=admin_headers,
    )
    assert res.status_code == 201, res.get_json()
    return res.get_json()["data"]["reviewer"]


@pytest.fixture()
def reviewers(client, admin_headers, project):
    """REVIEWER_ID on stage 1, SECOND_REVIEWER_ID on stage 2."""
    return [
        add_reviewer(client, admin_headers, project["id"], 1, REVIEWER_ID, "Rita Reviewer"),
        add_reviewer(client, admin_headers, project["id"], 2, SECOND_REVIEWER_ID, "Sam Second"),
    ]


@pytest.fixture()
def mockup(client, owner_headers, project, reviewers):
    """A mockup in the project; stage 1 is in review from the start."""
    res = client.post(
        "/api/v1/mockups",
        json={
            "name": "Holiday Card",
            "image_url": "https://cdn.example.com/cards/holiday.png",
            "project_id": project["id"],
        },
        headers=owner_headers,
    )
    assert res.status_code == 201, res.get_json()
    return res.get_json()["data"]["mockup"]


@pytest.fixture()
def draft_mockup(client, owner_headers):
    """A mockup with no project."""
    res = client.post(
        "/api/v1/mockups",
        json={"name": "Loose Sketch", "image_url": "https://cdn.example.com/sketch.png"},
        headers=owner_headers,
    )
    assert res.status_code == 201, res.get_json()
    return res.get_json()["data"]["mockup"]
