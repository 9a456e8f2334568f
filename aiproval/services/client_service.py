"""Client CRUD service with strict organization ownership checks."""

from __future__ import annotations

import logging

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import select

from aiproval.core.exceptions import ValidationError
from aiproval.models import db
from aiproval.models.client import CLIENT_NAME_MAX, Client
from aiproval.models.project import Project
from aiproval.utils.helpers import clean_str, get_scoped_or_404, require_fields

logger = logging.getLogger(__name__)

_TEXT_FIELDS = ("phone", "address", "notes", "ein")


def _validated_name(value) -> str:
    name = clean_str(value)
    if not name:
        raise ValidationError("Client name is required", details={"name": "required"})
    if len(name) > CLIENT_NAME_MAX:
        raise ValidationError(
            f"Client name must be less than {CLIENT_NAME_MAX} characters",
            details={"name": f"max_length={CLIENT_NAME_MAX}"},
        )
    return name


def _validated_email(value) -> str | None:
    email = clean_str(value)
    if email is None:
        return None
    try:
        return validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError as exc:
        raise ValidationError(f"Invalid email: {exc}", details={"email": "invalid"}) from exc


def _validated_parent(org_id: int, parent_id, client_id: int | None = None) -> int | None:
    if parent_id in (None, ""):
        return None
    parent = db.session.get(Client, parent_id) if isinstance(parent_id, int) else None
    if parent is None or parent.organization_id != org_id:
        raise ValidationError("Parent client not found", details={"parent_client_id": parent_id})
    if client_id is not None and parent.id == client_id:
        raise ValidationError("A client cannot be its own parent")
    return parent.id


def list_clients(*, org_id: int, parent_client_id: int | None = None) -> list[Client]:
    stmt = select(Client).where(Client.organization_id == org_id)
    if parent_client_id is not None:
        stmt = stmt.where(Client.parent_client_id == parent_client_id)
    return db.session.execute(stmt.order_by(Client.name.asc(), Client.id.asc())).scalars().all()


def get_client(*, org_id: int, client_id: int) -> Client:
    return get_scoped_or_404(Client, client_id, org_id, label="Client")


def create_client(*, org_id: int, user_id: str, data: dict) -> Client:
    require_fields(data, ["name"])
    client = Client(
        organization_id=org_id,
        name=_validated_name(data.get("name")),
        email=_validated_email(data.get("email")),
        parent_client_id=_validated_parent(org_id, data.get("parent_client_id")),
        created_by=user_id,
    )
    for field in _TEXT_FIELDS:
        setattr(client, field, clean_str(data.get(field)))
    db.session.add(client)
    db.session.commit()
    logger.info("Client created: %s", client.id, extra={"org_id": org_id, "user_id": user_id})
    return client


def update_client(*, org_id: int, client_id: int, data: dict) -> Client:
    client = get_client(org_id=org_id, client_id=client_id)
    if "name" in data:
        client.name = _validated_name(data.get("name"))
    if "email" in data:
        client.email = _validated_email(data.get("email"))
    if "parent_client_id" in data:
        client.parent_client_id = _validated_parent(org_id, data.get("parent_client_id"), client.id)
    for field in _TEXT_FIELDS:
        if field in data:
            setattr(client, field, clean_str(data.get(field)))
    db.session.commit()
    return client


def delete_client(*, org_id: int, client_id: int) -> None:
    """Delete a client; projects and child clients keep existing, unlinked (SET NULL)."""
    client = get_client(org_id=org_id, client_id=client_id)
    for child in db.session.execute(
        select(Client).where(Client.parent_client_id == client.id)
    ).scalars():
        child.parent_client_id = None
    for project in db.session.execute(
        select(Project).where(Project.client_id == client.id)
    ).scalars():
        project.client_id = None
    db.session.delete(client)
    db.session.commit()
    logger.info("Client deleted: %s", client_id, extra={"org_id": org_id})
