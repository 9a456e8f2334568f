"""Shared request/query helpers used by blueprints and services.

get_scoped_or_404:  org-scoped primary-key lookup that raises NotFoundError
json_body:          request JSON as a dict ({} when absent or not an object)
require_fields:     "Missing required fields: a, b" validation
parse_bool:         query-string boolean
parse_pagination:   limit/offset with bounds
"""
from flask import request

from aiproval.core.exceptions import NotFoundError, ValidationError
from aiproval.models import db

MAX_PAGE_SIZE = 200


def get_scoped_or_404(model, pk, org_id, label=None):
    """Fetch ``model`` by primary key within ``org_id`` or raise NotFoundError.

    Rows from another organization are reported exactly like missing rows.
    """
    label = label or model.__name__
    obj = db.session.get(model, pk) if pk is not None else None
    if obj is None or getattr(obj, "organization_id", None) != org_id:
        raise NotFoundError(resource=label, resource_id=pk, org_id=org_id)
    return obj


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def require_fields(data: dict, fields) -> None:
    """Raise ValidationError naming every field that is absent or empty."""
    missing = [
        f for f in fields
        if data.get(f) is None or (isinstance(data.get(f), str) and not data.get(f).strip())
    ]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            details={"missing": missing},
        )


def parse_bool(value, default=False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def parse_pagination(default_limit=50):
    """Read ``limit`` / ``offset`` query params, clamped to sane bounds."""
    try:
        limit = int(request.args.get("limit", default_limit))
        offset = int(request.args.get("offset", 0))
    except (TypeError, ValueError) as exc:
        raise ValidationError("limit and offset must be integers") from exc
    return max(1, min(limit, MAX_PAGE_SIZE)), max(0, offset)


def clean_str(value, max_len=None):
    """Strip a string input; empty becomes None. Non-strings become None."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value:
        return None
    return value[:max_len] if max_len else value
