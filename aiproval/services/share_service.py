"""
Share Link Service: public, anonymous access to a single mockup.

Link states (evaluated on every public request, in this order):
    expired    expires_at <= now, regardless of remaining uses
    exhausted  max_uses set and use_count >= max_uses
    active     otherwise
Both terminal states reject any further public access, reads and writes.

Access accounting:
    - every successful asset retrieval increments use_count and appends one
      ShareAnalytics row; re-fetching is a new view
    - a password-protected link answers a plain GET with
      ``requires_password`` and no asset, without counting a use; only
      /verify with the right password returns the asset, every time
    - comments and decisions on a password-protected link carry the
      password in the body as well

Identity capture (identity_required_level):
    none      comments may be anonymous ("Anonymous Reviewer")
    comment   comments need a reviewer session with name + email
    approve   same as comment; decisions always need an identity
"""

from __future__ import annotations

import logging
from datetime import timedelta

from flask import current_app, request
from sqlalchemy import select

from aiproval.core.exceptions import (
    AuthError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from aiproval.middleware.rate_limiter import client_ip
from aiproval.models import db
from aiproval.models.base import as_utc, utcnow
from aiproval.models.mockup import Mockup
from aiproval.models.share import (
    IDENTITY_LEVELS,
    PUBLIC_DECISIONS,
    SHARE_PERMISSIONS,
    PublicComment,
    PublicReviewDecision,
    ShareAnalytics,
    ShareLink,
)
from aiproval.services.activity_service import log_activity
from aiproval.services.jwt_service import decode_share_token, generate_share_token
from aiproval.services.notification_service import NotificationService, mockup_link
from aiproval.services.public_session import get_session_repository
from aiproval.utils.crypto import hash_password, verify_password
from aiproval.utils.helpers import clean_str, get_scoped_or_404

logger = logging.getLogger(__name__)

ACTIVE = "active"
EXPIRED = "expired"
EXHAUSTED = "exhausted"

INVALID_TOKEN_MESSAGE = "Invalid or expired share token"
ANONYMOUS_AUTHOR = "Anonymous Reviewer"
MIN_PASSWORD_LENGTH = 4
COMMENT_MAX = 5000


def link_state(link: ShareLink, now=None) -> str:
    now = now or utcnow()
    if link.expires_at is not None and as_utc(link.expires_at) <= now:
        return EXPIRED
    if link.max_uses and (link.use_count or 0) >= link.max_uses:
        return EXHAUSTED
    return ACTIVE


def share_url(link: ShareLink) -> str:
    base = current_app.config.get("APP_BASE_URL", "").rstrip("/")
    return f"{base}/share/{link.token}"


# ── Parsing helpers ────────────────────────────────────────────────────────────


def _parse_int(value, field: str, *, minimum: int, maximum: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if value < minimum or (maximum is not None and value > maximum):
        bound = f"between {minimum} and {maximum}" if maximum is not None else f"at least {minimum}"
        raise ValidationError(f"{field} must be {bound}")
    return value


def _choice(value, field: str, choices, default: str) -> str:
    if value is None:
        return default
    if value not in choices:
        raise ValidationError(f"Invalid {field}. Must be one of: {', '.join(choices)}")
    return value


# ═══════════════════════════════════════════════════════════════
# Authenticated management
# ═══════════════════════════════════════════════════════════════
def create_share_link(org_id: int, mockup_id: int, principal, data: dict) -> ShareLink:
    mockup = get_scoped_or_404(Mockup, mockup_id, org_id, label="Mockup")
    if mockup.share_link is not None:
        raise ConflictError("ShareLink", "mockup_id", str(mockup.id),
                            message="Share link already exists for this mockup")

    cfg = current_app.config
    permissions = _choice(data.get("permissions"), "permissions", SHARE_PERMISSIONS, "view")
    identity_level = _choice(
        data.get("identity_required_level"), "identity_required_level", IDENTITY_LEVELS, "none",
    )
    days = data.get("expires_in_days")
    days = cfg["SHARE_DEFAULT_EXPIRES_DAYS"] if days is None else _parse_int(
        days, "expires_in_days", minimum=1, maximum=cfg["SHARE_MAX_EXPIRES_DAYS"],
    )
    max_uses = data.get("max_uses")
    if max_uses is not None:
        max_uses = _parse_int(max_uses, "max_uses", minimum=1)

    password = data.get("password")
    password_hash = None
    if password not in (None, ""):
        if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        password_hash = hash_password(password)

    link = ShareLink(
        organization_id=org_id,
        mockup_id=mockup.id,
        permissions=permissions,
        password_hash=password_hash,
        expires_at=utcnow() + timedelta(days=days),
        max_uses=max_uses,
        use_count=0,
        identity_required_level=identity_level,
        created_by=principal.user_id,
    )
    db.session.add(link)
    db.session.flush()
    link.token = generate_share_token(link.id, mockup.id, permissions, link.expires_at)

    log_activity(mockup.id, "shared", principal.user_id, {
        "permissions": permissions, "expires_in_days": days, "has_password": bool(password_hash),
    })
    db.session.commit()
    logger.info("Share link created", extra={"org_id": org_id, "mockup_id": mockup.id,
                                             "share_link_id": link.id})
    return link


def get_share_link(org_id: int, mockup_id: int) -> ShareLink:
    mockup = get_scoped_or_404(Mockup, mockup_id, org_id, label="Mockup")
    if mockup.share_link is None:
        raise NotFoundError(resource="Share link", resource_id=mockup_id, org_id=org_id)
    return mockup.share_link


def share_link_dict(link: ShareLink) -> dict:
    d = link.to_dict()
    d["state"] = link_state(link)
    d["share_url"] = share_url(link)
    return d


def revoke_share_link(org_id: int, mockup_id: int, principal) -> None:
    link = get_share_link(org_id, mockup_id)
    link_id = link.id
    log_activity(mockup_id, "share_revoked", principal.user_id, {"share_link_id": link_id})
    db.session.delete(link)
    db.session.commit()
    logger.info("Share link revoked", extra={"org_id": org_id, "mockup_id": mockup_id,
                                             "share_link_id": link_id})


def share_analytics(org_id: int, mockup_id: int) -> dict:
    link = get_share_link(org_id, mockup_id)
    events = list(link.analytics)
    views = [e for e in events if "view" in (e.actions_taken or [])]
    comments = db.session.execute(
        select(PublicComment)
        .where(PublicComment.share_link_id == link.id)
        .order_by(PublicComment.created_at.desc(), PublicComment.id.desc())
    ).scalars().all()
    decisions = db.session.execute(
        select(PublicReviewDecision)
        .where(PublicReviewDecision.share_link_id == link.id)
        .order_by(PublicReviewDecision.updated_at.desc())
    ).scalars().all()
    return {
        "share_link": share_link_dict(link),
        "total_views": len(views),
        "unique_viewers": len({e.viewer_ip for e in views if e.viewer_ip}),
        "comment_count": len(comments),
        "comments": [c.to_dict() for c in comments],
        "decisions": [d.to_dict() for d in decisions],
        "events": [e.to_dict() for e in reversed(events)],
    }


# ═══════════════════════════════════════════════════════════════
# Public access
# ═══════════════════════════════════════════════════════════════
def resolve_public_link(token: str) -> ShareLink:
    """Share-token lookup. This is the only query not scoped by organization."""
    payload = decode_share_token(token or "")
    if payload is None:
        raise AuthError(INVALID_TOKEN_MESSAGE)
    link = db.session.execute(
        select(ShareLink).where(ShareLink.token == token)
    ).scalar_one_or_none()
    if link is None or link.id != payload.get("link"):
        raise AuthError(INVALID_TOKEN_MESSAGE)
    return link


def _ensure_usable(link: ShareLink) -> None:
    state = link_state(link)
    if state == EXPIRED:
        raise AuthError("Share link has expired")
    if state == EXHAUSTED:
        raise AuthError("Share link has reached maximum uses")


def _check_password(link: ShareLink, password) -> None:
    if not password:
        raise ValidationError("Password is required")
    if not verify_password(password, link.password_hash):
        logger.info("Share link password rejected", extra={"share_link_id": link.id})
        raise AuthError("Invalid password")


def _record_event(link: ShareLink, action: str, reviewer_id=None) -> None:
    db.session.add(ShareAnalytics(
        share_link_id=link.id,
        viewer_ip=client_ip(),
        user_agent=(request.headers.get("User-Agent") or "")[:500] or None,
        public_reviewer_id=reviewer_id,
        actions_taken=[action],
    ))


def _public_link_dict(link: ShareLink) -> dict:
    return {
        "id": link.id,
        "mockup_id": link.mockup_id,
        "permissions": link.permissions,
        "identity_required_level": link.identity_required_level,
        "has_password": link.has_password,
        "expires_at": link.to_dict()["expires_at"],
        "max_uses": link.max_uses,
        "use_count": link.use_count,
    }


def _public_mockup_dict(mockup: Mockup) -> dict:
    return {
        "id": mockup.id,
        "name": mockup.name,
        "image_url": mockup.image_url,
        "status": mockup.status,
        "created_at": mockup.to_dict()["created_at"],
    }


def _grant_access(link: ShareLink) -> dict:
    link.use_count = (link.use_count or 0) + 1
    session = get_session_repository().get_current_session()
    _record_event(link, "view", session.reviewer.id if session else None)
    db.session.commit()
    logger.info("Public share link accessed", extra={"share_link_id": link.id,
                                                     "mockup_id": link.mockup_id})
    return {
        "requires_password": False,
        "share_link": _public_link_dict(link),
        "mockup": _public_mockup_dict(link.mockup),
        "reviewer": session.reviewer.to_dict() if session else None,
    }


def access_public_link(token: str) -> dict:
    link = resolve_public_link(token)
    _ensure_usable(link)
    if link.has_password:
        return {"requires_password": True, "share_link": _public_link_dict(link), "mockup": None}
    return _grant_access(link)


def verify_public_password(token: str, password) -> dict:
    if not password:
        raise ValidationError("Password is required")
    link = resolve_public_link(token)
    _ensure_usable(link)
    if link.has_password:
        _check_password(link, password)
    return _grant_access(link)


def _writable_link(token: str, data: dict) -> ShareLink:
    link = resolve_public_link(token)
    _ensure_usable(link)
    if link.has_password:
        _check_password(link, data.get("password"))
    return link


def register_public_reviewer(token: str, data: dict):
    """Create or update the caller's reviewer session. Returns a SessionHandle."""
    _writable_link(token, data)
    repo = get_session_repository()
    handle = repo.get_or_create_session({
        "email": data.get("email"), "name": data.get("name"), "company": data.get("company"),
    })
    db.session.commit()
    return handle


def add_public_comment(token: str, data: dict) -> PublicComment:
    link = _writable_link(token, data)
    if link.permissions not in ("comment", "approve"):
        raise ForbiddenError("This share link does not allow comments")

    text = clean_str(data.get("comment_text"))
    if not text:
        raise ValidationError("Missing required fields: comment_text")
    if len(text) > COMMENT_MAX:
        raise ValidationError(f"Comment must be less than {COMMENT_MAX} characters")

    session = get_session_repository().get_current_session()
    reviewer = session.reviewer if session and session.has_identity else None
    if link.identity_required_level in ("comment", "approve") and reviewer is None:
        raise AuthError("Identity required")

    comment = PublicComment(
        share_link_id=link.id,
        mockup_id=link.mockup_id,
        public_reviewer_id=reviewer.id if reviewer else None,
        author_name=reviewer.name if reviewer else ANONYMOUS_AUTHOR,
        author_email=reviewer.email if reviewer else None,
        comment_text=text,
    )
    db.session.add(comment)
    _record_event(link, "comment", reviewer.id if reviewer else None)

    mockup = link.mockup
    NotificationService.notify(
        org_id=link.organization_id,
        user_id=mockup.created_by,
        type="comment",
        title=f"New public comment on {mockup.name}",
        message=f"{comment.author_name}: {text[:200]}",
        link_url=mockup_link(mockup.id),
        mockup_id=mockup.id,
        project_id=mockup.project_id,
        metadata={"source": "public_share", "share_link_id": link.id},
    )
    db.session.commit()
    return comment


def submit_public_decision(token: str, data: dict) -> PublicReviewDecision:
    decision = data.get("decision") or data.get("status")
    if decision not in PUBLIC_DECISIONS:
        raise ValidationError("Decision must be approved or changes_requested")

    link = _writable_link(token, data)
    if link.permissions != "approve":
        raise ForbiddenError("This share link does not allow approval")

    session = get_session_repository().get_current_session()
    if session is None or not session.has_identity:
        raise AuthError("Identity required")
    reviewer = session.reviewer

    record = db.session.execute(
        select(PublicReviewDecision).where(
            PublicReviewDecision.share_link_id == link.id,
            PublicReviewDecision.public_reviewer_id == reviewer.id,
        )
    ).scalar_one_or_none()
    if record is None:
        record = PublicReviewDecision(
            share_link_id=link.id, mockup_id=link.mockup_id, public_reviewer_id=reviewer.id,
        )
        db.session.add(record)
    record.decision = decision
    record.notes = clean_str(data.get("notes"))
    _record_event(link, "approve", reviewer.id)

    mockup = link.mockup
    verb = "approved" if decision == "approved" else "requested changes on"
    NotificationService.notify(
        org_id=link.organization_id,
        user_id=mockup.created_by,
        type="approval_received",
        title=f"{reviewer.name} {verb} {mockup.name}",
        message=record.notes or "",
        link_url=mockup_link(mockup.id),
        mockup_id=mockup.id,
        project_id=mockup.project_id,
        metadata={"source": "public_share", "decision": decision, "email": reviewer.email},
    )
    db.session.commit()
    logger.info("Public decision recorded: %s", decision,
                extra={"share_link_id": link.id, "mockup_id": link.mockup_id})
    NotificationService.relay_to_slack(
        link.organization_id, "public_decision", f"{reviewer.name} {verb} \"{mockup.name}\"",
    )
    return record

