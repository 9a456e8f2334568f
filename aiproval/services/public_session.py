"""
Public reviewer sessions.

Anonymous reviewers on a share link are identified by an opaque session
token, separate from the share token. Where that token travels is a
pluggable adapter:

    CookieSessionStore   Fernet-sealed HttpOnly cookie (browser clients)
    HeaderSessionStore   plain ``X-Public-Session`` request/response header
                         (API clients, embedded viewers)

PublicSessionRepository maps the token to a PublicReviewer row:

    repo = get_session_repository()
    handle = repo.get_or_create_session({"email": ..., "name": ...})
    db.session.commit()
    repo.attach(response, handle)

The repository stages rows in the current DB session; callers commit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from email_validator import EmailNotValidError, validate_email
from flask import current_app, request
from sqlalchemy import select

from aiproval.core.exceptions import ValidationError
from aiproval.middleware.rate_limiter import client_ip
from aiproval.models import db
from aiproval.models.base import as_utc, utcnow
from aiproval.models.share import PublicReviewer
from aiproval.services.jwt_service import generate_session_token
from aiproval.utils.crypto import seal, unseal
from aiproval.utils.helpers import clean_str

logger = logging.getLogger(__name__)


@dataclass
class SessionHandle:
    reviewer: PublicReviewer
    created: bool = False

    @property
    def token(self) -> str:
        return self.reviewer.session_token

    @property
    def has_identity(self) -> bool:
        return self.reviewer.has_identity


# ═══════════════════════════════════════════════════════════════
# Store adapters
# ═══════════════════════════════════════════════════════════════
class SessionStore:
    """Carries the session token between client and server."""

    def read(self) -> str | None:
        raise NotImplementedError

    def write(self, response, token: str) -> None:
        raise NotImplementedError


class CookieSessionStore(SessionStore):
    def __init__(self, cookie_name: str, max_age_days: int, secure: bool = False):
        self.cookie_name = cookie_name
        self.max_age = max_age_days * 86400
        self.secure = secure

    def read(self) -> str | None:
        return unseal(request.cookies.get(self.cookie_name, ""), max_age=self.max_age)

    def write(self, response, token: str) -> None:
        response.set_cookie(
            self.cookie_name,
            seal(token),
            max_age=self.max_age,
            httponly=True,
            secure=self.secure,
            samesite="Lax",
            path="/api/v1/public",
        )


class HeaderSessionStore(SessionStore):
    def __init__(self, header_name: str):
        self.header_name = header_name

    def read(self) -> str | None:
        return clean_str(request.headers.get(self.header_name)) or None

    def write(self, response, token: str) -> None:
        response.headers[self.header_name] = token


def build_store(app=None) -> SessionStore:
    cfg = (app or current_app).config
    kind = cfg.get("PUBLIC_SESSION_STORE", "cookie")
    if kind == "header":
        return HeaderSessionStore(cfg["PUBLIC_SESSION_HEADER"])
    if kind != "cookie":
        raise ValueError(f"Unknown PUBLIC_SESSION_STORE: {kind!r}")
    return CookieSessionStore(
        cfg["PUBLIC_SESSION_COOKIE"],
        cfg["PUBLIC_SESSION_DAYS"],
        secure=cfg.get("SESSION_COOKIE_SECURE", False),
    )


# ═══════════════════════════════════════════════════════════════
# Repository
# ═══════════════════════════════════════════════════════════════
def _normalized_identity(identity_hint: dict) -> dict:
    email = clean_str(identity_hint.get("email"), 255)
    name = clean_str(identity_hint.get("name"), 200)
    if not email or not name:
        raise ValidationError("Name and email are required", details={"required": ["name", "email"]})
    try:
        email = validate_email(email, check_deliverability=False).normalized
    except EmailNotValidError as exc:
        raise ValidationError(f"Invalid email: {exc}", details={"email": "invalid"}) from exc
    return {"email": email, "name": name, "company": clean_str(identity_hint.get("company"), 200)}


class PublicSessionRepository:
    def __init__(self, store: SessionStore, session_days: int = 30):
        self.store = store
        self.session_days = session_days

    def _find(self, token: str | None) -> PublicReviewer | None:
        if not token:
            return None
        reviewer = db.session.execute(
            select(PublicReviewer).where(PublicReviewer.session_token == token)
        ).scalar_one_or_none()
        if reviewer is None:
            return None
        if reviewer.expires_at is not None and as_utc(reviewer.expires_at) <= utcnow():
            return None
        return reviewer

    def get_current_session(self) -> SessionHandle | None:
        reviewer = self._find(self.store.read())
        return SessionHandle(reviewer) if reviewer else None

    def get_or_create_session(self, identity_hint: dict | None = None) -> SessionHandle:
        """Return the caller's session, creating one when absent or expired.

        A non-empty ``identity_hint`` ({email, name, company?}) is validated
        and recorded on the session.
        """
        handle = self.get_current_session()
        if handle is None:
            reviewer = PublicReviewer(
                session_token=generate_session_token(),
                ip_address=client_ip(),
                user_agent=(request.headers.get("User-Agent") or "")[:500] or None,
            )
            db.session.add(reviewer)
            handle = SessionHandle(reviewer, created=True)

        reviewer = handle.reviewer
        reviewer.expires_at = utcnow() + timedelta(days=self.session_days)
        if identity_hint:
            identity = _normalized_identity(identity_hint)
            reviewer.email = identity["email"]
            reviewer.name = identity["name"]
            if identity["company"] is not None:
                reviewer.company = identity["company"]
            reviewer.verified_at = utcnow()
        return handle

    def attach(self, response, handle: SessionHandle) -> None:
        self.store.write(response, handle.token)


def get_session_repository() -> PublicSessionRepository:
    return PublicSessionRepository(
        build_store(), session_days=current_app.config.get("PUBLIC_SESSION_DAYS", 30),
    )
