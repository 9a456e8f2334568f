"""
JWT Service: access-token verification and share-token issuing.

Access token (minted by the identity provider, HS256 shared secret):
{
    "sub": "<user_id>",
    "org_id": <organization id>,
    "role": "admin" | "member" | "client",
    "name": "<display name>",
    "type": "access",
    "iat": <issued_at>,
    "exp": <expires_at>,
    "jti": <unique_id>
}

Share token (issued here for public share links):
{
    "iss": "aiproval",
    "aud": "public-share",
    "sub": "<mockup_id>",
    "link": <share_link id>,
    "perm": "view" | "comment" | "approve",
    "type": "share",
    "iat": <issued_at>,
    "exp": <share link expiry>
}
"""

import secrets
import uuid
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app


# ─── Defaults ────────────────────────────────────────────────
DEFAULT_ACCESS_EXPIRES = 900       # 15 minutes
ALGORITHM = "HS256"


def _get_secret():
    """Get the JWT secret key from app config."""
    return current_app.config.get("JWT_SECRET_KEY") or current_app.config["SECRET_KEY"]


def _get_access_expires():
    return current_app.config.get("JWT_ACCESS_EXPIRES", DEFAULT_ACCESS_EXPIRES)


# ═══════════════════════════════════════════════════════════════
# Access tokens
# ═══════════════════════════════════════════════════════════════
def generate_access_token(user_id: str, org_id: int | None, role: str = "member",
                          name: str | None = None, expires_in: int | None = None) -> str:
    """Generate an access token in the identity provider's format.

    Production tokens come from the provider; this is used by tests and
    local tooling that share the same secret.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": role,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(seconds=expires_in if expires_in is not None else _get_access_expires()),
        "jti": str(uuid.uuid4()),
    }
    if org_id is not None:
        payload["org_id"] = org_id
    if name:
        payload["name"] = name
    return jwt.encode(payload, _get_secret(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify an access token.

    Returns the payload dict on success.
    Raises jwt.exceptions on failure (ExpiredSignatureError, InvalidTokenError, etc.)
    """
    payload = jwt.decode(token, _get_secret(), algorithms=[ALGORITHM])
    if payload.get("type") != "access":
        raise jwt.InvalidTokenError(f"Expected access token, got {payload.get('type')}")
    return payload


# ═══════════════════════════════════════════════════════════════
# Share tokens
# ═══════════════════════════════════════════════════════════════
def generate_share_token(share_link_id: int, mockup_id: int, permissions: str,
                         expires_at: datetime) -> str:
    """Sign a bearer token for a public share link; it expires with the link."""
    cfg = current_app.config
    payload = {
        "iss": cfg["SHARE_TOKEN_ISSUER"],
        "aud": cfg["SHARE_TOKEN_AUDIENCE"],
        "sub": str(mockup_id),
        "link": share_link_id,
        "perm": permissions,
        "type": "share",
        "iat": datetime.now(timezone.utc),
        "exp": expires_at,
    }
    return jwt.encode(payload, _get_secret(), algorithm=ALGORITHM)


def decode_share_token(token: str) -> dict | None:
    """Verify a share token's signature, issuer and audience.

    Returns the payload, or None when invalid. Expiry is not checked here:
    the stored link's ``expires_at`` is authoritative (see share_service.link_state).
    """
    cfg = current_app.config
    try:
        payload = jwt.decode(
            token,
            _get_secret(),
            algorithms=[ALGORITHM],
            issuer=cfg["SHARE_TOKEN_ISSUER"],
            audience=cfg["SHARE_TOKEN_AUDIENCE"],
            options={"verify_exp": False, "require": ["exp", "sub", "link"]},
        )
    except jwt.InvalidTokenError:
        return None
    if payload.get("type") != "share":
        return None
    return payload


# ═══════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════
def generate_session_token() -> str:
    """Opaque token identifying a public reviewer session (64 hex chars)."""
    return secrets.token_hex(32)
