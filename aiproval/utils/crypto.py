"""
Crypto utilities: bcrypt password hashing & Fernet sealing.

Password hashing:
  Share-link passwords are stored as bcrypt hashes ($2b$), never in clear.

Sealing (public reviewer session cookie):
  `seal` / `unseal` use Fernet (AES-128-CBC + HMAC-SHA256) so the cookie
  value cannot be read or forged by the browser. The key comes from the
  PUBLIC_SESSION_KEY config value; when unset, a key is derived from
  SECRET_KEY, which keeps cookies valid across restarts as long as
  SECRET_KEY is stable.
"""

import base64
import hashlib

import bcrypt
from cryptography.fernet import Fernet, InvalidToken
from flask import current_app


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password with bcrypt."""
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify a plain-text password against a bcrypt hash."""
    if not password_hash or not plain_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            password_hash.encode("utf-8"),
        )
    except ValueError:
        # Malformed stored hash
        return False


# ── Fernet sealing ───────────────────────────────────────────────────────────


def _get_fernet() -> Fernet:
    """Return a Fernet instance keyed by PUBLIC_SESSION_KEY or derived from SECRET_KEY."""
    raw_key = current_app.config.get("PUBLIC_SESSION_KEY")
    if raw_key:
        return Fernet(raw_key.encode() if isinstance(raw_key, str) else raw_key)
    digest = hashlib.sha256(current_app.config["SECRET_KEY"].encode("utf-8")).digest()
    return Fernet(base64.urlsafe_b64encode(digest))


def seal(plaintext: str) -> str:
    """Encrypt and authenticate ``plaintext``; output is URL-safe base64."""
    return _get_fernet().encrypt(plaintext.encode("utf-8")).decode("utf-8")


def unseal(ciphertext: str, max_age: int | None = None) -> str | None:
    """Reverse ``seal``. Returns None when tampered, foreign, or older than ``max_age`` seconds."""
    if not ciphertext:
        return None
    try:
        return _get_fernet().decrypt(ciphertext.encode("utf-8"), ttl=max_age).decode("utf-8")
    except InvalidToken:
        return None
