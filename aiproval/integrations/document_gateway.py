"""
Document fetch gateway for AI summaries.

Downloads a document over HTTP(S) and returns its text, truncated to a
bounded number of characters. Failures raise UpstreamError("document").
"""

from __future__ import annotations

import logging
from urllib.parse import urlparse

import requests

from aiproval.core.exceptions import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")


def validate_document_url(url) -> str:
    if not isinstance(url, str) or not url.strip():
        raise ValidationError("Document URL is required")
    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ALLOWED_SCHEMES or not parsed.netloc:
        raise ValidationError("Document URL must be an http(s) URL")
    return url


class DocumentGateway:
    def __init__(self, session: requests.Session | None = None) -> None:
        self._session: requests.Session | None = session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def fetch_text(self, url: str, *, timeout: int, max_chars: int) -> str:
        """Return the document body as text, cut to ``max_chars``."""
        try:
            resp = self.session.get(url, timeout=timeout)
        except requests.Timeout as exc:
            raise UpstreamError("document", f"Fetching document timed out after {timeout}s") from exc
        except requests.RequestException as exc:
            logger.warning("Document fetch failed: %s", exc)
            raise UpstreamError("document", "Could not fetch document") from exc

        if not resp.ok:
            raise UpstreamError("document", f"Document host returned HTTP {resp.status_code}")

        text = resp.text or ""
        if len(text) > max_chars:
            logger.info("Document truncated from %d to %d chars", len(text), max_chars)
            text = text[:max_chars]
        return text


document_gateway = DocumentGateway()
