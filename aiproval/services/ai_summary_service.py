"""
AI Summary Service: plain-language summaries of review documents.

summarize(url)            what the document says, for a reviewer
diff(previous, current)   what changed between two versions

Documents are fetched through the document gateway and cut to
AI_MAX_DOCUMENT_CHARS before they reach the model.
"""

import logging

from flask import current_app

from aiproval.ai.gateway import get_gateway
from aiproval.integrations.document_gateway import document_gateway, validate_document_url

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = (
    "You summarize design and marketing review documents for approvers. "
    "Reply with a short overview followed by the key points as a bulleted list."
)
DIFF_SYSTEM_PROMPT = (
    "You compare two versions of a review document. "
    "List what was added, removed and changed, most important first."
)


class AIUnavailableError(Exception):
    """Raised when no AI provider is configured."""


def status() -> dict:
    gateway = get_gateway()
    return {"available": gateway.available, "model": gateway.model}


def _fetch(url: str) -> str:
    cfg = current_app.config
    return document_gateway.fetch_text(
        url, timeout=cfg["AI_REQUEST_TIMEOUT"], max_chars=cfg["AI_MAX_DOCUMENT_CHARS"],
    )


def _gateway():
    gateway = get_gateway()
    if not gateway.available:
        raise AIUnavailableError("AI summarization is not configured")
    return gateway


def summarize(document_url, org_id=None) -> dict:
    url = validate_document_url(document_url)
    gateway = _gateway()
    text = _fetch(url)
    result = gateway.chat(
        [
            {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
            {"role": "user", "content": text},
        ],
        purpose="document_summary",
    )
    logger.info("Document summarized", extra={"org_id": org_id})
    return {"summary": result["content"], "model": result["model"], "source_url": url}


def diff(previous_url, current_url, org_id=None) -> dict:
    previous_url = validate_document_url(previous_url)
    current_url = validate_document_url(current_url)
    gateway = _gateway()
    previous_text = _fetch(previous_url)
    current_text = _fetch(current_url)
    result = gateway.chat(
        [
            {"role": "system", "content": DIFF_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": f"PREVIOUS VERSION:\n{previous_text}\n\nCURRENT VERSION:\n{current_text}",
            },
        ],
        purpose="document_diff",
    )
    logger.info("Document diff generated", extra={"org_id": org_id})
    return {
        "diff": result["content"],
        "model": result["model"],
        "previous_url": previous_url,
        "current_url": current_url,
    }
