"""
AI blueprint: document summaries for reviewers.

  GET  /api/v1/ai/status      {available, model}
  POST /api/v1/ai/summarize   {document_url}
  POST /api/v1/ai/diff        {previous_url, current_url}

Without OPENAI_API_KEY the feature reports itself unavailable (503).
"""

import logging

from flask import Blueprint

from aiproval.auth import current_principal, require_auth
from aiproval.blueprints import register_error_handlers
from aiproval.services import ai_summary_service
from aiproval.services.ai_summary_service import AIUnavailableError
from aiproval.utils.errors import E, api_error, api_success
from aiproval.utils.helpers import json_body

logger = logging.getLogger(__name__)

ai_bp = Blueprint("ai_bp", __name__, url_prefix="/api/v1/ai")
register_error_handlers(ai_bp)


@ai_bp.errorhandler(AIUnavailableError)
def _handle_unavailable(error: AIUnavailableError):
    logger.info("AI request rejected: provider not configured")
    return api_error(E.UNAVAILABLE, str(error), details={"available": False})


@ai_bp.route("/status", methods=["GET"])
@require_auth
def ai_status():
    return api_success(ai_summary_service.status())


@ai_bp.route("/summarize", methods=["POST"])
@require_auth
def summarize():
    data = json_body()
    result = ai_summary_service.summarize(
        data.get("document_url"), org_id=current_principal().org_id,
    )
    return api_success(result)


@ai_bp.route("/diff", methods=["POST"])
@require_auth
def diff():
    data = json_body()
    result = ai_summary_service.diff(
        data.get("previous_url"), data.get("current_url"), org_id=current_principal().org_id,
    )
    return api_success(result)
