"""
Public share endpoints: no authentication, the share token is the bearer.

  GET  /api/v1/public/share/<token>            link + mockup (or requires_password)
  POST /api/v1/public/share/<token>/verify     {password} → link + mockup
  POST /api/v1/public/share/<token>/reviewer   {email, name, company?} → reviewer session
  POST /api/v1/public/share/<token>/comment    {comment_text, password?}
  POST /api/v1/public/share/<token>/approve    {decision, notes?, password?}

Rate limited per client IP (PUBLIC_RATE_LIMIT).
"""

from flask import Blueprint

from aiproval.blueprints import register_error_handlers
from aiproval.services import share_service
from aiproval.services.public_session import get_session_repository
from aiproval.utils.errors import api_success
from aiproval.utils.helpers import json_body

public_bp = Blueprint("public_bp", __name__, url_prefix="/api/v1/public")
register_error_handlers(public_bp)


@public_bp.route("/share/<path:token>", methods=["GET"])
def get_shared_mockup(token):
    return api_success(share_service.access_public_link(token))


@public_bp.route("/share/<path:token>/verify", methods=["POST"])
def verify_password(token):
    return api_success(share_service.verify_public_password(token, json_body().get("password")))


@public_bp.route("/share/<path:token>/reviewer", methods=["POST"])
def register_reviewer(token):
    handle = share_service.register_public_reviewer(token, json_body())
    response, status = api_success({
        "reviewer": handle.reviewer.to_dict(),
        "session_token": handle.token,
        "created": handle.created,
    }, status=201 if handle.created else 200)
    get_session_repository().attach(response, handle)
    return response, status


@public_bp.route("/share/<path:token>/comment", methods=["POST"])
def add_comment(token):
    comment = share_service.add_public_comment(token, json_body())
    return api_success({"comment": comment.to_dict()}, status=201)


@public_bp.route("/share/<path:token>/approve", methods=["POST"])
def submit_decision(token):
    decision = share_service.submit_public_decision(token, json_body())
    return api_success({"decision": decision.to_dict()})
