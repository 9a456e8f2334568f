"""
Notification blueprint: the caller's in-app inbox and the integration log.

  GET   /api/v1/notifications                 ?unread_only=&limit=&offset=
  GET   /api/v1/notifications/unread-count
  PATCH /api/v1/notifications/<id>/read
  POST  /api/v1/notifications/read-all
  GET   /api/v1/integrations/events           outbound delivery log (admin)
"""

from flask import Blueprint, request

from aiproval.auth import current_principal, require_admin, require_auth
from aiproval.blueprints import register_error_handlers
from aiproval.services.notification_service import NotificationService
from aiproval.utils.errors import api_success
from aiproval.utils.helpers import parse_bool, parse_pagination

notification_bp = Blueprint("notification_bp", __name__, url_prefix="/api/v1")
register_error_handlers(notification_bp)


@notification_bp.route("/notifications", methods=["GET"])
@require_auth
def list_notifications():
    principal = current_principal()
    limit, offset = parse_pagination()
    items, total = NotificationService.list_for_user(
        principal.org_id,
        principal.user_id,
        unread_only=parse_bool(request.args.get("unread_only")),
        limit=limit,
        offset=offset,
    )
    return api_success({
        "notifications": [n.to_dict() for n in items],
        "total": total,
        "unread_count": NotificationService.unread_count(principal.org_id, principal.user_id),
    })


@notification_bp.route("/notifications/unread-count", methods=["GET"])
@require_auth
def unread_count():
    principal = current_principal()
    return api_success({"unread_count": NotificationService.unread_count(principal.org_id, principal.user_id)})


@notification_bp.route("/notifications/<int:notification_id>/read", methods=["PATCH", "POST"])
@require_auth
def mark_read(notification_id):
    principal = current_principal()
    notif = NotificationService.mark_read(principal.org_id, principal.user_id, notification_id)
    return api_success({"notification": notif.to_dict()})


@notification_bp.route("/notifications/read-all", methods=["POST"])
@require_auth
def mark_all_read():
    principal = current_principal()
    count = NotificationService.mark_all_read(principal.org_id, principal.user_id)
    return api_success({"marked_read": count})


@notification_bp.route("/integrations/events", methods=["GET"])
@require_admin
def list_integration_events():
    limit, offset = parse_pagination()
    items, total = NotificationService.list_integration_events(
        current_principal().org_id, limit=limit, offset=offset,
    )
    return api_success({"events": [e.to_dict() for e in items], "total": total})
