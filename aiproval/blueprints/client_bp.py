"""
Client blueprint.

  GET    /api/v1/clients              list (?parent_client_id=)
  POST   /api/v1/clients              create
  GET    /api/v1/clients/<id>         detail
  PATCH  /api/v1/clients/<id>         update
  DELETE /api/v1/clients/<id>         delete (admin)
"""

from flask import Blueprint, request

from aiproval.auth import current_principal, require_admin, require_auth
from aiproval.blueprints import register_error_handlers
from aiproval.services import client_service
from aiproval.utils.errors import api_success
from aiproval.utils.helpers import json_body

client_bp = Blueprint("client_bp", __name__, url_prefix="/api/v1")
register_error_handlers(client_bp)


@client_bp.route("/clients", methods=["GET"])
@require_auth
def list_clients():
    clients = client_service.list_clients(
        org_id=current_principal().org_id,
        parent_client_id=request.args.get("parent_client_id", type=int),
    )
    return api_success({"clients": [c.to_dict() for c in clients], "total": len(clients)})


@client_bp.route("/clients", methods=["POST"])
@require_auth
def create_client():
    principal = current_principal()
    client = client_service.create_client(
        org_id=principal.org_id, user_id=principal.user_id, data=json_body(),
    )
    return api_success({"client": client.to_dict()}, status=201)


@client_bp.route("/clients/<int:client_id>", methods=["GET"])
@require_auth
def get_client(client_id):
    client = client_service.get_client(org_id=current_principal().org_id, client_id=client_id)
    return api_success({"client": client.to_dict()})


@client_bp.route("/clients/<int:client_id>", methods=["PATCH"])
@require_auth
def update_client(client_id):
    client = client_service.update_client(
        org_id=current_principal().org_id, client_id=client_id, data=json_body(),
    )
    return api_success({"client": client.to_dict()})


@client_bp.route("/clients/<int:client_id>", methods=["DELETE"])
@require_admin
def delete_client(client_id):
    client_service.delete_client(org_id=current_principal().org_id, client_id=client_id)
    return api_success({"id": client_id, "deleted": True})
