"""Secret API controllers."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from domainvault.core.resolver import RequestResolver
from domainvault.domains.secrets.mappers import map_secret

secret_api_bp = Blueprint("secret_api", __name__)


def _resolver() -> RequestResolver:
    return current_app.extensions["request_resolver"]


def _caller() -> dict:
    return {
        "device_id": request.args.get("device_id"),
        "ip": request.remote_addr or "unknown",
    }


@secret_api_bp.get("")
@secret_api_bp.get("/")
def list_secrets():
    secrets = _resolver().list_secrets(**_caller())
    return jsonify([map_secret(s) for s in secrets])


@secret_api_bp.get("/<domain>")
def get_secret(domain: str):
    secret = _resolver().get_secret(domain, **_caller())
    return jsonify(map_secret(secret))


@secret_api_bp.route("/<domain>", methods=["PUT", "POST"])
def put_secret(domain: str):
    # Body is JSON whatever the Content-Type says.
    payload = request.get_json(force=True, silent=True)
    secret, created = _resolver().put_secret(domain, payload, **_caller())
    return jsonify(map_secret(secret)), 201 if created else 200


@secret_api_bp.delete("/<domain>")
def delete_secret(domain: str):
    _resolver().delete_secret(domain, **_caller())
    return "", 204
