"""Device registry API controllers."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from domainvault.domains.devices.mappers import map_device

device_api_bp = Blueprint("device_api", __name__)


@device_api_bp.get("")
def list_devices():
    resolver = current_app.extensions["request_resolver"]
    return jsonify([map_device(d) for d in resolver.list_devices()])
