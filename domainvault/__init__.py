"""domainvault application factory and bootstrap."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify

from domainvault.config import apply_db_config_file, config_by_name
from domainvault.core.errors import BackendUnavailable, ConfigurationError, VaultError
from domainvault.core.resolver import RequestResolver
from domainvault.extensions import init_extensions

_HTTP_ERROR_CODES = {
    404: "api_not_found",
    405: "method_not_allowed",
    429: "too_many_requests",
}


def create_app(config_name: Optional[str] = None) -> Flask:
    """Create and configure the domainvault Flask application."""
    env_name = (config_name or os.environ.get("APP_ENV") or "development").lower()
    project_root = Path(__file__).resolve().parent.parent
    instance_root = project_root / "instance"

    app = Flask(__name__, instance_path=str(instance_root), instance_relative_config=True)
    config_cls = config_by_name.get(env_name, config_by_name["development"])
    app.config.from_object(config_cls)
    apply_db_config_file(app.config)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Normalize sqlite path to absolute to avoid "unable to open database file"
    db_uri = app.config.get("SQLALCHEMY_DATABASE_URI") or ""
    if db_uri.startswith("sqlite:///") and not db_uri.startswith("sqlite:////"):
        db_path = db_uri.replace("sqlite:///", "", 1)
        abs_path = project_root / db_path
        abs_path.parent.mkdir(parents=True, exist_ok=True)
        app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{abs_path}"

    proxies = int(app.config.get("TRUST_PROXY_COUNT") or 0)
    if proxies > 0:
        from werkzeug.middleware.proxy_fix import ProxyFix

        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=proxies)

    init_extensions(app)
    app.extensions["request_resolver"] = _build_resolver(app)
    _register_blueprints(app)
    _register_error_handlers(app)

    @app.get("/health")
    def health():
        return {"ok": True}, 200

    from domainvault.scripts.vault_commands import register_commands

    register_commands(app)

    if app.config.get("VERIFY_BACKEND_ON_STARTUP") and app.config["STORAGE_BACKEND"] == "sql":
        _verify_backend(app)

    return app


def _build_resolver(app: Flask) -> RequestResolver:
    """Pick the store implementations named by STORAGE_BACKEND."""
    backend = app.config.get("STORAGE_BACKEND", "sql")
    if backend == "sql":
        from domainvault.domains.devices.services.device_registry import SqlDeviceRegistry
        from domainvault.domains.secrets.services.secret_store import SqlSecretStore

        return RequestResolver(SqlSecretStore(), SqlDeviceRegistry())
    if backend == "memory":
        from domainvault.domains.devices.services.device_registry import InMemoryDeviceRegistry
        from domainvault.domains.secrets.services.secret_store import InMemorySecretStore

        return RequestResolver(InMemorySecretStore(), InMemoryDeviceRegistry())
    raise ConfigurationError(f"Unknown STORAGE_BACKEND: {backend!r}")


def _verify_backend(app: Flask) -> None:
    from domainvault.core.utils.backend import ping
    from domainvault.extensions import db

    with app.app_context():
        url = db.engine.url.render_as_string(hide_password=True)
        try:
            ping(db.session)
        except BackendUnavailable as exc:
            raise ConfigurationError(f"Backend not reachable at {url}: {exc.message}") from exc
        finally:
            db.session.remove()
    app.logger.info("Backend reachable: %s", url)


def _register_blueprints(app: Flask) -> None:
    """Lazy import and register all controllers."""
    from domainvault.domains.devices.controllers.device_api import device_api_bp
    from domainvault.domains.secrets.controllers.secret_api import secret_api_bp

    app.register_blueprint(secret_api_bp, url_prefix="/secrets")
    app.register_blueprint(device_api_bp, url_prefix="/devices")


def _register_error_handlers(app: Flask) -> None:
    """JSON error responses."""
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(VaultError)
    def _vault_error(exc: VaultError):
        return jsonify(exc.to_dict()), exc.status

    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException):
        # Keep werkzeug's headers (e.g. Allow on 405) and swap in a JSON body.
        response = exc.get_response()
        code = _HTTP_ERROR_CODES.get(exc.code, (exc.name or "error").lower().replace(" ", "_"))
        response.data = json.dumps({"ok": False, "error": code, "message": exc.description})
        response.content_type = "application/json"
        return response

    @app.errorhandler(Exception)
    def _generic_error(exc: Exception):
        app.logger.exception("Unhandled error: %s", exc)
        # In debug/testing, surface the exception message to speed up diagnosis
        if app.debug or app.testing:
            return {"ok": False, "error": "unexpected_error", "message": str(exc)}, 500
        return {"ok": False, "error": "unexpected_error", "message": "Internal server error"}, 500
