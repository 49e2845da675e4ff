"""Error taxonomy for the vault.

Every error the resolver can surface derives from :class:`VaultError` and
carries the JSON ``error`` code and HTTP status it maps to. The Flask error
handler in the app factory turns them into ``{"ok": false, ...}`` bodies.
"""

from __future__ import annotations

from typing import Any, Optional


class VaultError(Exception):
    code = "vault_error"
    status = 500

    def __init__(self, message: Optional[str] = None, *, code: Optional[str] = None, details: Any = None):
        self.message = message or self.__class__.__name__
        if code:
            self.code = code
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        payload = {"ok": False, "error": self.code, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class SecretNotFound(VaultError):
    code = "not_found"
    status = 404

    def __init__(self, domain: str):
        self.domain = domain
        super().__init__(f"Domain not found: {domain}")


class MalformedInput(VaultError):
    code = "validation_error"
    status = 400


class BackendUnavailable(VaultError):
    code = "backend_unavailable"
    status = 503


class ConfigurationError(VaultError):
    """Raised at startup; never mapped to a response."""

    code = "configuration_error"
    status = 500


__all__ = [
    "VaultError",
    "SecretNotFound",
    "MalformedInput",
    "BackendUnavailable",
    "ConfigurationError",
]
