"""Request resolver: ties device observation to secret operations.

Controllers hand the resolver the parsed request pieces (domain, declared
``device_id``, source IP, body); the resolver derives the device identity,
records the observation, then dispatches to the secret store.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError

from domainvault.core.errors import VaultError
from domainvault.domains.devices.services.device_registry import DeviceInfo, DeviceRegistry
from domainvault.domains.secrets.schemas.secret_schemas import Secret, parse_secret
from domainvault.domains.secrets.services.secret_store import SecretStore

logger = logging.getLogger(__name__)


def derive_identity(device_id: Optional[str], ip: str) -> str:
    """Declared device id when present, else the source IP stands in for it."""
    declared = (device_id or "").strip()
    return declared or ip


class RequestResolver:
    def __init__(self, secret_store: SecretStore, device_registry: DeviceRegistry):
        self.secret_store = secret_store
        self.device_registry = device_registry

    def observe(self, device_id: Optional[str], ip: str) -> Optional[DeviceInfo]:
        """Record the caller's device; failures are logged and never raised."""
        identity = derive_identity(device_id, ip)
        try:
            return self.device_registry.record_observation(identity, ip)
        except (VaultError, SQLAlchemyError) as exc:
            logger.warning("Device observation for %s from %s failed: %s", identity, ip, exc)
            return None

    def get_secret(self, domain: str, *, device_id: Optional[str], ip: str) -> Secret:
        self.observe(device_id, ip)
        return self.secret_store.get(domain)

    def list_secrets(self, *, device_id: Optional[str], ip: str) -> list[Secret]:
        self.observe(device_id, ip)
        return self.secret_store.list_all()

    def put_secret(self, domain: str, payload: Any, *, device_id: Optional[str], ip: str) -> tuple[Secret, bool]:
        # Observation happens even when the payload turns out to be malformed.
        self.observe(device_id, ip)
        secret = parse_secret(payload, domain=domain)
        return self.secret_store.upsert(domain, secret)

    def delete_secret(self, domain: str, *, device_id: Optional[str], ip: str) -> None:
        self.observe(device_id, ip)
        self.secret_store.delete(domain)

    def list_devices(self) -> list[DeviceInfo]:
        return self.device_registry.list_all()


__all__ = ["RequestResolver", "derive_identity"]
