"""Device registry: device identity -> observed IP addresses.

Address sets only grow. The SQL registry stores one row per
``(device_id, ip_addr)`` and only ever inserts with conflict-ignore, so two
concurrent observations for the same device cannot lose each other's IP.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from sqlalchemy import select, update

from domainvault.core.utils.backend import backend_guard, insert_ignore
from domainvault.domains.devices.models.device_models import Device, DeviceAddress
from domainvault.extensions import db

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeviceInfo:
    device_id: str
    ip_addrs: frozenset[str] = field(default_factory=frozenset)


class DeviceRegistry(Protocol):
    def record_observation(self, identity: str, ip: str) -> DeviceInfo: ...

    def list_all(self) -> list[DeviceInfo]: ...


class SqlDeviceRegistry:
    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def record_observation(self, identity: str, ip: str) -> DeviceInfo:
        """Register ``identity`` if new and add ``ip`` to its address set."""
        now = datetime.utcnow()
        session = self.session
        with backend_guard(session, "device observation"):
            insert_ignore(
                session,
                Device.__table__,
                {"device_id": identity, "first_seen_at": now, "last_seen_at": now},
                ["device_id"],
            )
            session.execute(
                update(Device.__table__).where(Device.__table__.c.device_id == identity).values(last_seen_at=now)
            )
            insert_ignore(
                session,
                DeviceAddress.__table__,
                {"device_id": identity, "ip_addr": ip, "first_seen_at": now},
                ["device_id", "ip_addr"],
            )
            session.commit()
            addrs = session.execute(
                select(DeviceAddress.ip_addr).where(DeviceAddress.device_id == identity)
            ).scalars().all()
        logger.debug("Observed device %s from %s", identity, ip)
        return DeviceInfo(device_id=identity, ip_addrs=frozenset(addrs))

    def list_all(self) -> list[DeviceInfo]:
        session = self.session
        with backend_guard(session, "device list"):
            rows = session.execute(
                select(Device.device_id, DeviceAddress.ip_addr)
                .outerjoin(DeviceAddress, DeviceAddress.device_id == Device.device_id)
                .order_by(Device.device_id, DeviceAddress.ip_addr)
            ).all()
        grouped: dict[str, set[str]] = {}
        for device_id, ip_addr in rows:
            addrs = grouped.setdefault(device_id, set())
            if ip_addr is not None:
                addrs.add(ip_addr)
        return [DeviceInfo(device_id=k, ip_addrs=frozenset(v)) for k, v in grouped.items()]


class InMemoryDeviceRegistry:
    """Process-local registry; the lock serializes the set merge per call."""

    def __init__(self):
        self._lock = threading.Lock()
        self._devices: dict[str, set[str]] = {}

    def record_observation(self, identity: str, ip: str) -> DeviceInfo:
        with self._lock:
            addrs = self._devices.setdefault(identity, set())
            addrs.add(ip)
            return DeviceInfo(device_id=identity, ip_addrs=frozenset(addrs))

    def list_all(self) -> list[DeviceInfo]:
        with self._lock:
            return [
                DeviceInfo(device_id=device_id, ip_addrs=frozenset(addrs))
                for device_id, addrs in sorted(self._devices.items())
            ]


__all__ = ["DeviceInfo", "DeviceRegistry", "SqlDeviceRegistry", "InMemoryDeviceRegistry"]
