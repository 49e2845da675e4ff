"""DTO mappers for devices."""

from __future__ import annotations

from domainvault.domains.devices.services.device_registry import DeviceInfo


def map_device(device: DeviceInfo) -> dict:
    return {
        "device_id": device.device_id,
        "ip_addrs": sorted(device.ip_addrs),
    }
