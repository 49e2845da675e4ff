"""Device registry models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column, relationship

from domainvault.extensions import db


class Device(db.Model):
    __tablename__ = "vault_device"

    device_id: Mapped[str] = mapped_column(db.String(255), primary_key=True)
    first_seen_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    last_seen_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)

    addresses: Mapped[list["DeviceAddress"]] = relationship(
        "DeviceAddress",
        back_populates="device",
        cascade="all, delete-orphan",
        order_by="DeviceAddress.ip_addr",
    )


class DeviceAddress(db.Model):
    """One observed IP for a device; rows are only ever inserted."""

    __tablename__ = "vault_device_address"

    device_id: Mapped[str] = mapped_column(
        db.ForeignKey("vault_device.device_id", ondelete="CASCADE"), primary_key=True
    )
    ip_addr: Mapped[str] = mapped_column(db.String(45), primary_key=True)
    first_seen_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)

    device: Mapped[Device] = relationship("Device", back_populates="addresses")
