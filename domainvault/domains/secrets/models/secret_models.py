"""Secret persistence models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Mapped, mapped_column

from domainvault.extensions import db


class SecretRecord(db.Model):
    """One stored secret document per domain."""

    __tablename__ = "vault_secret"

    domain: Mapped[str] = mapped_column(db.String(255), primary_key=True)
    type: Mapped[str] = mapped_column(db.String(32), nullable=False)
    document: Mapped[dict] = mapped_column(db.JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
