"""Vault initial schema: secrets, devices, device addresses."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision = "20261017_vault_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    conn = op.get_bind()
    inspector = inspect(conn)

    def _has_table(name: str) -> bool:
        return name in inspector.get_table_names()

    if not _has_table("vault_secret"):
        op.create_table(
            "vault_secret",
            sa.Column("domain", sa.String(length=255), primary_key=True),
            sa.Column("type", sa.String(length=32), nullable=False),
            sa.Column("document", sa.JSON(), nullable=False),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
            sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        )

    if not _has_table("vault_device"):
        op.create_table(
            "vault_device",
            sa.Column("device_id", sa.String(length=255), primary_key=True),
            sa.Column("first_seen_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
            sa.Column("last_seen_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        )

    if not _has_table("vault_device_address"):
        op.create_table(
            "vault_device_address",
            sa.Column(
                "device_id",
                sa.String(length=255),
                sa.ForeignKey("vault_device.device_id", ondelete="CASCADE"),
                primary_key=True,
            ),
            sa.Column("ip_addr", sa.String(length=45), primary_key=True),
            sa.Column("first_seen_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        )


def downgrade():
    op.drop_table("vault_device_address")
    op.drop_table("vault_device")
    op.drop_table("vault_secret")
