"""DTO mappers for secrets."""

from __future__ import annotations

from domainvault.domains.secrets.schemas.secret_schemas import Secret, dump_secret


def map_secret(secret: Secret) -> dict:
    return dump_secret(secret)
