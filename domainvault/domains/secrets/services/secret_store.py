"""Secret store: one secret document per domain.

Two implementations share the same contract. ``SqlSecretStore`` writes
through Flask-SQLAlchemy with conflict-aware inserts, ``InMemorySecretStore``
keeps a dict behind a lock. Deleting a missing domain raises
``SecretNotFound`` in both.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy import delete, select, update

from domainvault.core.errors import SecretNotFound
from domainvault.core.utils.backend import backend_guard, dialect_name, insert_statement
from domainvault.domains.secrets.models.secret_models import SecretRecord
from domainvault.domains.secrets.schemas.secret_schemas import Secret, dump_secret, load_secret
from domainvault.extensions import db

logger = logging.getLogger(__name__)


class SecretStore(Protocol):
    def get(self, domain: str) -> Secret: ...

    def list_all(self) -> list[Secret]: ...

    def upsert(self, domain: str, record: Secret) -> tuple[Secret, bool]: ...

    def delete(self, domain: str) -> None: ...


def _keyed(domain: str, record: Secret) -> Secret:
    # The stored document's domain always equals its key.
    if record.domain == domain:
        return record
    return record.model_copy(update={"domain": domain})


class SqlSecretStore:
    """Secret store backed by the ``vault_secret`` table."""

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        # Resolved per call so request-scoped (and test-swapped) sessions apply.
        return self._session if self._session is not None else db.session

    def get(self, domain: str) -> Secret:
        session = self.session
        with backend_guard(session, "secret get"):
            document = session.execute(
                select(SecretRecord.document).where(SecretRecord.domain == domain)
            ).scalar_one_or_none()
        if document is None:
            raise SecretNotFound(domain)
        return load_secret(document)

    def list_all(self) -> list[Secret]:
        session = self.session
        with backend_guard(session, "secret list"):
            documents = session.execute(
                select(SecretRecord.document).order_by(SecretRecord.domain)
            ).scalars().all()
        return [load_secret(doc) for doc in documents]

    def upsert(self, domain: str, record: Secret) -> tuple[Secret, bool]:
        """Create or fully replace the secret for ``domain``.

        Returns the stored secret and whether the row was newly created. The
        flag comes from the write statement itself, so of several concurrent
        first writes exactly one reports ``created``.
        """
        secret = _keyed(domain, record)
        document = dump_secret(secret)
        now = datetime.utcnow()
        session = self.session
        table = SecretRecord.__table__
        replacement = {"type": secret.type, "document": document, "updated_at": now}
        with backend_guard(session, "secret upsert"):
            stmt = insert_statement(session, table)
            if stmt is None:
                created = self._merge(session, domain, secret.type, document, now)
            else:
                stmt = stmt.values(domain=domain, created_at=now, **replacement)
                if dialect_name(session) in {"mysql", "mariadb"}:
                    # MySQL reports one affected row for an insert, two for an update.
                    result = session.execute(stmt.on_duplicate_key_update(replacement))
                    created = result.rowcount == 1
                else:
                    created = self._insert_or_replace(session, table, stmt, domain, replacement)
            session.commit()
        logger.info("Stored %s secret for %s (created=%s)", secret.type, domain, created)
        return secret, created

    @staticmethod
    def _insert_or_replace(session, table, stmt, domain: str, replacement: dict) -> bool:
        while True:
            inserted = session.execute(stmt.on_conflict_do_nothing(index_elements=[table.c.domain]))
            if inserted.rowcount:
                return True
            replaced = session.execute(update(table).where(table.c.domain == domain).values(**replacement))
            if replaced.rowcount:
                return False
            # Deleted between the two statements; try the insert again.

    @staticmethod
    def _merge(session, domain: str, secret_type: str, document: dict, now: datetime) -> bool:
        # Dialects without a conflict clause fall back to a locked read-then-write.
        row = session.execute(
            select(SecretRecord).where(SecretRecord.domain == domain).with_for_update()
        ).scalar_one_or_none()
        if row is None:
            session.add(SecretRecord(domain=domain, type=secret_type, document=document, created_at=now, updated_at=now))
        else:
            row.type = secret_type
            row.document = document
            row.updated_at = now
        session.flush()
        return row is None

    def delete(self, domain: str) -> None:
        session = self.session
        with backend_guard(session, "secret delete"):
            result = session.execute(delete(SecretRecord).where(SecretRecord.domain == domain))
            session.commit()
        if not result.rowcount:
            raise SecretNotFound(domain)
        logger.info("Deleted secret for %s", domain)


class InMemorySecretStore:
    """Process-local secret store; every operation holds one lock."""

    def __init__(self, initial: Optional[dict[str, Secret]] = None):
        self._lock = threading.Lock()
        self._secrets: dict[str, Secret] = dict(initial or {})

    def get(self, domain: str) -> Secret:
        with self._lock:
            secret = self._secrets.get(domain)
        if secret is None:
            raise SecretNotFound(domain)
        return secret

    def list_all(self) -> list[Secret]:
        with self._lock:
            return list(self._secrets.values())

    def upsert(self, domain: str, record: Secret) -> tuple[Secret, bool]:
        secret = _keyed(domain, record)
        with self._lock:
            created = domain not in self._secrets
            self._secrets[domain] = secret
        return secret, created

    def delete(self, domain: str) -> None:
        with self._lock:
            if self._secrets.pop(domain, None) is None:
                raise SecretNotFound(domain)


__all__ = ["SecretStore", "SqlSecretStore", "InMemorySecretStore"]
