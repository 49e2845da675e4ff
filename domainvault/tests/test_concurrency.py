"""Threaded tests: concurrent observations and upserts against both backends.

SQL cases run on their own file-backed SQLite database with one session per
thread, outside the per-test transaction used elsewhere, so every thread's
commit is visible to the others.
"""

import threading

import pytest
import sqlalchemy as sa
from sqlalchemy.orm import sessionmaker

from domainvault.domains.devices.services.device_registry import SqlDeviceRegistry
from domainvault.domains.secrets.schemas.secret_schemas import parse_secret
from domainvault.domains.secrets.services.secret_store import InMemorySecretStore, SqlSecretStore
from domainvault.extensions import db

pytestmark = pytest.mark.integration

THREADS = 6


@pytest.fixture
def session_factory(tmp_path):
    engine = sa.create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"timeout": 30, "check_same_thread": False},
    )

    # Writers take the lock at BEGIN so two transactions never deadlock on upgrade.
    @sa.event.listens_for(engine, "connect")
    def _no_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @sa.event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    db.metadata.create_all(engine)
    try:
        yield sessionmaker(bind=engine, expire_on_commit=False)
    finally:
        engine.dispose()


def _run_threads(target, args_per_thread):
    barrier = threading.Barrier(len(args_per_thread))
    errors = []

    def runner(*args):
        barrier.wait()
        try:
            target(*args)
        except Exception as exc:  # surfaced by the assertion below
            errors.append(exc)

    threads = [threading.Thread(target=runner, args=args) for args in args_per_thread]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert errors == []


def _payloads():
    bodies = []
    for i in range(THREADS):
        if i % 2:
            bodies.append({"type": "password", "username": f"user{i}", "password": f"pw{i}"})
        else:
            bodies.append(
                {
                    "type": "creditcard",
                    "number": f"41111111111111{i:02d}",
                    "cvc": f"{i:03d}",
                    "fullname": f"Holder {i}",
                    "year": 2030 + i,
                    "month": i + 1,
                }
            )
    return [parse_secret(body, domain="race.example") for body in bodies]


def test_sql_observations_from_many_threads_keep_every_ip(session_factory):
    ips_per_thread = [[f"10.{t}.0.{i}" for i in range(15)] for t in range(THREADS)]

    def observe(ips):
        session = session_factory()
        try:
            registry = SqlDeviceRegistry(session)
            for ip in ips:
                registry.record_observation("shared", ip)
        finally:
            session.close()

    _run_threads(observe, [(ips,) for ips in ips_per_thread])

    session = session_factory()
    try:
        (device,) = SqlDeviceRegistry(session).list_all()
    finally:
        session.close()
    assert device.device_id == "shared"
    assert device.ip_addrs == {ip for ips in ips_per_thread for ip in ips}


def test_sql_concurrent_upserts_leave_one_whole_record(session_factory):
    payloads = _payloads()
    outcomes = []

    def write(secret):
        session = session_factory()
        try:
            outcomes.append(SqlSecretStore(session).upsert("race.example", secret))
        finally:
            session.close()

    _run_threads(write, [(p,) for p in payloads])

    session = session_factory()
    try:
        store = SqlSecretStore(session)
        stored = store.get("race.example")
        listed = store.list_all()
    finally:
        session.close()
    assert stored in payloads
    assert listed == [stored]
    assert sum(1 for _, created in outcomes if created) == 1


def test_memory_concurrent_upserts_leave_one_whole_record():
    store = InMemorySecretStore()
    payloads = _payloads()
    outcomes = []

    def write(secret):
        for _ in range(20):
            outcomes.append(store.upsert("race.example", secret))

    _run_threads(write, [(p,) for p in payloads])

    assert store.get("race.example") in payloads
    assert len(store.list_all()) == 1
    assert sum(1 for _, created in outcomes if created) == 1
