"""Tests for the secret store implementations (in-memory and SQL)."""

import pytest

from domainvault.core.errors import SecretNotFound
from domainvault.domains.secrets.schemas.secret_schemas import CreditCardSecret, PasswordSecret, parse_secret
from domainvault.domains.secrets.services.secret_store import InMemorySecretStore, SqlSecretStore


@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        return InMemorySecretStore()
    request.getfixturevalue("app")
    return SqlSecretStore()


def _password(domain="example.com", username="bob", password="x"):
    return parse_secret({"domain": domain, "type": "password", "username": username, "password": password})


def _card(domain="shop.example"):
    return parse_secret(
        {
            "domain": domain,
            "type": "creditcard",
            "number": "4111111111111111",
            "cvc": "321",
            "fullname": "Bob Example",
            "year": 2031,
            "month": 12,
        }
    )


class TestSecretStore:
    def test_get_missing_domain_raises(self, store):
        with pytest.raises(SecretNotFound):
            store.get("missing.com")

    def test_first_upsert_creates(self, store):
        stored, created = store.upsert("example.com", _password())
        assert created is True
        assert store.get("example.com") == stored

    def test_second_upsert_replaces_without_merge(self, store):
        store.upsert("example.com", _password(username="bob", password="x"))
        replacement = _card(domain="example.com")
        _, created = store.upsert("example.com", replacement)
        assert created is False
        fetched = store.get("example.com")
        assert isinstance(fetched, CreditCardSecret)
        assert fetched == replacement
        assert not hasattr(fetched, "username")

    def test_upsert_is_idempotent(self, store):
        store.upsert("example.com", _password())
        store.upsert("example.com", _password())
        assert store.list_all() == [_password()]

    def test_stored_domain_equals_key(self, store):
        stored, _ = store.upsert("vault.example", _password(domain="elsewhere.example"))
        assert stored.domain == "vault.example"
        assert store.get("vault.example").domain == "vault.example"

    def test_delete_then_get_is_not_found(self, store):
        store.upsert("example.com", _password())
        store.delete("example.com")
        with pytest.raises(SecretNotFound):
            store.get("example.com")

    def test_delete_missing_domain_raises_and_keeps_others(self, store):
        store.upsert("example.com", _password())
        with pytest.raises(SecretNotFound):
            store.delete("missing.com")
        assert store.get("example.com") == _password()

    def test_list_all_returns_each_distinct_domain(self, store):
        expected = {f"site{i}.example": _password(domain=f"site{i}.example", username=f"user{i}") for i in range(5)}
        for domain, secret in expected.items():
            store.upsert(domain, secret)
        listed = store.list_all()
        assert len(listed) == 5
        assert {s.domain: s for s in listed} == expected

    def test_lookup_is_case_sensitive(self, store):
        store.upsert("example.com", _password())
        with pytest.raises(SecretNotFound):
            store.get("Example.com")

    def test_password_round_trip(self, store):
        store.upsert("example.com", _password(username="alice", password="s3cret"))
        fetched = store.get("example.com")
        assert isinstance(fetched, PasswordSecret)
        assert fetched.type == "password"
        assert (fetched.username, fetched.password) == ("alice", "s3cret")

    def test_creditcard_round_trip(self, store):
        store.upsert("shop.example", _card())
        fetched = store.get("shop.example")
        assert fetched.type == "creditcard"
        assert (fetched.number, fetched.cvc, fetched.fullname, fetched.year, fetched.month) == (
            "4111111111111111",
            "321",
            "Bob Example",
            2031,
            12,
        )
