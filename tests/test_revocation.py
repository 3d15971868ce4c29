"""Tests for the media token revocation registries"""
from datetime import datetime, timedelta

from app.models.revoked_token import RevokedMediaToken
from app.utils.revocation import DatabaseRevocationRegistry, InMemoryRevocationRegistry


class FakeClock:
    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now


def test_memory_registry_revoke():
    registry = InMemoryRevocationRegistry(retention_seconds=60)

    assert registry.is_revoked("token-a") is False
    registry.revoke("token-a")
    assert registry.is_revoked("token-a") is True
    assert registry.is_revoked("token-b") is False


def test_memory_registry_forgets_after_retention():
    clock = FakeClock(1000.0)
    registry = InMemoryRevocationRegistry(retention_seconds=60, clock=clock)
    registry.revoke("token-a")

    clock.now = 1059.0
    assert registry.is_revoked("token-a") is True

    clock.now = 1061.0
    assert registry.is_revoked("token-a") is False
    assert len(registry) == 0


def test_memory_registry_revoke_is_idempotent():
    registry = InMemoryRevocationRegistry(retention_seconds=60)
    registry.revoke("token-a")
    registry.revoke("token-a")
    assert len(registry) == 1


def test_database_registry(db, session_factory):
    clock = FakeClock(datetime(2026, 1, 1, 12, 0, 0))
    registry = DatabaseRevocationRegistry(session_factory, retention_seconds=3600, clock=clock)

    registry.revoke("token-a")
    registry.revoke("token-a")

    assert registry.is_revoked("token-a") is True
    assert registry.is_revoked("token-b") is False

    # Only a digest is stored
    rows = db.query(RevokedMediaToken).all()
    assert len(rows) == 1
    assert rows[0].token_hash != "token-a"
    assert len(rows[0].token_hash) == 64

    clock.now = clock.now + timedelta(seconds=3601)
    assert registry.is_revoked("token-a") is False


def test_database_registry_purges_expired_rows(db, session_factory):
    clock = FakeClock(datetime(2026, 1, 1, 12, 0, 0))
    registry = DatabaseRevocationRegistry(session_factory, retention_seconds=60, clock=clock)
    registry.revoke("token-a")

    clock.now = clock.now + timedelta(seconds=120)
    registry.revoke("token-b")

    db.expire_all()
    assert db.query(RevokedMediaToken).count() == 1
