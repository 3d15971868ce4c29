"""Tests for media token issuance and validation"""
import time

import pytest

from app.errors import BadSignature, ConfigurationError, TokenExpired, TokenRevoked, WrongCapability
from app.utils.media_tokens import DOCUMENT, VIDEO, MediaTokenService
from app.utils.revocation import InMemoryRevocationRegistry


@pytest.fixture
def registry():
    return InMemoryRevocationRegistry(retention_seconds=7200)


@pytest.fixture
def service(registry):
    return MediaTokenService("media-secret", registry)


def test_issue_and_validate(service):
    """A token validates for the capability it was issued with"""
    token = service.issue("usr_1", "cnt_1", VIDEO)

    claims = service.validate(token, VIDEO)
    assert claims.subject == "usr_1"
    assert claims.resource == "cnt_1"
    assert claims.capability == VIDEO
    assert claims.expires_at > time.time()


def test_default_ttls(service):
    now = int(time.time())
    video = service.validate(service.issue("usr_1", "cnt_1", VIDEO), VIDEO)
    document = service.validate(service.issue("usr_1", "cnt_1", DOCUMENT), DOCUMENT)

    assert 3590 <= video.expires_at - now <= 3610
    assert 7190 <= document.expires_at - now <= 7210


def test_registry_outlives_longest_token(client):
    """Revocations are kept for as long as a document token can live"""
    service = client.app.state.media_tokens
    assert service.registry.retention_seconds == 7200


def test_tokens_are_unique(service):
    """Same user, content and capability still yields distinct tokens"""
    first = service.issue("usr_1", "cnt_1", VIDEO)
    second = service.issue("usr_1", "cnt_1", VIDEO)
    assert first != second


def test_revoking_one_token_leaves_sibling_valid(service):
    first = service.issue("usr_1", "cnt_1", VIDEO)
    second = service.issue("usr_1", "cnt_1", VIDEO)

    service.revoke(first)

    with pytest.raises(TokenRevoked):
        service.validate(first, VIDEO)
    assert service.validate(second, VIDEO).resource == "cnt_1"


def test_expired_token(registry):
    """Tokens issued two hours ago with a one hour TTL are expired"""
    past = MediaTokenService("media-secret", registry, clock=lambda: time.time() - 7200)
    token = past.issue("usr_1", "cnt_1", VIDEO)

    current = MediaTokenService("media-secret", registry)
    with pytest.raises(TokenExpired) as exc_info:
        current.validate(token, VIDEO)
    assert exc_info.value.reason == "expired"
    assert exc_info.value.status_code == 401


def test_wrong_capability(service):
    token = service.issue("usr_1", "cnt_1", DOCUMENT)
    with pytest.raises(WrongCapability):
        service.validate(token, VIDEO)


def test_bad_signature(registry, service):
    other = MediaTokenService("another-secret", registry)
    token = other.issue("usr_1", "cnt_1", VIDEO)

    with pytest.raises(BadSignature):
        service.validate(token, VIDEO)
    with pytest.raises(BadSignature):
        service.validate("not-a-token", VIDEO)
    with pytest.raises(BadSignature):
        service.validate("", VIDEO)


def test_revocation_checked_before_expiry(registry):
    """An expired and revoked token reports revoked"""
    past = MediaTokenService("media-secret", registry, clock=lambda: time.time() - 7200)
    token = past.issue("usr_1", "cnt_1", VIDEO)
    past.revoke(token)

    with pytest.raises(TokenRevoked):
        MediaTokenService("media-secret", registry).validate(token, VIDEO)


def test_session_token_is_not_a_media_token(service):
    """A JWT signed with the same secret but without media claims is rejected"""
    from jose import jwt

    token = jwt.encode({"sub": "usr_1", "exp": int(time.time()) + 60, "type": "user"}, "media-secret", algorithm="HS256")
    with pytest.raises(BadSignature):
        service.validate(token, VIDEO)


def test_missing_secret_is_fatal(registry):
    with pytest.raises(ConfigurationError):
        MediaTokenService("", registry)


def test_unknown_capability(service):
    with pytest.raises(ValueError):
        service.issue("usr_1", "cnt_1", "media-audio")
