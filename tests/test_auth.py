"""Tests for the signed admin session token."""
import pytest

from web.auth import create_session_token, credentials_match, verify_session_token

SECRET = "unit-test-secret"
NOW = 1_767_000_000


def test_round_trip_token_is_valid():
    token = create_session_token("admin", SECRET, ttl_seconds=60, now=NOW)
    assert verify_session_token(token, "admin", SECRET, now=NOW + 30)


def test_token_valid_until_expiry_second():
    token = create_session_token("admin", SECRET, ttl_seconds=60, now=NOW)
    assert verify_session_token(token, "admin", SECRET, now=NOW + 60)
    assert not verify_session_token(token, "admin", SECRET, now=NOW + 61)


def test_wrong_secret_rejected():
    token = create_session_token("admin", SECRET, now=NOW)
    assert not verify_session_token(token, "admin", "another-secret", now=NOW)


def test_other_username_rejected():
    token = create_session_token("admin", SECRET, now=NOW)
    assert not verify_session_token(token, "root", SECRET, now=NOW)


def test_payload_tampering_rejected():
    token = create_session_token("admin", SECRET, ttl_seconds=60, now=NOW)
    forged = create_session_token("admin", SECRET, ttl_seconds=10_000, now=NOW)
    tampered = forged.split(".")[0] + "." + token.split(".")[1]
    assert not verify_session_token(tampered, "admin", SECRET, now=NOW)


@pytest.mark.parametrize("token", [
    None,
    "",
    "no-dot",
    ".",
    "a.",
    ".b",
    "a.b.c",
    "!!!.???",
])
def test_malformed_tokens_rejected(token):
    assert not verify_session_token(token, "admin", SECRET, now=NOW)


def test_credentials_match_uses_configured_identity():
    assert credentials_match("admin", "testpass123")
    assert not credentials_match("admin", "testpass1234")
    assert not credentials_match("Admin", "testpass123")
    assert not credentials_match("", "")
