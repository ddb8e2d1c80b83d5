"""Tests for password hashing, session tokens and webhook signatures."""

import uuid

import jwt
import pytest

from taskflow.core.config import settings
from taskflow.core.security import (
    create_session_token,
    decode_session_token,
    hash_password,
    sign_payload,
    verify_password,
    verify_signature,
)


def test_password_hash_round_trip():
    stored = hash_password("correct horse")
    assert stored.startswith("$2b$")
    assert verify_password("correct horse", stored)
    assert not verify_password("wrong horse", stored)


def test_password_hash_is_salted():
    assert hash_password("same") != hash_password("same")


@pytest.mark.parametrize("stored", ["", "plain", "scrypt$zz$zz", "$2b$04$tooshort"])
def test_verify_password_rejects_malformed_hashes(stored):
    assert verify_password("anything", stored) is False


def test_session_token_round_trip():
    user_id = uuid.uuid4()
    token = create_session_token(user_id, "standard", 3)
    payload = decode_session_token(token)
    assert payload["sub"] == str(user_id)
    assert payload["role"] == "standard"
    assert payload["token_version"] == 3


def test_session_token_accepts_previous_secret(monkeypatch):
    token = create_session_token(uuid.uuid4(), "admin", 1)
    monkeypatch.setattr(settings, "JWT_SECRET_PREVIOUS", settings.JWT_SECRET)
    monkeypatch.setattr(settings, "JWT_SECRET", "rotated-secret-with-at-least-32-bytes")
    assert decode_session_token(token)["role"] == "admin"


def test_session_token_rejects_unknown_secret(monkeypatch):
    token = create_session_token(uuid.uuid4(), "standard", 1)
    monkeypatch.setattr(settings, "JWT_SECRET", "another-secret-with-at-least-32-bytes")
    with pytest.raises(jwt.InvalidTokenError):
        decode_session_token(token)


def test_signature_verification():
    body = b'{"event": "qr"}'
    signature = sign_payload(body, "s3cret")
    assert signature.startswith("sha256=")
    assert verify_signature(body, signature, "s3cret")
    assert not verify_signature(body + b" ", signature, "s3cret")
    assert not verify_signature(body, signature, "other")
    assert not verify_signature(body, signature.removeprefix("sha256="), "s3cret")
    assert not verify_signature(body, signature, "")


def test_long_password_verifies():
    password = "p" * 100
    assert verify_password(password, hash_password(password))
