from datetime import timedelta

import pytest
from jose import jwt

from karnya.core.db import utcnow
from karnya.core.errors import InvalidToken
from karnya.core.security import Identity, TokenService, hash_password, verify_password

SECRET = "unit-secret"


def test_hash_is_salted_and_verifiable():
    first, second = hash_password("secret1"), hash_password("secret1")
    assert first != "secret1"
    assert first != second
    assert verify_password("secret1", first)
    assert verify_password("secret1", second)
    assert not verify_password("secret2", first)


def test_verify_rejects_non_hash():
    assert not verify_password("secret1", "secret1")
    assert not verify_password("secret1", "")


def test_session_token_carries_identity():
    service = TokenService(SECRET)
    alice = Identity(7, "alice@example.com", "admin")

    token = service.issue_session_token(alice)

    assert service.validate(token) == alice
    claims = jwt.get_unverified_claims(token)
    assert claims["sub"] == "7"
    assert claims["exp"] - claims["iat"] == int(timedelta(days=30).total_seconds())


def test_expired_session_token_rejected():
    service = TokenService(SECRET, session_ttl=timedelta(seconds=-5))
    token = service.issue_session_token(Identity(1, "a@example.com", "user"))
    with pytest.raises(InvalidToken):
        service.validate(token)


def test_token_signed_with_other_secret_rejected():
    token = TokenService("other").issue_session_token(Identity(1, "a@example.com", "user"))
    with pytest.raises(InvalidToken):
        TokenService(SECRET).validate(token)


def test_tampered_token_rejected():
    service = TokenService(SECRET)
    header, payload, signature = service.issue_session_token(Identity(1, "a@example.com", "user")).split(".")
    forged = jwt.encode({"sub": "1", "email": "a@example.com", "role": "super_admin"}, "guess")
    with pytest.raises(InvalidToken):
        service.validate(".".join([header, forged.split(".")[1], signature]))


@pytest.mark.parametrize(
    "claims",
    [
        {"email": "a@example.com", "role": "user"},
        {"sub": "1", "role": "user"},
        {"sub": "1", "email": "a@example.com"},
        {"sub": "not-a-number", "email": "a@example.com", "role": "user"},
    ],
)
def test_malformed_claims_fail_like_bad_signature(claims):
    service = TokenService(SECRET)
    token = jwt.encode(claims, SECRET, algorithm="HS256")
    with pytest.raises(InvalidToken) as exc:
        service.validate(token)
    assert exc.value.message == InvalidToken.message


def test_garbage_token_rejected():
    with pytest.raises(InvalidToken):
        TokenService(SECRET).validate("not.a.jwt")


def test_reset_token_expires_in_an_hour():
    before = utcnow()
    token, expires = TokenService(SECRET).issue_reset_token()
    assert token
    assert before + timedelta(minutes=59) < expires <= utcnow() + timedelta(hours=1)


def test_verification_tokens_are_unique():
    tokens = {TokenService.issue_verification_token() for _ in range(50)}
    assert len(tokens) == 50
