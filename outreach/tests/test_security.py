from __future__ import annotations

from datetime import timedelta

import pytest

from outreach.app.security import (
    InvalidTokenError,
    create_access_token,
    decode_token,
    encode_token,
)


def test_expired_token_is_rejected(client, operator):
    token = create_access_token(operator.id, expires_in=timedelta(seconds=-1))

    response = client.get("/import-configs", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Token expired"


def test_tampered_token_is_rejected(client, operator):
    token = create_access_token(operator.id)
    header, payload, signature = token.split(".")
    tampered = f"{header}.{payload}.{signature[::-1]}"

    response = client.get("/import-configs", headers={"Authorization": f"Bearer {tampered}"})

    assert response.status_code == 401


def test_token_for_unknown_user_is_rejected(client):
    token = create_access_token("no-such-user")

    response = client.get("/import-configs", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


def test_valid_token_reaches_the_endpoint(client):
    response = client.get("/import-configs")

    assert response.status_code == 200


def test_decode_token_returns_claims_until_expiry():
    token = encode_token({"sub": "user-1", "exp": 1_000}, b"secret")

    assert decode_token(token, b"secret", now=999)["sub"] == "user-1"
    with pytest.raises(InvalidTokenError, match="Token expired"):
        decode_token(token, b"secret", now=1_000)


@pytest.mark.parametrize("token", ["", "abc", "a.b", "a.b.c.d", "!!.??.##"])
def test_decode_token_rejects_malformed_tokens(token):
    with pytest.raises(InvalidTokenError):
        decode_token(token, b"secret", now=0)


def test_decode_token_rejects_other_keys_and_missing_expiry():
    with pytest.raises(InvalidTokenError):
        decode_token(encode_token({"sub": "u", "exp": 10}, b"one"), b"two", now=0)
    with pytest.raises(InvalidTokenError):
        decode_token(encode_token({"sub": "u"}, b"one"), b"one", now=0)
