"""Bearer token authentication for the outreach API.

Tokens are compact HS256 JWTs carrying the user id in ``sub``. They are issued
by the operator backoffice (or :func:`create_access_token` in scripts and
tests) and only verified here.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import os
import time
from datetime import timedelta
from functools import lru_cache
from typing import Any, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from . import models
from .database import get_db

JWT_SECRET_ENV = "OUTREACH_JWT_SECRET"
TOKEN_LIFETIME_ENV = "ACCESS_TOKEN_EXPIRE_MINUTES"
DEFAULT_TOKEN_LIFETIME = timedelta(minutes=30)

_HEADER = {"alg": "HS256", "typ": "JWT"}

bearer_scheme = HTTPBearer(auto_error=False)


class SecurityConfigurationError(RuntimeError):
    """Raised when mandatory security settings are missing or invalid."""


class InvalidTokenError(ValueError):
    """A bearer token that cannot be trusted."""


@lru_cache(maxsize=1)
def _signing_key() -> bytes:
    secret = os.getenv(JWT_SECRET_ENV)
    if not secret:
        raise SecurityConfigurationError(f"Environment variable '{JWT_SECRET_ENV}' is required")
    try:
        return base64.urlsafe_b64decode(secret)
    except (ValueError, binascii.Error):
        return secret.encode("utf-8")


def _token_lifetime() -> timedelta:
    raw = os.getenv(TOKEN_LIFETIME_ENV)
    if not raw:
        return DEFAULT_TOKEN_LIFETIME
    try:
        minutes = int(raw)
    except ValueError as exc:
        raise SecurityConfigurationError(f"{TOKEN_LIFETIME_ENV} must be an integer") from exc
    if minutes <= 0:
        raise SecurityConfigurationError(f"{TOKEN_LIFETIME_ENV} must be positive")
    return timedelta(minutes=minutes)


def _segment(document: dict[str, Any]) -> str:
    raw = json.dumps(document, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _unsegment(segment: str) -> bytes:
    return base64.urlsafe_b64decode(segment + "=" * (-len(segment) % 4))


def _sign(signing_input: str, key: bytes) -> bytes:
    return hmac.new(key, signing_input.encode("utf-8"), hashlib.sha256).digest()


def encode_token(claims: dict[str, Any], key: bytes) -> str:
    signing_input = f"{_segment(_HEADER)}.{_segment(claims)}"
    signature = base64.urlsafe_b64encode(_sign(signing_input, key)).rstrip(b"=").decode("ascii")
    return f"{signing_input}.{signature}"


def decode_token(token: str, key: bytes, *, now: Optional[float] = None) -> dict[str, Any]:
    """Verify ``token`` and return its claims, raising :class:`InvalidTokenError`."""

    signing_input, _, signature = token.rpartition(".")
    if signing_input.count(".") != 1:
        raise InvalidTokenError("Invalid token")
    try:
        provided = _unsegment(signature)
        claims = json.loads(_unsegment(signing_input.split(".")[1]))
    except (ValueError, binascii.Error) as exc:
        raise InvalidTokenError("Invalid token") from exc
    if not hmac.compare_digest(provided, _sign(signing_input, key)):
        raise InvalidTokenError("Invalid token")
    if not isinstance(claims, dict) or not isinstance(claims.get("exp"), (int, float)):
        raise InvalidTokenError("Invalid token")
    if (now if now is not None else time.time()) >= claims["exp"]:
        raise InvalidTokenError("Token expired")
    return claims


def create_access_token(user_id: str, *, expires_in: Optional[timedelta] = None) -> str:
    """Issue a token whose subject is ``user_id``."""

    issued_at = int(time.time())
    lifetime = expires_in if expires_in is not None else _token_lifetime()
    claims = {"sub": user_id, "iat": issued_at, "exp": issued_at + int(lifetime.total_seconds())}
    return encode_token(claims, _signing_key())


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> models.User:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise _unauthorized("Not authenticated")
    try:
        claims = decode_token(credentials.credentials, _signing_key())
    except InvalidTokenError as exc:
        raise _unauthorized(str(exc)) from exc

    user_id = claims.get("sub")
    user = db.get(models.User, user_id) if isinstance(user_id, str) else None
    if user is None:
        raise _unauthorized("Invalid token")
    return user
