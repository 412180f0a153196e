# Overview: JWT issuing/parsing and refresh-token hashing.

"""
Access and refresh tokens are HS256 JWTs.

- Access token: sub, email, role, type=access. Short lived.
- Refresh token: sub, jti, type=refresh. Stored server-side only as its
  SHA-256 hex digest; rows are looked up by that digest.
"""

from __future__ import annotations

import hashlib
import uuid
from datetime import datetime, timedelta, timezone

from flask import current_app
from jose import JWTError, jwt

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"


def _encode(claims: dict, expires_in: int) -> str:
    now = datetime.now(timezone.utc)
    payload = dict(claims)
    payload.update({
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    })
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET"],
        algorithm=current_app.config["JWT_ALGORITHM"],
    )


def generate_access_token(subject: str, claims: dict | None = None) -> str:
    payload = dict(claims or {})
    payload.update({"sub": subject, "type": TOKEN_TYPE_ACCESS})
    return _encode(payload, current_app.config["JWT_ACCESS_EXPIRES_SECONDS"])


def generate_refresh_token(subject: str, jti: str | None = None) -> tuple[str, str]:
    """Returns (token, jti)."""
    jti = jti or uuid.uuid4().hex
    token = _encode(
        {"sub": subject, "jti": jti, "type": TOKEN_TYPE_REFRESH},
        current_app.config["JWT_REFRESH_EXPIRES_SECONDS"],
    )
    return token, jti


def decode_token(token: str, expected_type: str) -> dict | None:
    """Verified claims, or None for a bad signature, expiry or wrong type."""
    try:
        payload = jwt.decode(
            token,
            current_app.config["JWT_SECRET"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
        )
    except JWTError:
        return None

    if payload.get("type") != expected_type:
        return None
    return payload


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()
