# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

- Passwords hashed with bcrypt (cost factor 12)
- Login issues an access/refresh JWT pair
- Refresh rotates: the presented refresh token is revoked and a new pair issued
- Logout revokes every outstanding refresh token of the user
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

import bcrypt
from flask import current_app

from ..errors import AuthenticationError, ConflictError, ValidationError
from ..extensions import db
from ..models import RefreshToken, User
from ..time_utils import utcnow
from . import token_service

MIN_PASSWORD_LENGTH = 8


@dataclass
class Tokens:
    access_token: str
    refresh_token: str


def hash_password(password: str) -> str:
    """Hash password using bcrypt with cost factor 12."""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Verify password against bcrypt hash (constant-time via bcrypt.checkpw)."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


def create_user(name: str, email: str, password: str, role: str = "USER") -> User:
    email = (email or "").strip().lower()
    if not email or not (name or "").strip():
        raise ValidationError("name and email are required")

    if db.session.query(User.id).filter_by(email=email).first():
        raise ConflictError("A user with this email already exists")

    user = User(
        name=name.strip(),
        email=email,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    try:
        db.session.add(user)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return user


def authenticate(email: str, password: str) -> User:
    """
    Check credentials of an active user.

    Raises AuthenticationError with the same message whether the email is
    unknown, the user inactive or the password wrong.
    """
    email = (email or "").strip().lower()
    user = db.session.query(User).filter_by(email=email).first()

    if not user or not user.is_active or not verify_password(password or "", user.password_hash):
        current_app.logger.warning("Rejected login for %s", email or "<empty>")
        raise AuthenticationError("Invalid credentials")

    try:
        user.last_login_at = utcnow()
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return user


def _store_refresh_token(user: User, token: str, jti: str, user_agent: str | None, ip: str | None) -> RefreshToken:
    entity = RefreshToken(
        user_id=user.id,
        token_hash=token_service.hash_token(token),
        jti=jti,
        created_at=utcnow(),
        expires_at=utcnow() + timedelta(seconds=current_app.config["JWT_REFRESH_EXPIRES_SECONDS"]),
        user_agent=(user_agent or "")[:255] or None,
        ip_address=ip,
    )
    db.session.add(entity)
    return entity


def _issue(user: User, user_agent: str | None, ip: str | None) -> Tokens:
    subject = str(user.id)
    access = token_service.generate_access_token(subject, {"email": user.email, "role": user.role})
    refresh, jti = token_service.generate_refresh_token(subject)
    _store_refresh_token(user, refresh, jti, user_agent, ip)
    return Tokens(access_token=access, refresh_token=refresh)


def issue_tokens(user: User, user_agent: str | None = None, ip: str | None = None) -> Tokens:
    try:
        tokens = _issue(user, user_agent, ip)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return tokens


def rotate_refresh_token(refresh_token: str, user_agent: str | None = None, ip: str | None = None) -> tuple[User, Tokens]:
    """
    Exchange a valid refresh token for a new pair; the old one is revoked.

    Raises AuthenticationError for a bad signature, an expired, revoked or
    unknown token, or an inactive user.
    """
    claims = token_service.decode_token(refresh_token or "", token_service.TOKEN_TYPE_REFRESH)
    if claims is None:
        raise AuthenticationError("Invalid refresh token")

    now = utcnow()
    stored = db.session.query(RefreshToken).filter_by(
        token_hash=token_service.hash_token(refresh_token)
    ).first()

    if not stored or stored.is_revoked or stored.expires_at < now or str(stored.user_id) != claims.get("sub"):
        current_app.logger.warning("Rejected refresh token (jti=%s)", claims.get("jti"))
        raise AuthenticationError("Invalid refresh token")

    user = db.session.get(User, stored.user_id)
    if not user or not user.is_active:
        raise AuthenticationError("Invalid refresh token")

    try:
        stored.revoked_at = now
        stored.revoked_reason = "Rotated"
        tokens = _issue(user, user_agent, ip)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return user, tokens


def user_from_access_token(token: str) -> User | None:
    claims = token_service.decode_token(token, token_service.TOKEN_TYPE_ACCESS)
    if claims is None:
        return None
    try:
        user_id = int(claims.get("sub"))
    except (TypeError, ValueError):
        return None

    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        return None
    return user


def logout_all(user: User, reason: str = "User logout") -> int:
    """Revoke every outstanding refresh token of the user. Returns the count."""
    now = utcnow()
    tokens = db.session.query(RefreshToken).filter(
        RefreshToken.user_id == user.id,
        RefreshToken.revoked_at.is_(None),
    ).all()

    try:
        for token in tokens:
            token.revoked_at = now
            token.revoked_reason = reason
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return len(tokens)


def seed_admin(email: str, password: str, name: str) -> User | None:
    """Create the first admin unless a user with that email exists. Returns the new user or None."""
    if db.session.query(User.id).filter_by(email=(email or "").strip().lower()).first():
        return None
    return create_user(name=name, email=email, password=password, role="ADMIN")
