# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- POST /login: email + password -> access/refresh pair
- POST /refresh: rotate the refresh token
- POST /logout: revoke every refresh token of the caller
- GET /me: profile of the caller
"""

from flask import Blueprint, request, g

from ..decorators import require_auth
from ..errors import ValidationError
from ..services import auth_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _token_response(user, tokens, message: str) -> dict:
    return {
        "success": True,
        "message": message,
        "access_token": tokens.access_token,
        "refresh_token": tokens.refresh_token,
        "token_type": "Bearer",
        "user": user.to_dict(),
    }


@auth_bp.post("/login")
def login_route():
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    if not all([email, password]):
        raise ValidationError("email and password required")

    user = auth_service.authenticate(email, password)
    tokens = auth_service.issue_tokens(
        user,
        user_agent=request.headers.get("User-Agent"),
        ip=request.remote_addr,
    )
    return _token_response(user, tokens, "Login successful"), 200


@auth_bp.post("/refresh")
def refresh_route():
    data = request.get_json(silent=True) or {}
    refresh_token = data.get("refresh_token")
    if not refresh_token:
        raise ValidationError("refresh_token required")

    user, tokens = auth_service.rotate_refresh_token(
        refresh_token,
        user_agent=request.headers.get("User-Agent"),
        ip=request.remote_addr,
    )
    return _token_response(user, tokens, "Token refreshed"), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    auth_service.logout_all(g.current_user)
    return "", 204


@auth_bp.get("/me")
@require_auth
def me_route():
    return {"user": g.current_user.to_dict()}, 200
