# backend/hortifruti/config.py
from __future__ import annotations
import os


def _split(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/hortifruti.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///hortifruti.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # JWT signing (HS256). Falls back to SECRET_KEY so dev setups need one var.
    JWT_SECRET = os.environ.get("JWT_SECRET", SECRET_KEY)
    JWT_ALGORITHM = "HS256"
    JWT_ACCESS_EXPIRES_SECONDS = int(os.environ.get("JWT_ACCESS_EXPIRES_SECONDS", "900"))
    JWT_REFRESH_EXPIRES_SECONDS = int(os.environ.get("JWT_REFRESH_EXPIRES_SECONDS", "604800"))

    # Applied by the sales routes when the frontend omits the payment method.
    DEFAULT_PAYMENT_METHOD = os.environ.get("DEFAULT_PAYMENT_METHOD", "pix")

    CORS_ALLOWED_ORIGINS = _split(os.environ.get(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
    ))

    # First administrator, created by `flask users seed-admin`
    ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", "admin@hortiflow.com")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "admin123")
    ADMIN_NAME = os.environ.get("ADMIN_NAME", "Admin")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
