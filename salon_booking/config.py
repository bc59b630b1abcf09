"""Default configuration, read from the environment."""
from __future__ import annotations

import os


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    return int(value) if value not in (None, "") else default


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///salon_booking.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False

    # Comma separated list; "*" allows every origin
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    AUTH_TOKEN_MAX_AGE = _env_int("AUTH_TOKEN_MAX_AGE", 86400)

    SERVICE_CACHE_TTL = _env_int("SERVICE_CACHE_TTL", 300)
    CACHE_REDIS_URL = os.environ.get("CACHE_REDIS_URL", "")

    BOOKING_LOCK_TIMEOUT_MS = _env_int("BOOKING_LOCK_TIMEOUT_MS", 3000)
    BOOKING_LOCK_RETRIES = _env_int("BOOKING_LOCK_RETRIES", 3)

    SALON_TIMEZONE = os.environ.get("SALON_TIMEZONE", "Europe/Paris")
