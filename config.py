"""
Application configuration: environment-aware settings.

All environment variables are documented here. See .env.example for a template.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).parent


class BaseConfig:
    # Core Flask
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-key-change-in-production")
    JSON_SORT_KEYS = False

    # Session security
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    PERMANENT_SESSION_LIFETIME = 86400

    # Persistence medium: "file" (default), "memory" or "redis"
    STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "file")
    STORAGE_PATH = os.environ.get("STORAGE_PATH", str(BASE_DIR / "school_data"))
    # Capacity of the memory/file medium in bytes; 0 disables the check.
    # 5 MiB matches the browser local-storage budget the dashboard ran under.
    STORAGE_QUOTA_BYTES = int(os.environ.get("STORAGE_QUOTA_BYTES", str(5 * 1024 * 1024)))
    REDIS_URL = os.environ.get("REDIS_URL", "")

    # Logging
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")  # "json" or "text"
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Grading
    PASS_PERCENTAGE = float(os.environ.get("PASS_PERCENTAGE", "40"))
    CLAMP_NEGATIVE_SCORES = os.environ.get("CLAMP_NEGATIVE_SCORES", "").lower() in ("1", "true", "yes")

    # Fees
    FEE_DUE_MONTHS = int(os.environ.get("FEE_DUE_MONTHS", "3"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")


class ProductionConfig(BaseConfig):
    DEBUG = False
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json")
    SESSION_COOKIE_SECURE = True

    @classmethod
    def validate(cls):
        """Fail fast on missing or insecure configuration in production."""
        errors: list[str] = []

        if cls.SECRET_KEY in ("dev-key-change-in-production", ""):
            errors.append("SECRET_KEY must be set to a secure value in production.")

        if cls.STORAGE_BACKEND not in ("file", "memory", "redis"):
            errors.append(f"Unknown STORAGE_BACKEND {cls.STORAGE_BACKEND!r}.")

        if cls.STORAGE_BACKEND == "redis" and not cls.REDIS_URL:
            errors.append("REDIS_URL must be set when STORAGE_BACKEND is 'redis'.")

        if errors:
            raise RuntimeError(
                "Production configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            )


class TestingConfig(BaseConfig):
    TESTING = True
    STORAGE_BACKEND = "memory"
    STORAGE_QUOTA_BYTES = 0


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
