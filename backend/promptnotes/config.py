"""
Configuration management for the application.

Loads environment variables and provides centralized config access.
"""

import os
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Application configuration"""

    # Flask settings
    FLASK_ENV: str = os.getenv("FLASK_ENV", "development")
    DEBUG: bool = FLASK_ENV == "development"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Redis settings
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    # Session settings
    JWT_SECRET: str = os.getenv("JWT_SECRET") or "fallback-secret-key-for-development"
    JWT_ALGORITHM: str = "HS256"
    SESSION_COOKIE_NAME: str = os.getenv("SESSION_COOKIE_NAME", "promptnotes_session")
    SESSION_MAX_AGE_SECONDS: int = 7 * 24 * 60 * 60
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))
    MIN_PASSWORD_LENGTH: int = 6

    # CORS + routing
    FRONTEND_URL: Optional[str] = os.getenv("FRONTEND_URL")
    DEV_ORIGINS: List[str] = [
        "http://localhost:5173",  # Local Vite dev server
        "http://localhost:8888",  # Netlify dev
    ]
    FUNCTION_PATH_PREFIXES: List[str] = [
        p.strip()
        for p in os.getenv("FUNCTION_PATH_PREFIXES", "/.netlify/functions,/api").split(",")
        if p.strip()
    ]

    # Image storage settings (S3-compatible)
    S3_BUCKET: Optional[str] = os.getenv("S3_BUCKET")
    AWS_REGION: Optional[str] = os.getenv("AWS_REGION")
    AWS_ACCESS_KEY_ID: Optional[str] = os.getenv("AWS_ACCESS_KEY_ID")
    AWS_SECRET_ACCESS_KEY: Optional[str] = os.getenv("AWS_SECRET_ACCESS_KEY")
    S3_ENDPOINT_URL: Optional[str] = os.getenv("S3_ENDPOINT_URL")
    S3_PUBLIC_BASE_URL: Optional[str] = os.getenv("S3_PUBLIC_BASE_URL")
    S3_KEY_PREFIX: str = os.getenv("S3_KEY_PREFIX", "")

    # Checked by /health against the live environment
    REQUIRED_ENV_VARS: tuple = ("REDIS_URL", "JWT_SECRET")

    @classmethod
    def is_production(cls) -> bool:
        return cls.FLASK_ENV == "production"

    @classmethod
    def allowed_origins(cls) -> List[str]:
        origins = list(cls.DEV_ORIGINS)
        if cls.FRONTEND_URL:
            origins.append(cls.FRONTEND_URL)
        return origins

    @classmethod
    def missing_env_vars(cls) -> List[str]:
        """Names of required variables that are unset right now."""
        return [name for name in cls.REQUIRED_ENV_VARS if not os.getenv(name)]

    @classmethod
    def validate(cls):
        """Validate required configuration"""
        errors = []

        if cls.is_production() and not os.getenv("JWT_SECRET"):
            errors.append("JWT_SECRET is not set")

        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")


