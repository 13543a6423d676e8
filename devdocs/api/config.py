"""
Environment-aware configuration.
Values are read once at import time from the process environment (and .env).
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present

DEV_ACCESS_SECRET = "dev_access"
DEV_REFRESH_SECRET = "dev_refresh"


def _env_bool(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Credentialed CORS cannot use '*'; supply a comma-separated list in env
    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()]

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///devdocs.db")
    SQL_ECHO = _env_bool("SQL_ECHO")

    # Access and refresh tokens are signed with different secrets
    JWT_SECRET = os.getenv("JWT_SECRET", DEV_ACCESS_SECRET)
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET", DEV_REFRESH_SECRET)
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRES = timedelta(minutes=int(os.getenv("ACCESS_TOKEN_EXPIRES_MINUTES", "15")))
    REFRESH_TOKEN_EXPIRES = timedelta(days=7)

    # Refresh cookie; same-site defaults suit local development over plain http
    REFRESH_COOKIE_NAME = "rt"
    REFRESH_COOKIE_SECURE = False
    REFRESH_COOKIE_SAMESITE = "Lax"
    COOKIE_DOMAIN = os.getenv("COOKIE_DOMAIN") or None

    # Per-IP budget shared by register, login, forgot-password and reset-password
    AUTH_RATE_LIMIT = int(os.getenv("AUTH_RATE_LIMIT", "10"))
    AUTH_RATE_WINDOW_SECONDS = int(os.getenv("AUTH_RATE_WINDOW_SECONDS", str(15 * 60)))

    # Password reset + outgoing mail
    RESET_TOKEN_EXPIRES = timedelta(minutes=10)
    CLIENT_URL = os.getenv("CLIENT_URL", "http://localhost:5173").rstrip("/")
    APP_NAME = os.getenv("APP_NAME", "DevDocs AI")
    COMPANY_NAME = os.getenv("COMPANY_NAME", "DevDocs Inc.")
    SUPPORT_URL = os.getenv("SUPPORT_URL", f"{CLIENT_URL}/support")
    MAIL_SERVER = os.getenv("MAIL_SERVER", "")
    MAIL_PORT = int(os.getenv("MAIL_PORT", "587"))
    MAIL_USERNAME = os.getenv("MAIL_USERNAME", "")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD", "")
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", "1")
    MAIL_SENDER = os.getenv("MAIL_SENDER", "noreply@devdocs.local")

    # Documentation generator (Gemini REST)
    GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "")
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "models/gemini-2.5-flash")
    GEMINI_TIMEOUT_SECONDS = float(os.getenv("GEMINI_TIMEOUT_SECONDS", "30"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class TestingConfig(BaseConfig):
    TESTING = True
    APP_ENV = "test"
    DATABASE_URL = "sqlite://"
    SQL_ECHO = False
    JWT_SECRET = "test-access-secret"
    JWT_REFRESH_SECRET = "test-refresh-secret"
    GOOGLE_API_KEY = ""
    MAIL_SERVER = ""


class ProductionConfig(BaseConfig):
    DEBUG = False
    APP_ENV = "prod"
    # Cross-site SPA deployments only send the cookie with SameSite=None; Secure
    REFRESH_COOKIE_SECURE = True
    REFRESH_COOKIE_SAMESITE = "None"


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig


def check_secrets(config) -> None:
    """Refuse to start with signing secrets that defeat the two-secret scheme."""
    if config["JWT_SECRET"] == config["JWT_REFRESH_SECRET"]:
        raise RuntimeError("JWT_SECRET and JWT_REFRESH_SECRET must differ")
    if config["APP_ENV"] in ("prod", "production") and (
        config["JWT_SECRET"] == DEV_ACCESS_SECRET or config["JWT_REFRESH_SECRET"] == DEV_REFRESH_SECRET
    ):
        raise RuntimeError("Development JWT secrets cannot be used in production")
