"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields so the
API can start in development without any configuration.  External
integrations (Stripe, SendGrid) stay disabled until their keys are
provided.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "SocialTend API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")

    secret_key: str = os.getenv("JWT_SECRET", "change_me")
    # Tokens live for a week, matching the web client's session length.
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)))

    # Static token granting access to administrative endpoints (feedback
    # review, audit logs).  Admin endpoints are disabled while empty.
    admin_static_token: str = os.getenv("ADMIN_TOKEN", "")

    # Path or connection string for the SQLite database.  Relative paths
    # are resolved relative to the package root by the ``db`` module.
    database_url: str = os.getenv("DATABASE_URL", "socialtend.db")

    # Stripe integration.  Payments answer 503 while the secret key is empty.
    stripe_secret_key: str = os.getenv("STRIPE_SECRET_KEY", "")
    stripe_webhook_secret: str = os.getenv("STRIPE_WEBHOOK_SECRET", "")
    stripe_api_base: str = os.getenv("STRIPE_API_BASE", "https://api.stripe.com/v1")
    payment_currency: str = os.getenv("PAYMENT_CURRENCY", "usd")
    platform_fee_percent: float = float(os.getenv("PLATFORM_FEE_PERCENT", "10"))

    # SendGrid integration.  Emails are skipped with a warning when unset.
    sendgrid_api_key: str = os.getenv("SENDGRID_API_KEY", "")
    sendgrid_api_url: str = os.getenv("SENDGRID_API_URL", "https://api.sendgrid.com/v3/mail/send")
    email_from: str = os.getenv("EMAIL_FROM", "noreply@socialtend.com")
    public_base_url: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:5000")
    email_verification_expire_hours: int = int(os.getenv("EMAIL_VERIFICATION_EXPIRE_HOURS", "24"))
    password_reset_expire_minutes: int = int(os.getenv("PASSWORD_RESET_EXPIRE_MINUTES", "60"))

    # In-memory rate limiting.  Limits are "max requests per window".
    rate_limit_enabled: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() in {"1", "true", "yes"}
    auth_rate_limit: int = int(os.getenv("AUTH_RATE_LIMIT", "5"))
    auth_rate_window_seconds: int = int(os.getenv("AUTH_RATE_WINDOW_SECONDS", str(15 * 60)))
    message_rate_limit: int = int(os.getenv("MESSAGE_RATE_LIMIT", "60"))
    message_rate_window_seconds: int = int(os.getenv("MESSAGE_RATE_WINDOW_SECONDS", "60"))


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables must
# be set before importing this module.
settings = Settings()
