"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields so the
API can start without any configuration; in a production deployment
you should at least override ``SECRET_KEY``, ``ADMIN_PASSWORD`` and
``BREVO_API_KEY``.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Event Check-in API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")
    secret_key: str = os.getenv("SECRET_KEY", "change_me")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 12)))

    # Long-lived token that authenticates as the primary administrator
    # without a login round trip.  Leave empty to disable.
    admin_api_token: str = os.getenv("ADMIN_API_TOKEN", "")

    # Comma-separated tokens for door scanners.  Requests carrying one of
    # these tokens get the scanner role and may only verify tickets.
    scanner_tokens: str = os.getenv("SCANNER_TOKENS", "")

    # Bootstrap credentials for the first administrator account.  The
    # account is created by ``init_db`` when no staff accounts exist.
    admin_email: str = os.getenv("ADMIN_EMAIL", "admin@event.com")
    admin_password: str = os.getenv("ADMIN_PASSWORD", "admin")

    # Path or connection string for the SQLite database.  Relative paths
    # are resolved against the project root by the ``db`` module.
    database_url: str = os.getenv("DATABASE_URL", "event_checkin.db")

    # Upper bound on group size; each group member is worth one scan.
    max_group_size: int = int(os.getenv("MAX_GROUP_SIZE", "4"))

    # Transactional email via Brevo (formerly Sendinblue).
    brevo_api_key: str = os.getenv("BREVO_API_KEY", "")
    email_from: str = os.getenv("EMAIL_FROM", "noreply@event.com")
    email_from_name: str = os.getenv("EMAIL_FROM_NAME", "Event Registration")
    site_url: str = os.getenv("SITE_URL", "http://localhost:5000")

    # Directory for uploaded form images, served under /attached_assets.
    upload_dir: str = os.getenv("UPLOAD_DIR", "attached_assets")

    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables must
# be set before this module is imported.
settings = Settings()
