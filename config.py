"""Configuration for the seminar registration service."""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

_ROOT = Path(__file__).parent

APP_ENV = os.getenv("APP_ENV", "development")
APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:8000")  # Used in links inside notification e-mails
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PUBLIC_DIR = Path(os.getenv("PUBLIC_DIR", str(_ROOT / "public")))

# Database
DATA_DIR = Path(os.getenv("DATA_DIR", str(_ROOT / "data")))
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{DATA_DIR / 'camp.db'}",
)
LEGACY_REGISTRATIONS_FILE = Path(
    os.getenv("LEGACY_REGISTRATIONS_FILE", str(DATA_DIR / "registrations.json"))
)
DB_BUSY_TIMEOUT_SECONDS = float(os.getenv("DB_BUSY_TIMEOUT_SECONDS", "5"))
DB_RETRY_MAX_ATTEMPTS = int(os.getenv("DB_RETRY_MAX_ATTEMPTS", "5"))
DB_RETRY_BASE_DELAY_SECONDS = float(os.getenv("DB_RETRY_BASE_DELAY_SECONDS", "0.12"))

# Admin auth (single configured identity, stateless signed cookie)
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "demo-admin-123")
ADMIN_SESSION_SECRET = os.getenv("ADMIN_SESSION_SECRET", "replace-this-secret-in-production")
ADMIN_SESSION_TTL_SECONDS = 60 * 60 * 12
ADMIN_SESSION_COOKIE = "admin_session"
COOKIE_SECURE = APP_ENV == "production"

# Compliance: versions of the documents a registrant accepts
PRIVACY_POLICY_VERSION = os.getenv("PRIVACY_POLICY_VERSION", "2026-02-26")
TERMS_VERSION = os.getenv("TERMS_VERSION", "2026-02-26")

DEFAULT_BILLING_COUNTRY = os.getenv("DEFAULT_BILLING_COUNTRY", "Hungary")

# Outbound e-mail (Brevo transactional API). Disabled unless provider, key and sender are set.
EMAIL_PROVIDER = os.getenv("EMAIL_PROVIDER", "").strip().lower()
BREVO_API_KEY = os.getenv("BREVO_API_KEY", "").strip()
BREVO_API_URL = "https://api.brevo.com/v3/smtp/email"
EMAIL_FROM = os.getenv("EMAIL_FROM", "").strip()
EMAIL_FROM_NAME = os.getenv("EMAIL_FROM_NAME", "Ishido Sensei - Summer Seminar").strip()
ADMIN_NOTIFY_EMAIL = os.getenv("ADMIN_NOTIFY_EMAIL", "").strip()
EMAIL_REQUEST_TIMEOUT_SECONDS = 8.0
