import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./appointly.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# Frontend base URL for the self-service "manage appointment" links
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Appointly <noreply@appointly.app>")

# Scheduling defaults
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "UTC")
# Slot length used by custom-open exceptions on days without a weekly rule
DEFAULT_SLOT_DURATION_MINUTES = int(os.getenv("DEFAULT_SLOT_DURATION_MINUTES", "30"))

# Self-service tokens
TOKEN_TTL_MINUTES = int(os.getenv("TOKEN_TTL_MINUTES", "10"))

# Precomputed slot cache
SLOT_CACHE_HORIZON_DAYS = int(os.getenv("SLOT_CACHE_HORIZON_DAYS", "30"))
SLOT_CACHE_MAX_AGE_MINUTES = int(os.getenv("SLOT_CACHE_MAX_AGE_MINUTES", "1440"))

# Notification retry policy
NOTIFICATION_MAX_ATTEMPTS = int(os.getenv("NOTIFICATION_MAX_ATTEMPTS", "3"))
NOTIFICATION_BACKOFF_SECONDS = float(os.getenv("NOTIFICATION_BACKOFF_SECONDS", "5"))
NOTIFICATION_BACKOFF_MAX_SECONDS = float(os.getenv("NOTIFICATION_BACKOFF_MAX_SECONDS", "300"))

# Housekeeping
AUDIT_LOG_RETENTION_DAYS = int(os.getenv("AUDIT_LOG_RETENTION_DAYS", "90"))
