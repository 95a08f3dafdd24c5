import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./cleaning_portal.db")

# Auth - CRITICAL: No default JWT secret in production
JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    import warnings

    warnings.warn(
        "JWT_SECRET not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    JWT_SECRET = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only
JWT_ALGORITHM = "HS256"
JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", "365"))

# Frontend base URL, the default CORS origin
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", FRONTEND_URL).split(",")
    if origin.strip()
]

# Stripe Configuration
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_PUBLISHABLE_KEY = os.getenv("STRIPE_PUBLISHABLE_KEY")

# Mercury bank API
MERCURY_API_KEY = os.getenv("MERCURY_API_KEY")
MERCURY_API_URL = os.getenv("MERCURY_API_URL", "https://api.mercury.com/api/v1")

# OpenPhone contacts API
OPENPHONE_API_KEY = os.getenv("OPENPHONE_API_KEY")
OPENPHONE_API_URL = os.getenv("OPENPHONE_API_URL", "https://api.openphone.com/v1")
OPENPHONE_SOURCE = os.getenv("OPENPHONE_SOURCE", "cleaning-portal")

# SMTP Configuration
SMTP_HOST = os.getenv("SMTP_HOST")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER")
SMTP_PASS = os.getenv("SMTP_PASS")
SMTP_FROM = os.getenv("SMTP_FROM", SMTP_USER or "noreply@localhost")
SMTP_USE_SSL = os.getenv("SMTP_USE_SSL", "false").lower() == "true"

# Business defaults
DEFAULT_CANCELLATION_FEE = float(os.getenv("DEFAULT_CANCELLATION_FEE", "50.0"))
# Reports treat calendar days in US Eastern (fixed UTC-5 offset)
REPORT_TZ_OFFSET_HOURS = int(os.getenv("REPORT_TZ_OFFSET_HOURS", "5"))
