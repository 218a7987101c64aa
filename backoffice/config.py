import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./backoffice.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "720"))

# Frontend base URL used in emailed links (sign pages, booking pages)
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

COMPANY_NAME = os.getenv("COMPANY_NAME", "Backoffice")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Backoffice <noreply@example.com>")
# Set EMAIL_ENABLED=false to log instead of sending (local dev, tests)
EMAIL_ENABLED = os.getenv("EMAIL_ENABLED", "true").lower() == "true"

# Rate limiting on public endpoints (booking, contract signing)
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"

ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "http://localhost:5173,http://localhost:3000",
).split(",")

# Contract signature invites
SIGNATURE_INVITE_TTL_DAYS = int(os.getenv("SIGNATURE_INVITE_TTL_DAYS", "14"))
SIGNATURE_OTP_TTL_MINUTES = int(os.getenv("SIGNATURE_OTP_TTL_MINUTES", "30"))
