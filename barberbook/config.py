# barberbook/config.py

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# SQLite database (file-based) unless overridden
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./barber.db")
# Seconds to wait on a busy/locked database before giving up
DB_TIMEOUT_SECONDS = float(os.getenv("DB_TIMEOUT_SECONDS", "5"))

SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn("SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2)
    SECRET_KEY = "change-me-later"
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

# Grid step for offered start times. Policy, not precision: keep it at 30.
SLOT_STEP_MINUTES = int(os.getenv("SLOT_STEP_MINUTES", "30"))

# Duration used for an appointment whose linked services carry no duration.
# Unset means such rows raise UnknownDurationError instead of guessing.
_default_duration = os.getenv("DEFAULT_SERVICE_DURATION_MINUTES")
DEFAULT_SERVICE_DURATION_MINUTES = int(_default_duration) if _default_duration else None

# Status a new booking enters: "confirmed" or "pending"
CLIENT_BOOKING_STATUS = os.getenv("CLIENT_BOOKING_STATUS", "confirmed")
BARBER_BOOKING_STATUS = os.getenv("BARBER_BOOKING_STATUS", "confirmed")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
