"""
Application configuration.

Values are read from the process environment, after loading an optional
``.env`` file from the working directory. Every setting has a development
default so the service boots with SQLite and no extra setup.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file (existing variables win)
load_dotenv()

# ──────────────────────────────────────────────────────────────
# Persistence
# ──────────────────────────────────────────────────────────────
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./attendance.db")

# ──────────────────────────────────────────────────────────────
# Authentication
# ──────────────────────────────────────────────────────────────
JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-key")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "720"))

# ──────────────────────────────────────────────────────────────
# Logging
# ──────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ──────────────────────────────────────────────────────────────
# Week records
# ──────────────────────────────────────────────────────────────
WEEK_COUNT = 20                 # Fixed number of week slots per student
UPDATE_MAX_ATTEMPTS = int(os.getenv("UPDATE_MAX_ATTEMPTS", "3"))
AGE_MIN = 5
AGE_MAX = 100
PHONE_LENGTH = 11

# Upper bound on how stale a client's cached read may be (seconds)
CACHE_REFRESH_SECONDS = int(os.getenv("CACHE_REFRESH_SECONDS", "10"))
