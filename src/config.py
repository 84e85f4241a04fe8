"""Configuration module for the user administration service.

This module provides centralized configuration management, including directory
paths, database and API server settings, authentication and import limits.
All configuration values can be overridden via environment variables.
"""

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# --- Directory Configuration ---

# Root directory of the project
ROOT_DIR = Path(__file__).parent.parent.resolve()

# Data directory name
DATA_DIR_NAME = "data"
DATA_DIR = Path(os.getenv("DATA_DIR", str(ROOT_DIR / DATA_DIR_NAME)))

# --- Database Configuration ---

DATABASE_URL: str = os.getenv("DATABASE_URL", f"sqlite:///{DATA_DIR}/user_admin.db")

# --- API Server Configuration ---

API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "8000"))

# CORS allowed origins (comma-separated list)
# Default includes local development addresses. For production, set via
# CORS_ALLOWED_ORIGINS environment variable.
_CORS_ALLOWED_ORIGINS_STR: str = os.getenv(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,"
    "http://127.0.0.1:3000",
)
CORS_ALLOWED_ORIGINS: List[str] = [
    origin.strip()
    for origin in _CORS_ALLOWED_ORIGINS_STR.split(",")
    if origin.strip()
]

# --- Logging Configuration ---

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# --- Authentication Configuration ---

JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "change-me-in-production")
JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
    os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24))
)

AUTH_COOKIE_NAME: str = os.getenv("AUTH_COOKIE_NAME", "auth-token")
AUTH_COOKIE_SECURE: bool = os.getenv("AUTH_COOKIE_SECURE", "false").lower() == "true"

# Bcrypt work factor (2^rounds iterations). Keep >= 12 outside of tests.
BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

# --- Seed Administrator ---

# The administrator is only seeded when ADMIN_PASSWORD is set.
ADMIN_EMAIL: str = os.getenv("ADMIN_EMAIL", "admin@admin.com")
ADMIN_PASSWORD: Optional[str] = os.getenv("ADMIN_PASSWORD")
ADMIN_FIRST_NAME: str = os.getenv("ADMIN_FIRST_NAME", "Admin")
ADMIN_LAST_NAME: str = os.getenv("ADMIN_LAST_NAME", "User")
ADMIN_AGE: int = int(os.getenv("ADMIN_AGE", "30"))

# --- Listing Configuration ---

DEFAULT_PAGE_SIZE: int = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))
MAX_PAGE_SIZE: int = int(os.getenv("MAX_PAGE_SIZE", "100"))

# Columns the user listing may be sorted by
SORTABLE_FIELDS: List[str] = [
    "created_at",
    "updated_at",
    "first_name",
    "last_name",
    "email",
    "age",
]

# --- Spreadsheet Import Configuration ---

MAX_UPLOAD_SIZE: int = int(os.getenv("MAX_UPLOAD_SIZE", str(5 * 1024 * 1024)))

SPREADSHEET_CONTENT_TYPES: List[str] = [
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",  # .xlsx
    "application/vnd.ms-excel",  # .xls
]
SPREADSHEET_EXTENSIONS: List[str] = [".xlsx", ".xls"]
