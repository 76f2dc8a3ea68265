"""Configuration module for the Skill Tree progress tracker.

This module provides centralized configuration management, including directory
paths, database settings, credential hashing cost and seed defaults.
All configuration values can be overridden via environment variables.
"""

import os
from pathlib import Path
from typing import List

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

DATABASE_FILE_NAME = "skill_tree.db"

# Any SQLAlchemy URL; SQLite and PostgreSQL are supported by the ledger upserts
DATABASE_URL: str = os.getenv(
    "DATABASE_URL", f"sqlite:///{DATA_DIR / DATABASE_FILE_NAME}"
)

# Echo SQL statements (set to "true" for debugging)
DATABASE_ECHO: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"

# --- Logging Configuration ---

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# --- Authentication Configuration ---

# Bcrypt rounds for password hashing (higher = more secure but slower)
BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

MIN_PASSWORD_LENGTH: int = int(os.getenv("MIN_PASSWORD_LENGTH", "6"))

# --- Role Configuration ---

ROLES: List[str] = ["student", "instructor", "admin"]

# Roles an admin may assign directly; admin requires the promotion workflow
DIRECTLY_ASSIGNABLE_ROLES: List[str] = ["student", "instructor"]

# Roles allowed to review submissions
REVIEWER_ROLES: List[str] = ["instructor", "admin"]

# --- Uploaded Proof Files ---

# Submissions store only an opaque file reference; it is resolved against this
# base URL when reports are built.
UPLOADS_BASE_URL: str = os.getenv("UPLOADS_BASE_URL", "/uploads").rstrip("/")

# --- Seed Configuration ---

DEFAULT_ADMIN_USERNAME: str = os.getenv("DEFAULT_ADMIN_USERNAME", "admin")
DEFAULT_ADMIN_EMAIL: str = os.getenv("DEFAULT_ADMIN_EMAIL", "admin@skilltree.edu")
DEFAULT_ADMIN_PASSWORD: str = os.getenv("DEFAULT_ADMIN_PASSWORD", "admin123")
