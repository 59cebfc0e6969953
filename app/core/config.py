# app/core/config.py
"""Environment-driven settings for the report engine."""

import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return int(value)


# ===== DATABASE =====
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./report_engine.db")

# ===== REPORT EXECUTION =====
# Hard ceiling on rows per page; configuration may lower it but never raise it.
HARD_MAX_LIMIT = 10000
REPORT_DEFAULT_LIMIT = _env_int("REPORT_DEFAULT_LIMIT", 1000)
REPORT_MAX_LIMIT = min(_env_int("REPORT_MAX_LIMIT", HARD_MAX_LIMIT), HARD_MAX_LIMIT)
REPORT_SLOW_QUERY_THRESHOLD_MS = _env_int("REPORT_SLOW_QUERY_THRESHOLD_MS", 5000)

# Field catalogs are resolved fresh per request unless this is switched on.
REPORT_FIELD_CACHE_ENABLED = _env_bool("REPORT_FIELD_CACHE_ENABLED", False)

# ===== LOGGING =====
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
APPLICATION_ID = os.environ.get("APPLICATION_ID", "report-engine")
