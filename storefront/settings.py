"""Runtime configuration read from environment variables.

Values are resolved once at import time. Tests override individual
attributes with ``monkeypatch.setattr(settings, ...)``; code that needs a
value at call time reads it with ``getattr(settings, NAME, default)``.
"""

import os


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


DB_HOST = os.getenv("DB_HOST", "orders-db")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME", "storefront")
DB_USER = os.getenv("DB_USER", "storefront_user")
DB_PASSWORD = os.getenv("DB_PASSWORD", "storefront-pass")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+psycopg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)
DB_STARTUP_TIMEOUT_SECS = float(os.getenv("DB_STARTUP_TIMEOUT_SECS", "30"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
API_MAX_BYTES = int(os.getenv("API_MAX_BYTES", str(1 * 1024 * 1024)))

# Outbound adapters
USE_HTTP_ADAPTERS = _flag("USE_HTTP_ADAPTERS", "true")
SEND_ORDER_CONFIRMATION = _flag("SEND_ORDER_CONFIRMATION", "false")
EMAIL_BASE_URL = os.getenv("EMAIL_BASE_URL", "http://email:9003")

HTTP_TIMEOUT_SECS = float(os.getenv("HTTP_TIMEOUT_SECS", "2.0"))
HTTP_RETRY_MAX = int(os.getenv("HTTP_RETRY_MAX", "3"))
HTTP_RETRY_BACKOFF_BASE = float(os.getenv("HTTP_RETRY_BACKOFF_BASE", "0.15"))
HTTP_RETRY_MAX_SLEEP = float(os.getenv("HTTP_RETRY_MAX_SLEEP", "0.5"))
HTTP_CIRCUIT_FAIL_THRESHOLD = int(os.getenv("HTTP_CIRCUIT_FAIL_THRESHOLD", "5"))
HTTP_CIRCUIT_RESET_TIMEOUT = float(os.getenv("HTTP_CIRCUIT_RESET_TIMEOUT", "30.0"))

# Server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
UVICORN_WORKERS = int(os.getenv("UVICORN_WORKERS", str(max(2, (os.cpu_count() or 1)))))
