"""Environment-driven configuration, read once at import time."""

import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


SERVICE_NAME = "html-to-pdf-converter"

PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
# When enabled, error responses carry a ``details`` field with the internal cause.
DEBUG = _env_bool("DEBUG", False)

MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(50 * 1024 * 1024)))  # 50 MiB

NAVIGATION_TIMEOUT_MS = int(os.getenv("NAVIGATION_TIMEOUT_MS", "30000"))
DYNAMIC_SETTLE_MS = int(os.getenv("DYNAMIC_SETTLE_MS", "2000"))
RENDER_TIMEOUT_S = float(os.getenv("RENDER_TIMEOUT_S", "60"))

MAX_CONCURRENT_CONVERSIONS = int(os.getenv("MAX_CONCURRENT_CONVERSIONS", "5"))
SHUTDOWN_GRACE_S = float(os.getenv("SHUTDOWN_GRACE_S", "10"))

CHROMIUM_EXECUTABLE_PATH = os.getenv("CHROMIUM_EXECUTABLE_PATH") or None
BROWSER_HEADLESS = _env_bool("BROWSER_HEADLESS", True)
LAUNCH_BROWSER_ON_STARTUP = _env_bool("LAUNCH_BROWSER_ON_STARTUP", True)

# "memory" injects uploads with set_content; "disk" stages them as a temp file.
UPLOAD_STAGING = os.getenv("UPLOAD_STAGING", "memory").lower()
BLOCK_PRIVATE_ADDRESSES = _env_bool("BLOCK_PRIVATE_ADDRESSES", False)

RATE_LIMIT = os.getenv("RATE_LIMIT", "10/minute")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
