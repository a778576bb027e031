"""
Online Clipboard — Configuration
All settings are read from environment variables with sensible defaults.
"""
import os

# ── Database ──────────────────────────────────────────────────────────────────
DATABASE_PATH         = os.getenv("DATABASE_PATH", "clipboard.db")

# ── Clipboards ────────────────────────────────────────────────────────────────
CLIPBOARD_TTL_HOURS   = int(os.getenv("CLIPBOARD_TTL_HOURS", "24"))
ID_DIGITS             = 4
ID_MAX_ATTEMPTS       = int(os.getenv("ID_MAX_ATTEMPTS", "100"))
LIST_DEFAULT_LIMIT    = 50
LIST_MAX_LIMIT        = 200

# ── Files ─────────────────────────────────────────────────────────────────────
MAX_FILE_BYTES        = int(os.getenv("MAX_FILE_BYTES",   str(50 * 1024 * 1024)))  # 50 MB per file
BLOB_CHUNK_BYTES      = int(os.getenv("BLOB_CHUNK_BYTES", str(255 * 1024)))
DEFAULT_MIME_TYPE     = "application/octet-stream"

# ── Background cleanup ────────────────────────────────────────────────────────
# Expired clipboards are purged on every request; the loop is optional.
CLEANUP_INTERVAL_SEC  = int(os.getenv("CLEANUP_INTERVAL_SEC", "0"))  # 0 = disabled

# ── Push notifications ────────────────────────────────────────────────────────
# Generate a key pair with scripts/generate_vapid_keys.py
VAPID_PUBLIC_KEY      = os.getenv("VAPID_PUBLIC_KEY", "")
VAPID_PRIVATE_KEY     = os.getenv("VAPID_PRIVATE_KEY", "")
VAPID_SUBJECT         = os.getenv("VAPID_SUBJECT", "mailto:clipboard@example.com")
PUSH_TTL_SEC          = int(os.getenv("PUSH_TTL_SEC", str(24 * 60 * 60)))
PUSH_TIMEOUT_SEC      = float(os.getenv("PUSH_TIMEOUT_SEC", "10"))

# ── HTTP ──────────────────────────────────────────────────────────────────────
RATE_LIMIT_ENABLED    = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
# Only list headers your reverse proxy sets; clients can forge the rest.
CLIENT_IP_HEADERS     = [h.strip() for h in os.getenv("CLIENT_IP_HEADERS", "CF-Connecting-IP").split(",") if h.strip()]
CORS_ORIGINS          = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# ── Logging ───────────────────────────────────────────────────────────────────
LOG_LEVEL             = os.getenv("LOG_LEVEL", "INFO").upper()
