import os
import secrets

from dotenv import load_dotenv

load_dotenv()


def _int_env(name, default=None):
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return int(value)


GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
IMAGE_MODEL = os.getenv("SILK_STUDIO_IMAGE_MODEL", "gemini-2.5-flash-image")

# Milliseconds, passed straight to types.HttpOptions. Unset means no timeout.
HTTP_TIMEOUT_MS = _int_env("SILK_STUDIO_HTTP_TIMEOUT_MS")

SECRET_KEY = os.getenv("SILK_STUDIO_SECRET_KEY") or secrets.token_hex(32)
MAX_UPLOAD_MB = _int_env("SILK_STUDIO_MAX_UPLOAD_MB", 20)
LOG_LEVEL = os.getenv("SILK_STUDIO_LOG_LEVEL", "INFO").upper()
PORT = _int_env("PORT", 5001)

MAX_SESSIONS = _int_env("SILK_STUDIO_MAX_SESSIONS", 100)
SESSION_TTL_SECONDS = _int_env("SILK_STUDIO_SESSION_TTL_SECONDS", 3600)

DOWNLOAD_FILENAME = "silk-studio-result.png"
