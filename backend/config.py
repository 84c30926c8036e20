import os
import logging

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}; using {default}")
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}; using {default}")
        return default


APP_NAME = os.getenv("MODCHECK_APP_NAME", "Mod Side Checker")
APP_VERSION = "1.0.0"

JAR_SUFFIX = ".jar"
MAX_UPLOAD_MB = _env_int("MODCHECK_MAX_UPLOAD_MB", 50)
MAX_UPLOAD_BYTES = MAX_UPLOAD_MB * 1024 * 1024
# Decompressed size ceiling for any single entry read out of an archive.
MAX_ENTRY_MB = _env_int("MODCHECK_MAX_ENTRY_MB", 8)
MAX_ENTRY_BYTES = MAX_ENTRY_MB * 1024 * 1024

DEFAULT_LOCALE = (os.getenv("MODCHECK_LOCALE") or "en").strip().lower()
MAX_WORKERS = max(1, _env_int("MODCHECK_MAX_WORKERS", 4))

# Structural heuristic gate. These encode a judgment call, not a hard rule.
CLIENT_SCORE_THRESHOLD = _env_float("MODCHECK_CLIENT_SCORE_THRESHOLD", 10.0)
CLIENT_CLASS_RATIO = _env_float("MODCHECK_CLIENT_CLASS_RATIO", 0.8)

LOG_LEVEL = (os.getenv("MODCHECK_LOG_LEVEL") or "INFO").strip().upper()
