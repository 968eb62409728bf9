"""
Paths, logging setup, ConfigStore, safe_print.
"""

import os
import json
import sys
import logging
import threading
from pathlib import Path

from .constants import (
    DEFAULT_API_URL, DEFAULT_PROFILE_URL, HEARTBEAT_INTERVAL_SEC,
    REFRESH_INTERVAL_SEC, ACTIVITY_REFRESH_SEC, VALUABLE_DROP_THRESHOLD,
)


# ─── Paths ───────────────────────────────────────────────────────
# One config/state per OS user. Overridable for portable installs.
_FOLDER_NAME = ".bingo-companion"

BASE_DIR = Path(os.environ.get("BINGO_COMPANION_HOME", Path.home() / _FOLDER_NAME))

CONFIG_FILE = BASE_DIR / "config.json"
LOG_FILE = BASE_DIR / "companion.log"
SCREENSHOT_DIR = BASE_DIR / "screenshots"


# ─── Safe print (no crash when there is no console) ──────────────

def safe_print(*args, **kwargs):
    try:
        print(*args, **kwargs)
    except Exception:
        pass


# ─── Logging ─────────────────────────────────────────────────────

log = logging.getLogger("bingo")

_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

_console_handler = None


def setup_logging(log_file=LOG_FILE, level=logging.INFO):
    """File + console logging. Truncates the log file once it passes 1 MB."""
    global _console_handler
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    try:
        if log_file.exists() and log_file.stat().st_size > 1_000_000:
            log_file.write_text("")
    except OSError:
        pass

    logging.basicConfig(
        filename=str(log_file),
        level=level,
        format=_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        encoding="utf-8",
    )

    # setup_logging runs again on every auto-restart; one console handler only.
    if _console_handler is None:
        _console_handler = logging.StreamHandler(sys.stdout)
        _console_handler.setFormatter(logging.Formatter(_FORMAT))
        log.addHandler(_console_handler)
    _console_handler.setLevel(level)
    return log


# ─── Config Management ──────────────────────────────────────────

DEFAULTS = {
    "rsn": "",
    "authToken": "",
    "authApiUrl": DEFAULT_API_URL,
    "profileUrl": DEFAULT_PROFILE_URL,
    "jwtToken": "",
    "teamId": "",
    "heartbeatIntervalSec": HEARTBEAT_INTERVAL_SEC,
    "refreshIntervalSec": REFRESH_INTERVAL_SEC,
    "activityRefreshSec": ACTIVITY_REFRESH_SEC,
    "screenshotsEnabled": True,
    "valuableDropThreshold": VALUABLE_DROP_THRESHOLD,
    "inputHeartbeats": True,
    "eventId": "",
}


class ConfigStore:
    """
    Flat key/value settings persisted as one JSON object.

    Reads fall back to DEFAULTS. Writes stay in memory until save().
    Safe to share between the worker threads and the scheduler.
    """

    def __init__(self, path=CONFIG_FILE, values=None):
        self._path = Path(path) if path is not None else None
        self._lock = threading.Lock()
        self._values = dict(values or {})

    @classmethod
    def load(cls, path=CONFIG_FILE):
        """Load settings from disk. A missing or corrupt file gives an empty store."""
        path = Path(path)
        values = {}
        if path.exists():
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    values = data
                else:
                    log.warning("Config at %s is not an object — ignoring", path)
            except (json.JSONDecodeError, IOError) as e:
                log.warning("Could not read config %s: %s", path, e)
        return cls(path, values)

    def get(self, key, default=None):
        with self._lock:
            if key in self._values and self._values[key] is not None:
                return self._values[key]
        return DEFAULTS.get(key) if default is None else default

    def get_str(self, key, default=""):
        value = self.get(key)
        if value is None:
            return default
        return str(value).strip()

    def get_bool(self, key, default=False):
        value = self.get(key)
        if value is None:
            return default
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)

    def get_int(self, key, default=0):
        value = self.get(key)
        if value is None:
            return default
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def set(self, key, value):
        with self._lock:
            self._values[key] = value

    def set_bool(self, key, value):
        self.set(key, bool(value))

    def unset(self, key):
        with self._lock:
            self._values.pop(key, None)

    def save(self):
        """Write settings to disk. No-op for in-memory stores."""
        if self._path is None:
            return
        with self._lock:
            snapshot = dict(self._values)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._path, "w", encoding="utf-8") as f:
            json.dump(snapshot, f, indent=2)
        log.info("Config saved to %s", self._path)
