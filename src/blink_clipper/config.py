"""Configuration persistence: load and save the clipper settings."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir

from blink_clipper.models import (
    CONFIG_APP_NAME,
    DEFAULT_CLOSE_DELAY_SECONDS,
    DEFAULT_COLLECTION_ID,
    DEFAULT_DATABASE,
    DEFAULT_PROJECT_ID,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_STATUS_DISMISS_SECONDS,
    FIRESTORE_BASE_URL,
    IDENTITY_BASE_URL,
    MAX_REQUEST_TIMEOUT,
    ClipperConfig,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Configuration Persistence
# ============================================================================
#
# Validation contract: _dict_to_config() guarantees valid output for any input:
#
#   Field                    Rule                        Handler
#   ───────────────────────  ──────────────────────────  ─────────────────────
#   request_timeout_seconds  1 ≤ x ≤ 120                 _coerce_timeout
#   *_seconds (float)        x ≥ 0, int accepted         _coerce_delay
#   string fields            non-empty str or default    _safe_str
#   bool fields              type-checked                _safe_get
#
CONFIG_FILENAME = "config.json"


def get_config_dir() -> Path:
    """Get the per-user configuration directory.

    - Linux: ~/.config/blink-clipper/
    - macOS: ~/Library/Application Support/blink-clipper/
    - Windows: %APPDATA%/blink-clipper/
    """
    return Path(user_config_dir(CONFIG_APP_NAME))


def get_config_path() -> Path:
    """Get the path to the configuration file."""
    return get_config_dir() / CONFIG_FILENAME


def _config_to_dict(config: ClipperConfig) -> dict[str, Any]:
    """Serialize ClipperConfig to a JSON-compatible dictionary."""
    return {
        "version": config.version,
        "api_key": config.api_key,
        "project_id": config.project_id,
        "database": config.database,
        "collection_id": config.collection_id,
        "identity_base_url": config.identity_base_url,
        "firestore_base_url": config.firestore_base_url,
        "request_timeout_seconds": _coerce_timeout(config.request_timeout_seconds),
        "status_dismiss_seconds": config.status_dismiss_seconds,
        "close_after_save": config.close_after_save,
        "close_delay_seconds": config.close_delay_seconds,
        "guard_concurrent_writes": config.guard_concurrent_writes,
    }


def _safe_get(data: dict, key: str, default: Any, expected_type: type) -> Any:
    """Safely get a value from dict with type validation.

    Returns the default if key is missing or value has wrong type.
    """
    value = data.get(key, default)
    if not isinstance(value, expected_type):
        return default
    return value


def _safe_str(data: dict, key: str, default: str) -> str:
    """Like _safe_get for strings, but blank values also fall back to the default."""
    value = _safe_get(data, key, default, str).strip()
    return value or default


def _coerce_timeout(value: Any) -> int:
    """Validate and clamp the per-request timeout."""
    if not isinstance(value, int) or isinstance(value, bool):
        return DEFAULT_REQUEST_TIMEOUT
    return max(1, min(value, MAX_REQUEST_TIMEOUT))


def _coerce_delay(value: Any, default: float) -> float:
    """Accept non-negative ints or floats for UI delays."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if value < 0:
        return default
    return float(value)


def _dict_to_config(data: dict[str, Any]) -> ClipperConfig:
    """Deserialize a dictionary to ClipperConfig with type validation."""
    return ClipperConfig(
        api_key=_safe_get(data, "api_key", "", str).strip(),
        project_id=_safe_str(data, "project_id", DEFAULT_PROJECT_ID),
        database=_safe_str(data, "database", DEFAULT_DATABASE),
        collection_id=_safe_str(data, "collection_id", DEFAULT_COLLECTION_ID),
        identity_base_url=_safe_str(data, "identity_base_url", IDENTITY_BASE_URL),
        firestore_base_url=_safe_str(data, "firestore_base_url", FIRESTORE_BASE_URL),
        request_timeout_seconds=_coerce_timeout(
            data.get("request_timeout_seconds", DEFAULT_REQUEST_TIMEOUT)
        ),
        status_dismiss_seconds=_coerce_delay(
            data.get("status_dismiss_seconds"), DEFAULT_STATUS_DISMISS_SECONDS
        ),
        close_after_save=_safe_get(data, "close_after_save", True, bool),
        close_delay_seconds=_coerce_delay(
            data.get("close_delay_seconds"), DEFAULT_CLOSE_DELAY_SECONDS
        ),
        guard_concurrent_writes=_safe_get(data, "guard_concurrent_writes", True, bool),
        version=_safe_get(data, "version", 1, int),
    )


def load_config(config_path: Path | None = None) -> ClipperConfig:
    """Load configuration from disk.

    Returns default config if file doesn't exist or is corrupted.
    Logs specific errors to help diagnose config issues.
    """
    config_path = config_path or get_config_path()

    if not config_path.exists():
        return ClipperConfig()

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except ValueError as e:  # invalid JSON or invalid UTF-8
        logger.warning("Config file is not valid UTF-8 JSON, using defaults: %s", e)
        return ClipperConfig()
    except OSError as e:
        logger.warning("Could not read config file, using defaults: %s", e)
        return ClipperConfig()

    if not isinstance(data, dict):
        logger.warning("Config file root is not an object, using defaults")
        return ClipperConfig()
    return _dict_to_config(data)


def write_json_atomic(path: Path, data: Any) -> None:
    """Write JSON to *path* via tempfile + os.replace().

    The temp file is created by mkstemp, so the result is readable by the
    owner only. Raises OSError on failure; the temp file is removed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    json_str = json.dumps(data, indent=2, ensure_ascii=False)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp", prefix=f".{path.stem}-")
    closed = False
    try:
        os.write(fd, json_str.encode("utf-8"))
        os.close(fd)
        closed = True
        os.replace(tmp_path, path)
    except BaseException:
        if not closed:
            os.close(fd)
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def save_config(config: ClipperConfig, config_path: Path | None = None) -> bool:
    """Save configuration to disk atomically.

    Creates the config directory if it doesn't exist.
    Returns True on success, False on failure.
    """
    config_path = config_path or get_config_path()
    try:
        write_json_atomic(config_path, _config_to_dict(config))
        return True
    except OSError as e:
        logger.error("Failed to save config: %s", e)
        return False


__all__ = [
    "CONFIG_APP_NAME",
    "CONFIG_FILENAME",
    "get_config_dir",
    "get_config_path",
    "load_config",
    "save_config",
    "write_json_atomic",
]
