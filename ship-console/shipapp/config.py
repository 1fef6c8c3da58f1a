import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

# Load .env at startup
load_dotenv()


def _get_env_bool(key: str, default: bool) -> bool:
    val = os.getenv(key)
    if val is None:
        return default
    return val.lower() in {"1", "true", "yes", "on"}


def _get_env_float(key: str, default: float) -> float:
    val = os.getenv(key)
    if val is None:
        return default
    try:
        return float(val)
    except Exception:
        return default


def _get_env_int(key: str, default: int) -> int:
    val = os.getenv(key)
    if val is None:
        return default
    try:
        return int(val)
    except Exception:
        return default


def _env(key: str, default: str):
    return field(default_factory=lambda: os.getenv(key, default))


def _env_float(key: str, default: float):
    return field(default_factory=lambda: _get_env_float(key, default))


def _env_int(key: str, default: int):
    return field(default_factory=lambda: _get_env_int(key, default))


@dataclass(frozen=True)
class Config:
    # Console web surface
    host: str = _env("HOST", "0.0.0.0")
    port: int = _env_int("PORT", 8000)
    log_level: str = _env("LOG_LEVEL", "INFO")
    view_push_s: float = _env_float("VIEW_PUSH_S", 0.5)
    start_polling: bool = field(default_factory=lambda: _get_env_bool("START_POLLING", True))
    # Remote ship API
    api_base_url: str = _env("API_BASE_URL", "http://localhost:8080/api")
    request_timeout_s: float = _env_float("REQUEST_TIMEOUT_S", 5.0)
    # Cadences (seconds)
    poll_interval_s: float = _env_float("POLL_INTERVAL_S", 2.0)
    live_view_refresh_s: float = _env_float("LIVE_VIEW_REFRESH_S", 3.0)
    # Capture chain delays (seconds), approximating server latency
    photo_delay_s: float = _env_float("PHOTO_DELAY_S", 0.2)
    fetch_after_photo_s: float = _env_float("FETCH_AFTER_PHOTO_S", 0.6)
    manual_photo_fetch_s: float = _env_float("MANUAL_PHOTO_FETCH_S", 0.8)
    capture_refetch_s: float = _env_float("CAPTURE_REFETCH_S", 1.5)
    # Display / log sizing
    log_capacity: int = _env_int("LOG_CAPACITY", 200)
    radar_display_px: float = _env_float("RADAR_DISPLAY_PX", 200.0)


CONFIG = Config()


def reload_from_env() -> Config:
    """Reload environment variables from .env and rebuild CONFIG.

    Returns the new CONFIG instance.
    """
    load_dotenv(override=True)
    global CONFIG
    CONFIG = Config()
    return CONFIG
