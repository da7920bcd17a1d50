from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from urllib.parse import urlparse
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class SettingsError(ValueError):
    pass


DEFAULT_SERVER_URL = "https://api.leancloud.cn"
DEFAULT_EVALUATION_CLASS = "Evaluation"
DEFAULT_LATEST_LIMIT = 10
DEFAULT_TIMEZONE = "Asia/Tokyo"
DEFAULT_ASSESSOR_STORE_PATH = ".skincheck/assessors.json"


@dataclass(frozen=True)
class Settings:
    lean_app_id: str
    lean_app_key: str
    lean_master_key: str
    lean_server_url: str
    evaluation_class: str
    latest_evaluation_limit: int
    app_access_key: str | None
    timezone: ZoneInfo
    assessor_store_path: Path
    log_level: str


def _require_env(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise SettingsError(f"Missing required environment variable: {name}")
    return value


def _optional_env(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


def _require_url(name: str, value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise SettingsError(f"Invalid URL for {name}: {value}")
    return value


def _positive_int(name: str, default: int) -> int:
    raw = _optional_env(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise SettingsError(f"Invalid integer for {name}: {raw}") from exc
    if value <= 0:
        raise SettingsError(f"{name} must be positive, got {value}")
    return value


def _zone(name: str, default: str) -> ZoneInfo:
    raw = _optional_env(name) or default
    try:
        return ZoneInfo(raw)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise SettingsError(f"Unknown time zone for {name}: {raw}") from exc


def load_settings() -> Settings:
    lean_app_id = _require_env("LEAN_APP_ID")
    lean_app_key = _require_env("LEAN_APP_KEY")
    lean_master_key = _require_env("LEAN_MASTER_KEY")
    lean_server_url = _require_url(
        "LEAN_SERVER_URL",
        os.getenv("LEAN_SERVER_URL", DEFAULT_SERVER_URL).strip(),
    )
    evaluation_class = _optional_env("EVALUATION_CLASS") or DEFAULT_EVALUATION_CLASS
    latest_evaluation_limit = _positive_int("LATEST_EVALUATION_LIMIT", DEFAULT_LATEST_LIMIT)
    app_access_key = _optional_env("APP_ACCESS_KEY")
    timezone = _zone("APP_TIMEZONE", DEFAULT_TIMEZONE)
    assessor_store_path = Path(
        _optional_env("ASSESSOR_STORE_PATH") or DEFAULT_ASSESSOR_STORE_PATH
    )
    log_level = (_optional_env("LOG_LEVEL") or "INFO").upper()

    return Settings(
        lean_app_id=lean_app_id,
        lean_app_key=lean_app_key,
        lean_master_key=lean_master_key,
        lean_server_url=lean_server_url,
        evaluation_class=evaluation_class,
        latest_evaluation_limit=latest_evaluation_limit,
        app_access_key=app_access_key,
        timezone=timezone,
        assessor_store_path=assessor_store_path,
        log_level=log_level,
    )
