from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_MODULE_ID_ENV = "MONITOR_MODULE_ID"
_ROOM_ID_ENV = "MONITOR_ROOM_ID"
_SAMPLE_FILE_ENV = "SAMPLE_FILE_PATH"
_SAMPLE_INTERVAL_ENV = "SAMPLE_INTERVAL_MS"
_DEBOUNCE_ENV = "ALARM_DEBOUNCE_SECONDS"
_STOP_TIMEOUT_ENV = "MONITOR_STOP_TIMEOUT_MS"
_HISTORY_SIZE_ENV = "TELEMETRY_HISTORY_SIZE"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    module_id: str
    room_id: str
    sample_file_path: str
    sample_interval_ms: int
    alarm_debounce_seconds: float
    stop_timeout_ms: int
    telemetry_history_size: int
    log_level: str

    @property
    def sample_interval_seconds(self) -> float:
        return self.sample_interval_ms / 1000.0

    @property
    def stop_timeout_seconds(self) -> float:
        return self.stop_timeout_ms / 1000.0


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        module_id=_read_str_env(_MODULE_ID_ENV, "EnvironmentModule"),
        room_id=_read_str_env(_ROOM_ID_ENV, "Room101"),
        sample_file_path=_read_str_env(_SAMPLE_FILE_ENV, "./data/sample_readings.csv"),
        sample_interval_ms=_read_positive_int(_SAMPLE_INTERVAL_ENV, 2000),
        alarm_debounce_seconds=_read_positive_float(_DEBOUNCE_ENV, 30.0),
        stop_timeout_ms=_read_positive_int(_STOP_TIMEOUT_ENV, 5000),
        telemetry_history_size=_read_positive_int(_HISTORY_SIZE_ENV, 500),
        log_level=_read_log_level("INFO"),
    )
