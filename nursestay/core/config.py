from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Settings:
    supabase_url: str | None
    supabase_key: str | None
    calendar_window_months: int
    default_min_stay_nights: int
    log_level: str

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            supabase_url=os.environ.get("SUPABASE_URL"),
            supabase_key=os.environ.get("SUPABASE_SERVICE_ROLE_KEY"),
            calendar_window_months=max(1, _env_int("CALENDAR_WINDOW_MONTHS", 12)),
            default_min_stay_nights=max(1, _env_int("DEFAULT_MIN_STAY_NIGHTS", 30)),
            log_level=(os.environ.get("LOG_LEVEL") or "INFO").strip().upper(),
        )


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except (TypeError, ValueError):
        return default
