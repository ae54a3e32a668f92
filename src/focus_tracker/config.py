from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from focus_tracker.time_utils import DEFAULT_TZ

BACKENDS = ("sqlite", "rest")


@dataclass(frozen=True)
class Settings:
    store_backend: str
    database_path: Path
    user_id: str | None
    supabase_url: str | None
    supabase_anon_key: str | None
    supabase_access_token: str | None
    tz: str
    stats_cache_seconds: int
    sound_enabled: bool
    presets_path: Path
    local_config_path: Path
    api_host: str
    api_port: int
    api_token: str | None
    log_level: str


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text().splitlines():
        raw = line.strip()
        if not raw or raw.startswith("#") or "=" not in raw:
            continue
        key, value = raw.split("=", maxsplit=1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _parse_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def load_settings(env_path: Path = Path(".env")) -> Settings:
    _load_env_file(env_path)

    backend = os.getenv("FOCUS_STORE_BACKEND", "sqlite").strip().lower()
    if backend not in BACKENDS:
        raise RuntimeError(f"FOCUS_STORE_BACKEND must be one of {', '.join(BACKENDS)}")

    supabase_url = os.getenv("SUPABASE_URL") or None
    supabase_key = os.getenv("SUPABASE_ANON_KEY") or None
    if backend == "rest" and not (supabase_url and supabase_key):
        raise RuntimeError("SUPABASE_URL and SUPABASE_ANON_KEY are required for the rest backend")

    cache_seconds = _parse_int(os.getenv("STATS_CACHE_SECONDS"), 300)
    if cache_seconds <= 0:
        cache_seconds = 300

    return Settings(
        store_backend=backend,
        database_path=Path(os.getenv("DATABASE_PATH", "./data/focus.db")),
        user_id=os.getenv("FOCUS_USER_ID", "local-user") or None,
        supabase_url=supabase_url,
        supabase_anon_key=supabase_key,
        supabase_access_token=os.getenv("SUPABASE_ACCESS_TOKEN") or None,
        tz=os.getenv("TZ", DEFAULT_TZ),
        stats_cache_seconds=cache_seconds,
        sound_enabled=_parse_bool(os.getenv("SOUND_ENABLED"), default=True),
        presets_path=Path(os.getenv("PRESETS_PATH", "./presets.yaml")),
        local_config_path=Path(os.getenv("LOCAL_CONFIG_PATH", "./data/local_config.json")),
        api_host=os.getenv("API_HOST", "127.0.0.1"),
        api_port=_parse_int(os.getenv("API_PORT"), 8080),
        api_token=os.getenv("API_TOKEN") or None,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
