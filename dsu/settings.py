from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Core
    stack_dir: str = os.getenv("DSU_STACK_DIR", ".")
    # Relative paths resolve against stack_dir.
    journal_path: str = os.getenv(
        "DSU_JOURNAL_PATH", os.path.join(os.path.expanduser("~"), ".local", "state", "dsu", "journal.db")
    )
    echo: bool = _env_bool("DSU_ECHO", True)

    # Host timezone normalization
    default_tz: str = os.getenv("DSU_DEFAULT_TZ", "America/Los_Angeles")

    # Readiness probe for the database the one-time migrations run against
    health_url: str = os.getenv("DSU_HEALTH_URL", "http://localhost:8086/ping")
    health_status: int = _env_int("DSU_HEALTH_STATUS", 204)
    poll_interval_s: int = _env_int("DSU_POLL_INTERVAL_S", 5)
    connect_timeout_s: int = _env_int("DSU_CONNECT_TIMEOUT_S", 5)
    # 0 means wait forever.
    max_wait_s: int = _env_int("DSU_MAX_WAIT_S", 0)

    # Runtime
    compose_command: str = os.getenv("DSU_COMPOSE_COMMAND", "./compose-dash.sh up -d")
    influx_container: str = os.getenv("DSU_INFLUX_CONTAINER", "influxdb")
    influx_data_path: str = os.getenv("DSU_INFLUX_DATA_PATH", "/var/lib/influxdb")


settings = Settings()
