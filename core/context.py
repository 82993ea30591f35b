from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

_TRUE = {"1", "true", "yes", "on"}


def _env_flag(env: Mapping[str, str], key: str, default: bool = False) -> bool:
    raw = env.get(key)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class RuntimeSettings:
    # -------------------------------------------------
    # DIAGNOSTICS
    # -------------------------------------------------
    debug: bool = False

    # -------------------------------------------------
    # STORAGE / OUTPUTS
    # -------------------------------------------------
    db_path: Path = Path("data/tournaments.db")
    state_dir: Path = Path("data/state")
    config_path: Path = Path("shared/config/tournaments.json")

    # Optional: POST lifecycle events here
    webhook_url: Optional[str] = None

    # -------------------------------------------------
    # CADENCE
    # -------------------------------------------------
    status_check_seconds: int = 10
    worker_threads: int = 4

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "RuntimeSettings":
        env = os.environ if env is None else env
        return cls(
            debug=_env_flag(env, "TOURNAMENT_DEBUG"),
            db_path=Path(env.get("TOURNAMENT_DB_PATH") or cls.db_path),
            state_dir=Path(env.get("TOURNAMENT_STATE_DIR") or cls.state_dir),
            config_path=Path(env.get("TOURNAMENT_CONFIG_PATH") or cls.config_path),
            webhook_url=(env.get("TOURNAMENT_WEBHOOK_URL") or None),
            status_check_seconds=max(1, _env_int(env, "TOURNAMENT_STATUS_CHECK_SECONDS", 10)),
            worker_threads=max(1, _env_int(env, "TOURNAMENT_WORKER_THREADS", 4)),
        )
