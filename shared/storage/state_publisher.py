"""
State file publisher helpers.

This module centralizes atomic writes of tournament result snapshots and
optional mirroring into a second directory (e.g. a web root serving
leaderboards).
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from shared.logging.logger import get_logger

log = get_logger("shared.state_publisher")


class StateFilePublisher:
    """
    Atomic JSON snapshot writer with optional mirroring into a publish root.
    """

    DEFAULT_BASE_DIR = Path("data/state")
    ENV_KEYS = ("TOURNAMENT_STATE_PUBLISH_ROOT",)

    def __init__(
        self,
        base_dir: Path | str | None = None,
        publish_root: Path | str | None = None,
    ):
        self._base_dir = Path(base_dir) if base_dir else self.DEFAULT_BASE_DIR
        self._base_dir.mkdir(parents=True, exist_ok=True)

        env_root = self._get_env_publish_root()
        self._publish_root = (
            Path(publish_root)
            if publish_root
            else (Path(env_root) if env_root else None)
        )

        if self._publish_root:
            self._publish_root.mkdir(parents=True, exist_ok=True)
            log.info(f"State publish root: {self._publish_root}")

    # ------------------------------------------------------------------
    # Environment helpers
    # ------------------------------------------------------------------

    def _get_env_publish_root(self) -> Optional[str]:
        for key in self.ENV_KEYS:
            val = os.getenv(key)
            if val:
                return val
        return None

    # ------------------------------------------------------------------
    # Atomic writer
    # ------------------------------------------------------------------

    def _write_atomic(self, path: Path, payload: Any) -> None:
        serialized = json.dumps(payload, indent=2)
        path.parent.mkdir(parents=True, exist_ok=True)

        with tempfile.NamedTemporaryFile(
            "w", dir=path.parent, delete=False, encoding="utf-8"
        ) as tmp:
            tmp.write(serialized)
            tmp.flush()
            os.fsync(tmp.fileno())
            temp_path = Path(tmp.name)

        temp_path.replace(path)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    @property
    def publish_root(self) -> Optional[Path]:
        return self._publish_root

    def publish(self, relative_path: Path | str, payload: Any) -> bool:
        """
        Write snapshot to <base_dir>/<relative_path> and optionally
        mirror to <publish_root>/<relative_path>.
        """
        rel = Path(relative_path)
        target = self._base_dir / rel

        try:
            self._write_atomic(target, payload)
        except Exception as e:
            log.error(f"Failed to write state snapshot {rel}: {e}")
            return False

        if not self._publish_root:
            return True

        mirror = self._publish_root / rel
        try:
            self._write_atomic(mirror, payload)
        except Exception as e:
            log.warning(f"Failed to mirror snapshot to publish root: {e}")
        return True

    def read(self, relative_path: Path | str) -> Optional[Any]:
        source = self._base_dir / Path(relative_path)
        if not source.exists():
            return None
        try:
            return json.loads(source.read_text(encoding="utf-8"))
        except Exception as e:
            log.warning(f"Failed to load state file {source}: {e}")
            return None
