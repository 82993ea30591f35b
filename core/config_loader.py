"""
Tournament definition loader.

This module centralizes ingestion of tournament definition files and applies
JSON Schema validation. Invalid entries are skipped with warnings so the
runtime can keep booting with whatever definitions are usable.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Set
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from jsonschema import Draft7Validator

from core.tournaments.config import TournamentConfig, TournamentConfigBuilder
from core.tournaments.status import TournamentConfigError
from core.tournaments.timewindow import Timeline
from shared.logging.logger import get_logger

log = get_logger("core.config_loader")


class ConfigLoader:
    """
    Loads and validates tournament definitions.

    Files:
      - shared/config/tournaments.json (definitions)
      - schemas/tournaments.schema.json (draft 7 schema)
    """

    TOURNAMENTS_PATH = Path("shared/config/tournaments.json")
    SCHEMA_PATH = Path(__file__).resolve().parents[1] / "schemas" / "tournaments.schema.json"

    def __init__(
        self,
        tournaments_path: Optional[Path | str] = None,
        schema_path: Optional[Path | str] = None,
    ) -> None:
        self._tournaments_path = Path(tournaments_path) if tournaments_path else self.TOURNAMENTS_PATH
        self._schema_path = Path(schema_path) if schema_path else self.SCHEMA_PATH

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load_json(self, path: Path, name: str) -> Dict[str, Any]:
        if not path.exists():
            log.warning(f"{name} config not found at {path}; using defaults")
            return {}

        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
                if isinstance(data, dict):
                    return data
                log.warning(f"{name} config root is not an object; ignoring")
        except Exception as e:
            log.warning(f"Failed to load {name} config ({e}); using defaults")

        return {}

    def _load_schema(self) -> Optional[Dict[str, Any]]:
        if not self._schema_path.exists():
            log.debug(f"Tournament schema not found at {self._schema_path}; skipping validation")
            return None
        try:
            return json.loads(self._schema_path.read_text(encoding="utf-8"))
        except Exception as e:
            log.warning(f"Failed to load tournament schema ({e}); skipping validation")
            return None

    def validate(self, payload: Dict[str, Any]) -> List[str]:
        """
        Validate a definitions document. Returns "<path>: <message>" strings,
        empty when the document is valid or no schema is available.
        """
        schema = self._load_schema()
        if schema is None:
            return []

        validator = Draft7Validator(schema)
        errors = sorted(validator.iter_errors(payload), key=lambda e: list(e.path))
        return [f"{'/'.join(str(p) for p in err.path) or '<root>'}: {err.message}" for err in errors]

    def _invalid_indexes(self, payload: Dict[str, Any]) -> Set[int]:
        schema = self._load_schema()
        if schema is None:
            return set()

        invalid: Set[int] = set()
        for err in Draft7Validator(schema).iter_errors(payload):
            path = list(err.path)
            loc = "/".join(str(p) for p in path)
            log.warning(f"tournaments config validation warning at '{loc}': {err.message}")
            if len(path) >= 2 and path[0] == "tournaments" and isinstance(path[1], int):
                invalid.add(path[1])
        return invalid

    # ------------------------------------------------------------------
    # Entry -> TournamentConfig
    # ------------------------------------------------------------------

    @staticmethod
    def build_config(entry: Dict[str, Any]) -> TournamentConfig:
        identifier = entry.get("id")
        builder = TournamentConfigBuilder(identifier)

        zone_name = entry.get("timezone") or "UTC"
        try:
            builder.zone(ZoneInfo(zone_name))
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise TournamentConfigError(f"[{identifier}] Unknown timezone: {zone_name}") from e

        try:
            timeline = Timeline.from_value(entry.get("timeline", "specific"))
        except ValueError as e:
            raise TournamentConfigError(f"[{identifier}] {e}") from e
        builder.timeline(timeline)

        # Fixed windows only; recurring timelines resolve their own bounds
        if timeline == Timeline.SPECIFIC and entry.get("start") and entry.get("end"):
            try:
                start = datetime.fromisoformat(str(entry["start"]))
                end = datetime.fromisoformat(str(entry["end"]))
            except ValueError as e:
                raise TournamentConfigError(f"[{identifier}] Invalid start/end: {e}") from e
            builder.window(start, end)

        builder.objective(entry.get("objective"))
        builder.refresh_seconds(entry.get("refresh_seconds", 60))

        challenge = entry.get("challenge") or {}
        if challenge.get("enabled"):
            builder.challenge(int(challenge.get("goal", -1)))

        rewards = entry.get("rewards") or {}
        for position, actions in rewards.items():
            builder.reward(int(position), actions or [])

        builder.start_actions(entry.get("start_actions") or [])
        builder.end_actions(entry.get("end_actions") or [])

        participation = entry.get("participation") or {}
        builder.participation(
            automatic=bool(participation.get("automatic", False)),
            cost=float(participation.get("cost", 0.0) or 0.0),
            permission=participation.get("permission"),
            actions=participation.get("actions") or [],
        )

        builder.disabled_worlds(entry.get("disabled_worlds") or [])
        builder.disabled_gamemodes(entry.get("disabled_gamemodes") or [])

        for key, value in (entry.get("meta") or {}).items():
            builder.meta(str(key), value)

        return builder.build()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def load_tournament_configs(self) -> List[TournamentConfig]:
        """
        Load tournaments.json with schema validation.

        Disabled, invalid and duplicate entries are skipped with warnings.
        """
        data = self._load_json(self._tournaments_path, "tournaments")
        invalid = self._invalid_indexes(data) if data else set()

        entries = data.get("tournaments")
        if not isinstance(entries, list):
            log.warning("tournaments.json missing 'tournaments' array; using empty list")
            return []

        configs: List[TournamentConfig] = []
        seen: Set[str] = set()
        for index, entry in enumerate(entries):
            if index in invalid or not isinstance(entry, dict):
                log.warning(f"Skipping invalid tournament entry #{index}")
                continue

            if entry.get("enabled", True) is False:
                log.info(f"[{entry.get('id')}] Tournament disabled in config; skipping")
                continue

            try:
                config = self.build_config(entry)
            except (TournamentConfigError, TypeError, ValueError) as e:
                log.warning(f"Skipping tournament entry #{index}: {e}")
                continue

            if config.identifier in seen:
                log.warning(f"[{config.identifier}] Duplicate tournament id; skipping")
                continue

            seen.add(config.identifier)
            configs.append(config)

        log.info(f"Loaded {len(configs)} tournament definition(s)")
        return configs
