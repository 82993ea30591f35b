"""
Tournament definition validation script.

Usage:
    python scripts/validate_config.py [--config shared/config/tournaments.json]

Checks the definitions file against the JSON schema, then builds every
enabled entry so semantic errors (bad windows, unknown timezones, non
positive challenge goals) are reported too.

Design rules:
- No runtime startup
- Validation only (no mutation)
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from core.config_loader import ConfigLoader
from core.tournaments.status import TournamentConfigError


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate tournament definitions")
    parser.add_argument(
        "--config",
        type=Path,
        default=ConfigLoader.TOURNAMENTS_PATH,
        help="Definitions file (default: shared/config/tournaments.json)",
    )
    parser.add_argument(
        "--schema",
        type=Path,
        default=None,
        help="Override the JSON schema path",
    )
    return parser.parse_args(argv)


def _error(msg: str):
    print(f"[CONFIG ERROR] {msg}", file=sys.stderr)


def validate(path: Path, schema: Optional[Path] = None) -> List[str]:
    if not path.exists():
        return [f"{path}: file not found"]

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as e:
        return [f"{path.name}: invalid JSON ({e})"]

    if not isinstance(payload, dict):
        return [f"{path.name}: root JSON value must be an object"]

    loader = ConfigLoader(path, schema)
    errors = loader.validate(payload)
    if errors:
        return errors

    seen = set()
    for index, entry in enumerate(payload.get("tournaments", [])):
        if entry.get("enabled", True) is False:
            continue
        try:
            config = loader.build_config(entry)
        except (TournamentConfigError, TypeError, ValueError) as e:
            errors.append(f"tournaments/{index}: {e}")
            continue
        if config.identifier in seen:
            errors.append(f"tournaments/{index}: duplicate id {config.identifier!r}")
        seen.add(config.identifier)

    return errors


# ------------------------------------------------------------
# Entry point
# ------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    errors = validate(args.config, args.schema)

    if errors:
        for err in errors:
            _error(err)
        print("Configuration validation failed.", file=sys.stderr)
        return 1

    print("Configuration validation passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
