from __future__ import annotations

import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from services.players.directory import Player
from shared.logging.logger import get_logger

log = get_logger("services.actions")

ActionHandler = Callable[[Optional[Player], str], None]

_ACTION_PATTERN = re.compile(r"^\s*\[(?P<tag>[A-Za-z0-9_\-]+)\]\s*(?P<payload>.*)$", re.DOTALL)


class ActionExecutor(ABC):
    """Runs configured action strings for a player, or with no target."""

    @abstractmethod
    def execute(self, player: Optional[Player], actions: Iterable[str]) -> Any:
        raise NotImplementedError


def parse_action(action: str) -> Optional[Dict[str, str]]:
    """Split "[TAG] payload" into its parts; None when the string has no tag."""
    if not isinstance(action, str):
        return None
    match = _ACTION_PATTERN.match(action)
    if not match:
        return None
    return {
        "tag": match.group("tag").upper(),
        "payload": match.group("payload").strip(),
    }


def apply_placeholders(payload: str, player: Optional[Player]) -> str:
    if player is None:
        return payload
    return (
        payload.replace("{PLAYER}", player.name)
        .replace("{PLAYER_ID}", player.player_id)
    )


class TaggedActionExecutor(ActionExecutor):
    """
    Tag-routing action execution layer.

    Action strings look like ``"[MESSAGE] Congratulations {PLAYER}!"``. The
    tag selects a registered handler; the payload is passed through after
    placeholder substitution. Execution is best-effort per action and never
    raises to callers; failures are logged and counted instead.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, ActionHandler] = {}

        # Observational only; never affects execution.
        self._metrics = {
            "executed": 0,
            "failed": 0,
            "unknown": 0,
        }

    # ------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------

    def register_handler(self, tag: str, handler: ActionHandler) -> None:
        if not tag or not handler:
            return
        self._handlers[tag.upper()] = handler
        log.debug(f"Registered action handler for tag={tag.upper()}")

    def get_metrics(self) -> Dict[str, int]:
        return dict(self._metrics)

    # ------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------

    def execute(self, player: Optional[Player], actions: Iterable[str]) -> List[Dict[str, Any]]:
        results: List[Dict[str, Any]] = []
        target = player.player_id if player else "*"

        for action in actions:
            parsed = parse_action(action)
            if not parsed:
                log.warning(f"[{target}] Skipping malformed action: {action!r}")
                self._metrics["unknown"] += 1
                results.append({"action": action, "status": "skipped"})
                continue

            handler = self._handlers.get(parsed["tag"])
            if handler is None:
                log.warning(f"[{target}] No handler registered for tag={parsed['tag']}")
                self._metrics["unknown"] += 1
                results.append({"action": action, "status": "skipped"})
                continue

            payload = apply_placeholders(parsed["payload"], player)
            try:
                handler(player, payload)
                self._metrics["executed"] += 1
                results.append(
                    {
                        "action": action,
                        "status": "success",
                        "executed_at": datetime.now(timezone.utc).isoformat(),
                    }
                )
            except Exception as e:
                err = str(e)
                log.warning(
                    f"[{target}] Action execution failed "
                    f"(tag={parsed['tag']}): {err}"
                )
                self._metrics["failed"] += 1
                results.append({"action": action, "status": "failed", "error": err})

        return results
