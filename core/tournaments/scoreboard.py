"""
Live scores and ranking snapshots.

ScoreBoard holds the raw, unordered scores that concurrent callers mutate.
RankingSnapshot is the ordered, read-only view produced by a recomputation
pass. The two are deliberately separate types: a ScoreBoard is never ranked
and a RankingSnapshot is never mutated.
"""
from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union


class ScoreBoard:
    """
    Lock-protected participant_id -> score mapping.

    Every read-modify-write happens under one lock so concurrent add() calls
    are linearizable. items() hands out a copy taken under the same lock.
    """

    def __init__(self) -> None:
        self._scores: Dict[str, int] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------

    def put(self, participant_id: str, score: int) -> None:
        with self._lock:
            self._scores[participant_id] = score

    def add(self, participant_id: str, amount: int, *, replace: bool = False) -> int:
        with self._lock:
            if participant_id in self._scores and not replace:
                value = self._scores[participant_id] + amount
            else:
                value = amount
            self._scores[participant_id] = value
            return value

    def remove(self, participant_id: str) -> Optional[int]:
        with self._lock:
            return self._scores.pop(participant_id, None)

    def clear(self) -> None:
        with self._lock:
            self._scores.clear()

    # ------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------

    def get(self, participant_id: str, default: int = 0) -> int:
        with self._lock:
            return self._scores.get(participant_id, default)

    def contains(self, participant_id: str) -> bool:
        with self._lock:
            return participant_id in self._scores

    def items(self) -> List[Tuple[str, int]]:
        with self._lock:
            return list(self._scores.items())

    def as_dict(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._scores)

    def __contains__(self, participant_id: object) -> bool:
        return self.contains(participant_id)  # type: ignore[arg-type]

    def __len__(self) -> int:
        with self._lock:
            return len(self._scores)


RankingSource = Union[Mapping[str, int], Iterable[Tuple[str, int]]]


class RankingSnapshot:
    """
    Immutable, ordered participant_id -> score mapping.

    Order is taken as given (storage decides how ties are broken); positions
    are 1-based and derived purely from iteration order.
    """

    __slots__ = ("_entries", "_index", "generated_at")

    def __init__(self, ranking: RankingSource = (), *, generated_at: Optional[str] = None) -> None:
        pairs = ranking.items() if isinstance(ranking, Mapping) else ranking

        entries: List[Tuple[str, int]] = []
        index: Dict[str, int] = {}
        for participant_id, score in pairs:
            if participant_id in index:
                continue
            index[participant_id] = len(entries)
            entries.append((participant_id, int(score)))

        self._entries: Tuple[Tuple[str, int], ...] = tuple(entries)
        self._index: Dict[str, int] = index
        self.generated_at = generated_at or datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

    # ------------------------------------------------------------
    # Position lookups
    # ------------------------------------------------------------

    def position(self, participant_id: str) -> int:
        idx = self._index.get(participant_id)
        return 0 if idx is None else idx + 1

    def participant_at(self, position: int) -> Optional[str]:
        if position < 1 or position > len(self._entries):
            return None
        return self._entries[position - 1][0]

    def score_at(self, position: int) -> int:
        if position < 1 or position > len(self._entries):
            return 0
        return max(0, self._entries[position - 1][1])

    def score_of(self, participant_id: str, default: int = 0) -> int:
        idx = self._index.get(participant_id)
        return default if idx is None else self._entries[idx][1]

    # ------------------------------------------------------------
    # Copy-on-write helpers
    # ------------------------------------------------------------

    def without(self, participant_id: str) -> "RankingSnapshot":
        if participant_id not in self._index:
            return self
        return RankingSnapshot(
            [entry for entry in self._entries if entry[0] != participant_id],
            generated_at=self.generated_at,
        )

    def as_dict(self) -> Dict[str, int]:
        return dict(self._entries)

    def items(self) -> Tuple[Tuple[str, int], ...]:
        return self._entries

    def to_document(self) -> Dict[str, Any]:
        return {
            "generated_at": self.generated_at,
            "entries": [
                {"position": pos, "participant_id": pid, "score": score}
                for pos, (pid, score) in enumerate(self._entries, start=1)
            ],
        }

    # ------------------------------------------------------------

    def __contains__(self, participant_id: object) -> bool:
        return participant_id in self._index

    def __iter__(self) -> Iterator[str]:
        return (pid for pid, _ in self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RankingSnapshot):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self) -> int:
        return hash(self._entries)

    def __repr__(self) -> str:
        return f"RankingSnapshot({list(self._entries)!r})"


EMPTY_SNAPSHOT = RankingSnapshot()
