"""
Tournament time windows.

A window is either a fixed pair of instants (SPECIFIC) or a recurring
timeline that is re-resolved against the current time every time the status
is derived. All recurring windows are aligned to calendar boundaries in the
tournament's zone.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from enum import Enum
from typing import Any, Optional, Tuple
from zoneinfo import ZoneInfo

from core.tournaments.status import TournamentStatus


class Timeline(Enum):
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    SPECIFIC = "specific"

    @classmethod
    def from_value(cls, value: Any) -> "Timeline":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if normalized in {member.name.lower(), member.value}:
                    return member
        raise ValueError(f"Unknown timeline: {value!r}")


UTC = ZoneInfo("UTC")


def _midnight(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def _add_month(value: datetime) -> datetime:
    if value.month == 12:
        return value.replace(year=value.year + 1, month=1)
    return value.replace(month=value.month + 1)


def resolve_window(timeline: Timeline, zone: tzinfo, now: datetime) -> Tuple[datetime, datetime]:
    """
    Resolve the recurring window that contains ``now``.

    Arithmetic is done on wall-clock values so a DAILY window always runs from
    local midnight to local midnight, even across DST changes.
    """
    local = now.astimezone(zone).replace(tzinfo=None)

    if timeline == Timeline.HOURLY:
        start = local.replace(minute=0, second=0, microsecond=0)
        end = start + timedelta(hours=1)
    elif timeline == Timeline.DAILY:
        start = _midnight(local)
        end = start + timedelta(days=1)
    elif timeline == Timeline.WEEKLY:
        start = _midnight(local) - timedelta(days=local.weekday())
        end = start + timedelta(days=7)
    elif timeline == Timeline.MONTHLY:
        start = _midnight(local).replace(day=1)
        end = _add_month(start)
    elif timeline == Timeline.YEARLY:
        start = _midnight(local).replace(month=1, day=1)
        end = start.replace(year=start.year + 1)
    else:
        raise ValueError("SPECIFIC windows have no recurring resolution")

    return start.replace(tzinfo=zone), end.replace(tzinfo=zone)


def format_duration(seconds: int) -> str:
    seconds = max(0, int(seconds))
    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)

    parts = []
    if days:
        parts.append(f"{days}d")
    if days or hours:
        parts.append(f"{hours}h")
    if days or hours or minutes:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return " ".join(parts)


@dataclass
class TimeWindow:
    """
    Start/end instants for a tournament plus the schedule they come from.

    For SPECIFIC timelines ``start`` and ``end`` are fixed at construction;
    for every other timeline they are cached values overwritten by refresh().
    """

    timeline: Timeline
    zone: tzinfo = UTC
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.start is not None and self.start.tzinfo is None:
            self.start = self.start.replace(tzinfo=self.zone)
        if self.end is not None and self.end.tzinfo is None:
            self.end = self.end.replace(tzinfo=self.zone)

    @property
    def recurring(self) -> bool:
        return self.timeline != Timeline.SPECIFIC

    def refresh(self, now: datetime) -> None:
        if self.recurring:
            self.start, self.end = resolve_window(self.timeline, self.zone, now)

    def status_at(self, now: datetime) -> TournamentStatus:
        if self.start is None or self.end is None:
            raise ValueError("Time window has not been resolved")
        if now < self.start:
            return TournamentStatus.WAITING
        if now < self.end:
            return TournamentStatus.ACTIVE
        return TournamentStatus.ENDED

    # ------------------------------------------------------------
    # Display helpers
    # ------------------------------------------------------------

    @property
    def start_millis(self) -> int:
        return int(self.start.timestamp() * 1000) if self.start else 0

    @property
    def end_millis(self) -> int:
        return int(self.end.timestamp() * 1000) if self.end else 0

    def time_remaining(self, status: TournamentStatus, now: datetime) -> str:
        if status == TournamentStatus.ACTIVE and self.end is not None:
            return format_duration((self.end - now).total_seconds())
        if status == TournamentStatus.WAITING and self.start is not None:
            return format_duration((self.start - now).total_seconds())
        return "N/A"

    def start_day(self) -> str:
        return str(self.start.day) if self.start else ""

    def end_day(self) -> str:
        return str(self.end.day) if self.end else ""

    def start_month_name(self) -> str:
        return self.start.strftime("%B") if self.start else ""

    def end_month_name(self) -> str:
        return self.end.strftime("%B") if self.end else ""

    def start_month_number(self) -> str:
        return str(self.start.month) if self.start else ""

    def end_month_number(self) -> str:
        return str(self.end.month) if self.end else ""

    def to_document(self) -> dict:
        return {
            "timeline": self.timeline.value,
            "zone": str(self.zone),
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
        }
