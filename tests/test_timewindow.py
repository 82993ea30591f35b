"""Tests for core.tournaments.timewindow: window resolution and status derivation."""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from core.tournaments.status import TournamentStatus
from core.tournaments.timewindow import (
    Timeline,
    TimeWindow,
    format_duration,
    resolve_window,
)

UTC = timezone.utc


class TestTimeline:
    def test_from_value_accepts_names_and_values(self):
        assert Timeline.from_value("weekly") is Timeline.WEEKLY
        assert Timeline.from_value(" DAILY ") is Timeline.DAILY
        assert Timeline.from_value(Timeline.YEARLY) is Timeline.YEARLY

    def test_from_value_rejects_unknown(self):
        with pytest.raises(ValueError):
            Timeline.from_value("fortnightly")


class TestResolveWindow:
    def test_hourly(self):
        now = datetime(2026, 5, 4, 13, 27, 9, tzinfo=UTC)
        start, end = resolve_window(Timeline.HOURLY, ZoneInfo("UTC"), now)
        assert start == datetime(2026, 5, 4, 13, 0, tzinfo=UTC)
        assert end == datetime(2026, 5, 4, 14, 0, tzinfo=UTC)

    def test_daily_uses_local_midnight(self):
        zone = ZoneInfo("America/New_York")
        # 02:00 UTC on the 5th is still the 4th in New York
        now = datetime(2026, 5, 5, 2, 0, tzinfo=UTC)
        start, end = resolve_window(Timeline.DAILY, zone, now)
        assert (start.year, start.month, start.day, start.hour) == (2026, 5, 4, 0)
        assert (end.day, end.hour) == (5, 0)
        assert start.tzinfo is zone

    def test_weekly_starts_monday(self):
        # 2026-05-07 is a Thursday
        now = datetime(2026, 5, 7, 10, 0, tzinfo=UTC)
        start, end = resolve_window(Timeline.WEEKLY, ZoneInfo("UTC"), now)
        assert start.weekday() == 0
        assert start == datetime(2026, 5, 4, tzinfo=UTC)
        assert end == datetime(2026, 5, 11, tzinfo=UTC)

    def test_monthly_rolls_over_december(self):
        now = datetime(2026, 12, 15, tzinfo=UTC)
        start, end = resolve_window(Timeline.MONTHLY, ZoneInfo("UTC"), now)
        assert start == datetime(2026, 12, 1, tzinfo=UTC)
        assert end == datetime(2027, 1, 1, tzinfo=UTC)

    def test_yearly(self):
        now = datetime(2026, 7, 1, tzinfo=UTC)
        start, end = resolve_window(Timeline.YEARLY, ZoneInfo("UTC"), now)
        assert start == datetime(2026, 1, 1, tzinfo=UTC)
        assert end == datetime(2027, 1, 1, tzinfo=UTC)

    def test_daily_window_across_dst_change_is_midnight_to_midnight(self):
        zone = ZoneInfo("Europe/London")
        # Clocks go forward on 2026-03-29
        now = datetime(2026, 3, 29, 12, 0, tzinfo=UTC)
        start, end = resolve_window(Timeline.DAILY, zone, now)
        assert (start.hour, end.hour) == (0, 0)
        assert end.timestamp() - start.timestamp() == 23 * 3600

    def test_specific_has_no_resolution(self):
        with pytest.raises(ValueError):
            resolve_window(Timeline.SPECIFIC, ZoneInfo("UTC"), datetime.now(UTC))


class TestTimeWindow:
    def test_status_at(self):
        window = TimeWindow(
            Timeline.SPECIFIC,
            start=datetime(2026, 1, 1, 10, tzinfo=UTC),
            end=datetime(2026, 1, 1, 12, tzinfo=UTC),
        )
        assert window.status_at(datetime(2026, 1, 1, 9, tzinfo=UTC)) is TournamentStatus.WAITING
        assert window.status_at(datetime(2026, 1, 1, 10, tzinfo=UTC)) is TournamentStatus.ACTIVE
        assert window.status_at(datetime(2026, 1, 1, 12, tzinfo=UTC)) is TournamentStatus.ENDED

    def test_naive_bounds_get_the_zone(self):
        zone = ZoneInfo("Asia/Tokyo")
        window = TimeWindow(Timeline.SPECIFIC, zone, datetime(2026, 1, 1), datetime(2026, 1, 2))
        assert window.start.tzinfo is zone

    def test_refresh_leaves_specific_untouched(self):
        start = datetime(2026, 1, 1, tzinfo=UTC)
        end = datetime(2026, 1, 2, tzinfo=UTC)
        window = TimeWindow(Timeline.SPECIFIC, start=start, end=end)
        window.refresh(datetime(2027, 1, 1, tzinfo=UTC))
        assert (window.start, window.end) == (start, end)

    def test_refresh_moves_recurring_window(self):
        window = TimeWindow(Timeline.DAILY)
        window.refresh(datetime(2026, 1, 1, 8, tzinfo=UTC))
        first_end = window.end
        window.refresh(datetime(2026, 1, 2, 8, tzinfo=UTC))
        assert window.start == first_end

    def test_unresolved_window_raises(self):
        with pytest.raises(ValueError):
            TimeWindow(Timeline.DAILY).status_at(datetime.now(UTC))

    def test_time_remaining(self):
        window = TimeWindow(
            Timeline.SPECIFIC,
            start=datetime(2026, 1, 1, tzinfo=UTC),
            end=datetime(2026, 1, 2, 2, 3, 4, tzinfo=UTC),
        )
        now = datetime(2026, 1, 1, tzinfo=UTC)
        assert window.time_remaining(TournamentStatus.ACTIVE, now) == "1d 2h 3m 4s"
        assert window.time_remaining(TournamentStatus.ENDED, now) == "N/A"

    def test_display_helpers(self):
        window = TimeWindow(
            Timeline.SPECIFIC,
            start=datetime(2026, 2, 3, tzinfo=UTC),
            end=datetime(2026, 3, 9, tzinfo=UTC),
        )
        assert window.start_day() == "3"
        assert window.end_month_name() == "March"
        assert window.start_month_number() == "2"
        assert window.end_millis - window.start_millis == 34 * 86400 * 1000


class TestFormatDuration:
    @pytest.mark.parametrize(
        "seconds,expected",
        [
            (0, "0s"),
            (59, "59s"),
            (61, "1m 1s"),
            (3600, "1h 0m 0s"),
            (90061, "1d 1h 1m 1s"),
            (-5, "0s"),
        ],
    )
    def test_formats(self, seconds, expected):
        assert format_duration(seconds) == expected
