"""Tests for the weekly performance summary."""

from __future__ import annotations

from datetime import timedelta, timezone

import pytest

from truedtbp.reports import week_number, weekly_summary


# 2026-01-01 is a Thursday
JAN_1_2026 = 1767225600000
DAY_MS = 86_400_000


class TestWeekNumber:
    """Tests for week_number."""

    @pytest.mark.parametrize(
        ("days", "expected"),
        [(0, 1), (2, 1), (3, 2), (9, 2), (10, 3), (364, 53)],
    )
    def test_sunday_start_weeks(self, days: int, expected: int) -> None:
        """Week 1 contains January 1; weeks turn over on Sunday."""
        assert week_number(JAN_1_2026 + days * DAY_MS) == expected

    def test_timezone_bucketing(self) -> None:
        """Late Saturday evening in New York is still the first week."""
        saturday_night_utc_sunday = JAN_1_2026 + 3 * DAY_MS + 2 * 3_600_000
        new_york = timezone(timedelta(hours=-5))

        assert week_number(saturday_night_utc_sunday) == 2
        assert week_number(saturday_night_utc_sunday, new_york) == 1


class TestWeeklySummary:
    """Tests for weekly_summary."""

    def test_groups_by_week(self, make_trade) -> None:
        """Premium, fees and counts are totalled per week, newest first."""
        trades = [
            make_trade(timestamp=JAN_1_2026 + DAY_MS // 2, fees="1"),
            make_trade(timestamp=JAN_1_2026 + 3 * DAY_MS, price="50", fees="2"),
            make_trade(timestamp=JAN_1_2026 + 4 * DAY_MS, price="25", fees="3"),
        ]

        summary = weekly_summary(trades)

        assert summary.columns == ["year", "week", "premium", "fees", "net_profit", "trades"]
        assert summary["week"].to_list() == [2, 1]
        assert summary["premium"].to_list() == [7500.0, 10000.0]
        assert summary["fees"].to_list() == [5.0, 1.0]
        assert summary["net_profit"].to_list() == [7495.0, 9999.0]
        assert summary["trades"].to_list() == [2, 1]

    def test_option_premium_uses_multiplier(self, make_trade) -> None:
        """Option premium counts 100 shares per contract."""
        from truedtbp.engine import InstrumentType

        trade = make_trade(
            timestamp=JAN_1_2026, instrument=InstrumentType.OPTION, quantity="2", price="1.5"
        )

        summary = weekly_summary([trade])

        assert summary["premium"].to_list() == [300.0]

    def test_empty(self) -> None:
        """No trades, no rows."""
        summary = weekly_summary([])

        assert summary.height == 0
        assert "net_profit" in summary.columns
