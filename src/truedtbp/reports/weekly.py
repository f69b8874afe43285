"""
Weekly Performance Summary.

Aggregates the trade log by spreadsheet-style week number for broker
reconciliation: total premium (notional), fees and net profit per week.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone, tzinfo

import polars as pl

from truedtbp.engine.models import Trade


SUMMARY_SCHEMA: dict[str, pl.DataType] = {
    "year": pl.Int64,
    "week": pl.Int64,
    "premium": pl.Float64,
    "fees": pl.Float64,
}


def week_number(timestamp_ms: int, tz: tzinfo = timezone.utc) -> int:
    """
    Week of the year, spreadsheet WEEKNUM(date, 1) semantics.

    Weeks start on Sunday and week 1 is the week containing January 1.

    Example:
        >>> week_number(1767484800000)  # Sunday 2026-01-04
        2
    """
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz)
    day_of_year = dt.timetuple().tm_yday - 1
    jan1_weekday = (dt.replace(month=1, day=1).weekday() + 1) % 7  # Sunday = 0
    return (day_of_year + jan1_weekday) // 7 + 1


def weekly_summary(trades: Iterable[Trade], tz: tzinfo = timezone.utc) -> pl.DataFrame:
    """
    Summarize trades per week, newest week first.

    Args:
        trades: Trade log
        tz: Timezone used to bucket timestamps

    Returns:
        DataFrame with columns year, week, premium, fees, net_profit, trades
    """
    rows = [
        {
            "year": datetime.fromtimestamp(t.timestamp / 1000, tz).year,
            "week": week_number(t.timestamp, tz),
            "premium": float(t.notional),
            "fees": float(t.fees),
        }
        for t in trades
    ]
    frame = pl.DataFrame(rows, schema=SUMMARY_SCHEMA)

    return (
        frame.group_by(["year", "week"])
        .agg(
            pl.col("premium").sum(),
            pl.col("fees").sum(),
            pl.len().cast(pl.Int64).alias("trades"),
        )
        .with_columns((pl.col("premium") - pl.col("fees")).alias("net_profit"))
        .select(["year", "week", "premium", "fees", "net_profit", "trades"])
        .sort(["year", "week"], descending=True)
    )
