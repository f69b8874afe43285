"""Trade Sequencer: deterministic replay order."""

from __future__ import annotations

from collections.abc import Iterable

from truedtbp.engine.models import Trade


def order_trades(trades: Iterable[Trade]) -> list[Trade]:
    """
    Order trades by timestamp ascending.

    The sort is stable, so trades sharing a timestamp keep their input
    order. DTBP consumption is irreversible within a run, so replaying
    out of order changes the result.
    """
    return sorted(trades, key=lambda trade: trade.timestamp)
