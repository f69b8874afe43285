"""
Pytest configuration and shared fixtures for True DTBP tests.
"""

from __future__ import annotations

from collections.abc import Callable
from decimal import Decimal
from typing import Any

import pytest

from truedtbp.engine import AccountSettings, InstrumentType, Side, Trade


# =============================================================================
# Settings fixtures
# =============================================================================


@pytest.fixture
def pdt_settings() -> AccountSettings:
    """$30,000 PDT margin account with no open requirement."""
    return AccountSettings(
        start_equity=Decimal("30000"),
        start_maintenance_req=Decimal("0"),
        start_cash=Decimal("30000"),
        is_pdt=True,
    )


# =============================================================================
# Trade factory
# =============================================================================


@pytest.fixture
def make_trade() -> Callable[..., Trade]:
    """
    Factory for trades with sensible defaults.

    Timestamps increase with each call unless given explicitly.
    """
    counter = {"n": 0}

    def _make(
        side: Side = Side.BUY,
        symbol: str = "SPY",
        quantity: Any = "100",
        price: Any = "100",
        fees: Any = "0",
        instrument: InstrumentType = InstrumentType.STOCK,
        leverage_factor: Any = None,
        timestamp: int | None = None,
        trade_id: str | None = None,
    ) -> Trade:
        counter["n"] += 1
        n = counter["n"]
        return Trade(
            trade_id=trade_id or f"T{n}",
            timestamp=timestamp if timestamp is not None else 1_000 * n,
            symbol=symbol,
            instrument=instrument,
            side=side,
            quantity=Decimal(str(quantity)),
            price=Decimal(str(price)),
            fees=Decimal(str(fees)),
            leverage_factor=(
                Decimal(str(leverage_factor)) if leverage_factor is not None else None
            ),
        )

    return _make


# =============================================================================
# Markers
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "scenario: end-to-end buying power scenarios")
    config.addinivalue_line("markers", "slow: marks tests as slow")
