"""
Buying Power Calculator.

Runs the full pipeline for one set of inputs:
settings -> resolved cap -> ordered replay -> result snapshot.

The engine keeps no state between calls; every change to the trade
log or settings is a fresh, full replay.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal

from truedtbp.engine.margin_table import MarginTable
from truedtbp.engine.models import (
    AccountSettings,
    CalculationResult,
    InstrumentType,
    Side,
    Trade,
)
from truedtbp.engine.policy import MarginPolicy
from truedtbp.engine.replay import ReplayContext, replay
from truedtbp.engine.resolver import resolve_cap
from truedtbp.engine.sequencer import order_trades
from truedtbp.engine.synthesizer import synthesize

logger = logging.getLogger(__name__)


def calculate(
    settings: AccountSettings,
    trades: Sequence[Trade],
    policy: MarginPolicy | None = None,
    margin_table: MarginTable | None = None,
) -> CalculationResult:
    """
    Calculate buying power after replaying a day's trades.

    Args:
        settings: Start-of-day account settings
        trades: Executed trades in any order
        policy: Margin policy (default: preset for settings.broker)
        margin_table: Requirement table (default: built-in house table)

    Returns:
        Immutable CalculationResult

    Example:
        >>> result = calculate(DEFAULT_SETTINGS, [buy_100_spy_at_100])
        >>> result.stock_bp
        Decimal('110000')
    """
    policy = policy or MarginPolicy.for_broker(settings.broker)
    margin_table = margin_table or MarginTable.default()

    context = ReplayContext(settings=settings, policy=policy, margin_table=margin_table)
    outcome = replay(order_trades(trades), context, resolve_cap(settings))
    result = synthesize(outcome, policy)

    logger.debug(
        "Calculated %d trades under %s: stock_bp=%s option_bp=%s warnings=%d",
        len(trades),
        policy.name,
        result.stock_bp,
        result.option_bp,
        len(result.warnings),
    )
    return result


def preview(
    settings: AccountSettings,
    trades: Sequence[Trade],
    candidate: Trade,
    policy: MarginPolicy | None = None,
    margin_table: MarginTable | None = None,
) -> CalculationResult:
    """
    What-if result with a hypothetical trade appended.

    The caller's trade list is not modified; discard the result to
    drop the scenario.
    """
    return calculate(settings, [*trades, candidate], policy, margin_table)


class BuyingPowerCalculator:
    """
    Calculator bound to one account's settings and policy.

    Example:
        >>> calculator = BuyingPowerCalculator(settings)
        >>> result = calculator.calculate(trades)
        >>> allowed, reason = calculator.can_enter(trades, candidate)
        >>> calculator.max_quantity(trades, InstrumentType.STOCK, Decimal("100"))
        1100
    """

    def __init__(
        self,
        settings: AccountSettings,
        policy: MarginPolicy | None = None,
        margin_table: MarginTable | None = None,
    ):
        """
        Initialize calculator.

        Args:
            settings: Start-of-day account settings
            policy: Margin policy (default based on broker)
            margin_table: Requirement table (default: built-in house table)
        """
        self.settings = settings
        self.policy = policy or MarginPolicy.for_broker(settings.broker)
        self.margin_table = margin_table or MarginTable.default()

    def calculate(self, trades: Sequence[Trade]) -> CalculationResult:
        """Replay trades and return the result snapshot."""
        return calculate(self.settings, trades, self.policy, self.margin_table)

    def preview(self, trades: Sequence[Trade], candidate: Trade) -> CalculationResult:
        """Result with a hypothetical trade appended."""
        return preview(self.settings, trades, candidate, self.policy, self.margin_table)

    def can_enter(
        self,
        trades: Sequence[Trade],
        candidate: Trade,
    ) -> tuple[bool, str]:
        """
        Check whether a trade fits within buying power.

        A candidate is rejected when it introduces a DTBP-exceeded or
        margin-call warning that the current log does not already have.

        Returns:
            (allowed, reason) tuple
        """
        before = set(self.calculate(trades).warnings)
        after = self.preview(trades, candidate)

        new_warnings = [
            w
            for w in after.warnings
            if w not in before and w.startswith(("DTBP EXCEEDED", "MARGIN CALL"))
        ]
        if new_warnings:
            return False, new_warnings[0]

        return True, "Order allowed"

    def max_quantity(
        self,
        trades: Sequence[Trade],
        instrument: InstrumentType,
        price: Decimal,
        leverage_factor: Decimal | None = None,
        symbol: str = "PROBE",
    ) -> int:
        """
        Maximum whole shares or contracts purchasable now.

        The quantity is bounded by the DTBP left, at the policy's
        consumption per unit, and by the excess equity, at the margin
        requirement per unit. Buying it raises neither a DTBP-exceeded
        nor a margin-call warning.

        Args:
            trades: Current trade log
            instrument: Instrument kind to buy
            price: Price per share or contract
            leverage_factor: Leverage of a leveraged ETF
            symbol: Symbol to buy (house requirements apply)

        Returns:
            Maximum quantity (0 when price is not positive)
        """
        if price <= 0:
            return 0

        result = self.calculate(trades)
        dtbp_left = max(Decimal(0), result.dtbp_start_of_day - result.dtbp_used)
        excess = max(
            Decimal(0), result.current_equity - result.maintenance_requirement
        )

        unit = Trade(
            trade_id="max-quantity",
            timestamp=0,
            symbol=symbol,
            instrument=instrument,
            side=Side.BUY,
            quantity=Decimal(1),
            price=price,
            leverage_factor=leverage_factor,
        )
        consumed = self.policy.entry_consumption(unit, self.settings.broker).consumed
        requirement = unit.notional * self.margin_table.requirement_for(
            unit, self.settings.maintenance_margin_pct
        )

        bounds = [excess / requirement]
        if consumed > 0:
            bounds.append(dtbp_left / consumed)
        return int(min(bounds))
