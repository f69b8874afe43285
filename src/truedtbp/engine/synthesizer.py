"""Result Synthesizer: final buying power figures from the terminal state."""

from __future__ import annotations

from decimal import Decimal
from types import MappingProxyType

from truedtbp.engine.formatting import usd
from truedtbp.engine.models import CalculationResult
from truedtbp.engine.policy import MarginPolicy
from truedtbp.engine.replay import ReplayOutcome


# Borrowing bound on current excess equity
EXCESS_LEVERAGE = Decimal(4)


def synthesize(outcome: ReplayOutcome, policy: MarginPolicy) -> CalculationResult:
    """
    Derive the result snapshot.

    Stock buying power is bounded both by the day-trade capacity left
    and by what the account can borrow against its current excess
    equity. Options need full cash backing, so option buying power is
    the excess itself.
    """
    state = outcome.state
    final_dtbp = max(Decimal(0), state.dtbp_cap - state.dtbp_used)
    final_excess = max(Decimal(0), state.equity - state.maintenance_req)

    option_bp = final_excess
    intraday_bp = final_excess * EXCESS_LEVERAGE
    stock_bp = min(final_dtbp, intraday_bp)

    warnings = list(outcome.warnings)
    if stock_bp <= 0:
        warnings.append(
            f"NO STOCK BUYING POWER: DTBP left {usd(final_dtbp)}, "
            f"excess equity {usd(final_excess)}"
        )
    if option_bp <= 0:
        warnings.append("NO OPTION BUYING POWER: no excess equity for cash-only options")

    return CalculationResult(
        current_equity=state.equity,
        current_cash=final_excess,
        stock_bp=stock_bp,
        option_bp=option_bp,
        dtbp_start_of_day=state.dtbp_cap,
        intraday_bp=intraday_bp,
        warnings=tuple(dict.fromkeys(warnings)),
        audit_log=outcome.audit_log,
        open_positions=MappingProxyType(dict(state.positions)),
        dtbp_used=state.dtbp_used,
        maintenance_requirement=state.maintenance_req,
        cash_balance=state.cash,
        pending_proceeds=state.pending_proceeds,
        option_cash_used=state.option_cash_used,
        policy=policy.name,
    )
