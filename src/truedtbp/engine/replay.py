"""
Trade Replay State Machine.

Folds an ordered trade sequence into an EngineState. Each step is a
pure function of (state, trade, context) returning a new state plus
the audit lines and warnings that step produced, so a replay is
re-entrant and every intermediate state can be inspected:

    state = initial_state(settings, resolve_cap(settings))
    for trade in order_trades(trades):
        state, step = apply_trade(state, trade, context)

Entries (buy, sell short) add maintenance requirement and consume DTBP
according to the policy. Exits (sell, buy to cover) release
requirement, realize P&L against the weighted-average cost and may
re-credit DTBP according to the policy.

replay() collects step output into one log, so a full replay costs
time linear in the number of trades.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal

import msgspec
from msgspec import structs

from truedtbp.engine.formatting import pct, qty, usd
from truedtbp.engine.margin_table import MarginTable
from truedtbp.engine.models import AccountSettings, Position, Side, Trade
from truedtbp.engine.policy import CreditBack, MarginPolicy
from truedtbp.engine.resolver import ResolvedCap

logger = logging.getLogger(__name__)


# Positions smaller than this are treated as flat (float-derived inputs)
POSITION_EPSILON = Decimal("1e-9")

MARGIN_CALL_WARNING = "MARGIN CALL: equity below maintenance requirement"


class ReplayContext(msgspec.Struct, frozen=True):
    """Read-only configuration for one replay."""

    settings: AccountSettings
    policy: MarginPolicy
    margin_table: MarginTable


class EngineState(msgspec.Struct, frozen=True):
    """Running account state between trades."""

    dtbp_cap: Decimal
    dtbp_used: Decimal
    maintenance_req: Decimal
    equity: Decimal
    cash: Decimal
    pending_proceeds: Decimal
    option_cash_used: Decimal
    positions: dict[str, Position]
    trades_processed: int = 0

    @property
    def dtbp_remaining(self) -> Decimal:
        """Cap minus consumption; negative when exceeded."""
        return self.dtbp_cap - self.dtbp_used

    @property
    def maintenance_excess(self) -> Decimal:
        """Equity minus maintenance requirement; negative in a margin call."""
        return self.equity - self.maintenance_req


class StepRecord(msgspec.Struct, frozen=True, gc=False):
    """Audit lines and warnings produced by one trade."""

    audit_lines: tuple[str, ...]
    warnings: tuple[str, ...]


class ReplayOutcome(msgspec.Struct, frozen=True):
    """Terminal state with the complete audit trail."""

    state: EngineState
    warnings: tuple[str, ...]
    audit_log: tuple[str, ...]


def initial_state(settings: AccountSettings, resolved: ResolvedCap) -> EngineState:
    """State before the first trade of the day."""
    return EngineState(
        dtbp_cap=resolved.cap,
        dtbp_used=Decimal(0),
        maintenance_req=Decimal(settings.start_maintenance_req),
        equity=Decimal(settings.start_equity),
        cash=Decimal(settings.start_cash),
        pending_proceeds=Decimal(0),
        option_cash_used=Decimal(0),
        positions={},
    )


def _side_label(side: Side) -> str:
    return side.value.replace("_", " ").upper()


def _matched_quantity(position: Position | None, trade: Trade) -> Decimal:
    """Quantity of an exit that closes the existing position."""
    if position is None:
        return Decimal(0)
    if trade.side == Side.SELL and position.is_long:
        return min(Decimal(trade.quantity), position.quantity)
    if trade.side == Side.BUY_TO_COVER and position.is_short:
        return min(Decimal(trade.quantity), -position.quantity)
    return Decimal(0)


def _update_position(position: Position | None, trade: Trade) -> Position | None:
    """
    Apply a trade to a position.

    Entries that grow the position blend the average cost with the
    trade's notional; trades that shrink it change only the quantity;
    opening from flat or flipping sign resets the average to the
    trade's cost per unit.

    Returns:
        Updated position, or None when the position is flat
    """
    old_qty = position.quantity if position is not None else Decimal(0)
    old_avg = position.avg_price if position is not None else Decimal(0)
    quantity = Decimal(trade.quantity)
    new_qty = old_qty + quantity * trade.side.signed_direction

    if abs(new_qty) < POSITION_EPSILON:
        return None

    if old_qty == 0 or (old_qty > 0) != (new_qty > 0):
        return Position(quantity=new_qty, avg_price=trade.notional / quantity)

    if trade.side.is_entry and abs(new_qty) > abs(old_qty):
        blended = (abs(old_qty) * old_avg + trade.notional) / abs(new_qty)
        return Position(quantity=new_qty, avg_price=blended)

    return Position(quantity=new_qty, avg_price=old_avg)


def apply_trade(
    state: EngineState,
    trade: Trade,
    context: ReplayContext,
) -> tuple[EngineState, StepRecord]:
    """
    Fold one trade into the state.

    Args:
        state: State before the trade
        trade: Next trade in replay order
        context: Settings, policy and margin table for this replay

    Returns:
        New state after the trade, and the lines and warnings it added
    """
    settings = context.settings
    policy = context.policy
    broker = settings.broker
    step = state.trades_processed + 1
    key = trade.key

    notional = trade.notional
    fees = Decimal(trade.fees)
    req_pct = context.margin_table.requirement_for(trade, settings.maintenance_margin_pct)
    requirement = notional * req_pct

    existing = state.positions.get(key)
    positions = dict(state.positions)
    updated = _update_position(existing, trade)
    if updated is None:
        positions.pop(key, None)
    else:
        positions[key] = updated

    dtbp_used = state.dtbp_used
    maintenance_req = state.maintenance_req
    equity = state.equity
    cash = state.cash
    pending = state.pending_proceeds
    option_cash_used = state.option_cash_used
    details: list[str] = []

    header = (
        f"{step}. {_side_label(trade.side)} {qty(trade.quantity)} {key} "
        f"@ {usd(Decimal(trade.price))}: notional {usd(notional)}"
    )

    if trade.side.is_entry:
        charge = policy.entry_consumption(trade, broker)
        dtbp_used += charge.consumed
        if charge.cash_draw > 0:
            option_cash_used += charge.cash_draw
            details.append(f"option drawn from cash-only pool: {usd(charge.cash_draw)}")

        maintenance_req += requirement
        equity -= fees

        if trade.side == Side.BUY:
            cash -= trade.total_cost
        elif policy.short_proceeds_spendable:
            cash += notional - fees
        else:
            pending += notional
            cash -= fees

        if charge.penalty_factor > 1:
            details.append(f"leveraged ETF penalty x{qty(charge.penalty_factor)} applied")

        line = (
            f"{header} | req {pct(req_pct)} -> maint +{usd(requirement)} | "
            f"DTBP consumed {usd(charge.consumed)} "
            f"(used {usd(dtbp_used)} of {usd(state.dtbp_cap)})"
        )
    else:
        matched = _matched_quantity(existing, trade)
        if matched > 0 and existing is not None:
            cost_basis = matched * existing.avg_price
        else:
            cost_basis = Decimal(0)
        proceeds = matched * Decimal(trade.price) * trade.multiplier
        if trade.side == Side.SELL:
            realized = proceeds - cost_basis
        else:
            realized = cost_basis - proceeds

        released = min(requirement, maintenance_req)
        maintenance_req = max(Decimal(0), maintenance_req - requirement)
        equity += realized
        equity -= fees

        credit = policy.exit_credit(trade, cost_basis, dtbp_used, broker)
        dtbp_used -= credit

        if trade.side == Side.SELL:
            if policy.sale_proceeds_spendable:
                cash += notional - fees
            else:
                pending += notional
                cash -= fees
        else:
            cash -= trade.total_cost

        unmatched = Decimal(trade.quantity) - matched
        if unmatched > 0:
            details.append(
                f"{qty(unmatched)} not matched to an open position; no P&L realized on it"
            )

        suffix = ""
        if policy.credit_back == CreditBack.CONSERVATIVE:
            suffix = " (not re-credited: call avoidance)"
        line = (
            f"{header} | maint -{usd(released)} | realized P&L {usd(realized)} | "
            f"DTBP credit {usd(credit)}{suffix}"
        )

    warnings: list[str] = []
    remaining = state.dtbp_cap - dtbp_used
    if remaining < 0:
        warnings.append(
            f"DTBP EXCEEDED on trade {trade.trade_id}: "
            f"{usd(-remaining)} over day-trade capacity"
        )
    excess = equity - maintenance_req
    if excess < 0:
        warnings.append(MARGIN_CALL_WARNING)
        details.append(f"margin deficit {usd(-excess)}")

    logger.debug(
        "Replayed %s (%s %s): dtbp_used=%s maint=%s equity=%s",
        trade.trade_id,
        trade.side.value,
        key,
        dtbp_used,
        maintenance_req,
        equity,
    )

    new_state = structs.replace(
        state,
        dtbp_used=dtbp_used,
        maintenance_req=maintenance_req,
        equity=equity,
        cash=cash,
        pending_proceeds=pending,
        option_cash_used=option_cash_used,
        positions=positions,
        trades_processed=step,
    )
    record = StepRecord(
        audit_lines=(line, *(f"   - {d}" for d in details)),
        warnings=tuple(warnings),
    )
    return new_state, record


def replay(
    trades: Iterable[Trade],
    context: ReplayContext,
    resolved: ResolvedCap,
) -> ReplayOutcome:
    """
    Replay trades, in the given order, from the start of the day.

    The resolver's audit line and warnings open the log.
    """
    state = initial_state(context.settings, resolved)
    warnings = list(resolved.warnings)
    audit_log = [resolved.audit_line]

    for trade in trades:
        state, record = apply_trade(state, trade, context)
        audit_log.extend(record.audit_lines)
        warnings.extend(record.warnings)

    return ReplayOutcome(state=state, warnings=tuple(warnings), audit_log=tuple(audit_log))
