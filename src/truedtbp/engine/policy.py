"""
Margin Policy.

Broker modes differ in three ways:
- whether exits re-credit day-trade buying power the same day
- whether option buys draw from the shared DTBP pool or a cash-only pool
- whether leveraged-ETF entries are penalised always or per broker rules

The replay consults a policy at exactly two points:
entry_consumption() on entries and exit_credit() on exits.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

import msgspec

from truedtbp.engine.models import BrokerType, Trade


class CreditBack(str, Enum):
    """Whether exits restore consumed DTBP intraday."""

    CONSERVATIVE = "conservative"  # Call avoidance: never re-credit
    STANDARD = "standard"  # Closing a same-day position restores its cost


class OptionPool(str, Enum):
    """Which pool option entries consume."""

    SHARED_DTBP = "shared_dtbp"  # Options compete with stocks for DTBP
    CASH_ONLY = "cash_only"  # Options draw only on cash (excess equity)


class LeveragePenalty(str, Enum):
    """When leveraged-ETF entries consume extra DTBP."""

    ALWAYS = "always"
    BROKER_SPECIFIC = "broker_specific"  # Only for brokers in penalty_brokers


class EntryCharge(msgspec.Struct, frozen=True, gc=False):
    """Cost of one entry under a policy."""

    consumed: Decimal  # DTBP consumed
    cash_draw: Decimal  # Drawn from the cash-only option pool instead
    penalty_factor: Decimal


class MarginPolicy(msgspec.Struct, frozen=True, kw_only=True):
    """
    Policy value threaded through one replay.

    Examples:
        # Call-avoidance replay (default for generic FINRA accounts)
        policy = MarginPolicy.conservative()

        # Preset matching a broker's documented behaviour
        policy = MarginPolicy.for_broker(BrokerType.SCHWAB_TOS)

        # Any combination
        policy = MarginPolicy(
            credit_back=CreditBack.STANDARD,
            option_pool=OptionPool.SHARED_DTBP,
            leverage_penalty=LeveragePenalty.ALWAYS,
        )
    """

    credit_back: CreditBack = CreditBack.CONSERVATIVE
    option_pool: OptionPool = OptionPool.SHARED_DTBP
    leverage_penalty: LeveragePenalty = LeveragePenalty.ALWAYS
    penalty_brokers: frozenset[BrokerType] = frozenset({BrokerType.SCHWAB_TOS})
    max_leverage_penalty: Decimal = Decimal("4")

    # Whether proceeds are spendable cash the same day (else pending)
    sale_proceeds_spendable: bool = False
    short_proceeds_spendable: bool = False

    @classmethod
    def conservative(cls) -> MarginPolicy:
        """Never re-credit DTBP; options share the pool; always penalise leverage."""
        return cls(
            credit_back=CreditBack.CONSERVATIVE,
            option_pool=OptionPool.SHARED_DTBP,
            leverage_penalty=LeveragePenalty.ALWAYS,
        )

    @classmethod
    def standard(cls) -> MarginPolicy:
        """Re-credit same-day round trips; cash-only options; broker leverage rules."""
        return cls(
            credit_back=CreditBack.STANDARD,
            option_pool=OptionPool.CASH_ONLY,
            leverage_penalty=LeveragePenalty.BROKER_SPECIFIC,
        )

    @classmethod
    def for_broker(cls, broker: BrokerType) -> MarginPolicy:
        """
        Preset for a broker rule set.

        - Generic FINRA: conservative
        - Fidelity: fixed start-of-day DTBP, intraday round trips restore
          BP, options are cash only, no leveraged-ETF penalty
        - Schwab/thinkorswim: dynamic DTBP, leveraged ETFs consume extra BP
        """
        if broker == BrokerType.FIDELITY:
            return cls.standard()
        if broker == BrokerType.SCHWAB_TOS:
            return cls(
                credit_back=CreditBack.STANDARD,
                option_pool=OptionPool.SHARED_DTBP,
                leverage_penalty=LeveragePenalty.BROKER_SPECIFIC,
            )
        return cls.conservative()

    @property
    def name(self) -> str:
        """Short label used in the audit trail."""
        return (
            f"{self.credit_back.value}/{self.option_pool.value}"
            f"/{self.leverage_penalty.value}"
        )

    def penalty_factor(self, trade: Trade, broker: BrokerType) -> Decimal:
        """DTBP multiplier for a trade, between 1 and max_leverage_penalty."""
        if not trade.is_leveraged_etf:
            return Decimal(1)
        if (
            self.leverage_penalty == LeveragePenalty.BROKER_SPECIFIC
            and broker not in self.penalty_brokers
        ):
            return Decimal(1)
        return max(Decimal(1), min(trade.leverage, self.max_leverage_penalty))

    def draws_on_dtbp(self, trade: Trade) -> bool:
        """Whether the instrument consumes day-trade buying power at all."""
        return not (trade.is_option and self.option_pool == OptionPool.CASH_ONLY)

    def entry_consumption(self, trade: Trade, broker: BrokerType) -> EntryCharge:
        """
        What an entry costs.

        Returns:
            EntryCharge with DTBP consumed (total_cost scaled by the
            leverage penalty), or a cash-pool draw for options in the
            cash-only pool
        """
        factor = self.penalty_factor(trade, broker)
        if not self.draws_on_dtbp(trade):
            return EntryCharge(
                consumed=Decimal(0), cash_draw=trade.total_cost, penalty_factor=factor
            )
        return EntryCharge(
            consumed=trade.total_cost * factor, cash_draw=Decimal(0), penalty_factor=factor
        )

    def exit_credit(
        self,
        trade: Trade,
        closed_cost_basis: Decimal,
        dtbp_used: Decimal,
        broker: BrokerType,
    ) -> Decimal:
        """
        DTBP restored by an exit.

        Args:
            trade: Exit trade
            closed_cost_basis: Entry cost of the quantity this exit closed
            dtbp_used: DTBP consumed so far
            broker: Account broker

        Returns:
            Amount to subtract from dtbp_used (never more than dtbp_used)
        """
        if self.credit_back == CreditBack.CONSERVATIVE:
            return Decimal(0)
        if not self.draws_on_dtbp(trade):
            return Decimal(0)
        credit = closed_cost_basis * self.penalty_factor(trade, broker)
        return max(Decimal(0), min(credit, dtbp_used))
