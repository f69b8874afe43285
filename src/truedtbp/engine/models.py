"""
Data Models for the Day-Trade Buying Power Engine.

Inputs (AccountSettings, Trade) are validated on construction so that
non-finite or negative values never reach the replay. Outputs
(CalculationResult) are immutable snapshots.

All monetary values, quantities and percentages are Decimal.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from enum import Enum
from typing import Any

import msgspec
from msgspec import structs


class BrokerType(str, Enum):
    """Broker rule set used to pick the default margin policy."""

    GENERIC_FINRA = "generic_finra"  # FINRA Rule 4210
    FIDELITY = "fidelity"
    SCHWAB_TOS = "schwab_tos"  # Schwab / thinkorswim


class AccountType(str, Enum):
    """Account type."""

    MARGIN = "margin"
    CASH = "cash"


class InstrumentType(str, Enum):
    """Instrument kind of a trade."""

    STOCK = "stock"
    OPTION = "option"
    LEVERAGED_ETF = "leveraged_etf"


class Side(str, Enum):
    """Order side."""

    BUY = "buy"
    SELL = "sell"
    SELL_SHORT = "sell_short"
    BUY_TO_COVER = "buy_to_cover"

    @property
    def is_entry(self) -> bool:
        """Buy and sell-short open or increase exposure."""
        return self in (Side.BUY, Side.SELL_SHORT)

    @property
    def is_short_side(self) -> bool:
        """Sell-short and buy-to-cover act on short exposure."""
        return self in (Side.SELL_SHORT, Side.BUY_TO_COVER)

    @property
    def signed_direction(self) -> int:
        """+1 when the trade adds shares, -1 when it removes them."""
        return 1 if self in (Side.BUY, Side.BUY_TO_COVER) else -1


# Standard equity option contract multiplier
OPTION_MULTIPLIER = Decimal(100)

# PDT minimum equity (FINRA Rule 4210)
PDT_MIN_EQUITY = Decimal("25000")


# =============================================================================
# Errors
# =============================================================================


class DTBPError(Exception):
    """Base error for the buying power engine."""


class TradeValidationError(DTBPError, ValueError):
    """Trade has malformed fields."""


class SettingsValidationError(DTBPError, ValueError):
    """Account settings have malformed fields."""


def _check_number(
    error: type[DTBPError],
    name: str,
    value: Any,
    *,
    positive: bool = False,
) -> None:
    """Reject non-Decimal, non-finite and negative (or non-positive) numbers."""
    if isinstance(value, bool) or not isinstance(value, (Decimal, int)):
        raise error(f"{name} must be a Decimal, got {type(value).__name__}")
    if isinstance(value, Decimal) and not value.is_finite():
        raise error(f"{name} must be finite, got {value}")
    if positive and value <= 0:
        raise error(f"{name} must be positive, got {value}")
    if value < 0:
        raise error(f"{name} must not be negative, got {value}")


def to_decimal(value: Any) -> Decimal:
    """Convert config/JSON numbers to Decimal without float artifacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


# =============================================================================
# Inputs
# =============================================================================


class AccountSettings(msgspec.Struct, frozen=True, kw_only=True):
    """
    Start-of-day account state and broker configuration.

    Defaults describe a $30,000 PDT margin account under generic
    FINRA rules with no open maintenance requirement.

    Example:
        >>> settings = AccountSettings(start_equity=Decimal("50000"), is_pdt=True)
        >>> settings.broker
        <BrokerType.GENERIC_FINRA: 'generic_finra'>
    """

    broker: BrokerType = BrokerType.GENERIC_FINRA
    account_type: AccountType = AccountType.MARGIN
    is_pdt: bool = True

    start_equity: Decimal = Decimal("30000")
    start_maintenance_req: Decimal = Decimal("0")
    start_cash: Decimal = Decimal("30000")  # Settled cash

    # Broker-reported start-of-day DTBP; > 0 overrides the computed cap
    dtbp_override: Decimal | None = None

    # Default maintenance percentage for instruments with no specific rule
    maintenance_margin_pct: Decimal | None = Decimal("0.25")

    def __post_init__(self) -> None:
        """Validate monetary fields."""
        err = SettingsValidationError
        _check_number(err, "start_equity", self.start_equity)
        _check_number(err, "start_maintenance_req", self.start_maintenance_req)
        _check_number(err, "start_cash", self.start_cash)
        if self.dtbp_override is not None:
            _check_number(err, "dtbp_override", self.dtbp_override)
        if self.maintenance_margin_pct is not None:
            _check_number(
                err, "maintenance_margin_pct", self.maintenance_margin_pct, positive=True
            )
            if self.maintenance_margin_pct > 1:
                raise err(
                    f"maintenance_margin_pct must be at most 1, "
                    f"got {self.maintenance_margin_pct}"
                )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AccountSettings:
        """
        Create settings from a plain mapping (YAML, JSON, form input).

        Numeric values are converted via str() to avoid float artifacts.
        """
        decimal_fields = {
            "start_equity",
            "start_maintenance_req",
            "start_cash",
            "dtbp_override",
            "maintenance_margin_pct",
        }

        converted: dict[str, Any] = {}
        for key, value in data.items():
            if key in decimal_fields and value is not None:
                converted[key] = to_decimal(value)
            elif key == "broker":
                converted[key] = BrokerType(value)
            elif key == "account_type":
                converted[key] = AccountType(value)
            else:
                converted[key] = value

        return cls(**converted)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a YAML-safe mapping."""
        return {
            "broker": self.broker.value,
            "account_type": self.account_type.value,
            "is_pdt": self.is_pdt,
            "start_equity": str(self.start_equity),
            "start_maintenance_req": str(self.start_maintenance_req),
            "start_cash": str(self.start_cash),
            "dtbp_override": (
                str(self.dtbp_override) if self.dtbp_override is not None else None
            ),
            "maintenance_margin_pct": (
                str(self.maintenance_margin_pct)
                if self.maintenance_margin_pct is not None
                else None
            ),
        }


DEFAULT_SETTINGS = AccountSettings()


class Trade(msgspec.Struct, frozen=True, kw_only=True):
    """
    A single executed order.

    Trades are never mutated. Removing one from the log and
    recalculating replays everything from the start of the day.
    """

    trade_id: str
    timestamp: int  # Epoch milliseconds
    symbol: str
    instrument: InstrumentType
    side: Side
    quantity: Decimal  # Shares or contracts, always > 0
    price: Decimal
    fees: Decimal = Decimal("0")
    leverage_factor: Decimal | None = None  # Leveraged ETFs only (e.g. 3)
    notes: str | None = None

    def __post_init__(self) -> None:
        """Validate trade fields."""
        err = TradeValidationError
        if not self.trade_id:
            raise err("trade_id must not be empty")
        if not self.symbol or not self.symbol.strip():
            raise err(f"Trade {self.trade_id}: symbol must not be empty")
        _check_number(err, f"Trade {self.trade_id}: quantity", self.quantity, positive=True)
        _check_number(err, f"Trade {self.trade_id}: price", self.price)
        _check_number(err, f"Trade {self.trade_id}: fees", self.fees)
        if self.leverage_factor is not None:
            _check_number(
                err,
                f"Trade {self.trade_id}: leverage_factor",
                self.leverage_factor,
                positive=True,
            )

    @property
    def key(self) -> str:
        """Position key (upper-cased symbol)."""
        return self.symbol.strip().upper()

    @property
    def is_option(self) -> bool:
        return self.instrument == InstrumentType.OPTION

    @property
    def is_leveraged_etf(self) -> bool:
        return self.instrument == InstrumentType.LEVERAGED_ETF

    @property
    def multiplier(self) -> Decimal:
        """Contract multiplier (100 for options)."""
        return OPTION_MULTIPLIER if self.is_option else Decimal(1)

    @property
    def leverage(self) -> Decimal:
        """Leverage factor, 1 when absent or not a leveraged ETF."""
        if not self.is_leveraged_etf or self.leverage_factor is None:
            return Decimal(1)
        return Decimal(self.leverage_factor)

    @property
    def notional(self) -> Decimal:
        """quantity * price * multiplier."""
        return Decimal(self.quantity) * Decimal(self.price) * self.multiplier

    @property
    def total_cost(self) -> Decimal:
        """Notional plus fees."""
        return self.notional + Decimal(self.fees)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Trade:
        """Create a trade from a plain mapping, converting numbers to Decimal."""
        decimal_fields = {"quantity", "price", "fees", "leverage_factor"}

        converted: dict[str, Any] = {}
        for key, value in data.items():
            if key in decimal_fields and value is not None:
                converted[key] = to_decimal(value)
            elif key == "instrument":
                converted[key] = InstrumentType(value)
            elif key == "side":
                converted[key] = Side(value)
            else:
                converted[key] = value

        return cls(**converted)


# =============================================================================
# Derived / Outputs
# =============================================================================


class Position(msgspec.Struct, frozen=True, gc=False):
    """
    Net position in one symbol.

    quantity is signed (negative = short). avg_price is the average
    entry cost per share or per contract, including the option
    multiplier (one contract bought at 5.00 averages 500).
    """

    quantity: Decimal
    avg_price: Decimal

    @property
    def is_long(self) -> bool:
        return self.quantity > 0

    @property
    def is_short(self) -> bool:
        return self.quantity < 0


class CalculationResult(msgspec.Struct, frozen=True):
    """
    Snapshot produced by one engine run.

    This is the complete contract consumed by presentation and
    persistence layers; it carries no hidden state.
    """

    current_equity: Decimal
    current_cash: Decimal  # Cash/option capacity (final maintenance excess)
    stock_bp: Decimal  # Day-trade buying power for stocks
    option_bp: Decimal  # Cash buying power for options
    dtbp_start_of_day: Decimal  # Static cap used for the replay
    intraday_bp: Decimal  # Borrowing bound: excess equity * 4
    warnings: tuple[str, ...]
    audit_log: tuple[str, ...]
    open_positions: Mapping[str, Position]  # Read-only view

    # Replay totals
    dtbp_used: Decimal = Decimal(0)
    maintenance_requirement: Decimal = Decimal(0)
    cash_balance: Decimal = Decimal(0)
    pending_proceeds: Decimal = Decimal(0)
    option_cash_used: Decimal = Decimal(0)
    policy: str = ""

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0

    @property
    def has_margin_call(self) -> bool:
        return any(w.startswith("MARGIN CALL") for w in self.warnings)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping (Decimals become strings, sequences lists)."""
        data = msgspec.to_builtins(
            structs.replace(self, open_positions=dict(self.open_positions))
        )
        data["warnings"] = list(self.warnings)
        data["audit_log"] = list(self.audit_log)
        return data
