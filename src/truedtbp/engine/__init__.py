"""
Day-Trade Buying Power Engine.

Replays a day's trades against start-of-day account settings and
reports the day-trade buying power (DTBP) and option buying power
left, with warnings and an audit trail explaining every step.

Stages (run in order on every call):
- Settings Resolver: start-of-day DTBP cap (override, or excess x 4 / x 2)
- Trade Sequencer: stable chronological order
- Trade Replay: fold each trade into the account state under a MarginPolicy
- Result Synthesizer: final capacities and warnings

Example:
    >>> from truedtbp.engine import (
    ...     AccountSettings, Trade, InstrumentType, Side, calculate,
    ... )
    >>> settings = AccountSettings(start_equity=Decimal("30000"), is_pdt=True)
    >>> trade = Trade(
    ...     trade_id="T1",
    ...     timestamp=1_700_000_000_000,
    ...     symbol="SPY",
    ...     instrument=InstrumentType.STOCK,
    ...     side=Side.BUY,
    ...     quantity=Decimal("100"),
    ...     price=Decimal("100"),
    ... )
    >>> calculate(settings, [trade]).stock_bp
    Decimal('110000')

Policies:
- Conservative (call avoidance): exits never re-credit DTBP
- Standard: closing a same-day position restores its cost
- Options share the DTBP pool or draw on a cash-only pool
- Leveraged-ETF penalty always, or only under specific broker rules
"""

from truedtbp.engine.calculator import BuyingPowerCalculator, calculate, preview
from truedtbp.engine.margin_table import DEFAULT_SYMBOL_REQUIREMENTS, MarginTable
from truedtbp.engine.models import (
    # Enums
    AccountType,
    BrokerType,
    InstrumentType,
    Side,
    # Data models
    AccountSettings,
    CalculationResult,
    Position,
    Trade,
    # Errors
    DTBPError,
    SettingsValidationError,
    TradeValidationError,
    # Constants
    DEFAULT_SETTINGS,
    OPTION_MULTIPLIER,
    PDT_MIN_EQUITY,
)
from truedtbp.engine.policy import (
    CreditBack,
    EntryCharge,
    LeveragePenalty,
    MarginPolicy,
    OptionPool,
)
from truedtbp.engine.replay import (
    MARGIN_CALL_WARNING,
    EngineState,
    ReplayContext,
    ReplayOutcome,
    StepRecord,
    apply_trade,
    initial_state,
    replay,
)
from truedtbp.engine.resolver import ResolvedCap, resolve_cap
from truedtbp.engine.sequencer import order_trades
from truedtbp.engine.synthesizer import synthesize


__all__ = [
    # Enums
    "AccountType",
    "BrokerType",
    "InstrumentType",
    "Side",
    "CreditBack",
    "LeveragePenalty",
    "OptionPool",
    # Data models
    "AccountSettings",
    "CalculationResult",
    "Position",
    "Trade",
    "EngineState",
    "ReplayContext",
    "ReplayOutcome",
    "StepRecord",
    "EntryCharge",
    "ResolvedCap",
    # Configuration
    "MarginPolicy",
    "MarginTable",
    # Errors
    "DTBPError",
    "SettingsValidationError",
    "TradeValidationError",
    # Constants
    "DEFAULT_SETTINGS",
    "DEFAULT_SYMBOL_REQUIREMENTS",
    "MARGIN_CALL_WARNING",
    "OPTION_MULTIPLIER",
    "PDT_MIN_EQUITY",
    # Stages
    "resolve_cap",
    "order_trades",
    "initial_state",
    "apply_trade",
    "replay",
    "synthesize",
    # Entry points
    "calculate",
    "preview",
    "BuyingPowerCalculator",
]
