"""
True DTBP: day-trade buying power estimator.

Replays a margin account's trade log against start-of-day settings
and reports the stock and option buying power left, with warnings and
an audit trail showing how each number was derived.

Quick Start:
    from truedtbp import AccountSettings, calculate
    from truedtbp.storage import LocalStore

    store = LocalStore()
    result = calculate(store.load_settings(), store.load_trades())

    print(result.stock_bp, result.option_bp)
    for line in result.audit_log:
        print(line)
"""

__version__ = "0.1.0"
__author__ = "True DTBP Team"

# Re-export engine components for convenience
from truedtbp.engine import (
    DEFAULT_SETTINGS,
    AccountSettings,
    AccountType,
    BrokerType,
    BuyingPowerCalculator,
    CalculationResult,
    InstrumentType,
    MarginPolicy,
    MarginTable,
    Position,
    Side,
    Trade,
    calculate,
    preview,
)

__all__ = [
    "__version__",
    "DEFAULT_SETTINGS",
    "AccountSettings",
    "AccountType",
    "BrokerType",
    "BuyingPowerCalculator",
    "CalculationResult",
    "InstrumentType",
    "MarginPolicy",
    "MarginTable",
    "Position",
    "Side",
    "Trade",
    "calculate",
    "preview",
]
