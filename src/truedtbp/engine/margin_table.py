"""
Maintenance Requirement Table.

Maps a trade to the maintenance requirement percentage charged
against its notional. House requirements for high-volatility
symbols are configuration, loadable from YAML:

    symbol_requirements:
      TSLA: 0.40
      MSTR: 1.00
    short_requirement: 0.40
    default_requirement: 0.25
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any

import msgspec

from truedtbp.engine.models import Trade, to_decimal


# House requirements for symbols above the Reg T / FINRA 25% minimum
DEFAULT_SYMBOL_REQUIREMENTS: dict[str, Decimal] = {
    "AVGO": Decimal("0.30"),
    "SPY": Decimal("0.25"),
    "QQQ": Decimal("0.25"),
    "TSLA": Decimal("0.40"),
    "NVDA": Decimal("0.30"),
    "MSTR": Decimal("1.00"),
}


class MarginTable(msgspec.Struct, frozen=True, kw_only=True):
    """
    Requirement percentages by instrument, side and symbol.

    Precedence (first match wins):
    1. Options: option_requirement (cash only)
    2. symbol_requirements (non-options)
    3. Short side: short_requirement * leverage, capped
    4. Leveraged ETF long side: leveraged_base_requirement * leverage, capped
    5. Account default, else default_requirement

    Examples:
        table = MarginTable.default()
        table.requirement_for(trade)

        # Synthetic table for tests
        table = MarginTable(symbol_requirements={"XYZ": Decimal("0.50")})
    """

    symbol_requirements: dict[str, Decimal] = msgspec.field(default_factory=dict)
    option_requirement: Decimal = Decimal("1.00")
    short_requirement: Decimal = Decimal("0.40")
    leveraged_base_requirement: Decimal = Decimal("0.25")
    default_requirement: Decimal = Decimal("0.25")
    max_requirement: Decimal = Decimal("1.00")

    def __post_init__(self) -> None:
        """Validate configuration on creation."""
        self.validate()

    @classmethod
    def default(cls) -> MarginTable:
        """Table with the built-in house requirements."""
        return cls(symbol_requirements=dict(DEFAULT_SYMBOL_REQUIREMENTS))

    @classmethod
    def from_yaml(cls, path: Path) -> MarginTable:
        """
        Load and validate a table from a YAML file.

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If configuration is invalid
        """
        import yaml

        with open(path) as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MarginTable:
        """Create a table from a mapping, converting percentages to Decimal."""
        converted: dict[str, Any] = {}
        for key, value in data.items():
            if key == "symbol_requirements" and value is not None:
                converted[key] = {
                    str(symbol).upper(): to_decimal(pct) for symbol, pct in value.items()
                }
            elif value is not None:
                converted[key] = to_decimal(value)

        return cls(**converted)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a YAML-safe mapping."""
        return {
            "symbol_requirements": {
                symbol: str(pct) for symbol, pct in self.symbol_requirements.items()
            },
            "option_requirement": str(self.option_requirement),
            "short_requirement": str(self.short_requirement),
            "leveraged_base_requirement": str(self.leveraged_base_requirement),
            "default_requirement": str(self.default_requirement),
            "max_requirement": str(self.max_requirement),
        }

    def validate(self) -> None:
        """
        Validate all percentages lie in (0, 1].

        Raises:
            ValueError: If any value is invalid
        """
        named = {
            "option_requirement": self.option_requirement,
            "short_requirement": self.short_requirement,
            "leveraged_base_requirement": self.leveraged_base_requirement,
            "default_requirement": self.default_requirement,
            "max_requirement": self.max_requirement,
        }
        named.update(
            {f"symbol_requirements[{s}]": p for s, p in self.symbol_requirements.items()}
        )
        for name, pct in named.items():
            if not isinstance(pct, Decimal) or not pct.is_finite():
                raise ValueError(f"{name} must be a finite Decimal")
            if not (Decimal("0") < pct <= Decimal("1")):
                raise ValueError(f"{name} must be between 0 and 1, got {pct}")

    def symbol_requirement(self, symbol: str) -> Decimal | None:
        """House requirement for a symbol, if configured."""
        return self.symbol_requirements.get(symbol.strip().upper())

    def requirement_for(
        self,
        trade: Trade,
        account_default: Decimal | None = None,
    ) -> Decimal:
        """
        Requirement percentage for a trade.

        Entries and exits of the same kind resolve to the same rate so
        that a round trip releases what it added.

        Args:
            trade: Trade being replayed
            account_default: Account's configured default percentage

        Returns:
            Percentage as a decimal (0.25 = 25%)
        """
        if trade.is_option:
            return self.option_requirement

        override = self.symbol_requirement(trade.symbol)
        if override is not None:
            return override

        if trade.side.is_short_side:
            return min(self.short_requirement * trade.leverage, self.max_requirement)

        if trade.is_leveraged_etf:
            return min(
                self.leveraged_base_requirement * trade.leverage, self.max_requirement
            )

        if account_default is not None:
            return account_default
        return self.default_requirement
