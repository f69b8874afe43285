"""
Local storage implementation for True DTBP.

Provides simple file-based storage for:
- Trade log (JSON via msgspec)
- Account settings and margin tables (YAML)
- Weekly summaries (Parquet via Polars)

The engine never calls this module; callers load inputs here, run
the engine, and save the (possibly edited) trade log back.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import msgspec
import yaml

from truedtbp.engine.margin_table import MarginTable
from truedtbp.engine.models import AccountSettings, Trade
from truedtbp.engine.sequencer import order_trades
from truedtbp.storage.paths import TruePaths

if TYPE_CHECKING:
    import polars as pl

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Stored data could not be read or decoded."""


class LocalStore:
    """
    Simple local store for trades and settings.

    Stores data under ~/.truedtbp/ (or $TRUEDTBP_HOME):
    - data/trades.json: trade log
    - config/settings.yaml: account settings
    - config/margin_table.yaml: house requirements
    - reports/: weekly summaries

    Example:
        store = LocalStore()

        trades = store.load_trades()
        result = calculate(store.load_settings(), trades)

        store.save_trades([new_trade])  # Upsert by trade_id
        store.delete_trade("T1")
    """

    def __init__(self, paths: TruePaths | None = None) -> None:
        """
        Initialize store.

        Args:
            paths: Custom paths. If None, uses TruePaths.default()
        """
        self.paths = paths or TruePaths.default()
        self.paths.ensure_dirs()

    # =========================================================================
    # Trades (JSON)
    # =========================================================================

    def load_trades(self) -> list[Trade]:
        """
        Load the trade log in timestamp order.

        Returns an empty list if no trades have been saved.

        Raises:
            StorageError: If the file is not a valid trade log
        """
        path = self.paths.trades_file
        if not path.exists():
            return []

        try:
            trades = msgspec.json.decode(path.read_bytes(), type=list[Trade])
        except msgspec.DecodeError as e:
            raise StorageError(f"Invalid trade log {path}: {e}") from e

        return order_trades(trades)

    def save_trades(self, trades: Iterable[Trade]) -> Path:
        """
        Upsert trades by trade_id.

        Trades already stored under the same id are replaced.

        Returns:
            Path to the trade log
        """
        by_id = {trade.trade_id: trade for trade in self.load_trades()}
        for trade in trades:
            by_id[trade.trade_id] = trade

        path = self._write_trades(by_id.values())
        logger.debug("Saved %d trades: %s", len(by_id), path)
        return path

    def delete_trade(self, trade_id: str) -> bool:
        """
        Delete a trade from the log.

        Returns:
            True if deleted, False if it didn't exist
        """
        trades = self.load_trades()
        remaining = [t for t in trades if t.trade_id != trade_id]
        if len(remaining) == len(trades):
            return False

        self._write_trades(remaining)
        logger.info("Deleted trade: %s", trade_id)
        return True

    def _write_trades(self, trades: Iterable[Trade]) -> Path:
        path = self.paths.trades_file
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(msgspec.json.encode(order_trades(trades)))
        return path

    # =========================================================================
    # Settings and Margin Table (YAML)
    # =========================================================================

    def save_settings(self, settings: AccountSettings) -> Path:
        """Save account settings as YAML."""
        return self._dump_yaml(self.paths.settings_file, settings.to_dict())

    def load_settings(self) -> AccountSettings:
        """
        Load account settings.

        Returns default settings if none have been saved.
        """
        data = self._load_yaml(self.paths.settings_file)
        if data is None:
            return AccountSettings()
        return AccountSettings.from_dict(data)

    def save_margin_table(self, table: MarginTable) -> Path:
        """Save the margin requirement table as YAML."""
        return self._dump_yaml(self.paths.margin_table_file, table.to_dict())

    def load_margin_table(self) -> MarginTable:
        """
        Load the margin requirement table.

        Returns the built-in table if none has been saved.
        """
        data = self._load_yaml(self.paths.margin_table_file)
        if data is None:
            return MarginTable.default()
        return MarginTable.from_dict(data)

    def _dump_yaml(self, path: Path, data: dict[str, Any]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

        logger.debug("Saved config: %s", path)
        return path

    def _load_yaml(self, path: Path) -> dict[str, Any] | None:
        if not path.exists():
            return None

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise StorageError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            return None
        if not isinstance(data, dict):
            raise StorageError(f"Expected a mapping in {path}, got {type(data).__name__}")
        return data

    # =========================================================================
    # Weekly Summaries (Parquet)
    # =========================================================================

    def save_weekly_summary(
        self,
        summary: pl.DataFrame,
        period: str | None = None,
    ) -> Path:
        """
        Save a weekly summary as Parquet.

        Args:
            summary: DataFrame from reports.weekly_summary()
            period: Period identifier (e.g., "2026-01"). Defaults to current month.

        Returns:
            Path to saved Parquet file
        """
        if period is None:
            period = datetime.now().strftime("%Y-%m")

        path = self.paths.reports / f"weekly_{period}.parquet"
        path.parent.mkdir(parents=True, exist_ok=True)
        summary.write_parquet(path)
        logger.info("Saved weekly summary: %s", path)
        return path

    def load_weekly_summary(self, period: str) -> pl.DataFrame:
        """
        Load a saved weekly summary.

        Raises:
            FileNotFoundError: If no summary exists for the period
        """
        import polars as pl

        path = self.paths.reports / f"weekly_{period}.parquet"
        if not path.exists():
            raise FileNotFoundError(f"Weekly summary not found: {path}")

        return pl.read_parquet(path)

    def list_weekly_summaries(self) -> list[str]:
        """List saved weekly summary filenames."""
        if not self.paths.reports.exists():
            return []
        return sorted(f.name for f in self.paths.reports.glob("weekly_*.parquet"))
