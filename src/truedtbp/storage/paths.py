"""
Path management for True DTBP local storage.

Directory structure:
    ~/.truedtbp/
    ├── config/
    │   ├── settings.yaml
    │   └── margin_table.yaml
    ├── data/
    │   └── trades.json
    └── reports/
        └── weekly_{period}.parquet
"""

from __future__ import annotations

import os
from pathlib import Path

import msgspec


class TruePaths(msgspec.Struct, frozen=True):
    """
    Paths for local storage.

    All paths are resolved relative to a root directory,
    defaulting to ~/.truedtbp/ or $TRUEDTBP_HOME if set.

    Example:
        paths = TruePaths.default()
        paths.ensure_dirs()

        trades_file = paths.trades_file
    """

    root: Path

    @classmethod
    def default(cls) -> TruePaths:
        """
        Create paths with default root.

        Uses $TRUEDTBP_HOME if set, otherwise ~/.truedtbp/
        """
        if env_home := os.environ.get("TRUEDTBP_HOME"):
            root = Path(env_home)
        else:
            root = Path.home() / ".truedtbp"
        return cls(root=root)

    @classmethod
    def from_root(cls, root: Path | str) -> TruePaths:
        """Create paths with custom root."""
        return cls(root=Path(root))

    @property
    def config(self) -> Path:
        """Config directory: ~/.truedtbp/config/"""
        return self.root / "config"

    @property
    def data(self) -> Path:
        """Data directory: ~/.truedtbp/data/"""
        return self.root / "data"

    @property
    def reports(self) -> Path:
        """Reports directory: ~/.truedtbp/reports/"""
        return self.root / "reports"

    @property
    def settings_file(self) -> Path:
        return self.config / "settings.yaml"

    @property
    def margin_table_file(self) -> Path:
        return self.config / "margin_table.yaml"

    @property
    def trades_file(self) -> Path:
        return self.data / "trades.json"

    def ensure_dirs(self) -> None:
        """Create all directories if they don't exist."""
        for d in (self.config, self.data, self.reports):
            d.mkdir(parents=True, exist_ok=True)
