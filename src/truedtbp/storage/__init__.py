"""
Simple local storage for True DTBP.

Provides file-based storage under ~/.truedtbp/ for:
- Trade log (JSON)
- Account settings and margin tables (YAML)
- Weekly summaries (Parquet)
"""

from truedtbp.storage.local import LocalStore, StorageError
from truedtbp.storage.paths import TruePaths

__all__ = ["LocalStore", "StorageError", "TruePaths"]
