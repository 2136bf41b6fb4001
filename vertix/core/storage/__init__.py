"""
Persistent Storage Module.

Provides SQLite-backed persistence for:
- Auction records and enumeration indices
- Refund ledger balances
- Engine metadata and event history
"""

from vertix.core.storage.sqlite_adapter import SQLiteAdapter
from vertix.core.storage.storage_manager import StorageManager, SELLER_INDEX, BIDDER_INDEX

__all__ = ["SQLiteAdapter", "StorageManager", "SELLER_INDEX", "BIDDER_INDEX"]
