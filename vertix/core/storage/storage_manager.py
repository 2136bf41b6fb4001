import json
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from vertix.core.storage.sqlite_adapter import SQLiteAdapter
from vertix.utils.logger import get_logger

logger = get_logger("storage.manager")

SELLER_INDEX = "seller"
BIDDER_INDEX = "bidder"


class StorageManager:
    """
    Manages persistent storage for the engine.

    Coordinates data persistence using SQLite adapter.
    Handles:
    - Auction records (serialized as JSON)
    - Refund ledger balances
    - Seller/bidder indices
    - Metadata (next auction id, pause flag, fee settings)
    - Event history
    """

    def __init__(self, data_dir: Path, db_name: str = "vertix.db"):
        self.data_dir = Path(data_dir)
        self.db_path = self.data_dir / db_name
        self.adapter = SQLiteAdapter(self.db_path)

        logger.info(f"StorageManager initialized at {self.db_path}")

    def close(self):
        self.adapter.close()

    # =========================================================================
    # Auctions
    # =========================================================================

    def persist_auction(self, auction_id: int, record: dict):
        self.adapter.save_auction(auction_id, json.dumps(record, sort_keys=True))

    def load_auctions(self) -> List[dict]:
        return [json.loads(data) for _, data in self.adapter.get_all_auctions()]

    # =========================================================================
    # Refund Ledger
    # =========================================================================

    def persist_pending_refund(self, identity: bytes, amount: int):
        self.adapter.save_pending_refund(identity, amount)

    def load_pending_refunds(self) -> Dict[bytes, int]:
        return dict(self.adapter.get_all_pending_refunds())

    # =========================================================================
    # Indices
    # =========================================================================

    def persist_index_entry(self, kind: str, identity: bytes, auction_id: int):
        self.adapter.append_index(kind, identity, auction_id)

    def load_index(self, kind: str) -> Dict[bytes, List[int]]:
        index: Dict[bytes, List[int]] = {}
        for identity, auction_id in self.adapter.get_index_entries(kind):
            index.setdefault(identity, []).append(auction_id)
        return index

    # =========================================================================
    # Engine State (Metadata)
    # =========================================================================

    def save_next_auction_id(self, next_id: int):
        self.adapter.set_meta("next_auction_id", str(next_id))

    def get_next_auction_id(self) -> Optional[int]:
        value = self.adapter.get_meta("next_auction_id")
        return int(value) if value is not None else None

    def save_setting(self, key: str, value):
        self.adapter.set_meta(f"setting.{key}", json.dumps(value))

    def get_setting(self, key: str, default=None):
        value = self.adapter.get_meta(f"setting.{key}")
        return json.loads(value) if value is not None else default

    # =========================================================================
    # Events
    # =========================================================================

    def persist_event(self, event_type: str, auction_id: Optional[int], timestamp: int, data: dict):
        self.adapter.append_event(event_type, auction_id, timestamp, json.dumps(data, sort_keys=True))

    def load_events(self) -> List[Tuple[str, Optional[int], int, dict]]:
        return [
            (event_type, auction_id, timestamp, json.loads(data))
            for event_type, auction_id, timestamp, data in self.adapter.get_all_events()
        ]
