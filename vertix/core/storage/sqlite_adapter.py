import sqlite3
import threading
from pathlib import Path
from typing import List, Optional, Tuple

from vertix.utils.logger import get_logger

logger = get_logger("storage.sqlite")


class SQLiteAdapter:
    """
    SQLite backend for persistent storage.

    Provides:
    1. Auction records (JSON documents keyed by auction id)
    2. Pending refunds (identity -> owed amount)
    3. Seller/bidder enumeration indices
    4. Engine metadata (id counter, pause flag, fee settings)
    5. Emitted event history
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn_local = threading.local()

        # Ensure directory exists
        if not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create connection for current thread."""
        if not hasattr(self._conn_local, "conn"):
            self._conn_local.conn = sqlite3.connect(
                self.db_path,
                timeout=30.0,
                check_same_thread=False
            )
            self._conn_local.conn.row_factory = sqlite3.Row
            self._conn_local.conn.execute("PRAGMA journal_mode=WAL;")
            self._conn_local.conn.execute("PRAGMA synchronous=NORMAL;")
        return self._conn_local.conn

    def _init_schema(self):
        """Initialize database schema."""
        conn = self._get_conn()
        with conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS auctions (
                    auction_id INTEGER PRIMARY KEY,
                    data TEXT NOT NULL
                )
            """)

            # Amounts are stored as decimal text; they can exceed 64 bits
            conn.execute("""
                CREATE TABLE IF NOT EXISTS pending_refunds (
                    identity BLOB PRIMARY KEY,
                    amount TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS auction_index (
                    kind TEXT NOT NULL,
                    identity BLOB NOT NULL,
                    auction_id INTEGER NOT NULL,
                    position INTEGER NOT NULL,
                    PRIMARY KEY (kind, identity, auction_id)
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_index_pos ON auction_index(kind, identity, position);")

            conn.execute("""
                CREATE TABLE IF NOT EXISTS engine_state (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    event_type TEXT NOT NULL,
                    auction_id INTEGER,
                    timestamp INTEGER NOT NULL,
                    data TEXT NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_events_auction ON events(auction_id);")

    def close(self):
        conn = getattr(self._conn_local, "conn", None)
        if conn is not None:
            conn.close()
            del self._conn_local.conn

    # =========================================================================
    # Auction Operations
    # =========================================================================

    def save_auction(self, auction_id: int, data: str):
        conn = self._get_conn()
        with conn:
            conn.execute(
                "INSERT OR REPLACE INTO auctions (auction_id, data) VALUES (?, ?)",
                (auction_id, data)
            )

    def get_auction(self, auction_id: int) -> Optional[str]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT data FROM auctions WHERE auction_id = ?", (auction_id,))
        row = cursor.fetchone()
        return row['data'] if row else None

    def get_all_auctions(self) -> List[Tuple[int, str]]:
        """Get all (auction_id, data) ordered by id."""
        conn = self._get_conn()
        cursor = conn.execute("SELECT auction_id, data FROM auctions ORDER BY auction_id ASC")
        return [(row['auction_id'], row['data']) for row in cursor]

    # =========================================================================
    # Pending Refund Operations
    # =========================================================================

    def save_pending_refund(self, identity: bytes, amount: int):
        """Store an owed balance; zero removes the row."""
        conn = self._get_conn()
        with conn:
            if amount == 0:
                conn.execute("DELETE FROM pending_refunds WHERE identity = ?", (identity,))
            else:
                conn.execute(
                    "INSERT OR REPLACE INTO pending_refunds (identity, amount) VALUES (?, ?)",
                    (identity, str(amount))
                )

    def get_all_pending_refunds(self) -> List[Tuple[bytes, int]]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT identity, amount FROM pending_refunds")
        return [(bytes(row['identity']), int(row['amount'])) for row in cursor]

    # =========================================================================
    # Index Operations
    # =========================================================================

    def append_index(self, kind: str, identity: bytes, auction_id: int):
        conn = self._get_conn()
        with conn:
            cursor = conn.execute(
                "SELECT COALESCE(MAX(position), -1) + 1 AS next FROM auction_index WHERE kind = ? AND identity = ?",
                (kind, identity)
            )
            position = cursor.fetchone()['next']
            conn.execute(
                "INSERT OR IGNORE INTO auction_index (kind, identity, auction_id, position) VALUES (?, ?, ?, ?)",
                (kind, identity, auction_id, position)
            )

    def get_index_entries(self, kind: str) -> List[Tuple[bytes, int]]:
        """Get all (identity, auction_id) for an index kind, in append order."""
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT identity, auction_id FROM auction_index WHERE kind = ? ORDER BY identity, position ASC",
            (kind,)
        )
        return [(bytes(row['identity']), row['auction_id']) for row in cursor]

    # =========================================================================
    # Engine State Operations
    # =========================================================================

    def set_meta(self, key: str, value: str):
        conn = self._get_conn()
        with conn:
            conn.execute("INSERT OR REPLACE INTO engine_state (key, value) VALUES (?, ?)", (key, value))

    def get_meta(self, key: str) -> Optional[str]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT value FROM engine_state WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row['value'] if row else None

    # =========================================================================
    # Event Operations
    # =========================================================================

    def append_event(self, event_type: str, auction_id: Optional[int], timestamp: int, data: str):
        conn = self._get_conn()
        with conn:
            conn.execute(
                "INSERT INTO events (event_type, auction_id, timestamp, data) VALUES (?, ?, ?, ?)",
                (event_type, auction_id, timestamp, data)
            )

    def get_all_events(self) -> List[Tuple[str, Optional[int], int, str]]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT event_type, auction_id, timestamp, data FROM events ORDER BY seq ASC")
        return [(row['event_type'], row['auction_id'], row['timestamp'], row['data']) for row in cursor]
