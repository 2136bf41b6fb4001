"""
Auction Store - Authoritative map from auction id to Auction record.

Owns:
- The id counter (sequential from 1, never reused)
- Auction records (immutable; updates replace the record)
- Seller and bidder enumeration indices (append-only)

Only the engine writes here, and only from guarded entry points.
With a StorageManager every change is written through to SQLite and
the store reloads its full state on construction.
"""

from collections import defaultdict
from dataclasses import replace
from typing import Dict, Iterator, List, Optional

from vertix.core.auction.model import Auction, AuctionOutcome
from vertix.core.errors import AuctionNotFound
from vertix.core.storage.storage_manager import BIDDER_INDEX, SELLER_INDEX, StorageManager
from vertix.utils.logger import get_logger

logger = get_logger("store")


class AuctionStore:
    """
    Auction records and indices.

    Attributes:
        auctions: auction_id -> Auction
        seller_index: seller -> auction ids in creation order
        bidder_index: bidder -> auction ids in first-bid order
    """

    def __init__(self, storage_manager: Optional[StorageManager] = None):
        self.auctions: Dict[int, Auction] = {}
        self.seller_index: Dict[bytes, List[int]] = defaultdict(list)
        self.bidder_index: Dict[bytes, List[int]] = defaultdict(list)
        self._next_id = 1

        self.storage_manager = storage_manager
        if storage_manager:
            self._load_from_storage()

    # =========================================================================
    # State Access
    # =========================================================================

    @property
    def next_id(self) -> int:
        return self._next_id

    def get(self, auction_id: int) -> Auction:
        auction = self.auctions.get(auction_id)
        if auction is None:
            raise AuctionNotFound(auction_id)
        return auction

    def seller_auctions(self, seller: bytes) -> List[int]:
        return list(self.seller_index.get(seller, ()))

    def bidder_auctions(self, bidder: bytes) -> List[int]:
        return list(self.bidder_index.get(bidder, ()))

    def with_outcome(self, outcome: AuctionOutcome) -> List[Auction]:
        return [a for a in self.auctions.values() if a.outcome == outcome]

    def __len__(self) -> int:
        return len(self.auctions)

    def __contains__(self, auction_id: int) -> bool:
        return auction_id in self.auctions

    def __iter__(self) -> Iterator[Auction]:
        return iter(self.auctions.values())

    # =========================================================================
    # Mutations
    # =========================================================================

    def insert(self, **fields) -> Auction:
        """Store a new auction under the next id and index its seller."""
        auction = Auction(auction_id=self._next_id, **fields)
        self._next_id += 1

        self.auctions[auction.auction_id] = auction
        self.seller_index[auction.seller].append(auction.auction_id)

        if self.storage_manager:
            self.storage_manager.save_next_auction_id(self._next_id)
            self.storage_manager.persist_index_entry(SELLER_INDEX, auction.seller, auction.auction_id)
            self._persist(auction)

        return auction

    def update(self, auction_id: int, **changes) -> Auction:
        """Replace a record with a modified copy."""
        auction = replace(self.get(auction_id), **changes)
        self.auctions[auction_id] = auction
        if self.storage_manager:
            self._persist(auction)
        return auction

    def restore(self, auction: Auction) -> None:
        """Put back an earlier version of a record."""
        self.get(auction.auction_id)
        self.auctions[auction.auction_id] = auction
        if self.storage_manager:
            self._persist(auction)
        logger.warning(f"Auction {auction.auction_id} restored to {auction.outcome.name}")

    def record_bidder(self, bidder: bytes, auction_id: int) -> bool:
        """
        Index a bidder's first interaction with an auction.

        Returns:
            True if this was the bidder's first bid on the auction
        """
        entries = self.bidder_index[bidder]
        if auction_id in entries:
            return False
        entries.append(auction_id)
        if self.storage_manager:
            self.storage_manager.persist_index_entry(BIDDER_INDEX, bidder, auction_id)
        return True

    # =========================================================================
    # Persistence
    # =========================================================================

    def _persist(self, auction: Auction) -> None:
        self.storage_manager.persist_auction(auction.auction_id, auction.to_dict())

    def _load_from_storage(self) -> None:
        for record in self.storage_manager.load_auctions():
            auction = Auction.from_dict(record)
            self.auctions[auction.auction_id] = auction

        self.seller_index.update(self.storage_manager.load_index(SELLER_INDEX))
        self.bidder_index.update(self.storage_manager.load_index(BIDDER_INDEX))

        stored_next = self.storage_manager.get_next_auction_id()
        highest = max(self.auctions, default=0)
        self._next_id = max(stored_next or 1, highest + 1)

        logger.info(f"Loaded {len(self.auctions)} auctions, next id {self._next_id}")

    # =========================================================================
    # Utility
    # =========================================================================

    def __repr__(self) -> str:
        return f"AuctionStore(auctions={len(self.auctions)}, next_id={self._next_id})"

    def stats(self) -> dict:
        counts = {outcome.name.lower(): len(self.with_outcome(outcome)) for outcome in AuctionOutcome}
        return {
            "total": len(self.auctions),
            "sellers": len(self.seller_index),
            "bidders": len(self.bidder_index),
            **counts,
        }
