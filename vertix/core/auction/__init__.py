"""
Vertix Auction Module.

This module provides the English auction engine:
- Auction records and lifecycle outcomes
- Auction store with seller/bidder indices
- Bid protocol with anti-snipe extension
- Settlement, cancellation and emergency recovery
- Event log for downstream indexers
"""

from vertix.core.auction.model import (
    Auction,
    AuctionOutcome,
    increment_floor,
)

from vertix.core.auction.store import AuctionStore

from vertix.core.auction.events import (
    AuctionEvent,
    EventLog,
    EventType,
)

from vertix.core.auction.guard import ReentrancyGuard, nonreentrant

from vertix.core.auction.engine import AuctionEngine, ENGINE_ADDRESS

__all__ = [
    # Model
    "Auction",
    "AuctionOutcome",
    "increment_floor",
    # Store
    "AuctionStore",
    # Events
    "AuctionEvent",
    "EventLog",
    "EventType",
    # Guard
    "ReentrancyGuard",
    "nonreentrant",
    # Engine
    "AuctionEngine",
    "ENGINE_ADDRESS",
]
