"""
Auction Model - The auction record and its lifecycle outcome.

Lifecycle:
---------
    ACTIVE ──end_auction──> SOLD
       │                 ├> RETURNED_NO_BIDS
       │                 └> RETURNED_RESERVE_NOT_MET
       ├──cancel_auction──> CANCELLED
       └──emergency_withdraw──> EMERGENCY_CLOSED

ACTIVE is the only non-terminal outcome. Records are immutable: every
change produces a new Auction via dataclasses.replace(), so a record
handed to a caller is a stable snapshot.

Invariants:
- `settled` goes False -> True once and never back
- `end_time` never decreases
- `highest_bidder` is None until the first accepted bid
"""

from dataclasses import dataclass, asdict
from enum import IntEnum
from typing import Optional

from vertix.core.assets.asset import AssetReference
from vertix.crypto import bytes_to_hex, hex_to_bytes

BPS_DENOMINATOR = 10_000


class AuctionOutcome(IntEnum):
    """Where an auction stands."""
    ACTIVE = 0
    SOLD = 1
    RETURNED_NO_BIDS = 2
    RETURNED_RESERVE_NOT_MET = 3
    CANCELLED = 4
    EMERGENCY_CLOSED = 5

    @property
    def is_terminal(self) -> bool:
        return self != AuctionOutcome.ACTIVE


def increment_floor(highest_bid: int, bid_increment_bps: int) -> int:
    """Smallest bid that beats `highest_bid` by the increment (rounded up)."""
    return highest_bid + -(-highest_bid * bid_increment_bps // BPS_DENOMINATOR)


@dataclass(frozen=True)
class Auction:
    """
    A single auction.

    Attributes:
        auction_id: Sequential identifier, never reused
        seller: Creator identity
        asset: What is being sold
        reserve_price: Minimum winning amount (0 = no reserve)
        start_time: Creation time
        end_time: Bidding deadline (moves forward on late bids)
        bid_increment_bps: Minimum raise over the highest bid
        hidden_reserve: Reserve checked at settlement instead of on the first bid
        highest_bid: Current highest bid (0 before any bid)
        highest_bidder: Current leader (None before any bid)
        bid_count: Accepted bids
        extensions: Anti-snipe extensions applied
        active: Accepting bids / awaiting settlement
        settled: Reached a terminal outcome
        outcome: Lifecycle outcome
        closed_at: Time of the terminal transition
    """
    auction_id: int
    seller: bytes
    asset: AssetReference
    reserve_price: int
    start_time: int
    end_time: int
    bid_increment_bps: int
    hidden_reserve: bool = False
    highest_bid: int = 0
    highest_bidder: Optional[bytes] = None
    bid_count: int = 0
    extensions: int = 0
    active: bool = True
    settled: bool = False
    outcome: AuctionOutcome = AuctionOutcome.ACTIVE
    closed_at: Optional[int] = None

    # =========================================================================
    # Derived State
    # =========================================================================

    @property
    def has_bids(self) -> bool:
        return self.highest_bidder is not None

    @property
    def reserve_met(self) -> bool:
        return self.has_bids and self.highest_bid >= self.reserve_price

    def has_ended(self, now: int) -> bool:
        return now >= self.end_time

    def is_open(self, now: int) -> bool:
        """Accepting bids at `now`."""
        return self.active and not self.settled and now < self.end_time

    def minimum_bid(self) -> int:
        """
        Smallest acceptable next bid.

        The first bid must reach the reserve (unless hidden) and be
        positive; later bids must beat the leader by the increment.
        """
        if self.highest_bidder is None:
            if self.hidden_reserve:
                return 1
            return max(self.reserve_price, 1)
        return increment_floor(self.highest_bid, self.bid_increment_bps)

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict:
        data = asdict(self)
        data["seller"] = bytes_to_hex(self.seller)
        data["asset"] = self.asset.to_dict()
        data["highest_bidder"] = bytes_to_hex(self.highest_bidder) if self.highest_bidder else None
        data["outcome"] = int(self.outcome)
        # Amounts may exceed JSON-safe integer range for other readers
        data["reserve_price"] = str(self.reserve_price)
        data["highest_bid"] = str(self.highest_bid)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Auction":
        return cls(
            auction_id=data["auction_id"],
            seller=hex_to_bytes(data["seller"]),
            asset=AssetReference.from_dict(data["asset"]),
            reserve_price=int(data["reserve_price"]),
            start_time=data["start_time"],
            end_time=data["end_time"],
            bid_increment_bps=data["bid_increment_bps"],
            hidden_reserve=data.get("hidden_reserve", False),
            highest_bid=int(data["highest_bid"]),
            highest_bidder=hex_to_bytes(data["highest_bidder"]) if data.get("highest_bidder") else None,
            bid_count=data.get("bid_count", 0),
            extensions=data.get("extensions", 0),
            active=data["active"],
            settled=data["settled"],
            outcome=AuctionOutcome(data["outcome"]),
            closed_at=data.get("closed_at"),
        )
