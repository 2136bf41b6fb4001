"""
Events - Records emitted for downstream indexers.

Events are not part of the engine's correctness; they describe what
happened so that indexers and UIs can follow along. Each event is
appended to the log, persisted when storage is configured, and handed
to every subscriber. Subscriber errors are logged and counted, never
raised into the emitting operation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from vertix.core.storage.storage_manager import StorageManager
from vertix.utils.logger import get_logger

logger = get_logger("events")


class EventType(str, Enum):
    AUCTION_CREATED = "auction_created"
    ASSET_ESCROWED = "asset_escrowed"
    BID_PLACED = "bid_placed"
    AUCTION_EXTENDED = "auction_extended"
    REFUND_DELIVERED = "refund_delivered"
    REFUND_QUEUED = "refund_queued"
    AUCTION_SETTLED = "auction_settled"
    AUCTION_CANCELLED = "auction_cancelled"
    RESERVE_NOT_MET = "reserve_not_met"
    EMERGENCY_CLOSED = "emergency_closed"
    FUNDS_WITHDRAWN = "funds_withdrawn"
    PAUSED = "paused"
    UNPAUSED = "unpaused"
    PLATFORM_FEE_UPDATED = "platform_fee_updated"


@dataclass(frozen=True)
class AuctionEvent:
    event_type: EventType
    auction_id: Optional[int]
    timestamp: int
    data: dict = field(default_factory=dict)


Subscriber = Callable[[AuctionEvent], None]


class EventLog:
    """Append-only event history with subscriber callbacks."""

    def __init__(self, storage_manager: Optional[StorageManager] = None):
        self.events: List[AuctionEvent] = []
        self.subscribers: List[Subscriber] = []
        self.delivery_failures = 0
        self.storage_manager = storage_manager

        if storage_manager:
            for event_type, auction_id, timestamp, data in storage_manager.load_events():
                self.events.append(AuctionEvent(EventType(event_type), auction_id, timestamp, data))

    def subscribe(self, subscriber: Subscriber) -> None:
        self.subscribers.append(subscriber)

    def emit(
        self,
        event_type: EventType,
        auction_id: Optional[int],
        timestamp: int,
        **data,
    ) -> AuctionEvent:
        event = AuctionEvent(event_type, auction_id, timestamp, data)
        self.events.append(event)

        if self.storage_manager:
            self.storage_manager.persist_event(event_type.value, auction_id, timestamp, data)

        logger.debug(f"{event_type.value} auction={auction_id} {data}")
        for subscriber in self.subscribers:
            # Indexer failures never reach the emitting operation
            try:
                subscriber(event)
            except Exception:
                self.delivery_failures += 1
                logger.exception(f"Subscriber {subscriber!r} failed on {event_type.value}")
        return event

    def for_auction(self, auction_id: int) -> List[AuctionEvent]:
        return [e for e in self.events if e.auction_id == auction_id]

    def of_type(self, event_type: EventType) -> List[AuctionEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def __len__(self) -> int:
        return len(self.events)
