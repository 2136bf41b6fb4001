"""
Auction Engine - English auctions with pull-payment refunds.

Conceptual Background:
---------------------
A seller escrows an asset and opens an auction. Bidders pay their bid
into the engine when they bid. Each new leading bid supersedes the
previous one, whose bidder is refunded immediately by push; if that
push fails the amount is queued in the refund ledger and the bidder
claims it later with withdraw(). A bid arriving close to the deadline
pushes the deadline out (anti-snipe).

After the deadline anyone may call end_auction(), which resolves the
auction into exactly one terminal outcome:
- SOLD: asset to the winner, proceeds split by the payment adapter
- RETURNED_NO_BIDS: asset back to the seller
- RETURNED_RESERVE_NOT_MET: asset back to the seller, bidder refunded

The seller may cancel an auction with no bids. If nobody settles an
auction long after its deadline, the seller or the leading bidder can
force an emergency unwind.

Ordering Rules:
--------------
1. Every mutating entry point runs under one re-entrancy guard
2. State is committed before any value leaves the engine
3. withdraw() zeroes the ledger entry before pushing, restores on failure
4. Adapter failures propagate; the record and any handover are undone first
"""

from typing import Callable, List, Optional

from vertix.core.access import Role, RoleService
from vertix.core.assets.asset import AssetReference, TokenStandard
from vertix.core.assets.custody import CustodyAdapter
from vertix.core.auction.events import EventLog, EventType
from vertix.core.auction.guard import ReentrancyGuard, nonreentrant
from vertix.core.auction.model import Auction, AuctionOutcome
from vertix.core.auction.store import AuctionStore
from vertix.core.clock import Clock, SystemClock
from vertix.core.config import EngineConfig
from vertix.core.errors import (
    AlreadySettled,
    AuctionEnded,
    AuctionNotActive,
    AuctionNotEnded,
    BidTooLow,
    HasBids,
    InvalidAddress,
    InvalidAmount,
    InvalidBidIncrement,
    InvalidDuration,
    InvalidFee,
    InvalidQuantity,
    MissingAssetProof,
    NoBalance,
    NotAuthorized,
    NotSeller,
    NotTokenOwner,
    Paused,
    SellerCannotBid,
    TooEarly,
    TransferFailed,
)
from vertix.core.funds.bank import Bank
from vertix.core.funds.refund_ledger import RefundLedger
from vertix.core.payments.escrow import EscrowInitiator, OffchainEscrow
from vertix.core.payments.fees import PaymentAdapter, PaymentDistribution
from vertix.core.storage.storage_manager import StorageManager
from vertix.crypto import address_from_label, bytes_to_hex, short_hex
from vertix.utils.logger import get_logger
from vertix.utils.validation import (
    validate_address,
    validate_amount,
    validate_bps,
    validate_duration,
)

logger = get_logger("auction")

ENGINE_ADDRESS = address_from_label("vertix.auction-engine")


class AuctionEngine:
    """
    Coordinates auctions, bids, refunds and settlement.

    Attributes:
        address: The engine's own account (holds bids, custody holder)
        store: Auction records and indices
        ledger: Undelivered refunds
        events: Emitted event history
        paused: When True, creation and bidding are rejected
    """

    def __init__(
        self,
        bank: Bank,
        custody: CustodyAdapter,
        payments: PaymentAdapter,
        roles: RoleService,
        clock: Optional[Clock] = None,
        config: Optional[EngineConfig] = None,
        escrow: Optional[EscrowInitiator] = None,
        storage_manager: Optional[StorageManager] = None,
        address: bytes = ENGINE_ADDRESS,
    ):
        self.bank = bank
        self.custody = custody
        self.payments = payments
        self.roles = roles
        self.clock = clock or SystemClock()
        self.config = config or EngineConfig()
        self.escrow = escrow or OffchainEscrow()
        self.address = address

        self.storage_manager = storage_manager
        self.store = AuctionStore(storage_manager)
        self.ledger = RefundLedger(storage_manager)
        self.events = EventLog(storage_manager)

        self._guard = ReentrancyGuard()
        self.paused = False
        if storage_manager:
            self.paused = storage_manager.get_setting("paused", False)
            stored_fee = storage_manager.get_setting("platform_fee_bps")
            if stored_fee is not None:
                self.payments.set_platform_fee(stored_fee)

    def _now(self) -> int:
        return self.clock.now()

    # =========================================================================
    # Auction Creation
    # =========================================================================

    @nonreentrant
    def create_auction(
        self,
        seller: bytes,
        asset: AssetReference,
        reserve_price: int,
        duration: int,
        bid_increment_bps: Optional[int] = None,
        hidden_reserve: bool = False,
    ) -> int:
        """
        Escrow an asset and open an auction for it.

        Args:
            seller: Creator; must own (and have approved) tokenized assets
            asset: Tokenized or off-chain asset reference
            reserve_price: Minimum winning amount, 0 for none
            duration: Seconds from now until the deadline
            bid_increment_bps: Minimum raise; defaults to config
            hidden_reserve: Check the reserve only at settlement

        Returns:
            The new auction id
        """
        if self.paused:
            raise Paused("Auction creation is paused")

        valid, error = validate_address(seller, "seller")
        if not valid:
            raise InvalidAddress(error)

        valid, error = validate_duration(duration, self.config.min_duration, self.config.max_duration)
        if not valid:
            raise InvalidDuration(error)

        if bid_increment_bps is None:
            bid_increment_bps = self.config.default_bid_increment_bps
        valid, error = validate_bps(bid_increment_bps, "bid_increment_bps", min_val=1)
        if not valid:
            raise InvalidBidIncrement(error)

        valid, error = validate_amount(reserve_price, "reserve_price")
        if not valid:
            raise InvalidAmount(error)

        valid, error = asset.validate_shape()
        if not valid:
            raise MissingAssetProof(error)

        if asset.is_tokenized:
            self._check_token_ownership(seller, asset)
            self.custody.escrow(asset, seller)

        now = self._now()
        auction = self.store.insert(
            seller=seller,
            asset=asset,
            reserve_price=reserve_price,
            start_time=now,
            end_time=now + duration,
            bid_increment_bps=bid_increment_bps,
            hidden_reserve=hidden_reserve,
        )

        self.events.emit(
            EventType.AUCTION_CREATED, auction.auction_id, now,
            seller=bytes_to_hex(seller),
            asset=asset.to_dict(),
            reserve_price=str(reserve_price),
            end_time=auction.end_time,
        )
        if asset.is_tokenized:
            self.events.emit(
                EventType.ASSET_ESCROWED, auction.auction_id, now,
                contract=bytes_to_hex(asset.contract),
                token_id=asset.token_id,
                quantity=asset.quantity,
            )

        logger.info(f"Auction {auction.auction_id} created by {short_hex(seller)}: "
                    f"{asset.describe()}, reserve={reserve_price}, ends {auction.end_time}")
        return auction.auction_id

    def _check_token_ownership(self, seller: bytes, asset: AssetReference) -> None:
        if asset.standard == TokenStandard.SINGLE:
            if asset.quantity != 1:
                raise InvalidQuantity(f"Single-unit assets have quantity 1, got {asset.quantity}")
            if self.custody.owner_of(asset) != seller:
                raise NotTokenOwner(f"{bytes_to_hex(seller)} does not own token {asset.token_id}")
            return

        owned = self.custody.balance_of(asset, seller)
        if not isinstance(asset.quantity, int) or not 1 <= asset.quantity <= owned:
            raise InvalidQuantity(f"Quantity must be between 1 and {owned}, got {asset.quantity}")

    # =========================================================================
    # Bidding
    # =========================================================================

    @nonreentrant
    def place_bid(self, bidder: bytes, auction_id: int, amount: int) -> Auction:
        """
        Place a bid, paying `amount` into the engine.

        The previous leader is refunded by push, or through the refund
        ledger if the push fails. A bid inside the extension threshold
        moves the deadline to now + extension window.

        Returns:
            The updated auction
        """
        auction = self.store.get(auction_id)
        now = self._now()

        if self.paused:
            raise Paused("Bidding is paused")
        if not auction.active or auction.settled:
            raise AuctionNotActive(f"Auction {auction_id} is not active")
        if auction.has_ended(now):
            raise AuctionEnded(f"Auction {auction_id} ended at {auction.end_time}")
        if bidder == auction.seller:
            raise SellerCannotBid("Seller cannot bid on own auction")

        valid, error = validate_address(bidder, "bidder")
        if not valid:
            raise InvalidAddress(error)
        valid, error = validate_amount(amount)
        if not valid:
            raise InvalidAmount(error)

        minimum = auction.minimum_bid()
        if amount < minimum:
            raise BidTooLow(amount, minimum)

        self.bank.transfer(bidder, self.address, amount)

        previous_bidder = auction.highest_bidder
        previous_bid = auction.highest_bid

        end_time = auction.end_time
        extended = False
        if auction.end_time - now < self.config.extension_threshold:
            candidate = now + self.config.extension_window
            if candidate > end_time:
                end_time = candidate
                extended = True

        auction = self.store.update(
            auction_id,
            highest_bid=amount,
            highest_bidder=bidder,
            bid_count=auction.bid_count + 1,
            end_time=end_time,
            extensions=auction.extensions + int(extended),
        )
        self.store.record_bidder(bidder, auction_id)

        self.events.emit(
            EventType.BID_PLACED, auction_id, now,
            bidder=bytes_to_hex(bidder),
            amount=str(amount),
        )
        if extended:
            self.events.emit(EventType.AUCTION_EXTENDED, auction_id, now, end_time=end_time)
            logger.info(f"Auction {auction_id} extended to {end_time}")

        logger.info(f"Bid accepted: auction={auction_id}, bidder={short_hex(bidder)}, amount={amount}")

        if previous_bidder is not None:
            self._refund(previous_bidder, previous_bid, auction_id, now)

        return auction

    def _refund(self, identity: bytes, amount: int, auction_id: int, now: int) -> bool:
        """
        Push a refund, queueing it in the ledger if the push fails.

        Returns:
            True if delivered immediately
        """
        if self.bank.push(self.address, identity, amount):
            self.events.emit(
                EventType.REFUND_DELIVERED, auction_id, now,
                recipient=bytes_to_hex(identity),
                amount=str(amount),
            )
            return True

        self.ledger.credit(identity, amount)
        self.events.emit(
            EventType.REFUND_QUEUED, auction_id, now,
            recipient=bytes_to_hex(identity),
            amount=str(amount),
        )
        return False

    # =========================================================================
    # Pull Payments
    # =========================================================================

    @nonreentrant
    def withdraw(self, identity: bytes) -> int:
        """
        Claim the caller's entire refund ledger balance.

        Returns:
            Amount delivered
        """
        amount = self.ledger.take(identity)
        if amount == 0:
            raise NoBalance(f"No pending refund for {bytes_to_hex(identity)}")

        if not self.bank.push(self.address, identity, amount):
            self.ledger.restore(identity, amount)
            raise TransferFailed(f"Withdrawal of {amount} to {bytes_to_hex(identity)} failed")

        self.ledger.confirm_withdrawal(amount)
        self.events.emit(
            EventType.FUNDS_WITHDRAWN, None, self._now(),
            recipient=bytes_to_hex(identity),
            amount=str(amount),
        )
        logger.info(f"Withdrawal: {short_hex(identity)} received {amount}")
        return amount

    # =========================================================================
    # Settlement
    # =========================================================================

    @nonreentrant
    def end_auction(self, caller: bytes, auction_id: int) -> AuctionOutcome:
        """
        Resolve an auction after its deadline. Callable by anyone.

        Returns:
            The terminal outcome reached
        """
        auction = self.store.get(auction_id)
        now = self._now()

        if auction.settled:
            raise AlreadySettled(f"Auction {auction_id} already settled")
        if not auction.active:
            raise AuctionNotActive(f"Auction {auction_id} is not active")
        if not auction.has_ended(now):
            raise AuctionNotEnded(f"Auction {auction_id} ends at {auction.end_time}")

        if not auction.has_bids:
            outcome = AuctionOutcome.RETURNED_NO_BIDS
        elif not auction.reserve_met:
            outcome = AuctionOutcome.RETURNED_RESERVE_NOT_MET
        else:
            outcome = AuctionOutcome.SOLD

        distribution = None
        if outcome == AuctionOutcome.SOLD:
            distribution = self._committed(auction, outcome, now, self._complete_sale)
        else:
            self._committed(auction, outcome, now, self._return_asset)

        if outcome == AuctionOutcome.RETURNED_NO_BIDS:
            self.events.emit(
                EventType.AUCTION_CANCELLED, auction_id, now,
                reason="no bids",
                caller=bytes_to_hex(caller),
            )
        elif outcome == AuctionOutcome.RETURNED_RESERVE_NOT_MET:
            self.events.emit(
                EventType.RESERVE_NOT_MET, auction_id, now,
                highest_bid=str(auction.highest_bid),
                reserve_price=str(auction.reserve_price),
            )
            self._refund(auction.highest_bidder, auction.highest_bid, auction_id, now)
        else:
            self.events.emit(
                EventType.AUCTION_SETTLED, auction_id, now,
                winner=bytes_to_hex(auction.highest_bidder),
                distribution=distribution.to_dict(),
            )

        logger.info(f"Auction {auction_id} ended: {outcome.name}")
        return outcome

    @nonreentrant
    def cancel_auction(self, caller: bytes, auction_id: int) -> None:
        """Seller withdraws an auction that has no bids."""
        auction = self.store.get(auction_id)
        now = self._now()

        if auction.settled:
            raise AlreadySettled(f"Auction {auction_id} already settled")
        if not auction.active:
            raise AuctionNotActive(f"Auction {auction_id} is not active")
        if caller != auction.seller:
            raise NotSeller("Only the seller can cancel")
        if auction.has_bids:
            raise HasBids(f"Auction {auction_id} has bids")

        self._committed(auction, AuctionOutcome.CANCELLED, now, self._return_asset)

        self.events.emit(EventType.AUCTION_CANCELLED, auction_id, now, reason="cancelled by seller")
        logger.info(f"Auction {auction_id} cancelled by seller")

    @nonreentrant
    def emergency_withdraw(self, caller: bytes, auction_id: int) -> None:
        """
        Unwind an auction nobody settled.

        Available to the seller or the leading bidder once
        end_time + emergency_delay has passed.
        """
        auction = self.store.get(auction_id)
        now = self._now()

        if auction.settled or not auction.active:
            raise AlreadySettled(f"Auction {auction_id} already settled")
        if caller not in (auction.seller, auction.highest_bidder):
            raise NotAuthorized("Only the seller or highest bidder can force an emergency withdrawal")
        unlock_at = auction.end_time + self.config.emergency_delay
        if now < unlock_at:
            raise TooEarly(f"Emergency withdrawal available at {unlock_at}")

        self._committed(auction, AuctionOutcome.EMERGENCY_CLOSED, now, self._return_asset)

        refunded = None
        if auction.has_bids:
            refunded = self._refund(auction.highest_bidder, auction.highest_bid, auction_id, now)

        self.events.emit(
            EventType.EMERGENCY_CLOSED, auction_id, now,
            caller=bytes_to_hex(caller),
            refund_delivered=refunded,
        )
        logger.warning(f"Auction {auction_id} emergency closed by {short_hex(caller)}")

    def _committed(
        self,
        auction: Auction,
        outcome: AuctionOutcome,
        now: int,
        action: Callable[[Auction, int], Optional[PaymentDistribution]],
    ):
        """
        Commit a terminal outcome, then run the external side of it.

        If the action raises, the record is restored and the error
        propagates, leaving the auction as it was.
        """
        self.store.update(
            auction.auction_id,
            active=False,
            settled=True,
            outcome=outcome,
            closed_at=now,
        )
        try:
            return action(auction, now)
        except Exception:
            self.store.restore(auction)
            raise

    def _return_asset(self, auction: Auction, now: int) -> None:
        if auction.asset.is_tokenized:
            self.custody.release(auction.asset, auction.seller)

    def _complete_sale(self, auction: Auction, now: int) -> PaymentDistribution:
        """
        Hand the asset over, then pay out the proceeds.

        If the payout fails the handover is undone (token recalled into
        custody, or escrow record voided) before the error propagates.
        """
        winner = auction.highest_bidder
        payee = None
        escrow_id = None

        if auction.asset.is_tokenized:
            self.custody.release(auction.asset, winner)
        else:
            escrow_id, payee = self.escrow.open_escrow(
                winner, auction.seller, auction.asset, auction.highest_bid, now,
            )
            logger.info(f"Auction {auction.auction_id} proceeds held in escrow {escrow_id}")

        try:
            return self.payments.settle(
                auction.highest_bid,
                auction.asset,
                auction.seller,
                payer=self.address,
                payee=payee,
            )
        except Exception:
            logger.error(f"Auction {auction.auction_id} payout failed, undoing handover")
            if escrow_id is None:
                self.custody.recall(auction.asset, winner)
            else:
                self.escrow.void_escrow(escrow_id)
            raise

    # =========================================================================
    # Administration
    # =========================================================================

    def _require_role(self, caller: bytes, role: Role) -> None:
        if not self.roles.is_authorized(caller, role):
            raise NotAuthorized(f"{bytes_to_hex(caller)} lacks role {role!r}")

    @nonreentrant
    def pause(self, caller: bytes) -> None:
        self._require_role(caller, Role.PAUSER)
        self._set_paused(True)
        self.events.emit(EventType.PAUSED, None, self._now(), caller=bytes_to_hex(caller))

    @nonreentrant
    def unpause(self, caller: bytes) -> None:
        self._require_role(caller, Role.PAUSER)
        self._set_paused(False)
        self.events.emit(EventType.UNPAUSED, None, self._now(), caller=bytes_to_hex(caller))

    def _set_paused(self, paused: bool) -> None:
        self.paused = paused
        if self.storage_manager:
            self.storage_manager.save_setting("paused", paused)
        logger.warning(f"Engine {'paused' if paused else 'unpaused'}")

    @nonreentrant
    def set_platform_fee(self, caller: bytes, bps: int) -> None:
        self._require_role(caller, Role.FEE_MANAGER)
        valid, error = validate_bps(bps, "platform_fee_bps")
        if not valid or bps > self.config.max_platform_fee_bps:
            raise InvalidFee(error or f"Platform fee {bps} exceeds max {self.config.max_platform_fee_bps}")

        self.payments.set_platform_fee(bps)
        if self.storage_manager:
            self.storage_manager.save_setting("platform_fee_bps", bps)
        self.events.emit(EventType.PLATFORM_FEE_UPDATED, None, self._now(), bps=bps)

    @nonreentrant
    def set_fee_recipient(self, caller: bytes, recipient: bytes) -> None:
        self._require_role(caller, Role.FEE_MANAGER)
        valid, error = validate_address(recipient, "fee_recipient")
        if not valid:
            raise InvalidAddress(error)
        self.payments.set_fee_recipient(recipient)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_auction(self, auction_id: int) -> Auction:
        return self.store.get(auction_id)

    def is_active(self, auction_id: int) -> bool:
        return self.store.get(auction_id).is_open(self._now())

    def has_ended(self, auction_id: int) -> bool:
        return self.store.get(auction_id).has_ended(self._now())

    def time_remaining(self, auction_id: int) -> int:
        return max(0, self.store.get(auction_id).end_time - self._now())

    def get_minimum_bid(self, auction_id: int) -> int:
        return self.store.get(auction_id).minimum_bid()

    def get_seller_auctions(self, seller: bytes) -> List[int]:
        return self.store.seller_auctions(seller)

    def get_bidder_auctions(self, bidder: bytes) -> List[int]:
        return self.store.bidder_auctions(bidder)

    def calculate_payment_distribution(self, auction_id: int) -> PaymentDistribution:
        """What the payment adapter would pay out for the current highest bid."""
        auction = self.store.get(auction_id)
        return self.payments.quote(auction.highest_bid, auction.asset, auction.seller)

    def pending_refund(self, identity: bytes) -> int:
        return self.ledger.balance_of(identity)

    def auction_count(self) -> int:
        return len(self.store)

    def get_active_auctions(self) -> List[int]:
        now = self._now()
        return [a.auction_id for a in self.store if a.is_open(now)]

    def stats(self) -> dict:
        """Get engine statistics."""
        return {
            "paused": self.paused,
            "auctions": self.store.stats(),
            "refunds": self.ledger.stats(),
            "escrowed_funds": self.bank.balance_of(self.address),
            "events": len(self.events),
        }
