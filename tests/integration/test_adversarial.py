"""
Adversarial Tests - Robustness of the engine against hostile counterparties.

Tests verify:
1. Receivers calling back into the engine are rejected by the guard
2. Refund pushes that fail never block bidding or settlement
3. Withdrawals cannot be drained twice
4. Adapter failures leave the auction record untouched
5. Invalid inputs are rejected without state change
"""

import pytest

from vertix.core.assets import AssetCategory, InMemoryCustody, TokenStandard, offchain_asset, token_asset
from vertix.core.auction import ENGINE_ADDRESS, AuctionEngine, AuctionOutcome, EventType
from vertix.core.access import RoleRegistry
from vertix.core.clock import ManualClock
from vertix.core.config import DAY
from vertix.core.errors import (
    AuctionNotFound,
    CustodyError,
    EscrowError,
    InvalidAmount,
    PaymentError,
    ReentrantCall,
)
from vertix.core.funds import Bank
from vertix.core.payments import EscrowStatus, FeeSplitter, OffchainEscrow
from vertix.crypto import address_from_label, content_hash


SELLER = address_from_label("adv.seller")
ALICE = address_from_label("adv.alice")
BOB = address_from_label("adv.bob")
MALLORY = address_from_label("adv.mallory")
TREASURY = address_from_label("adv.treasury")
ADMIN = address_from_label("adv.admin")
COLLECTION = address_from_label("adv.collection")


class FlakyCustody(InMemoryCustody):
    """Custody whose releases can be switched off."""

    def __init__(self, holder):
        super().__init__(holder)
        self.fail_release = False

    def release(self, asset, to):
        if self.fail_release:
            raise CustodyError("custody contract paused")
        super().release(asset, to)


class FlakyPayments(FeeSplitter):
    """Payment adapter whose payouts can be switched off."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_settle = False

    def settle(self, gross, asset, seller, payer, payee=None):
        if self.fail_settle:
            raise PaymentError("payout service unavailable")
        return super().settle(gross, asset, seller, payer, payee)


class FailingEscrow(OffchainEscrow):
    def open_escrow(self, buyer, seller, asset, amount, opened_at):
        raise EscrowError("escrow service unavailable")


# =============================================================================
# Fixtures
# =============================================================================


def build_engine(escrow=None):
    bank = Bank()
    custody = FlakyCustody(holder=ENGINE_ADDRESS)
    custody.register_collection(COLLECTION, TokenStandard.SINGLE)
    for token_id in range(1, 4):
        custody.mint(COLLECTION, SELLER, token_id)
    custody.set_approval_for_all(COLLECTION, SELLER, ENGINE_ADDRESS)

    for account in (ALICE, BOB, MALLORY):
        bank.deposit(account, 10_000)

    return AuctionEngine(
        bank=bank,
        custody=custody,
        payments=FlakyPayments(bank, custody, TREASURY),
        roles=RoleRegistry(ADMIN),
        clock=ManualClock(),
        escrow=escrow,
    )


@pytest.fixture
def engine():
    return build_engine()


def open_auction(engine, token_id=1, **kwargs):
    return engine.create_auction(SELLER, token_asset(COLLECTION, token_id), 100, DAY, **kwargs)


# =============================================================================
# Re-entrancy
# =============================================================================


class TestReentrancy:
    """Callbacks into the engine from a receive hook."""

    def test_outbid_bidder_cannot_rebid_from_refund(self, engine):
        auction_id = open_auction(engine)
        attempts = []

        def rebid(sender, amount):
            try:
                engine.place_bid(MALLORY, auction_id, 10 * amount)
            except ReentrantCall as exc:
                attempts.append(exc)
                raise

        engine.bank.register_receiver(MALLORY, rebid)
        engine.place_bid(MALLORY, auction_id, 100)
        engine.place_bid(ALICE, auction_id, 200)

        assert len(attempts) == 1
        auction = engine.get_auction(auction_id)
        assert auction.highest_bidder == ALICE
        assert auction.highest_bid == 200
        assert auction.bid_count == 2
        assert engine.pending_refund(MALLORY) == 100

    def test_withdraw_cannot_be_drained_twice(self, engine):
        auction_id = open_auction(engine)

        def reject(sender, amount):
            raise RuntimeError("not now")

        engine.bank.register_receiver(MALLORY, reject)
        engine.place_bid(MALLORY, auction_id, 100)
        engine.place_bid(ALICE, auction_id, 200)
        assert engine.pending_refund(MALLORY) == 100

        reentered = []

        def drain(sender, amount):
            try:
                engine.withdraw(MALLORY)
            except ReentrantCall:
                reentered.append(amount)

        engine.bank.register_receiver(MALLORY, drain)
        assert engine.withdraw(MALLORY) == 100

        assert reentered == [100]
        assert engine.bank.balance_of(MALLORY) == 10_000
        assert engine.pending_refund(MALLORY) == 0
        assert engine.bank.balance_of(ENGINE_ADDRESS) == 200

    def test_settlement_refund_cannot_reenter(self, engine):
        auction_id = open_auction(engine, hidden_reserve=True, token_id=2)
        engine.place_bid(MALLORY, auction_id, 50)

        def resettle(sender, amount):
            engine.end_auction(MALLORY, auction_id)

        engine.bank.register_receiver(MALLORY, resettle)
        engine.clock.advance(DAY)

        assert engine.end_auction(BOB, auction_id) == AuctionOutcome.RETURNED_RESERVE_NOT_MET
        assert engine.pending_refund(MALLORY) == 50
        assert len(engine.events.of_type(EventType.RESERVE_NOT_MET)) == 1

    def test_guard_released_after_failure(self, engine):
        with pytest.raises(AuctionNotFound):
            engine.place_bid(ALICE, 404, 100)
        assert not engine._guard.locked
        open_auction(engine)


# =============================================================================
# Adapter failures
# =============================================================================


class TestAdapterFailures:
    """A failing adapter aborts the operation with no effect on the record."""

    def test_failed_release_on_sale(self, engine):
        auction_id = open_auction(engine)
        engine.place_bid(ALICE, auction_id, 500)
        engine.clock.advance(DAY)
        before = engine.get_auction(auction_id)

        engine.custody.fail_release = True
        with pytest.raises(CustodyError):
            engine.end_auction(BOB, auction_id)

        assert engine.get_auction(auction_id) == before
        assert engine.bank.balance_of(ENGINE_ADDRESS) == 500
        assert not engine.events.of_type(EventType.AUCTION_SETTLED)

        engine.custody.fail_release = False
        assert engine.end_auction(BOB, auction_id) == AuctionOutcome.SOLD

    def test_failed_release_on_cancel(self, engine):
        auction_id = open_auction(engine)
        engine.custody.fail_release = True

        with pytest.raises(CustodyError):
            engine.cancel_auction(SELLER, auction_id)
        assert engine.get_auction(auction_id).outcome == AuctionOutcome.ACTIVE
        assert engine.is_active(auction_id)

    def test_failed_escrow_on_offchain_sale(self):
        engine = build_engine(escrow=FailingEscrow())
        asset = offchain_asset(AssetCategory.WEBSITE, content_hash(b"site"), "https://site")
        auction_id = engine.create_auction(SELLER, asset, 0, DAY)
        engine.place_bid(ALICE, auction_id, 300)
        engine.clock.advance(DAY)

        with pytest.raises(EscrowError):
            engine.end_auction(ALICE, auction_id)
        auction = engine.get_auction(auction_id)
        assert not auction.settled
        assert auction.active
        assert engine.bank.balance_of(ENGINE_ADDRESS) == 300

    def test_failed_payout_recalls_token(self, engine):
        auction_id = open_auction(engine)
        engine.place_bid(ALICE, auction_id, 500)
        engine.clock.advance(DAY)
        before = engine.get_auction(auction_id)

        engine.payments.fail_settle = True
        with pytest.raises(PaymentError):
            engine.end_auction(BOB, auction_id)

        assert engine.get_auction(auction_id) == before
        assert engine.custody.owner_of(token_asset(COLLECTION, 1)) == ENGINE_ADDRESS
        assert engine.bank.balance_of(ENGINE_ADDRESS) == 500
        assert engine.bank.balance_of(SELLER) == 0

        engine.payments.fail_settle = False
        assert engine.end_auction(BOB, auction_id) == AuctionOutcome.SOLD
        assert engine.custody.owner_of(token_asset(COLLECTION, 1)) == ALICE
        assert engine.bank.balance_of(ENGINE_ADDRESS) == 0

    def test_failed_payout_leaves_emergency_exit(self, engine):
        auction_id = open_auction(engine)
        engine.place_bid(ALICE, auction_id, 500)
        engine.clock.advance(DAY)

        engine.payments.fail_settle = True
        with pytest.raises(PaymentError):
            engine.end_auction(BOB, auction_id)

        unlock_at = engine.get_auction(auction_id).end_time + engine.config.emergency_delay
        engine.clock.advance(unlock_at - engine.clock.now())
        engine.emergency_withdraw(ALICE, auction_id)

        assert engine.custody.owner_of(token_asset(COLLECTION, 1)) == SELLER
        assert engine.bank.balance_of(ALICE) == 10_000
        assert engine.bank.balance_of(ENGINE_ADDRESS) == 0

    def test_failed_payout_voids_offchain_escrow(self, engine):
        asset = offchain_asset(AssetCategory.DOMAIN, content_hash(b"domain"), "https://domain")
        auction_id = engine.create_auction(SELLER, asset, 0, DAY)
        engine.place_bid(ALICE, auction_id, 300)
        engine.clock.advance(DAY)

        engine.payments.fail_settle = True
        with pytest.raises(PaymentError):
            engine.end_auction(ALICE, auction_id)

        assert engine.get_auction(auction_id).active
        assert [r.status for r in engine.escrow.escrows_for(ALICE)] == [EscrowStatus.VOIDED]

        engine.payments.fail_settle = False
        assert engine.end_auction(ALICE, auction_id) == AuctionOutcome.SOLD
        statuses = [r.status for r in engine.escrow.escrows_for(ALICE)]
        assert statuses == [EscrowStatus.VOIDED, EscrowStatus.OPEN]


# =============================================================================
# Subscriber failures
# =============================================================================


class TestSubscriberFailures:
    """Event subscribers that raise cannot interrupt value movement."""

    @staticmethod
    def broken(event):
        raise RuntimeError("indexer down")

    def test_outbid_refund_still_delivered(self, engine):
        auction_id = open_auction(engine)
        engine.place_bid(ALICE, auction_id, 100)
        engine.events.subscribe(self.broken)

        engine.place_bid(BOB, auction_id, 200)

        auction = engine.get_auction(auction_id)
        assert auction.highest_bidder == BOB
        assert engine.bank.balance_of(ALICE) == 10_000
        assert engine.pending_refund(ALICE) == 0
        assert engine.bank.balance_of(ENGINE_ADDRESS) == 200
        assert len(engine.events.of_type(EventType.REFUND_DELIVERED)) == 1
        assert engine.events.delivery_failures == 2

    def test_reserve_refund_still_delivered(self, engine):
        auction_id = open_auction(engine, hidden_reserve=True)
        engine.place_bid(ALICE, auction_id, 50)
        engine.events.subscribe(self.broken)
        engine.clock.advance(DAY)

        assert engine.end_auction(BOB, auction_id) == AuctionOutcome.RETURNED_RESERVE_NOT_MET
        assert engine.bank.balance_of(ALICE) == 10_000
        assert engine.bank.balance_of(ENGINE_ADDRESS) == 0
        assert engine.custody.owner_of(token_asset(COLLECTION, 1)) == SELLER

    def test_reentrant_subscriber_is_contained(self, engine):
        auction_id = open_auction(engine)

        def rebid(event):
            if event.event_type == EventType.BID_PLACED:
                engine.place_bid(MALLORY, auction_id, 5_000)

        engine.place_bid(ALICE, auction_id, 100)
        engine.events.subscribe(rebid)
        engine.place_bid(BOB, auction_id, 200)

        auction = engine.get_auction(auction_id)
        assert auction.highest_bidder == BOB
        assert auction.bid_count == 2
        assert engine.bank.balance_of(MALLORY) == 10_000
        assert engine.bank.balance_of(ALICE) == 10_000


# =============================================================================
# Input rejection
# =============================================================================


class TestInvalidInput:
    """Malformed inputs change nothing."""

    @pytest.mark.parametrize("amount", [-1, 1.5, True, "100"])
    def test_malformed_bid_amounts(self, engine, amount):
        auction_id = open_auction(engine)
        with pytest.raises(InvalidAmount):
            engine.place_bid(ALICE, auction_id, amount)
        assert engine.get_auction(auction_id).bid_count == 0

    def test_malformed_reserve(self, engine):
        with pytest.raises(InvalidAmount):
            engine.create_auction(SELLER, token_asset(COLLECTION, 1), 2**256, DAY)
        assert engine.auction_count() == 0
