import pytest

from vertix.core.assets import TokenStandard, token_asset
from vertix.core.auction import ENGINE_ADDRESS, AuctionOutcome, AuctionStore
from vertix.core.config import DAY
from vertix.core.funds import RefundLedger
from vertix.core.marketplace import ADMIN_ADDRESS, build_marketplace
from vertix.core.storage import BIDDER_INDEX, SELLER_INDEX, StorageManager
from vertix.crypto import address_from_label

SELLER = address_from_label("persist.seller")
ALICE = address_from_label("persist.alice")
BOB = address_from_label("persist.bob")
COLLECTION = address_from_label("persist.collection")


@pytest.fixture
def temp_data_dir(tmp_path):
    """Create a temporary directory for engine data."""
    data_dir = tmp_path / "engine_data"
    data_dir.mkdir()
    return data_dir


def start_market(data_dir, clock=None):
    market = build_marketplace(clock=clock, data_dir=data_dir)
    market.custody.register_collection(COLLECTION, TokenStandard.SINGLE)
    market.custody.set_approval_for_all(COLLECTION, SELLER, ENGINE_ADDRESS)
    return market


def test_engine_state_survives_restart(temp_data_dir):
    """Auctions, indices, refunds and settings are reloaded after a restart."""
    # 1. Start engine A
    market_a = start_market(temp_data_dir)
    engine_a = market_a.engine
    market_a.custody.mint(COLLECTION, SELLER, 1)
    market_a.custody.mint(COLLECTION, SELLER, 2)
    market_a.fund(ALICE, 1000)
    market_a.fund(BOB, 1000)

    def reject(sender, amount):
        raise RuntimeError("rejecting")

    first = engine_a.create_auction(SELLER, token_asset(COLLECTION, 1), 100, DAY)
    second = engine_a.create_auction(SELLER, token_asset(COLLECTION, 2), 0, DAY)
    market_a.bank.register_receiver(ALICE, reject)
    engine_a.place_bid(ALICE, first, 100)
    engine_a.place_bid(BOB, first, 200)
    engine_a.cancel_auction(SELLER, second)
    engine_a.pause(ADMIN_ADDRESS)
    engine_a.set_platform_fee(ADMIN_ADDRESS, 400)

    snapshot = engine_a.get_auction(first)
    event_count = len(engine_a.events)
    market_a.close()

    # 2. Start engine B on the same directory
    market_b = start_market(temp_data_dir, clock=market_a.clock)
    engine_b = market_b.engine

    assert engine_b.auction_count() == 2
    assert engine_b.get_auction(first) == snapshot
    assert engine_b.get_auction(second).outcome == AuctionOutcome.CANCELLED
    assert engine_b.get_seller_auctions(SELLER) == [first, second]
    assert engine_b.get_bidder_auctions(ALICE) == [first]
    assert engine_b.get_bidder_auctions(BOB) == [first]
    assert engine_b.pending_refund(ALICE) == 100
    assert engine_b.stats()["refunds"]["total_credited"] == 100
    assert engine_b.paused
    assert market_b.payments.platform_fee_bps == 400
    assert len(engine_b.events) == event_count

    # 3. Ids continue after the reload
    engine_b.unpause(ADMIN_ADDRESS)
    market_b.custody.mint(COLLECTION, SELLER, 3)
    assert engine_b.create_auction(SELLER, token_asset(COLLECTION, 3), 0, DAY) == 3
    market_b.close()


def test_store_and_ledger_share_storage(temp_data_dir):
    """Store and ledger persist independently through one StorageManager."""
    storage = StorageManager(data_dir=temp_data_dir)
    store = AuctionStore(storage)
    ledger = RefundLedger(storage)

    store.insert(
        seller=SELLER,
        asset=token_asset(COLLECTION, 1),
        reserve_price=10**30,
        start_time=0,
        end_time=DAY,
        bid_increment_bps=500,
    )
    store.record_bidder(ALICE, 1)
    ledger.credit(ALICE, 2**100)
    ledger.credit(BOB, 5)
    ledger.take(BOB)
    storage.close()

    storage = StorageManager(data_dir=temp_data_dir)
    assert storage.load_index(SELLER_INDEX) == {SELLER: [1]}
    assert storage.load_index(BIDDER_INDEX) == {ALICE: [1]}
    assert storage.load_pending_refunds() == {ALICE: 2**100}

    ledger = RefundLedger(storage)
    ledger.confirm_withdrawal(5)
    assert ledger.stats()["total_credited"] == 2**100 + 5
    assert RefundLedger(storage).stats()["total_withdrawn"] == 5

    reloaded = AuctionStore(storage)
    assert reloaded.get(1).reserve_price == 10**30
    assert reloaded.next_id == 2
    storage.close()


def test_settings_roundtrip(temp_data_dir):
    storage = StorageManager(data_dir=temp_data_dir)
    assert storage.get_setting("paused", False) is False
    storage.save_setting("paused", True)
    assert storage.get_setting("paused") is True
    assert storage.get_next_auction_id() is None
    storage.close()
