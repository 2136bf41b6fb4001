"""
Unit tests for asset references and the in-memory custody adapter.

Tests cover:
1. Asset shape validation (tokenized vs off-chain)
2. Serialization
3. Escrow, release and recall of single and fractional tokens
4. Approval and ownership enforcement
5. Royalty terms
"""

import pytest

from vertix.core.assets import (
    AssetCategory,
    AssetReference,
    InMemoryCustody,
    TokenStandard,
    offchain_asset,
    token_asset,
)
from vertix.core.errors import (
    InsufficientTokenBalance,
    NotApproved,
    NotTokenOwner,
    UnknownCollection,
)
from vertix.crypto import address_from_label, content_hash


# =============================================================================
# Fixtures
# =============================================================================


HOLDER = address_from_label("test.holder")
SELLER = address_from_label("test.seller")
BUYER = address_from_label("test.buyer")
CREATOR = address_from_label("test.creator")
SINGLE = address_from_label("test.single")
FRACTIONAL = address_from_label("test.fractional")


@pytest.fixture
def custody():
    """Custody with one single-unit and one fractional collection."""
    custody = InMemoryCustody(holder=HOLDER)
    custody.register_collection(SINGLE, TokenStandard.SINGLE, CREATOR, royalty_bps=500)
    custody.register_collection(FRACTIONAL, TokenStandard.FRACTIONAL)
    custody.mint(SINGLE, SELLER, token_id=1)
    custody.mint(FRACTIONAL, SELLER, token_id=9, quantity=10)
    custody.set_approval_for_all(SINGLE, SELLER, HOLDER)
    custody.set_approval_for_all(FRACTIONAL, SELLER, HOLDER)
    return custody


# =============================================================================
# Asset Reference Tests
# =============================================================================


class TestAssetShape:
    """Tests for shape validation."""

    def test_tokenized_valid(self):
        asset = token_asset(SINGLE, 1)
        assert asset.is_tokenized
        assert asset.validate_shape() == (True, "")

    def test_offchain_valid(self):
        asset = offchain_asset(AssetCategory.DOMAIN, content_hash(b"proof"), "ipfs://proof")
        assert not asset.is_tokenized
        assert asset.validate_shape() == (True, "")

    def test_offchain_without_hash_invalid(self):
        asset = AssetReference(category=AssetCategory.WEBSITE, metadata_uri="https://x")
        valid, err = asset.validate_shape()
        assert not valid
        assert "content hash" in err

    def test_offchain_with_empty_uri_invalid(self):
        asset = offchain_asset(AssetCategory.APP, content_hash(b"proof"), "")
        assert not asset.validate_shape()[0]

    def test_mixed_shape_invalid(self):
        asset = AssetReference(
            category=AssetCategory.NFT,
            contract=SINGLE,
            token_id=1,
            standard=TokenStandard.SINGLE,
            content_hash=content_hash(b"proof"),
        )
        assert not asset.validate_shape()[0]

    def test_tokenized_needs_standard(self):
        asset = AssetReference(category=AssetCategory.NFT, contract=SINGLE, token_id=1)
        assert not asset.validate_shape()[0]

    def test_serialization_roundtrip(self):
        asset = token_asset(FRACTIONAL, 9, quantity=4, standard=TokenStandard.FRACTIONAL)
        assert AssetReference.from_dict(asset.to_dict()) == asset

        offchain = offchain_asset(AssetCategory.YOUTUBE, content_hash(b"c"), "ipfs://c")
        assert AssetReference.from_dict(offchain.to_dict()) == offchain


# =============================================================================
# Custody Tests
# =============================================================================


class TestSingleUnitCustody:
    """Tests for single-unit tokens."""

    def test_escrow_and_release(self, custody):
        asset = token_asset(SINGLE, 1)
        custody.escrow(asset, SELLER)
        assert custody.owner_of(asset) == HOLDER

        custody.release(asset, BUYER)
        assert custody.owner_of(asset) == BUYER

    def test_recall_after_release(self, custody):
        asset = token_asset(SINGLE, 1)
        custody.escrow(asset, SELLER)
        custody.release(asset, BUYER)

        custody.recall(asset, BUYER)
        assert custody.owner_of(asset) == HOLDER

    def test_recall_from_non_holder_fails(self, custody):
        with pytest.raises(NotTokenOwner):
            custody.recall(token_asset(SINGLE, 1), BUYER)
        assert custody.owner_of(token_asset(SINGLE, 1)) == SELLER

    def test_escrow_by_non_owner_fails(self, custody):
        with pytest.raises(NotTokenOwner):
            custody.escrow(token_asset(SINGLE, 1), BUYER)

    def test_escrow_without_approval_fails(self, custody):
        custody.set_approval_for_all(SINGLE, SELLER, HOLDER, approved=False)
        with pytest.raises(NotApproved):
            custody.escrow(token_asset(SINGLE, 1), SELLER)
        assert custody.owner_of(token_asset(SINGLE, 1)) == SELLER

    def test_unknown_collection(self, custody):
        with pytest.raises(UnknownCollection):
            custody.owner_of(token_asset(address_from_label("nowhere"), 1))

    def test_double_mint_rejected(self, custody):
        with pytest.raises(ValueError):
            custody.mint(SINGLE, BUYER, token_id=1)


class TestFractionalCustody:
    """Tests for fractional tokens."""

    def test_partial_escrow(self, custody):
        asset = token_asset(FRACTIONAL, 9, quantity=4, standard=TokenStandard.FRACTIONAL)
        custody.escrow(asset, SELLER)

        assert custody.balance_of(asset, SELLER) == 6
        assert custody.balance_of(asset, HOLDER) == 4
        assert custody.owner_of(asset) is None

    def test_escrow_more_than_held_fails(self, custody):
        asset = token_asset(FRACTIONAL, 9, quantity=11, standard=TokenStandard.FRACTIONAL)
        with pytest.raises(InsufficientTokenBalance):
            custody.escrow(asset, SELLER)

    def test_recall_partial_units(self, custody):
        asset = token_asset(FRACTIONAL, 9, quantity=4, standard=TokenStandard.FRACTIONAL)
        custody.escrow(asset, SELLER)
        custody.release(asset, BUYER)
        custody.recall(asset, BUYER)

        assert custody.balance_of(asset, BUYER) == 0
        assert custody.balance_of(asset, HOLDER) == 4


class TestRoyalties:
    """Tests for royalty terms."""

    def test_royalty_info(self, custody):
        receiver, amount = custody.royalty_info(token_asset(SINGLE, 1), 10_000)
        assert receiver == CREATOR
        assert amount == 500

    def test_no_royalty(self, custody):
        asset = token_asset(FRACTIONAL, 9, standard=TokenStandard.FRACTIONAL)
        assert custody.royalty_info(asset, 10_000) == (None, 0)

    def test_invalid_royalty_bps(self, custody):
        with pytest.raises(ValueError):
            custody.register_collection(address_from_label("bad"), royalty_bps=10_001)
