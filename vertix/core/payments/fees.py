"""
Fees - Payment settlement for completed sales.

Splits gross sale proceeds three ways:
- Platform fee (basis points of gross, to the fee recipient)
- Creator royalty (terms from the custody contract, tokenized assets only)
- Seller net (the remainder, to the seller or a designated payee)

The engine depends only on PaymentAdapter; FeeSplitter is the
reference implementation moving value through the Bank.
"""

from dataclasses import dataclass
from typing import Optional

from vertix.core.assets.asset import AssetReference
from vertix.core.assets.custody import CustodyAdapter
from vertix.core.errors import InsufficientFunds, InvalidFee, PaymentError
from vertix.core.funds.bank import Bank
from vertix.crypto import bytes_to_hex, short_hex
from vertix.utils.logger import get_logger

logger = get_logger("fees")

BPS_DENOMINATOR = 10_000


@dataclass(frozen=True)
class PaymentDistribution:
    """Breakdown of a sale's gross proceeds."""
    gross: int
    platform_fee: int
    royalty_fee: int
    royalty_receiver: Optional[bytes]
    seller_net: int

    def to_dict(self) -> dict:
        return {
            "gross": self.gross,
            "platform_fee": self.platform_fee,
            "royalty_fee": self.royalty_fee,
            "royalty_receiver": bytes_to_hex(self.royalty_receiver) if self.royalty_receiver else None,
            "seller_net": self.seller_net,
        }


class PaymentAdapter:
    """Interface to the fee/royalty computation-and-payout service."""

    def quote(self, gross: int, asset: AssetReference, seller: bytes) -> PaymentDistribution:
        raise NotImplementedError

    def settle(
        self,
        gross: int,
        asset: AssetReference,
        seller: bytes,
        payer: bytes,
        payee: Optional[bytes] = None,
    ) -> PaymentDistribution:
        raise NotImplementedError

    def set_platform_fee(self, bps: int) -> None:
        raise NotImplementedError

    def set_fee_recipient(self, recipient: bytes) -> None:
        raise NotImplementedError


class FeeSplitter(PaymentAdapter):
    """
    Reference payment adapter.

    Attributes:
        platform_fee_bps: Platform fee in basis points
        fee_recipient: Account receiving platform fees
    """

    def __init__(
        self,
        bank: Bank,
        custody: CustodyAdapter,
        fee_recipient: bytes,
        platform_fee_bps: int = 250,
    ):
        self.bank = bank
        self.custody = custody
        self.fee_recipient = fee_recipient
        self.set_platform_fee(platform_fee_bps)

        # Track totals
        self.total_volume: int = 0
        self.total_platform_fees: int = 0
        self.total_royalties: int = 0
        self.total_seller_net: int = 0
        self.sales: int = 0

    def set_platform_fee(self, bps: int) -> None:
        if not 0 <= bps <= BPS_DENOMINATOR:
            raise InvalidFee(f"Platform fee out of range: {bps}")
        self.platform_fee_bps = bps

    def set_fee_recipient(self, recipient: bytes) -> None:
        self.fee_recipient = recipient

    def quote(self, gross: int, asset: AssetReference, seller: bytes) -> PaymentDistribution:
        """
        Compute the split for a sale without moving funds.

        Royalty is capped so that platform fee + royalty never exceed gross.
        """
        platform_fee = gross * self.platform_fee_bps // BPS_DENOMINATOR

        royalty_receiver, royalty_fee = None, 0
        if asset.is_tokenized:
            royalty_receiver, royalty_fee = self.custody.royalty_info(asset, gross)
            if royalty_receiver is None or royalty_receiver == seller:
                royalty_receiver, royalty_fee = None, 0
            royalty_fee = min(royalty_fee, gross - platform_fee)

        return PaymentDistribution(
            gross=gross,
            platform_fee=platform_fee,
            royalty_fee=royalty_fee,
            royalty_receiver=royalty_receiver,
            seller_net=gross - platform_fee - royalty_fee,
        )

    def settle(
        self,
        gross: int,
        asset: AssetReference,
        seller: bytes,
        payer: bytes,
        payee: Optional[bytes] = None,
    ) -> PaymentDistribution:
        """
        Disburse a sale's proceeds held by `payer`.

        Args:
            gross: Winning bid
            asset: Asset sold
            seller: Seller identity (royalty exemption, default payee)
            payer: Account holding the proceeds (the engine)
            payee: Where the seller net goes; defaults to the seller

        Returns:
            PaymentDistribution actually paid
        """
        distribution = self.quote(gross, asset, seller)

        available = self.bank.balance_of(payer)
        if available < gross:
            raise PaymentError(f"Payer {short_hex(payer)} holds {available}, sale needs {gross}")

        try:
            if distribution.platform_fee:
                self.bank.transfer(payer, self.fee_recipient, distribution.platform_fee)
            if distribution.royalty_fee:
                self.bank.transfer(payer, distribution.royalty_receiver, distribution.royalty_fee)
            self.bank.transfer(payer, payee or seller, distribution.seller_net)
        except InsufficientFunds as exc:
            raise PaymentError(str(exc)) from exc

        self.total_volume += gross
        self.total_platform_fees += distribution.platform_fee
        self.total_royalties += distribution.royalty_fee
        self.total_seller_net += distribution.seller_net
        self.sales += 1

        logger.info(
            f"Sale settled: gross={gross}, fee={distribution.platform_fee}, "
            f"royalty={distribution.royalty_fee}, net={distribution.seller_net}"
        )
        return distribution

    def stats(self) -> dict:
        """Get fee statistics."""
        return {
            "sales": self.sales,
            "total_volume": self.total_volume,
            "platform_fees": self.total_platform_fees,
            "royalties": self.total_royalties,
            "seller_net": self.total_seller_net,
            "platform_fee_bps": self.platform_fee_bps,
        }
