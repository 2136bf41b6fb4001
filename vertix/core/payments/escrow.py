"""
Off-chain Escrow - Holding records for sold off-chain assets.

An off-chain asset (domain, social account, website) cannot be moved by
the engine. When one sells, the seller's net proceeds are parked in an
escrow account and a holding record is opened for the buyer and seller
to complete the handover. Releasing or disputing that record is handled
outside the engine.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List, Optional, Tuple

from vertix.core.assets.asset import AssetReference
from vertix.core.errors import EscrowError
from vertix.crypto import address_from_label, short_hex
from vertix.utils.logger import get_logger

logger = get_logger("escrow")

ESCROW_ACCOUNT = address_from_label("vertix.offchain-escrow")


class EscrowStatus(IntEnum):
    OPEN = 0
    RELEASED = 1
    DISPUTED = 2
    REFUNDED = 3
    VOIDED = 4


@dataclass
class EscrowRecord:
    """A holding record for one off-chain sale."""
    escrow_id: int
    buyer: bytes
    seller: bytes
    asset: AssetReference
    amount: int
    opened_at: int
    status: EscrowStatus = EscrowStatus.OPEN


class EscrowInitiator:
    """Interface to the off-chain escrow service."""

    def open_escrow(
        self,
        buyer: bytes,
        seller: bytes,
        asset: AssetReference,
        amount: int,
        opened_at: int,
    ) -> Tuple[int, bytes]:
        """
        Open a holding record.

        Returns:
            (escrow_id, account that should receive the held funds)
        """
        raise NotImplementedError

    def void_escrow(self, escrow_id: int) -> None:
        """Cancel a record whose sale was never paid."""
        raise NotImplementedError


class OffchainEscrow(EscrowInitiator):
    """Reference escrow initiator keeping records in memory."""

    def __init__(self, account: bytes = ESCROW_ACCOUNT):
        self.account = account
        self.records: Dict[int, EscrowRecord] = {}
        self._next_id = 1

    def open_escrow(
        self,
        buyer: bytes,
        seller: bytes,
        asset: AssetReference,
        amount: int,
        opened_at: int,
    ) -> Tuple[int, bytes]:
        if asset.is_tokenized:
            raise EscrowError("Tokenized assets settle through custody, not escrow")
        if buyer == seller:
            raise EscrowError("Buyer and seller must differ")

        record = EscrowRecord(
            escrow_id=self._next_id,
            buyer=buyer,
            seller=seller,
            asset=asset,
            amount=amount,
            opened_at=opened_at,
        )
        self.records[record.escrow_id] = record
        self._next_id += 1

        logger.info(
            f"Escrow {record.escrow_id} opened: {asset.describe()} "
            f"buyer={short_hex(buyer)} seller={short_hex(seller)} amount={amount}"
        )
        return record.escrow_id, self.account

    def void_escrow(self, escrow_id: int) -> None:
        record = self.records.get(escrow_id)
        if record is None:
            raise EscrowError(f"Unknown escrow {escrow_id}")
        if record.status != EscrowStatus.OPEN:
            raise EscrowError(f"Escrow {escrow_id} is {record.status.name}, cannot void")
        record.status = EscrowStatus.VOIDED
        logger.warning(f"Escrow {escrow_id} voided")

    def get_escrow(self, escrow_id: int) -> Optional[EscrowRecord]:
        return self.records.get(escrow_id)

    def escrows_for(self, identity: bytes) -> List[EscrowRecord]:
        return [r for r in self.records.values() if identity in (r.buyer, r.seller)]
