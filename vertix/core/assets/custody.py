"""
Custody - Holding tokenized assets for the duration of an auction.

The engine talks to custody only through CustodyAdapter:
- escrow(asset, owner): move the unit(s) from the seller to the engine
- release(asset, to): move them out to the winner or back to the seller
- recall(asset, holder): undo a release when the rest of a sale fails
- owner_of / balance_of / is_approved: ownership queries
- royalty_info: creator royalty terms for a sale price

InMemoryCustody is the reference implementation: a set of token
collections (single-unit or fractional) with per-owner operator
approvals and collection-level royalty terms.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Optional, Set, Tuple

from vertix.core.assets.asset import AssetReference, TokenStandard
from vertix.core.errors import (
    InsufficientTokenBalance,
    NotApproved,
    NotTokenOwner,
    UnknownCollection,
)
from vertix.crypto import bytes_to_hex, short_hex
from vertix.utils.logger import get_logger

logger = get_logger("custody")

BPS_DENOMINATOR = 10_000


# =============================================================================
# Adapter Interface
# =============================================================================


class CustodyAdapter:
    """Interface to the asset-custody contracts."""

    def escrow(self, asset: AssetReference, owner: bytes) -> None:
        raise NotImplementedError

    def release(self, asset: AssetReference, to: bytes) -> None:
        raise NotImplementedError

    def recall(self, asset: AssetReference, holder: bytes) -> None:
        """Take back units released earlier in the same operation."""
        raise NotImplementedError

    def owner_of(self, asset: AssetReference) -> Optional[bytes]:
        raise NotImplementedError

    def balance_of(self, asset: AssetReference, owner: bytes) -> int:
        raise NotImplementedError

    def is_approved(self, asset: AssetReference, owner: bytes, operator: bytes) -> bool:
        raise NotImplementedError

    def royalty_info(self, asset: AssetReference, sale_price: int) -> Tuple[Optional[bytes], int]:
        raise NotImplementedError


# =============================================================================
# Token Collection
# =============================================================================


@dataclass
class TokenCollection:
    """
    A custody contract holding units of one standard.

    Attributes:
        address: Contract address
        standard: SINGLE (owner per id) or FRACTIONAL (balance per owner)
        owners: token_id -> owner (SINGLE)
        balances: token_id -> owner -> units (FRACTIONAL)
        operators: (owner, operator) pairs approved for all tokens
        royalty_receiver: Creator receiving royalties
        royalty_bps: Royalty in basis points of the sale price
    """
    address: bytes
    standard: TokenStandard
    owners: Dict[int, bytes] = field(default_factory=dict)
    balances: Dict[int, Dict[bytes, int]] = field(default_factory=lambda: defaultdict(dict))
    operators: Set[Tuple[bytes, bytes]] = field(default_factory=set)
    royalty_receiver: Optional[bytes] = None
    royalty_bps: int = 0

    def balance(self, token_id: int, owner: bytes) -> int:
        if self.standard == TokenStandard.SINGLE:
            return 1 if self.owners.get(token_id) == owner else 0
        return self.balances[token_id].get(owner, 0)

    def move(self, token_id: int, quantity: int, src: bytes, dst: bytes) -> None:
        if self.standard == TokenStandard.SINGLE:
            if self.owners.get(token_id) != src:
                raise NotTokenOwner(
                    f"{bytes_to_hex(src)} does not own token {token_id} "
                    f"of {bytes_to_hex(self.address)}"
                )
            self.owners[token_id] = dst
            return

        held = self.balances[token_id].get(src, 0)
        if held < quantity:
            raise InsufficientTokenBalance(
                f"{bytes_to_hex(src)} holds {held} of token {token_id}, needs {quantity}"
            )
        self.balances[token_id][src] = held - quantity
        self.balances[token_id][dst] = self.balances[token_id].get(dst, 0) + quantity


# =============================================================================
# In-Memory Custody
# =============================================================================


class InMemoryCustody(CustodyAdapter):
    """
    Reference custody adapter.

    Units are escrowed to `holder`, the engine's custody address, which must
    be an approved operator of the seller.
    """

    def __init__(self, holder: bytes):
        self.holder = holder
        self.collections: Dict[bytes, TokenCollection] = {}

    # =========================================================================
    # Collection Management
    # =========================================================================

    def register_collection(
        self,
        address: bytes,
        standard: TokenStandard = TokenStandard.SINGLE,
        royalty_receiver: Optional[bytes] = None,
        royalty_bps: int = 0,
    ) -> TokenCollection:
        """Register a custody contract."""
        if not 0 <= royalty_bps <= BPS_DENOMINATOR:
            raise ValueError(f"royalty_bps out of range: {royalty_bps}")

        collection = TokenCollection(
            address=address,
            standard=standard,
            royalty_receiver=royalty_receiver,
            royalty_bps=royalty_bps,
        )
        self.collections[address] = collection
        logger.debug(f"Collection registered: {short_hex(address)} ({standard.name})")
        return collection

    def mint(self, contract: bytes, to: bytes, token_id: int, quantity: int = 1) -> None:
        """Create units in a collection."""
        collection = self._collection(contract)
        if collection.standard == TokenStandard.SINGLE:
            if token_id in collection.owners:
                raise ValueError(f"Token {token_id} already minted")
            collection.owners[token_id] = to
        else:
            current = collection.balances[token_id].get(to, 0)
            collection.balances[token_id][to] = current + quantity

    def set_approval_for_all(
        self,
        contract: bytes,
        owner: bytes,
        operator: bytes,
        approved: bool = True,
    ) -> None:
        collection = self._collection(contract)
        if approved:
            collection.operators.add((owner, operator))
        else:
            collection.operators.discard((owner, operator))

    def _collection(self, contract: Optional[bytes]) -> TokenCollection:
        collection = self.collections.get(contract) if contract else None
        if collection is None:
            shown = bytes_to_hex(contract) if contract else "None"
            raise UnknownCollection(f"No custody contract at {shown}")
        return collection

    # =========================================================================
    # Queries
    # =========================================================================

    def owner_of(self, asset: AssetReference) -> Optional[bytes]:
        collection = self._collection(asset.contract)
        if collection.standard != TokenStandard.SINGLE:
            return None
        return collection.owners.get(asset.token_id)

    def balance_of(self, asset: AssetReference, owner: bytes) -> int:
        return self._collection(asset.contract).balance(asset.token_id, owner)

    def is_approved(self, asset: AssetReference, owner: bytes, operator: bytes) -> bool:
        return (owner, operator) in self._collection(asset.contract).operators

    def royalty_info(self, asset: AssetReference, sale_price: int) -> Tuple[Optional[bytes], int]:
        collection = self._collection(asset.contract)
        if collection.royalty_receiver is None or collection.royalty_bps == 0:
            return None, 0
        return collection.royalty_receiver, sale_price * collection.royalty_bps // BPS_DENOMINATOR

    # =========================================================================
    # Custody Movements
    # =========================================================================

    def escrow(self, asset: AssetReference, owner: bytes) -> None:
        collection = self._collection(asset.contract)

        if collection.standard == TokenStandard.SINGLE:
            if collection.owners.get(asset.token_id) != owner:
                raise NotTokenOwner(f"{bytes_to_hex(owner)} does not own token {asset.token_id}")
        elif collection.balance(asset.token_id, owner) < asset.quantity:
            raise InsufficientTokenBalance(
                f"{bytes_to_hex(owner)} holds fewer than {asset.quantity} of token {asset.token_id}"
            )

        if (owner, self.holder) not in collection.operators:
            raise NotApproved(f"Custody holder not approved by {bytes_to_hex(owner)}")

        collection.move(asset.token_id, asset.quantity, owner, self.holder)
        logger.debug(f"Escrowed {asset.describe()} from {short_hex(owner)}")

    def release(self, asset: AssetReference, to: bytes) -> None:
        collection = self._collection(asset.contract)
        collection.move(asset.token_id, asset.quantity, self.holder, to)
        logger.debug(f"Released {asset.describe()} to {short_hex(to)}")

    def recall(self, asset: AssetReference, holder: bytes) -> None:
        collection = self._collection(asset.contract)
        collection.move(asset.token_id, asset.quantity, holder, self.holder)
        logger.warning(f"Recalled {asset.describe()} from {short_hex(holder)}")
