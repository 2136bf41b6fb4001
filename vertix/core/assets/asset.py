"""
Asset References - What an auction is selling.

Two shapes exist and exactly one is populated per reference:

1. **Tokenized**: a unit held by a custody contract
   (category, contract, token_id, quantity, standard)
2. **Off-chain**: a claim on a physical or off-chain asset such as a domain
   or a social media account, proven by a content hash of its
   verification document (category, content_hash, metadata_uri)

Tokenized assets are escrowed with the custody adapter for the life of the
auction. Off-chain assets cannot be escrowed; on sale an escrow holding
record is opened instead.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Tuple

from vertix.crypto import bytes_to_hex, hex_to_bytes
from vertix.utils.validation import (
    validate_address,
    validate_hash,
    validate_integer,
    validate_string,
)


# =============================================================================
# Enums
# =============================================================================


class AssetCategory(IntEnum):
    """Kinds of assets listed on the marketplace."""
    NFT = 0
    SOCIAL_MEDIA = 1
    DOMAIN = 2
    APP = 3
    WEBSITE = 4
    YOUTUBE = 5
    PHYSICAL = 6
    OTHER = 7


class TokenStandard(IntEnum):
    """Unit standard of a tokenized asset."""
    SINGLE = 0        # One owner per token id, quantity always 1
    FRACTIONAL = 1    # Balances per owner, quantity >= 1


# =============================================================================
# Asset Reference
# =============================================================================


@dataclass(frozen=True)
class AssetReference:
    """
    Reference to the asset under auction.

    Attributes:
        category: Marketplace category
        contract: Custody contract address (tokenized only)
        token_id: Unit id within the contract (tokenized only)
        quantity: Units offered (1 for SINGLE)
        standard: Unit standard (tokenized only)
        content_hash: keccak-256 of the verification document (off-chain only)
        metadata_uri: Location of asset metadata (off-chain only)
    """
    category: AssetCategory
    contract: Optional[bytes] = None
    token_id: Optional[int] = None
    quantity: int = 1
    standard: Optional[TokenStandard] = None
    content_hash: Optional[bytes] = None
    metadata_uri: Optional[str] = None

    @property
    def is_tokenized(self) -> bool:
        return self.contract is not None

    def validate_shape(self) -> Tuple[bool, str]:
        """
        Check that exactly one of the two shapes is populated.

        Returns:
            (is_valid, error_message)
        """
        if self.is_tokenized:
            if self.content_hash is not None:
                return False, "Tokenized asset must not carry a content hash"
            valid, err = validate_address(self.contract, "contract")
            if not valid:
                return False, err
            if self.standard is None:
                return False, "Tokenized asset requires a token standard"
            valid, err = validate_integer(self.token_id, "token_id")
            if not valid:
                return False, err
            return True, ""

        if self.content_hash is None or self.metadata_uri is None:
            return False, "Off-chain asset requires content hash and metadata URI"
        valid, err = validate_hash(self.content_hash, "content_hash")
        if not valid:
            return False, err
        valid, err = validate_string(self.metadata_uri, "metadata_uri")
        if not valid:
            return False, err
        return True, ""

    def describe(self) -> str:
        if self.is_tokenized:
            return (f"{self.category.name}:{bytes_to_hex(self.contract)[:10]}"
                    f"#{self.token_id}x{self.quantity}")
        return f"{self.category.name}:{bytes_to_hex(self.content_hash)[:10]}"

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict:
        return {
            "category": int(self.category),
            "contract": bytes_to_hex(self.contract) if self.contract else None,
            "token_id": self.token_id,
            "quantity": self.quantity,
            "standard": int(self.standard) if self.standard is not None else None,
            "content_hash": bytes_to_hex(self.content_hash) if self.content_hash else None,
            "metadata_uri": self.metadata_uri,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AssetReference":
        return cls(
            category=AssetCategory(data["category"]),
            contract=hex_to_bytes(data["contract"]) if data.get("contract") else None,
            token_id=data.get("token_id"),
            quantity=data.get("quantity", 1),
            standard=TokenStandard(data["standard"]) if data.get("standard") is not None else None,
            content_hash=hex_to_bytes(data["content_hash"]) if data.get("content_hash") else None,
            metadata_uri=data.get("metadata_uri"),
        )


# =============================================================================
# Helper Functions
# =============================================================================


def token_asset(
    contract: bytes,
    token_id: int,
    quantity: int = 1,
    standard: TokenStandard = TokenStandard.SINGLE,
    category: AssetCategory = AssetCategory.NFT,
) -> AssetReference:
    """Create a reference to a tokenized asset."""
    return AssetReference(
        category=category,
        contract=contract,
        token_id=token_id,
        quantity=quantity,
        standard=standard,
    )


def offchain_asset(
    category: AssetCategory,
    content_hash: bytes,
    metadata_uri: str,
) -> AssetReference:
    """Create a reference to an off-chain asset claim."""
    return AssetReference(
        category=category,
        content_hash=content_hash,
        metadata_uri=metadata_uri,
    )
