"""Asset references and custody adapters"""
from vertix.core.assets.asset import (
    AssetCategory,
    AssetReference,
    TokenStandard,
    token_asset,
    offchain_asset,
)
from vertix.core.assets.custody import (
    CustodyAdapter,
    InMemoryCustody,
    TokenCollection,
)

__all__ = [
    "AssetCategory",
    "AssetReference",
    "TokenStandard",
    "token_asset",
    "offchain_asset",
    "CustodyAdapter",
    "InMemoryCustody",
    "TokenCollection",
]
