"""Sale settlement: fee/royalty split and off-chain escrow"""
from vertix.core.payments.fees import (
    PaymentAdapter,
    PaymentDistribution,
    FeeSplitter,
)
from vertix.core.payments.escrow import (
    EscrowInitiator,
    EscrowRecord,
    EscrowStatus,
    OffchainEscrow,
    ESCROW_ACCOUNT,
)

__all__ = [
    "PaymentAdapter",
    "PaymentDistribution",
    "FeeSplitter",
    "EscrowInitiator",
    "EscrowRecord",
    "EscrowStatus",
    "OffchainEscrow",
    "ESCROW_ACCOUNT",
]
