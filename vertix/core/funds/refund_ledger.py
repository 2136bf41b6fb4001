"""
Refund Ledger - Pull-payment balances for undelivered refunds.

When the engine pushes a refund to an outbid bidder and the push fails
(the receiver rejects it or fails while receiving), the owed amount is
recorded here instead of being lost. The owner later claims it through
the engine's withdraw().

Rules:
- Balances only grow through credit()
- take() zeroes a balance and returns what was owed
- restore() puts back an amount whose delivery failed after take()
- Balances are never negative and never dropped
"""

from typing import Dict, Optional

from vertix.core.errors import InvalidAmount
from vertix.core.storage.storage_manager import StorageManager
from vertix.crypto import short_hex
from vertix.utils.logger import get_logger

logger = get_logger("ledger")


class RefundLedger:
    """
    Identity-keyed balances owed but not yet delivered.

    Attributes:
        pending: identity -> owed amount (zero entries are removed)
        total_credited: Sum of all credits ever made
        total_withdrawn: Sum of all amounts successfully claimed
    """

    def __init__(self, storage_manager: Optional[StorageManager] = None):
        self.pending: Dict[bytes, int] = {}
        self.total_credited: int = 0
        self.total_withdrawn: int = 0

        self.storage_manager = storage_manager
        if storage_manager:
            self._load_from_storage()

    # =========================================================================
    # State Access
    # =========================================================================

    def balance_of(self, identity: bytes) -> int:
        return self.pending.get(identity, 0)

    @property
    def total_pending(self) -> int:
        return sum(self.pending.values())

    # =========================================================================
    # Mutations
    # =========================================================================

    def credit(self, identity: bytes, amount: int) -> int:
        """
        Record an undelivered amount.

        Returns:
            The identity's new balance
        """
        if amount <= 0:
            raise InvalidAmount(f"Refund credit must be positive, got {amount}")

        balance = self.pending.get(identity, 0) + amount
        self._set(identity, balance)
        self.total_credited += amount
        self._save_totals()

        logger.info(f"Refund queued: {short_hex(identity)} +{amount} (owed {balance})")
        return balance

    def take(self, identity: bytes) -> int:
        """Zero an identity's balance and return the amount owed."""
        amount = self.pending.get(identity, 0)
        if amount:
            self._set(identity, 0)
        return amount

    def restore(self, identity: bytes, amount: int) -> None:
        """Put back an amount returned by take() that could not be delivered."""
        if amount <= 0:
            return
        self._set(identity, self.pending.get(identity, 0) + amount)
        logger.warning(f"Refund restored: {short_hex(identity)} owed {self.pending[identity]}")

    def confirm_withdrawal(self, amount: int) -> None:
        self.total_withdrawn += amount
        self._save_totals()

    def _set(self, identity: bytes, amount: int) -> None:
        if amount:
            self.pending[identity] = amount
        else:
            self.pending.pop(identity, None)

        if self.storage_manager:
            self.storage_manager.persist_pending_refund(identity, amount)

    # =========================================================================
    # Persistence
    # =========================================================================

    def _save_totals(self) -> None:
        if self.storage_manager:
            self.storage_manager.save_setting("ledger.total_credited", self.total_credited)
            self.storage_manager.save_setting("ledger.total_withdrawn", self.total_withdrawn)

    def _load_from_storage(self) -> None:
        self.pending.update(self.storage_manager.load_pending_refunds())
        self.total_credited = self.storage_manager.get_setting("ledger.total_credited", 0)
        self.total_withdrawn = self.storage_manager.get_setting("ledger.total_withdrawn", 0)
        logger.info(f"Loaded refund ledger: {len(self.pending)} accounts, {self.total_pending} owed")

    # =========================================================================
    # Utility
    # =========================================================================

    def __repr__(self) -> str:
        return f"RefundLedger(accounts={len(self.pending)}, owed={self.total_pending})"

    def stats(self) -> dict:
        return {
            "accounts": len(self.pending),
            "total_pending": self.total_pending,
            "total_credited": self.total_credited,
            "total_withdrawn": self.total_withdrawn,
        }
