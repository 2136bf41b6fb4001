"""
Bank - Currency balances and the push-transfer primitive.

Every identity (participants, the engine, fee recipients, escrow accounts)
holds a currency balance here. Two ways to move value:

- transfer(): plain balance move, no receiver code runs
- push(): delivers to a receiver that may run code on receipt

A receiver registers a hook with register_receiver(). The hook is called
before the value lands and may reject the payment by raising, or call
back into the engine. A rejected push leaves both balances untouched
and returns False; the caller decides what to do with the undelivered
amount.
"""

from collections import defaultdict
from typing import Callable, Dict

from vertix.core.errors import InsufficientFunds, InvalidAmount
from vertix.crypto import short_hex
from vertix.utils.logger import get_logger

logger = get_logger("bank")

# hook(sender, amount); raise to reject
ReceiveHook = Callable[[bytes, int], None]


class Bank:
    """
    In-memory currency balances.

    Attributes:
        balances: identity -> balance
        receivers: identity -> receive hook
    """

    def __init__(self):
        self.balances: Dict[bytes, int] = defaultdict(int)
        self.receivers: Dict[bytes, ReceiveHook] = {}

    def balance_of(self, account: bytes) -> int:
        return self.balances.get(account, 0)

    def deposit(self, account: bytes, amount: int) -> None:
        """Credit new currency to an account."""
        if amount < 0:
            raise InvalidAmount(f"Deposit must be non-negative, got {amount}")
        self.balances[account] += amount

    def transfer(self, src: bytes, dst: bytes, amount: int) -> None:
        """Move value without invoking receiver code."""
        self._debit(src, amount)
        self.balances[dst] += amount

    def register_receiver(self, account: bytes, hook: ReceiveHook) -> None:
        self.receivers[account] = hook

    def remove_receiver(self, account: bytes) -> None:
        self.receivers.pop(account, None)

    def push(self, src: bytes, dst: bytes, amount: int) -> bool:
        """
        Deliver value to `dst`, running its receive hook first.

        Returns:
            True if delivered, False if the receiver rejected it
        """
        self._debit(src, amount)

        hook = self.receivers.get(dst)
        if hook is not None:
            try:
                hook(src, amount)
            except Exception as exc:
                self.balances[src] += amount
                logger.warning(f"Push of {amount} to {short_hex(dst)} rejected: {exc!r}")
                return False

        self.balances[dst] += amount
        return True

    def _debit(self, account: bytes, amount: int) -> None:
        if amount < 0:
            raise InvalidAmount(f"Amount must be non-negative, got {amount}")
        available = self.balances.get(account, 0)
        if available < amount:
            raise InsufficientFunds(available, amount)
        self.balances[account] = available - amount

    def total_supply(self) -> int:
        return sum(self.balances.values())
