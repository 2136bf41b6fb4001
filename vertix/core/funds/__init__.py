"""Currency balances and the pull-payment refund ledger"""
from vertix.core.funds.bank import Bank, ReceiveHook
from vertix.core.funds.refund_ledger import RefundLedger

__all__ = [
    "Bank",
    "ReceiveHook",
    "RefundLedger",
]
