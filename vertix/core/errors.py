"""
Error taxonomy for the Vertix engine.

Every failure surfaced to a caller is a VertixError. Subclasses group by
how the caller should react:

- ValidationError: bad input, nothing changed, do not retry as-is
- AuthorizationError: wrong caller, nothing changed
- StateConflictError: the auction (or ledger) is in the wrong state
- FundsError: an explicit withdrawal could not be delivered
- CustodyError / PaymentError: an adapter rejected the operation

Refund pushes that fail during bidding or settlement are never raised;
they become refund ledger credits.
"""


class VertixError(Exception):
    """Base class for all engine errors."""


# =============================================================================
# Validation
# =============================================================================


class ValidationError(VertixError):
    """Caller-supplied values were rejected."""


class InvalidDuration(ValidationError):
    pass


class InvalidQuantity(ValidationError):
    pass


class InvalidBidIncrement(ValidationError):
    pass


class InvalidAmount(ValidationError):
    pass


class InvalidFee(ValidationError):
    pass


class InvalidAddress(ValidationError):
    pass


class MissingAssetProof(ValidationError):
    """Off-chain asset without content hash/metadata, or a mixed asset shape."""


class BidTooLow(ValidationError):
    def __init__(self, amount: int, minimum: int):
        super().__init__(f"Bid {amount} below minimum {minimum}")
        self.amount = amount
        self.minimum = minimum


class InsufficientFunds(ValidationError):
    def __init__(self, available: int, required: int):
        super().__init__(f"Insufficient funds: have {available}, need {required}")
        self.available = available
        self.required = required


# =============================================================================
# Authorization
# =============================================================================


class AuthorizationError(VertixError):
    """Caller is not allowed to perform the operation."""


class NotSeller(AuthorizationError):
    pass


class NotAuthorized(AuthorizationError):
    pass


class SellerCannotBid(AuthorizationError):
    pass


# =============================================================================
# State conflicts
# =============================================================================


class StateConflictError(VertixError):
    """Operation is not valid in the current state."""


class AuctionNotFound(StateConflictError):
    def __init__(self, auction_id: int):
        super().__init__(f"Auction {auction_id} not found")
        self.auction_id = auction_id


class AuctionNotActive(StateConflictError):
    pass


class AuctionEnded(StateConflictError):
    pass


class AuctionNotEnded(StateConflictError):
    pass


class AlreadySettled(StateConflictError):
    pass


class HasBids(StateConflictError):
    pass


class TooEarly(StateConflictError):
    pass


class NoBalance(StateConflictError):
    pass


class Paused(StateConflictError):
    pass


class ReentrantCall(StateConflictError):
    """A guarded entry point was invoked while another was in progress."""


# =============================================================================
# Funds movement
# =============================================================================


class FundsError(VertixError):
    pass


class TransferFailed(FundsError):
    pass


# =============================================================================
# Adapter failures
# =============================================================================


class CustodyError(VertixError):
    """Raised by custody adapters; fatal for the triggering operation."""


class UnknownCollection(CustodyError):
    pass


class NotTokenOwner(CustodyError):
    pass


class NotApproved(CustodyError):
    pass


class InsufficientTokenBalance(CustodyError):
    pass


class PaymentError(VertixError):
    """Raised by payment adapters; fatal for the triggering operation."""


class EscrowError(VertixError):
    """Raised by the off-chain escrow initiator."""
