"""
Vertix Auction Engine

English auctions for tokenized and off-chain assets:
- Custody escrow of the listed asset for the life of the auction
- Ascending bids with a minimum increment and anti-snipe extension
- Immediate refunds with a pull-payment ledger fallback
- Settlement through fee/royalty splitting and off-chain escrow
"""

__version__ = "0.1.0"
