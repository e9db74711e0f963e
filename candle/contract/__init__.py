"""
Contract adapters for the CandleAuction call surface.

- AuctionContract: the coroutine interface the client core depends on
- Web3AuctionContract: JSON-RPC implementation (web3.py)
- SimulatedCandleAuction: in-memory contract for demos and tests
"""

from candle.contract.base import AuctionContract, TxReceipt
from candle.contract.simulated import SimulatedAuctionContract, SimulatedCandleAuction

__all__ = [
    "AuctionContract",
    "TxReceipt",
    "SimulatedAuctionContract",
    "SimulatedCandleAuction",
]
