"""
Auction contract call surface.

The client talks to the CandleAuction contract only through this
interface. Reads return plain Python values; writes return the
transaction hash once the transaction has been accepted for broadcast,
and wait_for_receipt() blocks the calling coroutine until it is mined.

Adapters must raise:
- TransientReadFailure for failed reads (network, timeout, bad response)
- RemoteRejectedError when a write is refused (revert, insufficient funds)
- TransientError for network failures while submitting or waiting
"""

from dataclasses import dataclass
from typing import List, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class TxReceipt:
    """Outcome of a mined transaction."""
    tx_hash: str
    status: int                 # 1 = success, 0 = reverted
    block_number: Optional[int] = None
    gas_used: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.status == 1


@runtime_checkable
class AuctionContract(Protocol):
    """Coroutine interface to one deployed CandleAuction."""

    @property
    def account(self) -> Optional[str]:
        """Address transactions are sent from, None for read-only access."""
        ...

    # Reads
    async def owner(self) -> str: ...
    async def get_current_phase(self) -> int: ...
    async def random_end_block_requested(self) -> bool: ...
    async def random_end_block(self) -> int: ...
    async def get_all_bidders(self) -> List[str]: ...
    async def get_revealed_bid(self, address: str) -> int: ...
    async def get_highest_bidder(self) -> str: ...
    async def get_highest_bid(self) -> int: ...

    # Writes (return tx hash)
    async def start_auction(self, commit_secs: int, reveal_secs: int) -> str: ...
    async def next_phase(self) -> str: ...
    async def request_random_end_block(self) -> str: ...
    async def commit_bid(self, commitment_hash: bytes, value_wei: int) -> str: ...
    async def reveal_bid(self, amount_wei: int, salt: bytes) -> str: ...
    async def settle_auction(self) -> str: ...
    async def withdraw(self) -> str: ...

    async def wait_for_receipt(self, tx_hash: str) -> TxReceipt: ...
