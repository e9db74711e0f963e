"""
Shared fixtures for the Candle Auction tests.

StubContract is a scripted AuctionContract: reads return whatever the
test set, named reads can be made to fail, and receipts can be held
back to keep an action in flight.
"""

import asyncio
from typing import Dict, List, Optional, Set

import pytest

from candle.contract.base import TxReceipt
from candle.contract.simulated import SimulatedCandleAuction
from candle.core.errors import RemoteRejectedError, TransientReadFailure
from candle.crypto import ZERO_ADDRESS


OWNER = "0x" + "0a" * 20
ALICE = "0x" + "a1" * 20
BOB = "0x" + "b0" * 20
CAROL = "0x" + "c4" * 20


class StubContract:
    """Scripted stand-in for the CandleAuction contract."""
    
    def __init__(self, owner: str = OWNER, account: str = ALICE):
        self.owner_address = owner
        self._account = account
        
        self.phase = 0
        self.phase_script: List[int] = []
        self.requested = False
        self.end_block = 0
        self.bidders: List[str] = []
        self.revealed: Dict[str, int] = {}
        self.highest_bidder = ZERO_ADDRESS
        self.highest_bid = 0
        
        self.failing: Set[str] = set()
        self.reads: List[str] = []
        self.submissions: List[tuple] = []
        
        self.reject_reason: Optional[str] = None
        self.receipt_status = 1
        self.wait_error: Optional[Exception] = None
        self.hold: Optional[asyncio.Event] = None
        self.on_submit = None
    
    @property
    def account(self) -> Optional[str]:
        return self._account
    
    async def _read(self, name: str):
        await asyncio.sleep(0)
        self.reads.append(name)
        if name in self.failing:
            raise TransientReadFailure(f"{name}() failed: timeout")
    
    async def owner(self) -> str:
        await self._read("owner")
        return self.owner_address
    
    async def get_current_phase(self) -> int:
        await self._read("getCurrentPhase")
        if self.phase_script:
            self.phase = self.phase_script.pop(0)
        return self.phase
    
    async def random_end_block_requested(self) -> bool:
        await self._read("randomEndBlockRequested")
        return self.requested
    
    async def random_end_block(self) -> int:
        await self._read("randomEndBlock")
        return self.end_block
    
    async def get_all_bidders(self) -> List[str]:
        await self._read("getAllBidders")
        return list(self.bidders)
    
    async def get_revealed_bid(self, address: str) -> int:
        await self._read(f"getRevealedBid:{address}")
        if "getRevealedBid" in self.failing:
            raise TransientReadFailure("getRevealedBid() failed: timeout")
        return self.revealed.get(address, 0)
    
    async def get_highest_bidder(self) -> str:
        await self._read("getHighestBidder")
        return self.highest_bidder
    
    async def get_highest_bid(self) -> int:
        await self._read("getHighestBid")
        return self.highest_bid
    
    async def _submit(self, name: str, *args) -> str:
        await asyncio.sleep(0)
        self.submissions.append((name,) + args)
        if self.reject_reason is not None:
            raise RemoteRejectedError(reason=self.reject_reason)
        if self.on_submit is not None:
            self.on_submit(name, *args)
        return f"0x{len(self.submissions):064x}"
    
    async def start_auction(self, commit_secs: int, reveal_secs: int) -> str:
        return await self._submit("startAuction", commit_secs, reveal_secs)
    
    async def next_phase(self) -> str:
        return await self._submit("nextPhase")
    
    async def request_random_end_block(self) -> str:
        return await self._submit("requestRandomEndBlock")
    
    async def commit_bid(self, commitment_hash: bytes, value_wei: int) -> str:
        return await self._submit("commitBid", commitment_hash, value_wei)
    
    async def reveal_bid(self, amount_wei: int, salt: bytes) -> str:
        return await self._submit("revealBid", amount_wei, salt)
    
    async def settle_auction(self) -> str:
        return await self._submit("settleAuction")
    
    async def withdraw(self) -> str:
        return await self._submit("withdraw")
    
    async def wait_for_receipt(self, tx_hash: str) -> TxReceipt:
        if self.hold is not None:
            await self.hold.wait()
        await asyncio.sleep(0)
        if self.wait_error is not None:
            raise self.wait_error
        return TxReceipt(tx_hash=tx_hash, status=self.receipt_status, block_number=len(self.submissions))


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def stub():
    """Stub contract connected as a bidder (ALICE)."""
    return StubContract()


@pytest.fixture
def owner_stub():
    """Stub contract connected as the owner."""
    return StubContract(account=OWNER)


class FakeClock:
    """Manually advanced clock for the simulated chain."""
    
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now
    
    def __call__(self) -> float:
        return self.now
    
    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def chain(clock):
    """In-memory CandleAuction owned by OWNER."""
    return SimulatedCandleAuction(owner=OWNER, clock=clock)
