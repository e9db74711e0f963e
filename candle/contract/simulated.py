"""
Simulated Candle Auction - In-memory CandleAuction contract.

Implements the on-chain rules the client relies on, for tests and the
`demo` command:
1. Owner starts the auction (NotStarted -> Commit)
2. Bidders commit keccak256(abi.encode(amount, salt)) with a deposit
3. Owner advances to Reveal; bidders reveal (amount, salt)
4. Owner requests a VRF end time; once fulfilled and passed, the phase
   reads as Ended without an owner action (the "candle" goes out)
5. Owner settles; non-winners withdraw their deposits

One shared chain state, many callers: `connect(address)` returns a
handle whose writes are sent from that address.
"""

import asyncio
import itertools
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from candle.contract.base import TxReceipt
from candle.core.auction.commitment import verify_commitment
from candle.core.auction.phase import AuctionPhase
from candle.core.errors import RemoteRejectedError, TransientReadFailure
from candle.crypto import ZERO_ADDRESS, bytes_to_hex, keccak256, same_address
from candle.utils.logger import get_logger

logger = get_logger("simulated")


# =============================================================================
# Data Structures
# =============================================================================


@dataclass
class SealedBid:
    """A bidder's stored commitment and deposit."""
    commitment: bytes
    deposit_wei: int
    revealed_wei: int = 0
    withdrawn: bool = False


@dataclass
class SimulatedCandleAuction:
    """
    Chain-side state of one auction.
    
    Rule checks return (success, error_message) in the same way a
    contract's require() statements would revert.
    """
    owner: str
    clock: Callable[[], float] = time.time
    
    phase: AuctionPhase = AuctionPhase.NOT_STARTED
    commit_duration: int = 0
    reveal_duration: int = 0
    started_at: Optional[float] = None
    
    random_end_requested: bool = False
    random_end_timestamp: int = 0
    
    bids: Dict[str, SealedBid] = field(default_factory=dict)
    bidder_order: List[str] = field(default_factory=list)
    highest_bidder: str = ZERO_ADDRESS
    highest_bid_wei: int = 0
    settled: bool = False
    
    # Wei paid out: refunds to bidders, proceeds to the owner
    payouts: Dict[str, int] = field(default_factory=dict)
    
    # Failure injection: reads raise while True
    unavailable: bool = False
    
    receipts: Dict[str, TxReceipt] = field(default_factory=dict)
    _tx_counter: "itertools.count" = field(default_factory=itertools.count)
    
    def connect(self, address: str) -> "SimulatedAuctionContract":
        """Handle sending transactions from `address`."""
        return SimulatedAuctionContract(self, address)
    
    # =========================================================================
    # Phase
    # =========================================================================
    
    def current_phase(self) -> AuctionPhase:
        """Phase as the contract reports it, including VRF-driven ending."""
        if (
            self.phase == AuctionPhase.REVEAL
            and self.random_end_timestamp
            and self.clock() >= self.random_end_timestamp
        ):
            self.phase = AuctionPhase.ENDED
            logger.info("Random end time reached, auction ended")
        return self.phase
    
    def fulfill_random_end(self, end_timestamp: int) -> None:
        """VRF callback: fix the reveal deadline."""
        if not self.random_end_requested:
            raise RuntimeError("No random end requested")
        self.random_end_timestamp = int(end_timestamp)
        logger.info(f"VRF fulfilled: reveal ends at {self.random_end_timestamp}")
    
    # =========================================================================
    # Rules
    # =========================================================================
    
    def _key(self, address: str) -> str:
        return address.lower()
    
    def _is_owner(self, sender: str) -> bool:
        return same_address(sender, self.owner)
    
    def _start(self, sender: str, commit_secs: int, reveal_secs: int) -> Tuple[bool, str]:
        if not self._is_owner(sender):
            return False, "Only owner"
        if self.current_phase() != AuctionPhase.NOT_STARTED:
            return False, "Auction already started"
        if commit_secs <= 0 or reveal_secs <= 0:
            return False, "Invalid durations"
        
        self.commit_duration = commit_secs
        self.reveal_duration = reveal_secs
        self.started_at = self.clock()
        self.phase = AuctionPhase.COMMIT
        logger.info(f"Auction started: commit {commit_secs}s, reveal {reveal_secs}s")
        return True, ""
    
    def _next_phase(self, sender: str) -> Tuple[bool, str]:
        if not self._is_owner(sender):
            return False, "Only owner"
        phase = self.current_phase()
        if phase not in (AuctionPhase.COMMIT, AuctionPhase.REVEAL):
            return False, f"Cannot advance from {phase.label}"
        
        self.phase = AuctionPhase(phase + 1)
        logger.info(f"Phase advanced to {self.phase.label}")
        return True, ""
    
    def _request_random(self, sender: str) -> Tuple[bool, str]:
        if not self._is_owner(sender):
            return False, "Only owner"
        if self.current_phase() != AuctionPhase.REVEAL:
            return False, "Not in reveal phase"
        if self.random_end_requested:
            return False, "Random end already requested"
        
        self.random_end_requested = True
        return True, ""
    
    def _commit(self, sender: str, commitment: bytes, value_wei: int) -> Tuple[bool, str]:
        if self.current_phase() != AuctionPhase.COMMIT:
            return False, "Not in commit phase"
        if len(commitment) != 32:
            return False, "Invalid commitment"
        if value_wei <= 0:
            return False, "Deposit required"
        
        key = self._key(sender)
        if key in self.bids:
            return False, "Already committed"
        
        self.bids[key] = SealedBid(commitment=bytes(commitment), deposit_wei=value_wei)
        self.bidder_order.append(sender)
        logger.debug(f"Commit from {sender[:10]}...: {bytes_to_hex(commitment)[:18]}...")
        return True, ""
    
    def _reveal(self, sender: str, amount_wei: int, salt: bytes) -> Tuple[bool, str]:
        if self.current_phase() != AuctionPhase.REVEAL:
            return False, "Not in reveal phase"
        
        bid = self.bids.get(self._key(sender))
        if bid is None:
            return False, "No commitment found"
        if bid.revealed_wei:
            return False, "Already revealed"
        
        if not verify_commitment(bid.commitment, amount_wei, salt):
            logger.warning(f"Reveal mismatch for {sender[:10]}...")
            return False, "Hash mismatch"
        
        if amount_wei > bid.deposit_wei:
            return False, "Bid exceeds deposit"
        
        bid.revealed_wei = amount_wei
        if amount_wei > self.highest_bid_wei:
            self.highest_bid_wei = amount_wei
            self.highest_bidder = sender
        
        logger.debug(f"Valid reveal from {sender[:10]}...: {amount_wei} wei")
        return True, ""
    
    def _settle(self, sender: str) -> Tuple[bool, str]:
        if not self._is_owner(sender):
            return False, "Only owner"
        if self.current_phase() != AuctionPhase.ENDED:
            return False, "Auction not ended"
        if self.settled:
            return False, "Already settled"
        
        self.settled = True
        if self.highest_bid_wei:
            self._pay(self.owner, self.highest_bid_wei)
            winner = self.bids[self._key(self.highest_bidder)]
            # Excess deposit above the winning bid goes back to the winner
            if winner.deposit_wei > self.highest_bid_wei:
                self._pay(self.highest_bidder, winner.deposit_wei - self.highest_bid_wei)
            winner.withdrawn = True
        logger.info(f"Auction settled: winner={self.highest_bidder}, bid={self.highest_bid_wei}")
        return True, ""
    
    def _withdraw(self, sender: str) -> Tuple[bool, str]:
        if self.current_phase() != AuctionPhase.ENDED:
            return False, "Auction not ended"
        if same_address(sender, self.highest_bidder):
            return False, "Winner cannot withdraw"
        
        bid = self.bids.get(self._key(sender))
        if bid is None or bid.withdrawn:
            return False, "Nothing to withdraw"
        
        bid.withdrawn = True
        self._pay(sender, bid.deposit_wei)
        return True, ""
    
    def _pay(self, address: str, amount_wei: int) -> None:
        key = self._key(address)
        self.payouts[key] = self.payouts.get(key, 0) + amount_wei
    
    def paid_to(self, address: str) -> int:
        """Total wei paid out to an address."""
        return self.payouts.get(self._key(address), 0)
    
    def _mine(self, ok: bool, error: str, method: str) -> str:
        if not ok:
            raise RemoteRejectedError(reason=f"execution reverted: {error}")
        tx_hash = bytes_to_hex(keccak256(f"{method}:{next(self._tx_counter)}".encode()))
        self.receipts[tx_hash] = TxReceipt(
            tx_hash=tx_hash,
            status=1,
            block_number=len(self.receipts) + 1,
            gas_used=21_000,
        )
        return tx_hash


class SimulatedAuctionContract:
    """AuctionContract implementation bound to one sender."""
    
    def __init__(self, chain: SimulatedCandleAuction, sender: str):
        self.chain = chain
        self.sender = sender
        self.submissions: List[str] = []
    
    @property
    def account(self) -> Optional[str]:
        return self.sender
    
    async def _read(self, name: str):
        # Yield like a real network round trip
        await asyncio.sleep(0)
        if self.chain.unavailable:
            raise TransientReadFailure(f"{name}() failed: node unreachable")
    
    async def owner(self) -> str:
        await self._read("owner")
        return self.chain.owner
    
    async def get_current_phase(self) -> int:
        await self._read("getCurrentPhase")
        return int(self.chain.current_phase())
    
    async def random_end_block_requested(self) -> bool:
        await self._read("randomEndBlockRequested")
        return self.chain.random_end_requested
    
    async def random_end_block(self) -> int:
        await self._read("randomEndBlock")
        return self.chain.random_end_timestamp
    
    async def get_all_bidders(self) -> List[str]:
        await self._read("getAllBidders")
        return list(self.chain.bidder_order)
    
    async def get_revealed_bid(self, address: str) -> int:
        await self._read("getRevealedBid")
        bid = self.chain.bids.get(address.lower())
        return bid.revealed_wei if bid else 0
    
    async def get_highest_bidder(self) -> str:
        await self._read("getHighestBidder")
        return self.chain.highest_bidder
    
    async def get_highest_bid(self) -> int:
        await self._read("getHighestBid")
        return self.chain.highest_bid_wei
    
    async def _send(self, method: str, result: Tuple[bool, str]) -> str:
        ok, error = result
        self.submissions.append(method)
        return self.chain._mine(ok, error, method)
    
    async def start_auction(self, commit_secs: int, reveal_secs: int) -> str:
        return await self._send("startAuction", self.chain._start(self.sender, commit_secs, reveal_secs))
    
    async def next_phase(self) -> str:
        return await self._send("nextPhase", self.chain._next_phase(self.sender))
    
    async def request_random_end_block(self) -> str:
        return await self._send("requestRandomEndBlock", self.chain._request_random(self.sender))
    
    async def commit_bid(self, commitment_hash: bytes, value_wei: int) -> str:
        return await self._send("commitBid", self.chain._commit(self.sender, commitment_hash, value_wei))
    
    async def reveal_bid(self, amount_wei: int, salt: bytes) -> str:
        return await self._send("revealBid", self.chain._reveal(self.sender, amount_wei, salt))
    
    async def settle_auction(self) -> str:
        return await self._send("settleAuction", self.chain._settle(self.sender))
    
    async def withdraw(self) -> str:
        return await self._send("withdraw", self.chain._withdraw(self.sender))
    
    async def wait_for_receipt(self, tx_hash: str) -> TxReceipt:
        await asyncio.sleep(0)
        return self.chain.receipts[tx_hash]
