"""
Auction Session - One connected account's view of one auction.

Wires the tracker, reconciler and sequencer around a shared snapshot
store, derives the account's role once from owner(), and runs the two
polling loops (phase, VRF status) until stopped.
"""

from typing import List, Optional

from candle.contract.base import AuctionContract
from candle.core.auction.gate import LocalState, permitted_actions
from candle.core.auction.phase import Action, Role
from candle.core.auction.reconciler import RemoteStateReconciler
from candle.core.auction.snapshot import AuctionSnapshot, SnapshotStore
from candle.core.auction.tracker import PhaseTracker
from candle.core.auction.sequencer import ActionSequencer
from candle.core.config import (
    DEFAULT_PHASE_POLL_INTERVAL,
    DEFAULT_RANDOM_POLL_INTERVAL,
    ClientConfig,
)
from candle.core.scheduler import PeriodicTask
from candle.crypto import same_address
from candle.utils.logger import get_logger

logger = get_logger("session")


class AuctionSession:
    """
    Client session for one account.
    
    Usage:
        async with AuctionSession(contract, account) as session:
            await session.sequencer.commit_bid(amount, secret)
    """
    
    def __init__(
        self,
        contract: AuctionContract,
        account: Optional[str] = None,
        config: Optional[ClientConfig] = None,
    ):
        self.contract = contract
        self.account = account or contract.account
        if not self.account:
            raise ValueError("Session needs an account address")
        
        self.phase_poll_interval = config.phase_poll_interval if config else DEFAULT_PHASE_POLL_INTERVAL
        self.random_poll_interval = config.random_poll_interval if config else DEFAULT_RANDOM_POLL_INTERVAL
        
        self.store = SnapshotStore()
        self.tracker = PhaseTracker(contract, self.store)
        self.reconciler = RemoteStateReconciler(contract, self.store)
        self.tracker.on_phase_change(self.reconciler.on_phase_change)
        
        self.role: Optional[Role] = None
        self.sequencer: Optional[ActionSequencer] = None
        self._pollers: List[PeriodicTask] = []
    
    @property
    def snapshot(self) -> AuctionSnapshot:
        return self.store.snapshot
    
    @property
    def is_open(self) -> bool:
        return self.sequencer is not None
    
    async def open(self) -> "AuctionSession":
        """
        Resolve the role and take the first phase / VRF reading.
        
        Raises:
            TransientReadFailure: if owner() cannot be read; without a
                role no action can be gated
        """
        if self.is_open:
            return self
        
        owner = await self.contract.owner()
        self.role = Role.OWNER if same_address(owner, self.account) else Role.BIDDER
        self.sequencer = ActionSequencer(
            self.contract,
            self.store,
            self.tracker,
            self.reconciler,
            self.role,
            self.account,
        )
        logger.info(f"Session opened for {self.account} as {self.role.value}")
        
        await self.tracker.refresh_phase()
        await self.tracker.refresh_random_status()
        return self
    
    def start(self) -> None:
        """Start background polling (requires a running event loop)."""
        if not self.is_open:
            raise RuntimeError("Session not opened")
        if self._pollers:
            return
        self._pollers = [
            PeriodicTask("phase", self.phase_poll_interval, self.tracker.refresh_phase, run_immediately=False),
            PeriodicTask("random", self.random_poll_interval, self.tracker.refresh_random_status, run_immediately=False),
        ]
        for poller in self._pollers:
            poller.start()
    
    async def stop(self) -> None:
        """Stop background polling."""
        for poller in self._pollers:
            await poller.stop()
        self._pollers = []
    
    @property
    def polling(self) -> bool:
        return any(p.running for p in self._pollers)
    
    async def refresh(self) -> AuctionSnapshot:
        """
        One full read of everything meaningful in the current phase.
        
        Used by one-shot commands (status) rather than waiting for polls.
        """
        await self.tracker.refresh_phase()
        await self.tracker.refresh_random_status()
        await self.reconciler.reconcile_bidders()
        await self.reconciler.reconcile_winner()
        return self.snapshot
    
    def permitted_actions(self, bid_amount_wei: Optional[int] = None, secret: str = "") -> List[Action]:
        """Actions the gate currently allows for this account."""
        if self.role is None:
            return []
        local = LocalState.from_snapshot(self.snapshot, self.account, bid_amount_wei, secret)
        return permitted_actions(self.snapshot.phase, self.role, local)
    
    async def __aenter__(self) -> "AuctionSession":
        await self.open()
        self.start()
        return self
    
    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
