"""
Phase Tracker - Mirrors the remote auction phase and VRF status.

The tracker never decides a phase itself; it only records what
getCurrentPhase() returns. Failed polls keep the last known values
(stale but available) and are reported as warnings, never raised.

Phase changes are published to listeners as (old_phase, new_phase).
Listeners are coroutines and run in registration order.
"""

from typing import Awaitable, Callable, List, Optional

from candle.contract.base import AuctionContract
from candle.core.auction.phase import AuctionPhase, phase_label
from candle.core.auction.snapshot import RandomEndStatus, SnapshotStore
from candle.core.errors import TransientReadFailure
from candle.utils.logger import get_logger

logger = get_logger("tracker")

PhaseListener = Callable[[Optional[AuctionPhase], AuctionPhase], Awaitable[None]]


class PhaseTracker:
    """Polls phase and VRF status into the snapshot store."""
    
    def __init__(self, contract: AuctionContract, store: SnapshotStore):
        self.contract = contract
        self.store = store
        self.last_error: Optional[TransientReadFailure] = None
        self._listeners: List[PhaseListener] = []
    
    @property
    def phase(self) -> Optional[AuctionPhase]:
        return self.store.snapshot.phase
    
    def on_phase_change(self, listener: PhaseListener) -> None:
        """Register a coroutine called with (old_phase, new_phase)."""
        self._listeners.append(listener)
    
    async def refresh_phase(self) -> Optional[AuctionPhase]:
        """
        Read the current phase.
        
        Returns:
            The cached phase after the poll (unchanged on failure)
        """
        try:
            ordinal = await self.contract.get_current_phase()
            remote = AuctionPhase.from_ordinal(ordinal)
        except TransientReadFailure as e:
            self._read_failed(e)
            return self.phase
        except ValueError as e:
            self._read_failed(TransientReadFailure(str(e)))
            return self.phase

        self.last_error = None

        # Compare against the store after the read; an overlapping poll may
        # have already recorded a newer phase
        cached = self.phase
        if cached is not None and remote < cached:
            # Lagging node behind a load balancer; phases never go backwards
            logger.warning(
                f"Ignoring stale phase {remote.label}, already observed {cached.label}"
            )
            return cached
        
        if remote == cached:
            return cached
        
        self.store.update(phase=remote)
        logger.info(f"Phase changed: {phase_label(cached)} -> {remote.label}")
        await self._notify(cached, remote)
        return remote
    
    async def refresh_random_status(self) -> RandomEndStatus:
        """
        Read whether a VRF end time was requested and what it resolved to.
        
        A zero end value while requested means the oracle has not
        answered yet and is reported as None.
        """
        try:
            requested = bool(await self.contract.random_end_block_requested())
            end_timestamp = None
            if requested:
                end_timestamp = int(await self.contract.random_end_block()) or None
        except TransientReadFailure as e:
            self._read_failed(e)
            return self.store.snapshot.random_status

        self.last_error = None
        status = RandomEndStatus(requested=requested, end_timestamp=end_timestamp)

        # A request is never withdrawn and a resolved end time never unresolves
        cached = self.store.snapshot.random_status
        if (cached.requested and not status.requested) or (cached.resolved and not status.resolved):
            logger.warning(f"Ignoring stale VRF status {status}, already observed {cached}")
            return cached

        if status != cached:
            self.store.update(
                random_end_requested=status.requested,
                random_end_timestamp=status.end_timestamp,
            )
            if status.resolved and not cached.resolved:
                logger.info(f"Random end resolved: {status.end_timestamp}")
        return status
    
    def _read_failed(self, error: TransientReadFailure) -> None:
        self.last_error = error
        logger.warning(f"Poll failed, keeping cached state: {error}")
    
    async def _notify(self, old: Optional[AuctionPhase], new: AuctionPhase) -> None:
        for listener in list(self._listeners):
            await listener(old, new)
