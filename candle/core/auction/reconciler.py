"""
Remote State Reconciler - Folds bidder and winner reads into the snapshot.

Reads are only issued once the phase that gives them meaning has been
observed: bidders from Reveal onward, the winner once Ended. Failed
reads keep the cached values and are logged, never raised.
"""

import asyncio
from typing import List, Optional, Tuple

from candle.contract.base import AuctionContract
from candle.core.auction.phase import AuctionPhase
from candle.core.auction.snapshot import ParticipantRecord, SnapshotStore, WinnerRecord
from candle.core.errors import TransientReadFailure
from candle.crypto import is_zero_address
from candle.utils.logger import get_logger

logger = get_logger("reconciler")


def filter_revealed(entries: List[Tuple[str, int]]) -> List[ParticipantRecord]:
    """Drop zero amounts (not revealed / not a participant), keep list order."""
    return [
        ParticipantRecord(address=address, revealed_bid_wei=int(amount))
        for address, amount in entries
        if int(amount) > 0
    ]


class RemoteStateReconciler:
    """Pulls bidders and the winner from the contract."""
    
    def __init__(self, contract: AuctionContract, store: SnapshotStore):
        self.contract = contract
        self.store = store
        self.last_error: Optional[TransientReadFailure] = None
    
    def _phase_reached(self, required: AuctionPhase) -> bool:
        phase = self.store.snapshot.phase
        return phase is not None and phase >= required
    
    async def reconcile_bidders(self) -> List[ParticipantRecord]:
        """
        Refresh the revealed bids.
        
        Fetches getAllBidders(), then each bidder's revealed amount
        concurrently, and keeps only non-zero entries in remote order.
        
        Returns:
            The cached bidder list after the refresh
        """
        if not self._phase_reached(AuctionPhase.REVEAL):
            logger.debug("Skipping bidder refresh before Reveal")
            return list(self.store.snapshot.bidders)
        
        try:
            addresses = await self.contract.get_all_bidders()
            amounts = await asyncio.gather(
                *(self.contract.get_revealed_bid(address) for address in addresses)
            )
        except TransientReadFailure as e:
            self.last_error = e
            logger.warning(f"Bidder refresh failed, keeping cached bids: {e}")
            return list(self.store.snapshot.bidders)
        
        self.last_error = None
        records = filter_revealed(list(zip(addresses, amounts)))
        self.store.update(bidders=records)
        logger.debug(f"Revealed bids: {len(records)} of {len(addresses)} bidders")
        return records
    
    async def reconcile_winner(self) -> WinnerRecord:
        """
        Refresh highest bidder and highest bid.
        
        Both reads must succeed; otherwise the cached winner is kept.
        A zero address means no valid bid was revealed.
        """
        if not self._phase_reached(AuctionPhase.ENDED):
            logger.debug("Skipping winner refresh before Ended")
            return self.store.snapshot.winner
        
        try:
            bidder, amount = await asyncio.gather(
                self.contract.get_highest_bidder(),
                self.contract.get_highest_bid(),
            )
        except TransientReadFailure as e:
            self.last_error = e
            logger.warning(f"Winner refresh failed, keeping cached winner: {e}")
            return self.store.snapshot.winner
        
        self.last_error = None
        address = None if not bidder or is_zero_address(bidder) else bidder
        self.store.update(highest_bidder=address, highest_bid_wei=int(amount))
        if address:
            logger.info(f"Highest bidder {address} with {int(amount)} wei")
        return WinnerRecord(address, int(amount))
    
    async def on_phase_change(
        self,
        old: Optional[AuctionPhase],
        new: AuctionPhase,
    ) -> None:
        """Phase-change hook: Reveal -> bidders, Ended -> winner."""
        if new == AuctionPhase.REVEAL:
            await self.reconcile_bidders()
        elif new == AuctionPhase.ENDED:
            await self.reconcile_winner()
