"""
Auction Snapshot - Local cache of remote auction state.

The snapshot is immutable; SnapshotStore holds the current one and
replaces whole fields at a time. Only the phase tracker, the reconciler
and confirmed settlement write to the store; the action gate, sequencer
and any UI only read it.
"""

from dataclasses import dataclass, field, fields, replace
from typing import Callable, List, Optional, Tuple

from candle.core.auction.phase import AuctionPhase
from candle.crypto import same_address


@dataclass(frozen=True)
class ParticipantRecord:
    """A bidder and the amount they revealed (wei)."""
    address: str
    revealed_bid_wei: int


@dataclass(frozen=True)
class WinnerRecord:
    """Highest bidder and bid after the auction ended."""
    address: Optional[str]
    amount_wei: Optional[int]


@dataclass(frozen=True)
class RandomEndStatus:
    """VRF end-time status: whether requested and the resolved timestamp."""
    requested: bool = False
    end_timestamp: Optional[int] = None

    @property
    def resolved(self) -> bool:
        return self.requested and self.end_timestamp is not None


@dataclass(frozen=True)
class AuctionSnapshot:
    """Last known remote state. None means never successfully read."""
    phase: Optional[AuctionPhase] = None
    random_end_requested: bool = False
    random_end_timestamp: Optional[int] = None
    bidders: Tuple[ParticipantRecord, ...] = field(default_factory=tuple)
    highest_bidder: Optional[str] = None
    highest_bid_wei: Optional[int] = None
    settled: bool = False

    @property
    def random_status(self) -> RandomEndStatus:
        return RandomEndStatus(self.random_end_requested, self.random_end_timestamp)

    @property
    def winner(self) -> WinnerRecord:
        return WinnerRecord(self.highest_bidder, self.highest_bid_wei)

    def is_winner(self, account: str) -> bool:
        """Whether `account` is the cached highest bidder."""
        return self.highest_bidder is not None and same_address(account, self.highest_bidder)


SNAPSHOT_FIELDS = frozenset(f.name for f in fields(AuctionSnapshot))

SnapshotListener = Callable[[AuctionSnapshot, AuctionSnapshot], None]


class SnapshotStore:
    """
    Single-writer holder of the current AuctionSnapshot.
    
    Updates swap in a new snapshot with the given fields replaced; a
    field is never partially mutated.
    """
    
    def __init__(self, initial: Optional[AuctionSnapshot] = None):
        self._snapshot = initial or AuctionSnapshot()
        self._listeners: List[SnapshotListener] = []
    
    @property
    def snapshot(self) -> AuctionSnapshot:
        return self._snapshot
    
    def update(self, **changes) -> AuctionSnapshot:
        """
        Replace the named fields.
        
        Raises:
            KeyError: on an unknown field name
        """
        unknown = set(changes) - SNAPSHOT_FIELDS
        if unknown:
            raise KeyError(f"Unknown snapshot fields: {sorted(unknown)}")
        if "bidders" in changes:
            changes["bidders"] = tuple(changes["bidders"])
        
        old = self._snapshot
        new = replace(old, **changes)
        self._snapshot = new
        if new != old:
            for listener in list(self._listeners):
                listener(old, new)
        return new
    
    def subscribe(self, listener: SnapshotListener) -> None:
        """Register a callback invoked with (old, new) after each change."""
        self._listeners.append(listener)
