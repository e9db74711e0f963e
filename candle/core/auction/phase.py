"""
Auction phases, session roles and protocol actions.
"""

from enum import Enum, IntEnum
from typing import Optional


class AuctionPhase(IntEnum):
    """Phase of the on-chain auction. Ordinals match getCurrentPhase()."""
    NOT_STARTED = 0
    COMMIT = 1
    REVEAL = 2
    ENDED = 3

    @property
    def label(self) -> str:
        return _PHASE_LABELS[self]

    @classmethod
    def from_ordinal(cls, value: int) -> "AuctionPhase":
        """
        Convert a remote ordinal to a phase.
        
        Raises:
            ValueError: if the ordinal is outside 0-3
        """
        try:
            return cls(int(value))
        except ValueError:
            raise ValueError(f"Unknown auction phase ordinal: {value}")


_PHASE_LABELS = {
    AuctionPhase.NOT_STARTED: "NotStarted",
    AuctionPhase.COMMIT: "Commit",
    AuctionPhase.REVEAL: "Reveal",
    AuctionPhase.ENDED: "Ended",
}


def phase_label(phase: Optional[AuctionPhase]) -> str:
    """Display label, "Unknown" before the first successful poll."""
    return phase.label if phase is not None else "Unknown"


class Role(Enum):
    """Session role, derived once from the contract owner."""
    OWNER = "owner"
    BIDDER = "bidder"


class Action(Enum):
    """The seven mutating protocol actions."""
    START_AUCTION = "startAuction"
    ADVANCE_PHASE = "advancePhase"
    REQUEST_RANDOM_END = "requestRandomEnd"
    COMMIT_BID = "commitBid"
    REVEAL_BID = "revealBid"
    SETTLE_AUCTION = "settleAuction"
    WITHDRAW = "withdraw"

    @property
    def is_bid(self) -> bool:
        return self in (Action.COMMIT_BID, Action.REVEAL_BID)
