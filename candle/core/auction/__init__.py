"""
Candle Auction protocol module.

This module provides the client-side protocol:
- Commitment encoding
- Phase tracking and VRF status
- Action gating by phase and role
- Remote state reconciliation
- Sequenced action execution
"""

from candle.core.auction.phase import (
    Action,
    AuctionPhase,
    Role,
    phase_label,
)

from candle.core.auction.commitment import (
    Commitment,
    abi_encode_bid,
    create_commitment,
    derive_salt,
    encode_commitment,
    verify_commitment,
)

from candle.core.auction.snapshot import (
    AuctionSnapshot,
    ParticipantRecord,
    RandomEndStatus,
    SnapshotStore,
    WinnerRecord,
)

from candle.core.auction.gate import (
    LocalState,
    PERMISSIONS,
    check_permission,
    is_permitted,
    permitted_actions,
)

from candle.core.auction.tracker import PhaseTracker
from candle.core.auction.reconciler import RemoteStateReconciler, filter_revealed
from candle.core.auction.sequencer import ActionParams, ActionResult, ActionSequencer
from candle.core.auction.session import AuctionSession

__all__ = [
    # Phases
    "Action",
    "AuctionPhase",
    "Role",
    "phase_label",
    # Commitments
    "Commitment",
    "abi_encode_bid",
    "create_commitment",
    "derive_salt",
    "encode_commitment",
    "verify_commitment",
    # Snapshot
    "AuctionSnapshot",
    "ParticipantRecord",
    "RandomEndStatus",
    "SnapshotStore",
    "WinnerRecord",
    # Gate
    "LocalState",
    "PERMISSIONS",
    "check_permission",
    "is_permitted",
    "permitted_actions",
    # Tracking and execution
    "PhaseTracker",
    "RemoteStateReconciler",
    "filter_revealed",
    "ActionParams",
    "ActionResult",
    "ActionSequencer",
    "AuctionSession",
]
