"""
Action Gate - Which protocol actions are currently allowed.

The gate is advisory: it keeps the client from submitting actions the
contract would certainly reject. The contract remains the authority and
may still refuse an action the gate allowed (e.g. the phase advanced
between the last poll and submission).

Permission table:

    Action            Phase            Role          Extra
    startAuction      NotStarted       owner         -
    advancePhase      Commit, Reveal   owner         -
    requestRandomEnd  Reveal           owner         VRF not yet requested
    commitBid         Commit           any           amount and secret given
    revealBid         Reveal           any           amount and secret given
    settleAuction     Ended            owner         not yet settled
    withdraw          Ended            any           not the winner
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Tuple

from candle.core.auction.phase import Action, AuctionPhase, Role
from candle.core.auction.snapshot import AuctionSnapshot

ANY_ROLE: FrozenSet[Role] = frozenset(Role)
OWNER_ONLY: FrozenSet[Role] = frozenset({Role.OWNER})

# action -> (allowed phases, allowed roles)
PERMISSIONS: Dict[Action, Tuple[FrozenSet[AuctionPhase], FrozenSet[Role]]] = {
    Action.START_AUCTION: (frozenset({AuctionPhase.NOT_STARTED}), OWNER_ONLY),
    Action.ADVANCE_PHASE: (frozenset({AuctionPhase.COMMIT, AuctionPhase.REVEAL}), OWNER_ONLY),
    Action.REQUEST_RANDOM_END: (frozenset({AuctionPhase.REVEAL}), OWNER_ONLY),
    Action.COMMIT_BID: (frozenset({AuctionPhase.COMMIT}), ANY_ROLE),
    Action.REVEAL_BID: (frozenset({AuctionPhase.REVEAL}), ANY_ROLE),
    Action.SETTLE_AUCTION: (frozenset({AuctionPhase.ENDED}), OWNER_ONLY),
    Action.WITHDRAW: (frozenset({AuctionPhase.ENDED}), ANY_ROLE),
}


@dataclass(frozen=True)
class LocalState:
    """Per-attempt inputs the extra conditions depend on."""
    bid_amount_wei: Optional[int] = None
    secret: str = ""
    random_end_requested: bool = False
    settled: bool = False
    is_winner: bool = False

    @classmethod
    def from_snapshot(
        cls,
        snapshot: AuctionSnapshot,
        account: str,
        bid_amount_wei: Optional[int] = None,
        secret: str = "",
    ) -> "LocalState":
        return cls(
            bid_amount_wei=bid_amount_wei,
            secret=secret,
            random_end_requested=snapshot.random_end_requested,
            settled=snapshot.settled,
            is_winner=snapshot.is_winner(account),
        )


def _extra_condition(action: Action, local: LocalState) -> Tuple[bool, str]:
    if action.is_bid:
        if local.bid_amount_wei is None or not local.secret:
            return False, "bid amount and secret are required"
    elif action == Action.REQUEST_RANDOM_END:
        if local.random_end_requested:
            return False, "random end already requested"
    elif action == Action.SETTLE_AUCTION:
        if local.settled:
            return False, "auction already settled"
    elif action == Action.WITHDRAW:
        if local.is_winner:
            return False, "the winner cannot withdraw"
    return True, ""


def check_permission(
    action: Action,
    phase: Optional[AuctionPhase],
    role: Role,
    local: Optional[LocalState] = None,
) -> Tuple[bool, str]:
    """
    Decide whether an action is allowed.
    
    Args:
        action: Protocol action
        phase: Cached phase, None if never observed
        role: Session role
        local: Extra-condition inputs
        
    Returns:
        (permitted, reason)
    """
    local = local or LocalState()
    phases, roles = PERMISSIONS[action]
    
    if phase is None:
        return False, "auction phase not yet known"
    
    if phase not in phases:
        allowed = ", ".join(p.label for p in sorted(phases))
        return False, f"{action.value} requires phase {allowed} (current: {phase.label})"
    
    if role not in roles:
        return False, f"{action.value} is restricted to the owner"
    
    return _extra_condition(action, local)


def is_permitted(
    action: Action,
    phase: Optional[AuctionPhase],
    role: Role,
    local: Optional[LocalState] = None,
) -> bool:
    """Boolean form of check_permission()."""
    permitted, _ = check_permission(action, phase, role, local)
    return permitted


def permitted_actions(
    phase: Optional[AuctionPhase],
    role: Role,
    local: Optional[LocalState] = None,
) -> List[Action]:
    """All actions currently allowed, in declaration order."""
    return [a for a in Action if is_permitted(a, phase, role, local)]
