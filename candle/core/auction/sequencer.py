"""
Action Sequencer - Runs each mutating action as gate -> encode -> submit
-> confirm -> refresh.

Rules:
- One mutating action in flight per session. A second request while one
  is pending fails immediately with BusyError instead of queueing.
- Classified failures are returned in the ActionResult, never raised.
- Writes are never retried automatically.
- The same (amount, secret) pair must be used for commit and reveal; it
  is not stored between the two.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from candle.contract.base import AuctionContract, TxReceipt
from candle.core.auction.commitment import create_commitment
from candle.core.auction.gate import LocalState, check_permission
from candle.core.auction.phase import Action, Role
from candle.core.auction.reconciler import RemoteStateReconciler
from candle.core.auction.snapshot import SnapshotStore
from candle.core.auction.tracker import PhaseTracker
from candle.core.errors import (
    ActionError,
    BusyError,
    ErrorKind,
    InvalidInputError,
    NotPermittedError,
    RemoteRejectedError,
)
from candle.utils.logger import get_logger
from candle.utils.validation import validate_duration, validate_secret, validate_wei_amount

logger = get_logger("sequencer")


@dataclass(frozen=True)
class ActionResult:
    """Outcome of one execute() call."""
    action: Action
    receipt: Optional[TxReceipt] = None
    error: Optional[ActionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> TxReceipt:
        """Return the receipt or raise the classified error."""
        if self.error is not None:
            raise self.error
        return self.receipt


@dataclass(frozen=True)
class ActionParams:
    """Inputs for an action; unused fields are ignored."""
    bid_amount_wei: Optional[int] = None
    secret: str = ""
    commit_secs: Optional[int] = None
    reveal_secs: Optional[int] = None


class ActionSequencer:
    """Single-flight executor for the seven protocol actions."""
    
    def __init__(
        self,
        contract: AuctionContract,
        store: SnapshotStore,
        tracker: PhaseTracker,
        reconciler: RemoteStateReconciler,
        role: Role,
        account: str,
    ):
        self.contract = contract
        self.store = store
        self.tracker = tracker
        self.reconciler = reconciler
        self.role = role
        self.account = account
        self._in_flight: Optional[Action] = None
        
        self._after: Dict[Action, Callable[[], Awaitable[None]]] = {
            Action.REVEAL_BID: self._after_reveal,
            Action.SETTLE_AUCTION: self._after_settle,
        }
    
    @property
    def busy(self) -> bool:
        return self._in_flight is not None
    
    @property
    def in_flight(self) -> Optional[Action]:
        return self._in_flight
    
    async def execute(self, action: Action, params: Optional[ActionParams] = None) -> ActionResult:
        """
        Run one mutating action end to end.
        
        Args:
            action: Protocol action
            params: Bid or duration inputs where the action needs them
            
        Returns:
            ActionResult with the receipt, or the classified error
        """
        params = params or ActionParams()
        
        if self._in_flight is not None:
            error = BusyError(f"{self._in_flight.value} is still pending")
            logger.debug(f"Rejected {action.value}: {error}")
            return ActionResult(action, error=error)
        
        self._in_flight = action
        try:
            return await self._run(action, params)
        finally:
            self._in_flight = None
    
    async def _run(self, action: Action, params: ActionParams) -> ActionResult:
        try:
            self._validate(action, params)
            self._check_gate(action, params)
            receipt = await self._submit_and_confirm(action, params)
        except ActionError as e:
            if e.kind in (ErrorKind.REMOTE_REJECTED, ErrorKind.TRANSIENT):
                logger.warning(f"{action.value} failed ({e.kind.value}): {e}")
            else:
                logger.debug(f"{action.value} rejected locally ({e.kind.value}): {e}")
            return ActionResult(action, error=e)
        
        await self._refresh(action)
        logger.info(f"{action.value} confirmed in block {receipt.block_number}")
        return ActionResult(action, receipt=receipt)
    
    # =========================================================================
    # Steps
    # =========================================================================
    
    def _validate(self, action: Action, params: ActionParams) -> None:
        if action.is_bid:
            if params.bid_amount_wei is None:
                raise InvalidInputError("bid amount is required")
            ok, err = validate_wei_amount(params.bid_amount_wei)
            if not ok:
                raise InvalidInputError(err)
            ok, err = validate_secret(params.secret)
            if not ok:
                raise InvalidInputError(err)
        elif action == Action.START_AUCTION:
            for name, value in (("commit_secs", params.commit_secs), ("reveal_secs", params.reveal_secs)):
                ok, err = validate_duration(value, name)
                if not ok:
                    raise InvalidInputError(err)
    
    def _check_gate(self, action: Action, params: ActionParams) -> None:
        snapshot = self.store.snapshot
        local = LocalState.from_snapshot(
            snapshot,
            self.account,
            bid_amount_wei=params.bid_amount_wei,
            secret=params.secret,
        )
        permitted, reason = check_permission(action, snapshot.phase, self.role, local)
        if not permitted:
            raise NotPermittedError(reason)
    
    async def _submit_and_confirm(self, action: Action, params: ActionParams) -> TxReceipt:
        tx_hash = await self._submit(action, params)
        receipt = await self.contract.wait_for_receipt(tx_hash)
        if not receipt.succeeded:
            raise RemoteRejectedError(reason=f"{action.value} reverted in {tx_hash}")
        return receipt
    
    async def _submit(self, action: Action, params: ActionParams) -> str:
        if action == Action.START_AUCTION:
            return await self.contract.start_auction(params.commit_secs, params.reveal_secs)
        if action == Action.ADVANCE_PHASE:
            return await self.contract.next_phase()
        if action == Action.REQUEST_RANDOM_END:
            return await self.contract.request_random_end_block()
        if action == Action.COMMIT_BID:
            commitment = create_commitment(params.bid_amount_wei, params.secret)
            logger.info(f"Committing {params.bid_amount_wei} wei as {commitment.hash_hex}")
            return await self.contract.commit_bid(commitment.hash, params.bid_amount_wei)
        if action == Action.REVEAL_BID:
            commitment = create_commitment(params.bid_amount_wei, params.secret)
            logger.info(f"Revealing {params.bid_amount_wei} wei with salt {commitment.salt_hex}")
            return await self.contract.reveal_bid(params.bid_amount_wei, commitment.salt)
        if action == Action.SETTLE_AUCTION:
            return await self.contract.settle_auction()
        if action == Action.WITHDRAW:
            return await self.contract.withdraw()
        raise ValueError(f"Unknown action: {action}")
    
    async def _refresh(self, action: Action) -> None:
        await self.tracker.refresh_phase()
        await self.tracker.refresh_random_status()
        after = self._after.get(action)
        if after is not None:
            await after()
    
    async def _after_reveal(self) -> None:
        await self.reconciler.reconcile_bidders()
    
    async def _after_settle(self) -> None:
        # A successful settle receipt is the contract's confirmation
        self.store.update(settled=True)
        await self.reconciler.reconcile_winner()
    
    # =========================================================================
    # Convenience
    # =========================================================================
    
    async def start_auction(self, commit_secs: int, reveal_secs: int) -> ActionResult:
        return await self.execute(
            Action.START_AUCTION,
            ActionParams(commit_secs=commit_secs, reveal_secs=reveal_secs),
        )
    
    async def advance_phase(self) -> ActionResult:
        return await self.execute(Action.ADVANCE_PHASE)
    
    async def request_random_end(self) -> ActionResult:
        return await self.execute(Action.REQUEST_RANDOM_END)
    
    async def commit_bid(self, bid_amount_wei: int, secret: str) -> ActionResult:
        return await self.execute(
            Action.COMMIT_BID,
            ActionParams(bid_amount_wei=bid_amount_wei, secret=secret),
        )
    
    async def reveal_bid(self, bid_amount_wei: int, secret: str) -> ActionResult:
        return await self.execute(
            Action.REVEAL_BID,
            ActionParams(bid_amount_wei=bid_amount_wei, secret=secret),
        )
    
    async def settle_auction(self) -> ActionResult:
        return await self.execute(Action.SETTLE_AUCTION)
    
    async def withdraw(self) -> ActionResult:
        return await self.execute(Action.WITHDRAW)
