"""
Tests for the action sequencer.

Tests cover:
1. Local rejections (gate, input validation)
2. Submission payloads
3. Single-flight (Busy)
4. Remote failures
5. Post-confirmation refresh
"""

import asyncio

import pytest

from candle.core.auction import (
    Action,
    ActionSequencer,
    AuctionPhase,
    ParticipantRecord,
    PhaseTracker,
    RemoteStateReconciler,
    Role,
    SnapshotStore,
    derive_salt,
    encode_commitment,
)
from candle.core.errors import ErrorKind, RemoteRejectedError, TransientError

ALICE = "0x" + "a1" * 20
ONE_ETHER = 10**18


def make_sequencer(stub, phase, role=Role.BIDDER, account=ALICE):
    stub.phase = int(phase)
    store = SnapshotStore()
    store.update(phase=phase)
    tracker = PhaseTracker(stub, store)
    reconciler = RemoteStateReconciler(stub, store)
    tracker.on_phase_change(reconciler.on_phase_change)
    return ActionSequencer(stub, store, tracker, reconciler, role, account), store


async def wait_for_submission(stub, count=1):
    for _ in range(100):
        if len(stub.submissions) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError("submission never happened")


# =============================================================================
# Local Rejections
# =============================================================================


class TestLocalRejection:
    """Failures detected before any remote call."""
    
    @pytest.mark.asyncio
    async def test_wrong_phase_not_permitted(self, stub):
        sequencer, _ = make_sequencer(stub, AuctionPhase.REVEAL)
        
        result = await sequencer.commit_bid(ONE_ETHER, "secret")
        
        assert not result.ok
        assert result.error.kind == ErrorKind.NOT_PERMITTED
        assert stub.submissions == []
    
    @pytest.mark.asyncio
    async def test_bidder_cannot_start(self, stub):
        sequencer, _ = make_sequencer(stub, AuctionPhase.NOT_STARTED)
        
        result = await sequencer.start_auction(120, 120)
        
        assert result.error.kind == ErrorKind.NOT_PERMITTED
        assert stub.submissions == []
    
    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount,secret", [(-1, "s"), (ONE_ETHER, ""), (None, "s"), (2**256, "s")])
    async def test_invalid_bid_input(self, stub, amount, secret):
        sequencer, _ = make_sequencer(stub, AuctionPhase.COMMIT)
        
        result = await sequencer.commit_bid(amount, secret)
        
        assert result.error.kind == ErrorKind.INVALID_INPUT
        assert stub.submissions == []
    
    @pytest.mark.asyncio
    async def test_invalid_durations(self, owner_stub):
        sequencer, _ = make_sequencer(owner_stub, AuctionPhase.NOT_STARTED, role=Role.OWNER)
        
        result = await sequencer.start_auction(0, 120)
        
        assert result.error.kind == ErrorKind.INVALID_INPUT
        assert owner_stub.submissions == []
    
    @pytest.mark.asyncio
    async def test_unwrap_raises_classified_error(self, stub):
        sequencer, _ = make_sequencer(stub, AuctionPhase.COMMIT)
        result = await sequencer.settle_auction()
        
        with pytest.raises(Exception) as exc:
            result.unwrap()
        assert exc.value is result.error


# =============================================================================
# Submission Payloads
# =============================================================================


class TestSubmission:
    """What reaches the contract."""
    
    @pytest.mark.asyncio
    async def test_commit_sends_hash_and_value(self, stub):
        sequencer, _ = make_sequencer(stub, AuctionPhase.COMMIT)
        
        result = await sequencer.commit_bid(2 * ONE_ETHER, "pw")
        
        assert result.ok
        assert stub.submissions == [("commitBid", encode_commitment(2 * ONE_ETHER, "pw"), 2 * ONE_ETHER)]
        assert result.receipt.succeeded
    
    @pytest.mark.asyncio
    async def test_reveal_sends_amount_and_derived_salt(self, stub):
        sequencer, _ = make_sequencer(stub, AuctionPhase.REVEAL)
        
        result = await sequencer.reveal_bid(2 * ONE_ETHER, "pw")
        
        assert result.ok
        assert stub.submissions == [("revealBid", 2 * ONE_ETHER, derive_salt("pw"))]
    
    @pytest.mark.asyncio
    async def test_start_sends_durations(self, owner_stub):
        sequencer, _ = make_sequencer(owner_stub, AuctionPhase.NOT_STARTED, role=Role.OWNER)
        
        result = await sequencer.start_auction(60, 90)
        
        assert result.ok
        assert owner_stub.submissions == [("startAuction", 60, 90)]


# =============================================================================
# Single Flight
# =============================================================================


class TestSingleFlight:
    """Only one mutating action in flight per session."""
    
    @pytest.mark.asyncio
    async def test_reveal_while_commit_pending_is_busy(self, stub):
        stub.hold = asyncio.Event()
        sequencer, _ = make_sequencer(stub, AuctionPhase.COMMIT)
        
        pending = asyncio.create_task(sequencer.commit_bid(ONE_ETHER, "pw"))
        await wait_for_submission(stub)
        assert sequencer.busy
        assert sequencer.in_flight == Action.COMMIT_BID
        
        second = await sequencer.reveal_bid(ONE_ETHER, "pw")
        
        assert second.error.kind == ErrorKind.BUSY
        assert second.error.retryable
        assert len(stub.submissions) == 1
        
        stub.hold.set()
        first = await pending
        assert first.ok
        assert not sequencer.busy
    
    @pytest.mark.asyncio
    async def test_slot_released_after_failure(self, stub):
        stub.reject_reason = "execution reverted: Not in commit phase"
        sequencer, _ = make_sequencer(stub, AuctionPhase.COMMIT)
        
        await sequencer.commit_bid(ONE_ETHER, "pw")
        
        assert not sequencer.busy


# =============================================================================
# Remote Failures
# =============================================================================


class TestRemoteFailure:
    """Failures reported by the contract or the network."""
    
    @pytest.mark.asyncio
    async def test_revert_at_submission(self, stub):
        """Gate allowed it, contract refused it (e.g. phase raced ahead)."""
        stub.reject_reason = "execution reverted: Not in commit phase"
        sequencer, _ = make_sequencer(stub, AuctionPhase.COMMIT)
        
        result = await sequencer.commit_bid(ONE_ETHER, "pw")
        
        assert result.error.kind == ErrorKind.REMOTE_REJECTED
        assert isinstance(result.error, RemoteRejectedError)
        assert result.error.reason == "execution reverted: Not in commit phase"
        assert len(stub.submissions) == 1  # never retried
    
    @pytest.mark.asyncio
    async def test_reverted_receipt(self, stub):
        stub.receipt_status = 0
        sequencer, _ = make_sequencer(stub, AuctionPhase.REVEAL)
        
        result = await sequencer.reveal_bid(ONE_ETHER, "pw")
        
        assert result.error.kind == ErrorKind.REMOTE_REJECTED
    
    @pytest.mark.asyncio
    async def test_network_failure_while_waiting_is_retryable(self, stub):
        stub.wait_error = TransientError("connection reset")
        sequencer, _ = make_sequencer(stub, AuctionPhase.COMMIT)
        
        result = await sequencer.commit_bid(ONE_ETHER, "pw")
        
        assert result.error.kind == ErrorKind.TRANSIENT
        assert result.error.retryable
        assert len(stub.submissions) == 1


# =============================================================================
# Refresh After Confirmation
# =============================================================================


class TestRefresh:
    """State is re-read once an action is confirmed."""
    
    @pytest.mark.asyncio
    async def test_advance_refreshes_phase_and_bidders(self, owner_stub):
        bidder = "0x" + "bb" * 20
        owner_stub.bidders = [bidder]
        owner_stub.revealed = {bidder: 4}
        owner_stub.on_submit = lambda name, *args: setattr(owner_stub, "phase", 2)
        sequencer, store = make_sequencer(owner_stub, AuctionPhase.COMMIT, role=Role.OWNER)
        
        result = await sequencer.advance_phase()
        
        assert result.ok
        assert store.snapshot.phase == AuctionPhase.REVEAL
        assert store.snapshot.bidders == (ParticipantRecord(bidder, 4),)
    
    @pytest.mark.asyncio
    async def test_request_random_refreshes_status(self, owner_stub):
        owner_stub.on_submit = lambda name, *args: setattr(owner_stub, "requested", True)
        sequencer, store = make_sequencer(owner_stub, AuctionPhase.REVEAL, role=Role.OWNER)
        
        await sequencer.request_random_end()
        
        assert store.snapshot.random_end_requested
        again = await sequencer.request_random_end()
        assert again.error.kind == ErrorKind.NOT_PERMITTED
    
    @pytest.mark.asyncio
    async def test_reveal_refreshes_bidders(self, stub):
        def reveal(name, amount, salt):
            stub.bidders = [ALICE]
            stub.revealed = {ALICE: amount}
        stub.on_submit = reveal
        sequencer, store = make_sequencer(stub, AuctionPhase.REVEAL)
        
        await sequencer.reveal_bid(3, "pw")
        
        assert store.snapshot.bidders == (ParticipantRecord(ALICE, 3),)
    
    @pytest.mark.asyncio
    async def test_settle_marks_settled_and_reads_winner(self, owner_stub):
        winner = "0x" + "bb" * 20
        owner_stub.highest_bidder = winner
        owner_stub.highest_bid = 5
        sequencer, store = make_sequencer(owner_stub, AuctionPhase.ENDED, role=Role.OWNER)
        
        result = await sequencer.settle_auction()
        
        assert result.ok
        assert store.snapshot.settled
        assert store.snapshot.highest_bidder == winner
        again = await sequencer.settle_auction()
        assert again.error.kind == ErrorKind.NOT_PERMITTED
    
    @pytest.mark.asyncio
    async def test_winner_cannot_withdraw(self, stub):
        stub.highest_bidder = ALICE
        stub.highest_bid = 5
        sequencer, store = make_sequencer(stub, AuctionPhase.ENDED)
        store.update(highest_bidder=ALICE, highest_bid_wei=5)
        
        result = await sequencer.withdraw()
        
        assert result.error.kind == ErrorKind.NOT_PERMITTED
        assert stub.submissions == []
    
    @pytest.mark.asyncio
    async def test_failed_refresh_does_not_fail_action(self, stub):
        stub.failing.update({"getCurrentPhase", "randomEndBlockRequested"})
        sequencer, store = make_sequencer(stub, AuctionPhase.COMMIT)
        
        result = await sequencer.commit_bid(ONE_ETHER, "pw")
        
        assert result.ok
        assert store.snapshot.phase == AuctionPhase.COMMIT
