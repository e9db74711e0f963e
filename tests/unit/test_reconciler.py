"""
Tests for the remote state reconciler.

Tests cover:
1. Zero-bid filtering and ordering
2. Phase preconditions
3. Cache retention on failure
4. Phase-change hook
"""

import pytest

from candle.core.auction import (
    AuctionPhase,
    ParticipantRecord,
    RemoteStateReconciler,
    SnapshotStore,
    WinnerRecord,
    filter_revealed,
)
from candle.crypto import ZERO_ADDRESS

ADDR_A = "0x" + "aa" * 20
ADDR_B = "0x" + "bb" * 20
ADDR_C = "0x" + "cc" * 20
FIVE_ETHER = 5 * 10**18


def make_reconciler(stub, phase=None):
    store = SnapshotStore()
    if phase is not None:
        store.update(phase=phase)
    return RemoteStateReconciler(stub, store), store


def test_filter_revealed_drops_zero_amounts():
    assert filter_revealed([(ADDR_A, 0), (ADDR_B, FIVE_ETHER)]) == [
        ParticipantRecord(ADDR_B, FIVE_ETHER)
    ]


class TestReconcileBidders:
    """Tests for reconcile_bidders()."""
    
    @pytest.mark.asyncio
    async def test_zero_bids_filtered(self, stub):
        stub.bidders = [ADDR_A, ADDR_B]
        stub.revealed = {ADDR_A: 0, ADDR_B: FIVE_ETHER}
        reconciler, store = make_reconciler(stub, AuctionPhase.REVEAL)
        
        records = await reconciler.reconcile_bidders()
        
        assert records == [ParticipantRecord(ADDR_B, FIVE_ETHER)]
        assert store.snapshot.bidders == (ParticipantRecord(ADDR_B, FIVE_ETHER),)
    
    @pytest.mark.asyncio
    async def test_remote_order_kept(self, stub):
        """Insertion order from getAllBidders(), not sorted by amount."""
        stub.bidders = [ADDR_C, ADDR_A, ADDR_B]
        stub.revealed = {ADDR_C: 1, ADDR_A: 3, ADDR_B: 2}
        reconciler, _ = make_reconciler(stub, AuctionPhase.REVEAL)
        
        records = await reconciler.reconcile_bidders()
        
        assert [r.address for r in records] == [ADDR_C, ADDR_A, ADDR_B]
    
    @pytest.mark.asyncio
    async def test_reads_every_bidder(self, stub):
        stub.bidders = [ADDR_A, ADDR_B, ADDR_C]
        reconciler, _ = make_reconciler(stub, AuctionPhase.ENDED)
        
        await reconciler.reconcile_bidders()
        
        lookups = [r for r in stub.reads if r.startswith("getRevealedBid:")]
        assert sorted(lookups) == sorted(f"getRevealedBid:{a}" for a in (ADDR_A, ADDR_B, ADDR_C))
    
    @pytest.mark.asyncio
    @pytest.mark.parametrize("phase", [None, AuctionPhase.NOT_STARTED, AuctionPhase.COMMIT])
    async def test_not_read_before_reveal(self, stub, phase):
        stub.bidders = [ADDR_A]
        reconciler, _ = make_reconciler(stub, phase)
        
        assert await reconciler.reconcile_bidders() == []
        assert stub.reads == []
    
    @pytest.mark.asyncio
    async def test_failure_keeps_cached_bidders(self, stub):
        stub.bidders = [ADDR_A]
        stub.revealed = {ADDR_A: 7}
        reconciler, store = make_reconciler(stub, AuctionPhase.REVEAL)
        await reconciler.reconcile_bidders()
        
        stub.bidders = [ADDR_A, ADDR_B]
        stub.revealed[ADDR_B] = 9
        stub.failing.add("getRevealedBid")
        records = await reconciler.reconcile_bidders()
        
        assert records == [ParticipantRecord(ADDR_A, 7)]
        assert store.snapshot.bidders == (ParticipantRecord(ADDR_A, 7),)
        assert reconciler.last_error is not None


class TestReconcileWinner:
    """Tests for reconcile_winner()."""
    
    @pytest.mark.asyncio
    async def test_reads_winner(self, stub):
        stub.highest_bidder = ADDR_B
        stub.highest_bid = FIVE_ETHER
        reconciler, store = make_reconciler(stub, AuctionPhase.ENDED)
        
        winner = await reconciler.reconcile_winner()
        
        assert winner == WinnerRecord(ADDR_B, FIVE_ETHER)
        assert store.snapshot.highest_bidder == ADDR_B
        assert store.snapshot.highest_bid_wei == FIVE_ETHER
    
    @pytest.mark.asyncio
    async def test_zero_address_means_no_winner(self, stub):
        stub.highest_bidder = ZERO_ADDRESS
        reconciler, store = make_reconciler(stub, AuctionPhase.ENDED)
        
        winner = await reconciler.reconcile_winner()
        
        assert winner.address is None
        assert store.snapshot.highest_bidder is None
    
    @pytest.mark.asyncio
    async def test_not_read_before_ended(self, stub):
        reconciler, _ = make_reconciler(stub, AuctionPhase.REVEAL)
        
        assert await reconciler.reconcile_winner() == WinnerRecord(None, None)
        assert stub.reads == []
    
    @pytest.mark.asyncio
    async def test_either_read_failing_keeps_cached_winner(self, stub):
        stub.highest_bidder = ADDR_A
        stub.highest_bid = 1
        reconciler, store = make_reconciler(stub, AuctionPhase.ENDED)
        await reconciler.reconcile_winner()
        
        stub.highest_bidder = ADDR_B
        stub.highest_bid = 2
        stub.failing.add("getHighestBid")
        winner = await reconciler.reconcile_winner()
        
        assert winner == WinnerRecord(ADDR_A, 1)
        assert store.snapshot.highest_bidder == ADDR_A


class TestPhaseHook:
    """on_phase_change() triggers the matching refresh."""
    
    @pytest.mark.asyncio
    async def test_reveal_refreshes_bidders(self, stub):
        stub.bidders = [ADDR_A]
        stub.revealed = {ADDR_A: 3}
        reconciler, store = make_reconciler(stub, AuctionPhase.REVEAL)
        
        await reconciler.on_phase_change(AuctionPhase.COMMIT, AuctionPhase.REVEAL)
        
        assert store.snapshot.bidders == (ParticipantRecord(ADDR_A, 3),)
        assert "getHighestBidder" not in stub.reads
    
    @pytest.mark.asyncio
    async def test_ended_refreshes_winner(self, stub):
        stub.highest_bidder = ADDR_A
        stub.highest_bid = 3
        reconciler, store = make_reconciler(stub, AuctionPhase.ENDED)
        
        await reconciler.on_phase_change(AuctionPhase.REVEAL, AuctionPhase.ENDED)
        
        assert store.snapshot.highest_bidder == ADDR_A
        assert "getAllBidders" not in stub.reads
