"""
Candle Auction Client

Client-side coordination for a commit-reveal sealed-bid auction whose
reveal deadline is resolved by a VRF oracle:
- Commitment encoding (keccak256 over abi-encoded bid and salt)
- Phase tracking from polled on-chain state
- Action gating by phase and role
- Remote state reconciliation
- Sequenced, single-flight contract submissions
"""

__version__ = "0.1.0"
