"""
CandleAuction ABI fragment.

Only the functions the client calls. Phase is an enum in Solidity and is
returned as uint8.
"""

from typing import Any, Dict, List


def _fn(
    name: str,
    inputs: List[Dict[str, str]],
    outputs: List[Dict[str, str]],
    mutability: str,
) -> Dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": [dict(internalType=i["type"], **i) for i in inputs],
        "outputs": [dict(internalType=o["type"], **o) for o in outputs],
        "stateMutability": mutability,
    }


CANDLE_AUCTION_ABI: List[Dict[str, Any]] = [
    # Views
    _fn("owner", [], [{"name": "", "type": "address"}], "view"),
    _fn("getCurrentPhase", [], [{"name": "", "type": "uint8"}], "view"),
    _fn("randomEndBlockRequested", [], [{"name": "", "type": "bool"}], "view"),
    _fn("randomEndBlock", [], [{"name": "", "type": "uint64"}], "view"),
    _fn("getAllBidders", [], [{"name": "", "type": "address[]"}], "view"),
    _fn("getRevealedBid", [{"name": "bidder", "type": "address"}], [{"name": "", "type": "uint256"}], "view"),
    _fn("getHighestBidder", [], [{"name": "", "type": "address"}], "view"),
    _fn("getHighestBid", [], [{"name": "", "type": "uint256"}], "view"),
    # Owner actions
    _fn(
        "startAuction",
        [{"name": "commitDuration", "type": "uint256"}, {"name": "revealDuration", "type": "uint256"}],
        [],
        "nonpayable",
    ),
    _fn("nextPhase", [], [], "nonpayable"),
    _fn("requestRandomEndBlock", [], [], "nonpayable"),
    _fn("settleAuction", [], [], "nonpayable"),
    # Bidder actions
    _fn("commitBid", [{"name": "commitment", "type": "bytes32"}], [], "payable"),
    _fn(
        "revealBid",
        [{"name": "amount", "type": "uint256"}, {"name": "salt", "type": "bytes32"}],
        [],
        "nonpayable",
    ),
    _fn("withdraw", [], [], "nonpayable"),
]
