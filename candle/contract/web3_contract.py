"""
Web3 Auction Contract - CandleAuction over JSON-RPC.

Uses web3.py's AsyncWeb3 for calls and eth-account for local signing.
Library exceptions are mapped onto the client's error taxonomy:
- ContractLogicError (revert during call or gas estimation) -> RemoteRejectedError
- Web3RPCError / ValueError carrying a node error payload (e.g. insufficient funds) -> RemoteRejectedError
- Anything else from the transport -> TransientError / TransientReadFailure
"""

import asyncio
from typing import Any, Dict, List, Optional

from eth_account import Account
from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError, TransactionNotFound, Web3Exception, Web3RPCError

from candle.contract.abi import CANDLE_AUCTION_ABI
from candle.contract.base import TxReceipt
from candle.core.config import ClientConfig
from candle.core.errors import (
    InvalidInputError,
    RemoteRejectedError,
    TransientError,
    TransientReadFailure,
)
from candle.crypto import bytes_to_hex
from candle.utils.logger import get_logger

logger = get_logger("contract")


def _revert_reason(error: Exception) -> str:
    """Best-effort human reason from a web3 / node error."""
    message = getattr(error, "message", None)
    if message:
        return str(message)
    if error.args:
        first = error.args[0]
        if isinstance(first, dict) and "message" in first:
            return str(first["message"])
        return str(first)
    return type(error).__name__


class Web3AuctionContract:
    """
    CandleAuction client backed by an HTTP JSON-RPC endpoint.
    
    Without a private key the adapter is read-only; write methods then
    raise InvalidInputError before contacting the node.
    """
    
    def __init__(
        self,
        w3: AsyncWeb3,
        address: str,
        private_key: Optional[str] = None,
        reveal_gas_limit: Optional[int] = None,
        receipt_poll_interval: float = 1.0,
    ):
        self.w3 = w3
        self.address = AsyncWeb3.to_checksum_address(address)
        self.contract = w3.eth.contract(address=self.address, abi=CANDLE_AUCTION_ABI)
        self._signer = Account.from_key(private_key) if private_key else None
        self.reveal_gas_limit = reveal_gas_limit
        self.receipt_poll_interval = receipt_poll_interval
    
    @classmethod
    def from_config(cls, config: ClientConfig) -> "Web3AuctionContract":
        """Build an adapter from ClientConfig."""
        w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(config.rpc_url))
        key = config.private_key.get_secret_value() if config.private_key else None
        return cls(
            w3,
            config.contract_address,
            private_key=key,
            reveal_gas_limit=config.reveal_gas_limit,
            receipt_poll_interval=config.receipt_poll_interval,
        )
    
    @property
    def account(self) -> Optional[str]:
        return self._signer.address if self._signer else None
    
    # =========================================================================
    # Reads
    # =========================================================================
    
    async def _call(self, name: str, *args: Any) -> Any:
        try:
            return await getattr(self.contract.functions, name)(*args).call()
        except (Web3Exception, OSError, asyncio.TimeoutError, ValueError) as e:
            raise TransientReadFailure(f"{name}() failed: {_revert_reason(e)}") from e
    
    async def owner(self) -> str:
        return await self._call("owner")
    
    async def get_current_phase(self) -> int:
        return int(await self._call("getCurrentPhase"))
    
    async def random_end_block_requested(self) -> bool:
        return bool(await self._call("randomEndBlockRequested"))
    
    async def random_end_block(self) -> int:
        return int(await self._call("randomEndBlock"))
    
    async def get_all_bidders(self) -> List[str]:
        return list(await self._call("getAllBidders"))
    
    async def get_revealed_bid(self, address: str) -> int:
        return int(await self._call("getRevealedBid", AsyncWeb3.to_checksum_address(address)))
    
    async def get_highest_bidder(self) -> str:
        return await self._call("getHighestBidder")
    
    async def get_highest_bid(self) -> int:
        return int(await self._call("getHighestBid"))
    
    # =========================================================================
    # Writes
    # =========================================================================
    
    async def _transact(
        self,
        name: str,
        *args: Any,
        value: int = 0,
        gas: Optional[int] = None,
    ) -> str:
        if self._signer is None:
            raise InvalidInputError(f"{name} needs a signing key; set PRIVATE_KEY")
        
        params: Dict[str, Any] = {"from": self._signer.address, "value": value}
        if gas is not None:
            params["gas"] = gas
        
        try:
            params["nonce"] = await self.w3.eth.get_transaction_count(self._signer.address, "pending")
            tx = await getattr(self.contract.functions, name)(*args).build_transaction(params)
            signed = self._signer.sign_transaction(tx)
            tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        except ContractLogicError as e:
            raise RemoteRejectedError(reason=_revert_reason(e)) from e
        except (Web3RPCError, ValueError) as e:
            # Node-side refusal (insufficient funds, nonce too low) arrives as RPC error
            raise RemoteRejectedError(reason=_revert_reason(e)) from e
        except (Web3Exception, OSError, asyncio.TimeoutError) as e:
            raise TransientError(f"{name} submission failed: {_revert_reason(e)}") from e
        
        tx_hex = bytes_to_hex(bytes(tx_hash))
        logger.info(f"{name} sent: {tx_hex}")
        return tx_hex
    
    async def start_auction(self, commit_secs: int, reveal_secs: int) -> str:
        return await self._transact("startAuction", commit_secs, reveal_secs)
    
    async def next_phase(self) -> str:
        return await self._transact("nextPhase")
    
    async def request_random_end_block(self) -> str:
        return await self._transact("requestRandomEndBlock")
    
    async def commit_bid(self, commitment_hash: bytes, value_wei: int) -> str:
        return await self._transact("commitBid", commitment_hash, value=value_wei)
    
    async def reveal_bid(self, amount_wei: int, salt: bytes) -> str:
        return await self._transact("revealBid", amount_wei, salt, gas=self.reveal_gas_limit)
    
    async def settle_auction(self) -> str:
        return await self._transact("settleAuction")
    
    async def withdraw(self) -> str:
        return await self._transact("withdraw")
    
    async def wait_for_receipt(self, tx_hash: str) -> TxReceipt:
        """
        Poll until the transaction is mined. No overall timeout.
        
        Raises:
            TransientError: if the node becomes unreachable while waiting
        """
        while True:
            try:
                receipt = await self.w3.eth.get_transaction_receipt(tx_hash)
            except TransactionNotFound:
                await asyncio.sleep(self.receipt_poll_interval)
                continue
            except (Web3Exception, OSError, asyncio.TimeoutError) as e:
                raise TransientError(f"Waiting for {tx_hash} failed: {_revert_reason(e)}") from e
            
            return TxReceipt(
                tx_hash=tx_hash,
                status=int(receipt["status"]),
                block_number=receipt.get("blockNumber"),
                gas_used=receipt.get("gasUsed"),
            )
