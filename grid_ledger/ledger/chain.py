"""
Local Chain
===========
Asynchronous transaction pipeline in front of the grid data contract.

- A Wallet signs transactions; its approval hook can decline (signer rejection)
- send() schedules the transaction for mining and returns immediately
- The contract call executes only when the transaction is mined, one at a
  time in submission order; effects are durable once wait() returns
- Reverts surface from wait() as ContractRevert
"""

import asyncio
import hashlib
import itertools
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from ..errors import TransactionRejectedError
from .contract import GridDataContract


logger = logging.getLogger(__name__)

WRITE_METHODS = frozenset({"create_record", "verify_decryption"})


@dataclass
class TransactionRequest:
    """Unsigned transaction as shown to the signer"""
    sender: str
    method: str
    args: Tuple[Any, ...]
    nonce: int


@dataclass
class Receipt:
    tx_hash: str
    block_number: int
    method: str
    status: int = 1


class Wallet:
    """
    Connected account.

    Args:
        address: Account address used as msg.sender
        approve: Optional hook deciding whether the user signs a request
    """

    def __init__(self, address: str,
                 approve: Optional[Callable[[TransactionRequest], bool]] = None):
        self.address = address
        self.approve = approve

    def sign(self, request: TransactionRequest) -> None:
        if self.approve is not None and not self.approve(request):
            raise TransactionRejectedError("user rejected transaction")


class PendingTransaction:
    """Submitted transaction; await wait() for finality"""

    def __init__(self, tx_hash: str, task: "asyncio.Task[Receipt]"):
        self.tx_hash = tx_hash
        self._task = task

    async def wait(self) -> Receipt:
        return await self._task


class LocalChain:
    """Single-node chain that mines one transaction at a time"""

    def __init__(self, contract: GridDataContract, block_time: float = 0.0):
        self.contract = contract
        self.block_time = block_time
        self.block_number = 0
        self._lock = asyncio.Lock()
        self._nonces = itertools.count()

    async def send(self, wallet: Wallet, method: str, *args) -> PendingTransaction:
        """
        Sign and submit a contract call.

        Raises:
            TransactionRejectedError: If the wallet declines to sign
            ValueError: If the method is not a contract write
        """
        if method not in WRITE_METHODS:
            raise ValueError(f"Unknown contract method: {method}")

        request = TransactionRequest(
            sender=wallet.address,
            method=method,
            args=args,
            nonce=next(self._nonces),
        )
        wallet.sign(request)

        tx_hash = "0x" + hashlib.sha256(
            f"{request.sender}|{request.method}|{request.nonce}".encode()
        ).hexdigest()
        task = asyncio.get_running_loop().create_task(self._mine(tx_hash, request))
        logger.debug("Submitted %s tx %s", method, tx_hash[:10])
        return PendingTransaction(tx_hash, task)

    async def _mine(self, tx_hash: str, request: TransactionRequest) -> Receipt:
        async with self._lock:
            if self.block_time:
                await asyncio.sleep(self.block_time)
            getattr(self.contract, request.method)(request.sender, *request.args)
            self.block_number += 1
            return Receipt(tx_hash=tx_hash, block_number=self.block_number,
                           method=request.method)
