"""
Gateways
========
Interface contracts for the two external collaborators, plus adapters for
the in-process reference implementations.

EncryptionGateway
- encrypt(target_contract, requester, value) -> EncryptedInput
- decrypt(DecryptionRequest) -> DecryptionResult; the gateway invokes
  request.on_proof to perform the ledger submission as part of the same
  logical operation

LedgerClient
- reads:  list_ids(), get_record(id), get_ciphertext_handle(id)
- writes: submit_create(call), submit_verify(id, bundle, proof); both return
  a TransactionHandle whose wait() must complete before effects are durable
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .core.coprocessor import (
    CoprocessorNotInitialized,
    EncryptedInput,
    LocalCoprocessor,
    ProofCallback,
)
from .errors import (
    ContractRevert,
    EncryptionFailedError,
    EncryptionUnavailableError,
    LedgerError,
    NotConnectedError,
)
from .ledger.chain import LocalChain, PendingTransaction, Receipt, Wallet
from .ledger.contract import GridDataContract


@dataclass(frozen=True)
class LedgerRecord:
    """Public view of a contract record"""
    name: str
    creator: str
    timestamp: int
    public_value1: int
    public_value2: int
    description: str
    is_verified: bool
    decrypted_value: int


@dataclass(frozen=True)
class CreateRecordCall:
    record_id: str
    name: str
    encrypted: EncryptedInput
    public_value1: int
    public_value2: int
    description: str


@dataclass(frozen=True)
class DecryptionRequest:
    """
    Two-phase decryption protocol value.

    Phase one is the co-processor round trip over `handles`; phase two is
    `on_proof(clear_bundle, proof)`, which authenticates the result on the ledger.
    """
    handles: Tuple[str, ...]
    contract_address: str
    on_proof: ProofCallback


@dataclass(frozen=True)
class DecryptionResult:
    clear_values: Dict[str, int]


class TransactionHandle(ABC):
    tx_hash: str

    @abstractmethod
    async def wait(self) -> Receipt:
        """Block until the transaction is final."""


class EncryptionGateway(ABC):

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        ...

    @abstractmethod
    async def initialize(self) -> None:
        ...

    @abstractmethod
    async def encrypt(self, target_contract: str, requester: str, value: int) -> EncryptedInput:
        """
        Raises:
            EncryptionUnavailableError: If the co-processor session is not ready
            EncryptionFailedError: For any other encryption failure
        """

    @abstractmethod
    async def decrypt(self, request: DecryptionRequest) -> DecryptionResult:
        """
        Raises:
            EncryptionUnavailableError: If the co-processor session is not ready
        Failures of request.on_proof propagate unchanged.
        """


class LedgerClient(ABC):

    @property
    @abstractmethod
    def contract_address(self) -> str:
        ...

    @property
    @abstractmethod
    def account(self) -> Optional[str]:
        """Connected account address, or None"""

    @abstractmethod
    async def list_ids(self) -> List[str]:
        ...

    @abstractmethod
    async def get_record(self, record_id: str) -> LedgerRecord:
        ...

    @abstractmethod
    async def get_ciphertext_handle(self, record_id: str) -> str:
        ...

    @abstractmethod
    async def submit_create(self, call: CreateRecordCall) -> TransactionHandle:
        ...

    @abstractmethod
    async def submit_verify(self, record_id: str, clear_bundle: bytes,
                            proof: bytes) -> TransactionHandle:
        ...


# ==================== REFERENCE ADAPTERS ====================


class CoprocessorGateway(EncryptionGateway):
    """EncryptionGateway over the in-process LocalCoprocessor"""

    def __init__(self, coprocessor: LocalCoprocessor):
        self.coprocessor = coprocessor

    @property
    def is_ready(self) -> bool:
        return self.coprocessor.is_initialized

    async def initialize(self) -> None:
        await self.coprocessor.initialize()

    async def encrypt(self, target_contract: str, requester: str, value: int) -> EncryptedInput:
        if not self.coprocessor.is_initialized:
            raise EncryptionUnavailableError("FHE co-processor session is not initialized")
        try:
            return await self.coprocessor.encrypt_integer(target_contract, requester, value)
        except Exception as e:
            raise EncryptionFailedError(f"Encryption failed: {e}") from e

    async def decrypt(self, request: DecryptionRequest) -> DecryptionResult:
        try:
            clear_values = await self.coprocessor.request_decryption(
                list(request.handles), request.contract_address, request.on_proof
            )
        except CoprocessorNotInitialized as e:
            raise EncryptionUnavailableError(str(e)) from e
        return DecryptionResult(clear_values=clear_values)


class _ChainTransaction(TransactionHandle):

    def __init__(self, pending: PendingTransaction):
        self.tx_hash = pending.tx_hash
        self._pending = pending

    async def wait(self) -> Receipt:
        try:
            return await self._pending.wait()
        except ContractRevert as e:
            raise LedgerError(f"Transaction reverted: {e.message}", revert_code=e.code) from e


class ChainLedgerClient(LedgerClient):
    """LedgerClient over the in-memory contract and local chain"""

    def __init__(self, contract: GridDataContract, chain: LocalChain,
                 wallet: Optional[Wallet] = None):
        self.contract = contract
        self.chain = chain
        self.wallet = wallet

    @property
    def contract_address(self) -> str:
        return self.contract.address

    @property
    def account(self) -> Optional[str]:
        return self.wallet.address if self.wallet else None

    def connect(self, wallet: Wallet) -> None:
        self.wallet = wallet

    def disconnect(self) -> None:
        self.wallet = None

    async def list_ids(self) -> List[str]:
        return self.contract.get_all_ids()

    async def get_record(self, record_id: str) -> LedgerRecord:
        try:
            stored = self.contract.get_record(record_id)
        except ContractRevert as e:
            raise LedgerError(e.message, revert_code=e.code) from e
        return LedgerRecord(
            name=stored.name,
            creator=stored.creator,
            timestamp=stored.timestamp,
            public_value1=stored.public_value1,
            public_value2=stored.public_value2,
            description=stored.description,
            is_verified=stored.is_verified,
            decrypted_value=stored.decrypted_value,
        )

    async def get_ciphertext_handle(self, record_id: str) -> str:
        try:
            return self.contract.get_encrypted_value(record_id)
        except ContractRevert as e:
            raise LedgerError(e.message, revert_code=e.code) from e

    async def _send(self, method: str, *args) -> TransactionHandle:
        if self.wallet is None:
            raise NotConnectedError("Please connect wallet first")
        pending = await self.chain.send(self.wallet, method, *args)
        return _ChainTransaction(pending)

    async def submit_create(self, call: CreateRecordCall) -> TransactionHandle:
        return await self._send(
            "create_record",
            call.record_id,
            call.name,
            call.encrypted.handle,
            call.encrypted.proof,
            call.public_value1,
            call.public_value2,
            call.description,
        )

    async def submit_verify(self, record_id: str, clear_bundle: bytes,
                            proof: bytes) -> TransactionHandle:
        return await self._send("verify_decryption", record_id, clear_bundle, proof)
