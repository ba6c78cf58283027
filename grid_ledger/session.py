"""
Grid Ledger Session
===================
Wires one client session against the in-process reference collaborators.

Component roles:
- LocalCoprocessor: holds the FHE secret key and signs decryption proofs
- GridDataContract: authoritative store; trusts only the co-processor's key
- LocalChain + Wallet: transaction submission and finality for the account
- RecordStore: the client's reconciled view, owning its StatusBoard
"""

from dataclasses import dataclass
from typing import Callable, Optional

from .config import GridLedgerConfig
from .coordinator.operation_status import StatusBoard
from .coordinator.record_store import RecordStore
from .core.coprocessor import LocalCoprocessor
from .core.proof_signing import ProofVerifier
from .core.security_logger import SecurityLogger
from .gateways import ChainLedgerClient, CoprocessorGateway
from .ledger.chain import LocalChain, TransactionRequest, Wallet
from .ledger.contract import GridDataContract
from .telemetry import RealTimeLoadFeed


@dataclass
class GridLedgerSession:
    config: GridLedgerConfig
    security_logger: SecurityLogger
    coprocessor: LocalCoprocessor
    contract: GridDataContract
    chain: LocalChain
    ledger: ChainLedgerClient
    encryption: CoprocessorGateway
    status: StatusBoard
    store: RecordStore
    feed: RealTimeLoadFeed

    def connect(self, address: str,
                approve: Optional[Callable[[TransactionRequest], bool]] = None) -> Wallet:
        wallet = Wallet(address, approve)
        self.ledger.connect(wallet)
        return wallet

    def disconnect(self) -> None:
        self.ledger.disconnect()


def build_session(config: Optional[GridLedgerConfig] = None) -> GridLedgerSession:
    """
    Build a session from config. The account in config.account_address is
    connected with auto-approve; the co-processor still needs
    store.initialize_encryption().
    """
    config = config or GridLedgerConfig()
    security_logger = SecurityLogger(config.audit_log_file)

    coprocessor = LocalCoprocessor(
        poly_modulus_degree=config.poly_modulus_degree,
        plain_modulus=config.plain_modulus,
        security_logger=security_logger,
    )

    verifier = ProofVerifier()
    verifier.register_key(coprocessor.public_key_pem)
    contract = GridDataContract(config.contract_address, verifier, security_logger)
    chain = LocalChain(contract, block_time=config.block_time_seconds)

    wallet = Wallet(config.account_address) if config.account_address else None
    ledger = ChainLedgerClient(contract, chain, wallet)
    encryption = CoprocessorGateway(coprocessor)

    status = StatusBoard(config.status_success_seconds, config.status_error_seconds)
    store = RecordStore(
        ledger,
        encryption,
        status=status,
        security_logger=security_logger,
        record_tag=config.record_tag,
        id_prefix=config.id_prefix,
    )
    feed = RealTimeLoadFeed(config.realtime_interval_seconds, config.realtime_window)

    return GridLedgerSession(
        config=config,
        security_logger=security_logger,
        coprocessor=coprocessor,
        contract=contract,
        chain=chain,
        ledger=ledger,
        encryption=encryption,
        status=status,
        store=store,
        feed=feed,
    )
