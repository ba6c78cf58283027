"""
Confidential Grid Load Ledger

Energy-grid load records whose load value is FHE-encrypted on a ledger while
capacity and metadata stay public, with authenticated on-chain decryption.
"""
from .config import GridLedgerConfig
from .errors import ErrorKind, RevertCode, GridLedgerError, LedgerError
from .gateways import EncryptionGateway, LedgerClient, DecryptionRequest, DecryptionResult
from .coordinator import (
    RecordStore,
    Record,
    DecryptionCoordinator,
    OperationOutcome,
    StatusBoard,
    StatusKind,
    analyze_grid,
)
from .session import GridLedgerSession, build_session

__version__ = "1.0.0"

__all__ = [
    'GridLedgerConfig',
    'ErrorKind', 'RevertCode', 'GridLedgerError', 'LedgerError',
    'EncryptionGateway', 'LedgerClient', 'DecryptionRequest', 'DecryptionResult',
    'RecordStore', 'Record', 'DecryptionCoordinator',
    'OperationOutcome', 'StatusBoard', 'StatusKind', 'analyze_grid',
    'GridLedgerSession', 'build_session',
]
