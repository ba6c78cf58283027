"""
Error Taxonomy
==============
Structured failures for the encrypted-record lifecycle.

Every exception carries an ErrorKind so the record store can turn it into a
user-visible OperationStatus without inspecting message text. Contract-level
failures carry a RevertCode for the same reason (the "already verified" race
is detected by code, not by string matching).
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Client-visible failure classes"""
    NOT_CONNECTED = "not_connected"
    ENCRYPTION_UNAVAILABLE = "encryption_unavailable"
    ENCRYPTION_FAILED = "encryption_failed"
    TRANSACTION_REJECTED = "transaction_rejected"
    LEDGER_ERROR = "ledger_error"
    DECRYPTION_FAILED = "decryption_failed"
    ALREADY_VERIFIED = "already_verified"    # success-shaped, never raised
    INVALID_INPUT = "invalid_input"


class RevertCode(Enum):
    """Reasons the ledger contract refuses a call"""
    UNKNOWN_RECORD = "unknown_record"
    DUPLICATE_RECORD = "duplicate_record"
    INVALID_INPUT_PROOF = "invalid_input_proof"
    INVALID_DECRYPTION_PROOF = "invalid_decryption_proof"
    ALREADY_VERIFIED = "already_verified"


class GridLedgerError(Exception):
    kind: ErrorKind = ErrorKind.LEDGER_ERROR


class NotConnectedError(GridLedgerError):
    kind = ErrorKind.NOT_CONNECTED


class InvalidInputError(GridLedgerError):
    kind = ErrorKind.INVALID_INPUT


class EncryptionUnavailableError(GridLedgerError):
    kind = ErrorKind.ENCRYPTION_UNAVAILABLE


class EncryptionFailedError(GridLedgerError):
    kind = ErrorKind.ENCRYPTION_FAILED


class TransactionRejectedError(GridLedgerError):
    kind = ErrorKind.TRANSACTION_REJECTED


class DecryptionFailedError(GridLedgerError):
    kind = ErrorKind.DECRYPTION_FAILED


class LedgerError(GridLedgerError):
    """Submission or finality failure, optionally tagged with a revert code"""
    kind = ErrorKind.LEDGER_ERROR

    def __init__(self, message: str, revert_code: Optional[RevertCode] = None):
        super().__init__(message)
        self.revert_code = revert_code

    @property
    def is_already_verified(self) -> bool:
        return self.revert_code is RevertCode.ALREADY_VERIFIED


class ContractRevert(Exception):
    """Raised by the ledger contract when it refuses a call"""

    def __init__(self, code: RevertCode, message: str = ""):
        super().__init__(message or code.value)
        self.code = code
        self.message = message or code.value
