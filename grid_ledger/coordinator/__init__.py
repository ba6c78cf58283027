"""
Grid Ledger - Coordinator Module

Client-side record state machine, decryption protocol and derived analysis.
"""
from .operation_status import OperationStatus, OperationOutcome, StatusBoard, StatusKind
from .decryption_coordinator import DecryptionCoordinator, VerificationOutcome, VerificationSubmitter
from .analysis import GridAnalysis, analyze_grid, compute_scores
from .record_store import RecordStore, Record, LocalDecryption, LoadView, GridStatistics

__all__ = [
    'OperationStatus', 'OperationOutcome', 'StatusBoard', 'StatusKind',
    'DecryptionCoordinator', 'VerificationOutcome', 'VerificationSubmitter',
    'GridAnalysis', 'analyze_grid', 'compute_scores',
    'RecordStore', 'Record', 'LocalDecryption', 'LoadView', 'GridStatistics',
]
