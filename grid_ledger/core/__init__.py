"""
Grid Ledger - Core Module

Reference FHE co-processor (TenSEAL BFV), proof signing and the security audit log.
"""
from .fhe_engine import GridLoadFHE, EncryptedLoad
from .proof_signing import (
    ProofSigner,
    ProofVerifier,
    SignedPayload,
    encode_clear_values,
    decode_clear_values,
    bundle_digest,
)
from .coprocessor import LocalCoprocessor, EncryptedInput, CoprocessorNotInitialized
from .security_logger import SecurityLogger, DataType, OperationType

__all__ = [
    'GridLoadFHE', 'EncryptedLoad',
    'ProofSigner', 'ProofVerifier', 'SignedPayload',
    'encode_clear_values', 'decode_clear_values', 'bundle_digest',
    'LocalCoprocessor', 'EncryptedInput', 'CoprocessorNotInitialized',
    'SecurityLogger', 'DataType', 'OperationType',
]
