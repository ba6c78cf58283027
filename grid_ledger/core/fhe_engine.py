"""
FHE Engine for Confidential Grid Load
=====================================
TenSEAL BFV scheme for integer load measurements.

Cryptographic Justification:
- BFV chosen over CKKS: load values are whole units (MW) and verification
  must reproduce the exact integer the participant submitted
- Decryption is exact modulo plain_modulus, so values must stay below
  plain_modulus / 2 to avoid wrap-around into negatives

Security Parameters:
- poly_modulus_degree: 4096 → 128-bit security for the default coefficient chain
- plain_modulus: 1032193 → batching-friendly prime, loads up to 516095
"""

import base64
import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any

import tenseal as ts


@dataclass
class EncryptedLoad:
    """
    Wrapper for an encrypted load measurement.

    The ciphertext is a serialized single-slot BFV vector.
    """
    ciphertext: bytes
    checksum: str
    created_at: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'ciphertext': base64.b64encode(self.ciphertext).decode('utf-8'),
            'checksum': self.checksum,
            'created_at': self.created_at,
            'metadata': self.metadata
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'EncryptedLoad':
        return cls(
            ciphertext=base64.b64decode(data['ciphertext']),
            checksum=data['checksum'],
            created_at=data['created_at'],
            metadata=data.get('metadata', {})
        )

    def get_size_kb(self) -> float:
        return len(self.ciphertext) / 1024


def _checksum(ciphertext: bytes) -> str:
    return hashlib.sha256(ciphertext).hexdigest()[:12]


class GridLoadFHE:
    """
    BFV engine used by the reference co-processor.

    A private engine (with secret key) decrypts for verification requests.
    A public engine, built from get_public_context(), can only encrypt.
    """

    def __init__(self,
                 poly_modulus_degree: int = 4096,
                 plain_modulus: int = 1032193):
        """
        Args:
            poly_modulus_degree: Polynomial ring degree (power of 2)
            plain_modulus: Plaintext modulus, prime and = 1 mod 2*degree
        """
        self.poly_modulus_degree = poly_modulus_degree
        self.plain_modulus = plain_modulus

        self.context = ts.context(
            ts.SCHEME_TYPE.BFV,
            poly_modulus_degree=poly_modulus_degree,
            plain_modulus=plain_modulus
        )

        self.created_at = datetime.now().isoformat()
        self._operation_count = 0

    @property
    def max_value(self) -> int:
        """Largest load that decrypts without wrap-around"""
        return self.plain_modulus // 2 - 1

    def get_public_context(self) -> bytes:
        """Context without secret key: can encrypt, cannot decrypt"""
        public_ctx = self.context.copy()
        public_ctx.make_context_public()
        return public_ctx.serialize()

    def get_context_hash(self) -> str:
        return hashlib.sha256(self.get_public_context()).hexdigest()[:16]

    def is_private(self) -> bool:
        return self.context.is_private()

    @classmethod
    def from_context(cls, context_bytes: bytes,
                     poly_modulus_degree: int = 4096,
                     plain_modulus: int = 1032193) -> 'GridLoadFHE':
        """Rebuild an engine from a serialized (public or secret) context"""
        engine = cls.__new__(cls)
        engine.context = ts.context_from(context_bytes)
        engine.poly_modulus_degree = poly_modulus_degree
        engine.plain_modulus = plain_modulus
        engine.created_at = datetime.now().isoformat()
        engine._operation_count = 0
        return engine

    # ==================== ENCRYPTION / DECRYPTION ====================

    def encrypt_load(self, value: int) -> EncryptedLoad:
        """
        Encrypt a single load value.

        Raises:
            ValueError: If the value is negative or would wrap the plaintext modulus
        """
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"Load must be an integer, got {type(value).__name__}")
        if value < 0 or value > self.max_value:
            raise ValueError(f"Load {value} outside encryptable range [0, {self.max_value}]")

        encrypted = ts.bfv_vector(self.context, [value])
        ciphertext = encrypted.serialize()

        self._operation_count += 1

        return EncryptedLoad(
            ciphertext=ciphertext,
            checksum=_checksum(ciphertext),
            created_at=datetime.now().isoformat(),
            metadata={'operation_id': self._operation_count}
        )

    def decrypt_load(self, encrypted: EncryptedLoad) -> int:
        """
        Decrypt a load value. Only the co-processor's private engine can do this.

        Raises:
            ValueError: If context has no secret key or the checksum does not match
        """
        if not self.context.is_private():
            raise ValueError("Cannot decrypt: context does not contain secret key.")

        if _checksum(encrypted.ciphertext) != encrypted.checksum:
            raise ValueError("Ciphertext integrity check failed - data may be corrupted")

        vector = ts.bfv_vector_from(self.context, encrypted.ciphertext)
        return int(vector.decrypt()[0])

    def get_info(self) -> Dict[str, Any]:
        return {
            'scheme': 'BFV',
            'poly_modulus_degree': self.poly_modulus_degree,
            'plain_modulus': self.plain_modulus,
            'has_secret_key': self.is_private(),
            'operations': self._operation_count,
        }
