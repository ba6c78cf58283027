"""
Proof Signing Module
====================
ECDSA attestations issued by the co-processor and checked by the ledger.

Two kinds of payload are signed:
- input proofs: bind a ciphertext handle to a contract and requester
- decryption proofs: bind a clear-values bundle to the handles it decrypts

The clear-values bundle is canonical JSON so the ledger can recompute its
digest byte for byte.
"""

import base64
import hashlib
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec


ALGORITHM = "ECDSA-SHA256"


def canonical_json(data: Dict[str, Any]) -> bytes:
    return json.dumps(data, sort_keys=True, separators=(',', ':')).encode('utf-8')


def encode_clear_values(values: List[int]) -> bytes:
    """Encode decrypted values, in handle order, as the on-chain bundle"""
    return json.dumps([int(v) for v in values], separators=(',', ':')).encode('utf-8')


def decode_clear_values(bundle: bytes) -> List[int]:
    values = json.loads(bundle.decode('utf-8'))
    if not isinstance(values, list) or not all(isinstance(v, int) for v in values):
        raise ValueError("Malformed clear-values bundle")
    return values


def bundle_digest(bundle: bytes) -> str:
    return hashlib.sha256(bundle).hexdigest()


@dataclass
class SignedPayload:
    """Container for a signed attestation"""
    data: Dict[str, Any]
    signature: str
    public_key_id: str
    timestamp: str
    algorithm: str = ALGORITHM

    def to_dict(self) -> dict:
        return {
            "data": self.data,
            "signature": self.signature,
            "public_key_id": self.public_key_id,
            "timestamp": self.timestamp,
            "algorithm": self.algorithm
        }

    @classmethod
    def from_dict(cls, d: dict) -> 'SignedPayload':
        return cls(
            data=d["data"],
            signature=d["signature"],
            public_key_id=d["public_key_id"],
            timestamp=d["timestamp"],
            algorithm=d.get("algorithm", ALGORITHM)
        )

    def to_bytes(self) -> bytes:
        """Wire form passed to the ledger as a proof argument"""
        return canonical_json(self.to_dict())

    @classmethod
    def from_bytes(cls, raw: bytes) -> 'SignedPayload':
        return cls.from_dict(json.loads(raw.decode('utf-8')))


def _signing_message(data: Dict[str, Any], timestamp: str) -> bytes:
    return canonical_json(data) + b"|" + timestamp.encode('utf-8')


def _key_id(public_key: ec.EllipticCurvePublicKey) -> str:
    pub_bytes = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    )
    return hashlib.sha256(pub_bytes).hexdigest()[:8]


class ProofSigner:
    """Holds the co-processor's signing key"""

    def __init__(self, private_key: Optional[ec.EllipticCurvePrivateKey] = None):
        self.private_key = private_key or ec.generate_private_key(ec.SECP256R1())
        self.public_key = self.private_key.public_key()
        self.public_key_id = _key_id(self.public_key)

    def get_public_key_pem(self) -> str:
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo
        ).decode('utf-8')

    def sign_payload(self, data: Dict[str, Any]) -> SignedPayload:
        timestamp = datetime.now().isoformat()
        signature = self.private_key.sign(
            _signing_message(data, timestamp),
            ec.ECDSA(hashes.SHA256())
        )
        return SignedPayload(
            data=data,
            signature=base64.b64encode(signature).decode('utf-8'),
            public_key_id=self.public_key_id,
            timestamp=timestamp
        )


class ProofVerifier:
    """
    Ledger-side signature check.

    Trusts exactly the co-processor keys registered with it.
    """

    def __init__(self):
        self.public_keys: Dict[str, ec.EllipticCurvePublicKey] = {}

    def register_key(self, public_key_pem: str) -> str:
        public_key = serialization.load_pem_public_key(public_key_pem.encode('utf-8'))
        key_id = _key_id(public_key)
        self.public_keys[key_id] = public_key
        return key_id

    def verify(self, payload: SignedPayload) -> Tuple[bool, str]:
        """
        Returns:
            (is_valid, message)
        """
        public_key = self.public_keys.get(payload.public_key_id)
        if public_key is None:
            return False, f"Unknown signing key: {payload.public_key_id}"

        if payload.algorithm != ALGORITHM:
            return False, f"Unsupported algorithm: {payload.algorithm}"

        try:
            signature = base64.b64decode(payload.signature)
        except ValueError as e:
            return False, f"Invalid signature encoding: {e}"

        try:
            public_key.verify(
                signature,
                _signing_message(payload.data, payload.timestamp),
                ec.ECDSA(hashes.SHA256())
            )
            return True, "Signature valid"
        except InvalidSignature:
            return False, "Invalid signature"
