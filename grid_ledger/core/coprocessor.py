"""
Local FHE Co-processor
======================
In-process stand-in for the FHE co-processor network.

Trust split:
- Inputs are encrypted with the PUBLIC context only, as a client would
- Only the co-processor's PRIVATE engine decrypts, and only when a
  verification is requested
- Every decryption is attested with an ECDSA proof that the ledger checks
  before accepting the cleartext

Surface:
- initialize()
- encrypt_integer(contract, user, value) -> EncryptedInput
- request_decryption(handles, contract, on_proof_ready) -> {handle: value}
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional

from .fhe_engine import GridLoadFHE, EncryptedLoad
from .proof_signing import (
    ProofSigner,
    SignedPayload,
    bundle_digest,
    encode_clear_values,
)
from .security_logger import SecurityLogger


logger = logging.getLogger(__name__)

ProofCallback = Callable[[bytes, bytes], Awaitable[None]]


@dataclass
class EncryptedInput:
    """Handle + input proof returned to the client after encryption"""
    handle: str
    proof: bytes


@dataclass
class _RegisteredCiphertext:
    encrypted: EncryptedLoad
    contract: str
    user: str


class CoprocessorNotInitialized(RuntimeError):
    pass


def compute_handle(ciphertext: bytes, contract: str, user: str) -> str:
    digest = hashlib.sha256(ciphertext + b"|" + contract.lower().encode() +
                            b"|" + user.lower().encode())
    return "0x" + digest.hexdigest()


class LocalCoprocessor:
    """
    Reference co-processor backed by TenSEAL BFV.

    Handles are only resolvable here and by the ledger; a client holding a
    handle learns nothing about the value behind it.
    """

    def __init__(self,
                 poly_modulus_degree: int = 4096,
                 plain_modulus: int = 1032193,
                 security_logger: Optional[SecurityLogger] = None):
        self.poly_modulus_degree = poly_modulus_degree
        self.plain_modulus = plain_modulus
        self.security_logger = security_logger

        self._fhe: Optional[GridLoadFHE] = None
        self._public_fhe: Optional[GridLoadFHE] = None
        self._signer = ProofSigner()
        self._handles: Dict[str, _RegisteredCiphertext] = {}

    @property
    def is_initialized(self) -> bool:
        return self._fhe is not None

    @property
    def public_key_pem(self) -> str:
        """Key the ledger registers to trust this co-processor's proofs"""
        return self._signer.get_public_key_pem()

    async def initialize(self) -> None:
        """Generate keys. Calling again on an initialized session is a no-op."""
        if self._fhe is not None:
            return
        fhe = GridLoadFHE(self.poly_modulus_degree, self.plain_modulus)
        self._public_fhe = GridLoadFHE.from_context(
            fhe.get_public_context(),
            poly_modulus_degree=self.poly_modulus_degree,
            plain_modulus=self.plain_modulus,
        )
        self._fhe = fhe
        logger.info("Co-processor session initialized (context %s)", fhe.get_context_hash())

    def _require_initialized(self):
        if self._fhe is None:
            raise CoprocessorNotInitialized("FHE co-processor session is not initialized")

    async def encrypt_integer(self, contract_address: str, user_address: str,
                              value: int) -> EncryptedInput:
        """
        Encrypt a value for a contract and register its handle.

        Raises:
            CoprocessorNotInitialized: If initialize() has not completed
            ValueError: If the value is outside the encryptable range
        """
        self._require_initialized()

        encrypted = self._public_fhe.encrypt_load(value)
        handle = compute_handle(encrypted.ciphertext, contract_address, user_address)
        self._handles[handle] = _RegisteredCiphertext(encrypted, contract_address, user_address)

        proof = self._signer.sign_payload({
            'kind': 'input',
            'handle': handle,
            'contract': contract_address.lower(),
            'user': user_address.lower(),
        })

        if self.security_logger:
            self.security_logger.log_client_encrypt(contract_address, handle)

        return EncryptedInput(handle=handle, proof=proof.to_bytes())

    async def request_decryption(self,
                                 handles: List[str],
                                 contract_address: str,
                                 on_proof_ready: ProofCallback) -> Dict[str, int]:
        """
        Decrypt handles and relay the attested result through on_proof_ready.

        The callback performs the ledger submission; its failure aborts the
        request and propagates to the caller unchanged.

        Raises:
            CoprocessorNotInitialized: If initialize() has not completed
            KeyError: If a handle is unknown or bound to another contract
        """
        self._require_initialized()

        values = []
        for handle in handles:
            registered = self._handles.get(handle)
            if registered is None or registered.contract.lower() != contract_address.lower():
                raise KeyError(f"Unknown ciphertext handle {handle}")
            values.append(self._fhe.decrypt_load(registered.encrypted))

        if self.security_logger:
            self.security_logger.log_coprocessor_decrypt(len(handles))

        bundle = encode_clear_values(values)
        proof: SignedPayload = self._signer.sign_payload({
            'kind': 'decryption',
            'contract': contract_address.lower(),
            'handles': list(handles),
            'bundle_sha256': bundle_digest(bundle),
        })

        await on_proof_ready(bundle, proof.to_bytes())

        return dict(zip(handles, values))
