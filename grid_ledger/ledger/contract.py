"""
Grid Data Contract
==================
Authoritative in-memory store for encrypted grid records.

The contract is the single source of truth for:
- which records exist and their public fields
- the ciphertext handle bound to each record
- whether a record's load has been verified, and its cleartext

Cleartext is accepted only with a decryption proof signed by a trusted
co-processor key, bound to this contract, to the record's handle, and to the
exact bundle bytes submitted.
"""

import time
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional

from ..core.proof_signing import (
    ProofVerifier,
    SignedPayload,
    bundle_digest,
    decode_clear_values,
)
from ..core.security_logger import SecurityLogger
from ..errors import ContractRevert, RevertCode


@dataclass
class ContractRecord:
    """Stored record, as returned by get_record()"""
    name: str
    creator: str
    timestamp: int
    public_value1: int
    public_value2: int
    description: str
    encrypted_value: str
    is_verified: bool = False
    decrypted_value: int = 0


class GridDataContract:
    """
    Ledger contract for confidential grid load records.

    Calls that mutate state take the sender address first, as a chain would
    supply msg.sender.
    """

    def __init__(self,
                 address: str,
                 verifier: ProofVerifier,
                 security_logger: Optional[SecurityLogger] = None,
                 clock: Callable[[], float] = time.time):
        self.address = address
        self.verifier = verifier
        self.security_logger = security_logger
        self._clock = clock
        self._records: Dict[str, ContractRecord] = {}
        self._ids: List[str] = []

    # ==================== VIEWS ====================

    def get_all_ids(self) -> List[str]:
        return list(self._ids)

    def get_record(self, record_id: str) -> ContractRecord:
        return replace(self._lookup(record_id))

    def get_encrypted_value(self, record_id: str) -> str:
        return self._lookup(record_id).encrypted_value

    def _lookup(self, record_id: str) -> ContractRecord:
        record = self._records.get(record_id)
        if record is None:
            raise ContractRevert(RevertCode.UNKNOWN_RECORD, f"Record {record_id} does not exist")
        return record

    # ==================== MUTATIONS ====================

    def create_record(self,
                      sender: str,
                      record_id: str,
                      name: str,
                      encrypted_value: str,
                      input_proof: bytes,
                      public_value1: int,
                      public_value2: int,
                      description: str) -> None:
        if record_id in self._records:
            raise ContractRevert(RevertCode.DUPLICATE_RECORD, "Business data already exists")

        self._check_input_proof(sender, encrypted_value, input_proof)

        self._records[record_id] = ContractRecord(
            name=name,
            creator=sender,
            timestamp=int(self._clock()),
            public_value1=public_value1,
            public_value2=public_value2,
            description=description,
            encrypted_value=encrypted_value,
        )
        self._ids.append(record_id)

    def verify_decryption(self,
                          sender: str,
                          record_id: str,
                          clear_bundle: bytes,
                          decryption_proof: bytes) -> None:
        """
        Accept a co-processor decryption for a record.

        Reverts with ALREADY_VERIFIED if a previous verification won, and with
        INVALID_DECRYPTION_PROOF if the proof does not authenticate the bundle.
        """
        record = self._lookup(record_id)
        if record.is_verified:
            raise ContractRevert(RevertCode.ALREADY_VERIFIED, "Data already verified")

        ok, reason = self._check_decryption_proof(record, clear_bundle, decryption_proof)
        if self.security_logger:
            self.security_logger.log_ledger_verification(record_id, ok, reason)
        if not ok:
            raise ContractRevert(RevertCode.INVALID_DECRYPTION_PROOF, reason)

        record.decrypted_value = decode_clear_values(clear_bundle)[0]
        record.is_verified = True

    # ==================== PROOF CHECKS ====================

    def _parse_proof(self, raw: bytes, code: RevertCode) -> SignedPayload:
        try:
            return SignedPayload.from_bytes(raw)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ContractRevert(code, f"Malformed proof: {e}") from e

    def _check_input_proof(self, sender: str, handle: str, raw_proof: bytes) -> None:
        payload = self._parse_proof(raw_proof, RevertCode.INVALID_INPUT_PROOF)
        ok, reason = self.verifier.verify(payload)
        if not ok:
            raise ContractRevert(RevertCode.INVALID_INPUT_PROOF, reason)

        expected = {
            'kind': 'input',
            'handle': handle,
            'contract': self.address.lower(),
            'user': sender.lower(),
        }
        if payload.data != expected:
            raise ContractRevert(RevertCode.INVALID_INPUT_PROOF,
                                 "Input proof is not bound to this handle, contract and sender")

    def _check_decryption_proof(self, record: ContractRecord,
                                clear_bundle: bytes, raw_proof: bytes):
        try:
            payload = SignedPayload.from_bytes(raw_proof)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            return False, f"Malformed proof: {e}"

        ok, reason = self.verifier.verify(payload)
        if not ok:
            return False, reason

        data = payload.data
        if data.get('kind') != 'decryption':
            return False, "Not a decryption proof"
        if data.get('contract') != self.address.lower():
            return False, "Proof bound to another contract"
        if data.get('handles') != [record.encrypted_value]:
            return False, "Proof does not cover this record's handle"
        if data.get('bundle_sha256') != bundle_digest(clear_bundle):
            return False, "Clear values do not match proof"

        try:
            values = decode_clear_values(clear_bundle)
        except ValueError as e:
            return False, str(e)
        if len(values) != 1:
            return False, "Expected exactly one clear value"

        return True, "Decryption proof valid"
