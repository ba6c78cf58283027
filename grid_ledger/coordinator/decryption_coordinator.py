"""
Decryption Coordinator
======================
Drives self-relayed decryption for one record.

Protocol:
1. Short-circuit: read the record; if already verified, return the ledger's
   cleartext without touching the co-processor
2. Fetch the ciphertext handle bound to the record
3. Co-processor round trip: decrypt the handle, receive bundle + proof
4. On-chain authentication: relay bundle + proof to the ledger, which checks
   the proof itself before accepting the cleartext
5. Return the clear value as a provisional result

A verification lost to a concurrent actor between steps 1 and 4 surfaces as
an ALREADY_VERIFIED revert code and is reported as a successful no-op.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..errors import (
    DecryptionFailedError,
    EncryptionUnavailableError,
    LedgerError,
)
from ..gateways import (
    DecryptionRequest,
    EncryptionGateway,
    LedgerClient,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationOutcome:
    """
    Result of a verification request.

    value is the ledger's cleartext when already_verified came from the
    short-circuit check, the co-processor's (provisional) value after a fresh
    verification, and None when a concurrent verification won the race.
    """
    record_id: str
    value: Optional[int]
    already_verified: bool


class VerificationSubmitter:
    """
    Phase-two hook of a DecryptionRequest, bound to one record.

    Submits the co-processor's bundle and proof to the ledger and waits for
    finality.
    """

    def __init__(self, ledger: LedgerClient, record_id: str):
        self.ledger = ledger
        self.record_id = record_id
        self.submissions = 0

    async def __call__(self, clear_bundle: bytes, proof: bytes) -> None:
        self.submissions += 1
        tx = await self.ledger.submit_verify(self.record_id, clear_bundle, proof)
        await tx.wait()


class DecryptionCoordinator:
    """Runs the two-phase verification protocol against the gateways"""

    def __init__(self, ledger: LedgerClient, encryption: EncryptionGateway):
        self.ledger = ledger
        self.encryption = encryption

    def build_request(self, record_id: str, handle: str) -> DecryptionRequest:
        return DecryptionRequest(
            handles=(handle,),
            contract_address=self.ledger.contract_address,
            on_proof=VerificationSubmitter(self.ledger, record_id),
        )

    async def verify(self, record_id: str) -> VerificationOutcome:
        """
        Request authenticated decryption of a record's load.

        Raises:
            EncryptionUnavailableError: If the co-processor session is not ready
            DecryptionFailedError: For any other failure; nothing is committed
        """
        try:
            record = await self.ledger.get_record(record_id)
        except Exception as e:
            raise DecryptionFailedError(f"Could not read record {record_id}: {e}") from e

        if record.is_verified:
            logger.info("Record %s already verified, skipping decryption", record_id)
            return VerificationOutcome(record_id, record.decrypted_value, already_verified=True)

        try:
            handle = await self.ledger.get_ciphertext_handle(record_id)
            request = self.build_request(record_id, handle)
            result = await self.encryption.decrypt(request)
        except LedgerError as e:
            if e.is_already_verified:
                logger.info("Record %s verified concurrently", record_id)
                return VerificationOutcome(record_id, None, already_verified=True)
            raise DecryptionFailedError(f"{e}") from e
        except EncryptionUnavailableError:
            raise
        except Exception as e:
            raise DecryptionFailedError(f"{e}") from e

        if handle not in result.clear_values:
            raise DecryptionFailedError(f"Co-processor returned no value for handle {handle}")

        return VerificationOutcome(record_id, int(result.clear_values[handle]),
                                   already_verified=False)
