"""
Decryption Coordinator Tests
============================
Two-phase verification protocol against fake gateways.
"""

import pytest

from grid_ledger.coordinator.decryption_coordinator import (
    DecryptionCoordinator,
    VerificationSubmitter,
)
from grid_ledger.errors import (
    DecryptionFailedError,
    EncryptionUnavailableError,
    LedgerError,
    RevertCode,
)


@pytest.fixture
def coordinator(ledger, encryption):
    return DecryptionCoordinator(ledger, encryption)


@pytest.fixture
def pending(ledger, encryption):
    ledger.add("grid-1", handle="0xh1")
    encryption.plain["0xh1"] = 600
    return "grid-1"


class TestDecryptionCoordinator:

    def test_build_request(self, coordinator, ledger):
        """Test build request"""
        request = coordinator.build_request("grid-1", "0xh1")

        assert request.handles == ("0xh1",)
        assert request.contract_address == ledger.contract_address
        assert isinstance(request.on_proof, VerificationSubmitter)
        assert request.on_proof.record_id == "grid-1"

    def test_fresh_verification(self, run, coordinator, ledger, encryption, pending):
        """Test fresh verification"""
        outcome = run(coordinator.verify(pending))

        assert outcome.value == 600
        assert outcome.already_verified is False
        assert ledger.rows[pending]['is_verified'] is True
        assert ledger.verify_submissions == 1
        assert encryption.decrypt_calls == 1

    def test_short_circuit_skips_coprocessor(self, run, coordinator, ledger, encryption):
        """Test short circuit skips coprocessor"""
        ledger.add("grid-2", verified=True, value=321)

        outcome = run(coordinator.verify("grid-2"))

        assert outcome.already_verified is True
        assert outcome.value == 321
        assert encryption.decrypt_calls == 0
        assert ledger.verify_submissions == 0

    def test_lost_race_is_already_verified(self, run, coordinator, ledger, encryption, pending):
        """Test lost race is already verified"""
        def concurrent_actor():
            ledger.rows[pending]['is_verified'] = True
            ledger.rows[pending]['decrypted_value'] = 600

        encryption.before_proof = concurrent_actor

        outcome = run(coordinator.verify(pending))

        assert outcome.already_verified is True
        assert outcome.value is None
        assert ledger.verify_submissions == 1

    def test_unavailable_gateway_propagates(self, run, coordinator, encryption, pending):
        """Test unavailable gateway propagates"""
        encryption.ready = False
        with pytest.raises(EncryptionUnavailableError):
            run(coordinator.verify(pending))

    def test_rejected_proof_is_decryption_failure(self, run, coordinator, ledger, pending):
        """Test rejected proof is decryption failure"""
        ledger.finality_error = LedgerError(
            "bad proof", revert_code=RevertCode.INVALID_DECRYPTION_PROOF
        )
        with pytest.raises(DecryptionFailedError):
            run(coordinator.verify(pending))
        assert ledger.rows[pending]['is_verified'] is False

    def test_missing_value_is_decryption_failure(self, run, coordinator, encryption, pending):
        """Test missing value is decryption failure"""
        encryption.omit_values = True
        with pytest.raises(DecryptionFailedError):
            run(coordinator.verify(pending))

    def test_unreadable_record(self, run, coordinator, encryption):
        """Test unreadable record"""
        with pytest.raises(DecryptionFailedError):
            run(coordinator.verify("missing"))
        assert encryption.decrypt_calls == 0

    def test_submitter_counts_submissions(self, run, ledger, pending):
        """Test submitter counts submissions"""
        submitter = VerificationSubmitter(ledger, pending)
        run(submitter(b"[600]", b"proof"))

        assert submitter.submissions == 1
        assert ledger.rows[pending]['decrypted_value'] == 600
