"""
Shared fixtures: in-memory gateways with call counting and failure injection.
"""

import asyncio
import itertools
from typing import Dict, List, Optional

import pytest

from grid_ledger.core.coprocessor import EncryptedInput
from grid_ledger.core.proof_signing import decode_clear_values, encode_clear_values
from grid_ledger.errors import (
    EncryptionUnavailableError,
    LedgerError,
    RevertCode,
    TransactionRejectedError,
)
from grid_ledger.gateways import (
    CreateRecordCall,
    DecryptionRequest,
    DecryptionResult,
    EncryptionGateway,
    LedgerClient,
    LedgerRecord,
    TransactionHandle,
)


ACCOUNT = "0xAbC0000000000000000000000000000000000001"
CONTRACT = "0xC0000000000000000000000000000000000000DE"


class FakeTransaction(TransactionHandle):
    """Applies its effect when waited on, like a mined transaction"""

    def __init__(self, effect):
        self.tx_hash = "0xfake"
        self._effect = effect

    async def wait(self):
        self._effect()
        return None


class FakeEncryptionGateway(EncryptionGateway):

    def __init__(self):
        self.ready = True
        self.plain: Dict[str, int] = {}
        self.encrypt_calls = 0
        self.decrypt_calls = 0
        self.encrypt_error: Optional[Exception] = None
        self.decrypt_error: Optional[Exception] = None
        self.omit_values = False
        self.before_proof = None
        self._handles = itertools.count(1)

    @property
    def is_ready(self) -> bool:
        return self.ready

    async def initialize(self) -> None:
        self.ready = True

    async def encrypt(self, target_contract, requester, value):
        self.encrypt_calls += 1
        if not self.ready:
            raise EncryptionUnavailableError("not initialized")
        if self.encrypt_error is not None:
            raise self.encrypt_error
        handle = f"0xhandle{next(self._handles)}"
        self.plain[handle] = value
        return EncryptedInput(handle=handle, proof=b"input-proof")

    async def decrypt(self, request: DecryptionRequest) -> DecryptionResult:
        self.decrypt_calls += 1
        if not self.ready:
            raise EncryptionUnavailableError("not initialized")
        if self.decrypt_error is not None:
            raise self.decrypt_error

        values = [self.plain[h] for h in request.handles]
        if self.before_proof is not None:
            self.before_proof()
        await request.on_proof(encode_clear_values(values), b"decryption-proof")

        if self.omit_values:
            return DecryptionResult(clear_values={})
        return DecryptionResult(clear_values=dict(zip(request.handles, values)))


class FakeLedgerClient(LedgerClient):

    def __init__(self, account: Optional[str] = ACCOUNT):
        self._account = account
        self.rows: Dict[str, dict] = {}
        self.order: List[str] = []
        self.stale_reads: Dict[str, LedgerRecord] = {}
        self.fail_ids = set()
        self.list_error: Optional[Exception] = None
        self.list_gate: Optional[asyncio.Event] = None
        self.reject = False
        self.finality_error: Optional[Exception] = None
        self.drop_verifications = False
        self.create_submissions = 0
        self.verify_submissions = 0

    @property
    def contract_address(self) -> str:
        return CONTRACT

    @property
    def account(self) -> Optional[str]:
        return self._account

    def add(self, record_id, name="Plant", creator=ACCOUNT, capacity=1000,
            handle="0xhandle-added", verified=False, value=0, timestamp=1700000000):
        self.rows[record_id] = {
            'name': name,
            'creator': creator,
            'timestamp': timestamp,
            'public_value1': capacity,
            'public_value2': 0,
            'description': "Energy Grid Load Data",
            'handle': handle,
            'is_verified': verified,
            'decrypted_value': value,
        }
        self.order.append(record_id)

    def snapshot(self, record_id) -> LedgerRecord:
        row = self.rows[record_id]
        return LedgerRecord(
            name=row['name'],
            creator=row['creator'],
            timestamp=row['timestamp'],
            public_value1=row['public_value1'],
            public_value2=row['public_value2'],
            description=row['description'],
            is_verified=row['is_verified'],
            decrypted_value=row['decrypted_value'],
        )

    async def list_ids(self):
        if self.list_error is not None:
            raise self.list_error
        ids = list(self.order)
        if self.list_gate is not None:
            gate, self.list_gate = self.list_gate, None
            await gate.wait()
        return ids

    async def get_record(self, record_id):
        if record_id in self.fail_ids:
            raise LedgerError(f"read failed for {record_id}")
        if record_id in self.stale_reads:
            return self.stale_reads.pop(record_id)
        if record_id not in self.rows:
            raise LedgerError("unknown", revert_code=RevertCode.UNKNOWN_RECORD)
        return self.snapshot(record_id)

    async def get_ciphertext_handle(self, record_id):
        return self.rows[record_id]['handle']

    async def submit_create(self, call: CreateRecordCall):
        if self.reject:
            raise TransactionRejectedError("user rejected transaction")
        self.create_submissions += 1

        def effect():
            if self.finality_error is not None:
                raise self.finality_error
            self.add(call.record_id, name=call.name, creator=self._account,
                     capacity=call.public_value1, handle=call.encrypted.handle)
            self.rows[call.record_id]['public_value2'] = call.public_value2
            self.rows[call.record_id]['description'] = call.description

        return FakeTransaction(effect)

    async def submit_verify(self, record_id, clear_bundle, proof):
        self.verify_submissions += 1

        def effect():
            if self.finality_error is not None:
                raise self.finality_error
            row = self.rows[record_id]
            if row['is_verified']:
                raise LedgerError("Data already verified",
                                  revert_code=RevertCode.ALREADY_VERIFIED)
            if self.drop_verifications:
                return
            row['is_verified'] = True
            row['decrypted_value'] = decode_clear_values(clear_bundle)[0]

        return FakeTransaction(effect)


@pytest.fixture
def encryption():
    return FakeEncryptionGateway()


@pytest.fixture
def ledger():
    return FakeLedgerClient()


@pytest.fixture
def run():
    """Run a coroutine to completion on a fresh event loop"""
    return asyncio.run


@pytest.fixture
def disconnected_ledger():
    return FakeLedgerClient(account=None)
