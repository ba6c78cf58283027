"""
Record Store
============
The client's view of all encrypted grid records.

State machine:
- records are written ONLY by refresh(), which swaps in a freshly fetched
  mapping; create() and request_verification() never patch records directly
- verified is monotonic: a stale unverified read never replaces a record
  already observed verified
- overlapping refreshes are ordered by sequence number; a refresh finishing
  after a newer one has been applied is discarded
- cleartext from a decryption is provisional (LocalDecryption) until a refresh
  shows the ledger verified it

Concurrent create() calls complete independently: each gets a distinct id
(monotonic millisecond clock) and both records appear after refresh.

Every public operation reports through the session's StatusBoard and resolves
to an OperationOutcome; no failure escapes as an exception.
"""

import logging
import time
from collections import Counter
from contextlib import contextmanager
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Callable, Dict, List, Optional

from ..core.security_logger import SecurityLogger
from ..errors import (
    ErrorKind,
    GridLedgerError,
    InvalidInputError,
)
from ..gateways import (
    CreateRecordCall,
    EncryptionGateway,
    LedgerClient,
    LedgerRecord,
)
from .analysis import GridAnalysis, analyze_grid
from .decryption_coordinator import DecryptionCoordinator
from .operation_status import OperationOutcome, StatusBoard


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Record:
    """One encrypted energy-grid entry as last confirmed by the ledger"""
    id: str
    name: str
    creator: str
    created_at: int
    capacity: int
    aux_public: int
    ciphertext_ref: str
    description: str
    verified: bool
    clear_load: Optional[int]
    status: str = "Active"

    @classmethod
    def from_ledger(cls, record_id: str, stored: LedgerRecord) -> 'Record':
        return cls(
            id=record_id,
            name=stored.name,
            creator=stored.creator,
            created_at=int(stored.timestamp),
            capacity=int(stored.public_value1),
            aux_public=int(stored.public_value2),
            ciphertext_ref=record_id,
            description=stored.description,
            verified=bool(stored.is_verified),
            clear_load=int(stored.decrypted_value) if stored.is_verified else None,
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class LocalDecryption:
    """Provisional cleartext held for this session only"""
    record_id: str
    value: int
    obtained_at: str


@dataclass(frozen=True)
class LoadView:
    """Load as it may be displayed: confirmed by the ledger, or provisional"""
    value: Optional[int]
    confirmed: bool

    @property
    def label(self) -> str:
        if self.value is None:
            return "FHE Encrypted"
        return f"{self.value} MW ({'Verified' if self.confirmed else 'Decrypted'})"

    def to_dict(self) -> dict:
        return {'value': self.value, 'confirmed': self.confirmed, 'label': self.label}


@dataclass(frozen=True)
class GridStatistics:
    total: int
    verified: int
    active: int
    average_capacity: float

    def to_dict(self) -> dict:
        return asdict(self)


class RecordStore:
    """
    Session-scoped record state reconciled against the ledger.

    Flags (loading, refreshing, creating, decrypting) are advisory: they let a
    UI disable triggers, but operations do not lock on them.
    """

    def __init__(self,
                 ledger: LedgerClient,
                 encryption: EncryptionGateway,
                 status: Optional[StatusBoard] = None,
                 coordinator: Optional[DecryptionCoordinator] = None,
                 security_logger: Optional[SecurityLogger] = None,
                 record_tag: str = "Energy Grid Load Data",
                 id_prefix: str = "grid-",
                 clock: Callable[[], float] = time.time):
        self.ledger = ledger
        self.encryption = encryption
        self.status = status or StatusBoard()
        self.coordinator = coordinator or DecryptionCoordinator(ledger, encryption)
        self.security_logger = security_logger
        self.record_tag = record_tag
        self.id_prefix = id_prefix
        self._clock = clock

        self.records: Dict[str, Record] = {}
        self.local_decryptions: Dict[str, LocalDecryption] = {}
        self.loading = True

        self._in_flight: Counter = Counter()
        self._refresh_seq = 0
        self._applied_seq = 0
        self._last_id_ms = 0

    # ==================== FLAGS ====================

    @property
    def account(self) -> Optional[str]:
        return self.ledger.account

    @property
    def is_connected(self) -> bool:
        return bool(self.account)

    @property
    def refreshing(self) -> bool:
        return self._in_flight['refresh'] > 0

    @property
    def creating(self) -> bool:
        return self._in_flight['create'] > 0

    @property
    def decrypting(self) -> bool:
        return self._in_flight['decrypt'] > 0

    @contextmanager
    def _operation(self, name: str):
        self._in_flight[name] += 1
        try:
            yield
        finally:
            self._in_flight[name] -= 1

    def _fail(self, kind: ErrorKind, message: str) -> OperationOutcome:
        self.status.error(message, kind)
        return OperationOutcome.error(kind, message)

    def _not_connected(self) -> OperationOutcome:
        return self._fail(ErrorKind.NOT_CONNECTED, "Please connect wallet first")

    # ==================== OPERATIONS ====================

    async def initialize_encryption(self) -> OperationOutcome:
        """Start the co-processor session once an account is connected"""
        if not self.is_connected:
            return self._not_connected()
        if self.encryption.is_ready:
            return OperationOutcome.success(message="FHE co-processor ready")

        self.status.pending("Initializing FHE co-processor...")
        try:
            await self.encryption.initialize()
        except Exception as e:
            logger.error("FHE co-processor initialization failed: %s", e)
            return self._fail(ErrorKind.ENCRYPTION_UNAVAILABLE,
                              "FHE co-processor initialization failed")

        message = "FHE co-processor ready"
        self.status.success(message)
        return OperationOutcome.success(message=message)

    async def refresh(self) -> OperationOutcome:
        """Reload every record from the ledger"""
        if not self.is_connected:
            return self._not_connected()

        self.status.pending("Refreshing grid data...")
        try:
            count = await self._reload()
        except Exception as e:
            logger.error("Failed to load data: %s", e)
            return self._fail(ErrorKind.LEDGER_ERROR, "Failed to load data")

        message = f"Loaded {count} grid records"
        self.status.success(message)
        return OperationOutcome.success(value=count, message=message)

    async def create(self, name: str, load_value: int, capacity: int) -> OperationOutcome:
        """
        Encrypt a load value and record it on the ledger.

        Returns:
            Success outcome carrying the new record id
        """
        if not self.is_connected:
            return self._not_connected()
        try:
            name = self._validate_create(name, load_value, capacity)
        except InvalidInputError as e:
            return self._fail(e.kind, str(e))

        with self._operation('create'):
            self.status.pending("Creating grid data with FHE encryption...")
            record_id = self._next_record_id()

            try:
                encrypted = await self.encryption.encrypt(
                    self.ledger.contract_address, self.account, load_value
                )
                tx = await self.ledger.submit_create(CreateRecordCall(
                    record_id=record_id,
                    name=name,
                    encrypted=encrypted,
                    public_value1=capacity,
                    public_value2=0,
                    description=self.record_tag,
                ))
                self.status.pending("Waiting for transaction confirmation...")
                await tx.wait()
            except GridLedgerError as e:
                return self._fail(e.kind, self._submission_message(e))
            except Exception as e:
                logger.error("Create %s failed: %s", record_id, e)
                return self._fail(ErrorKind.LEDGER_ERROR, f"Submission failed: {e}")

            try:
                await self._reload()
            except Exception as e:
                logger.error("Refresh after create %s failed: %s", record_id, e)
                return self._fail(ErrorKind.LEDGER_ERROR, "Failed to load data")

        message = "Grid data created successfully!"
        self.status.success(message)
        return OperationOutcome.success(value=record_id, message=message)

    async def request_verification(self, record_id: str) -> OperationOutcome:
        """
        Ask for authenticated on-chain decryption of a record's load.

        The confirmed state comes from the refresh that follows, never from
        the coordinator's return value.
        """
        if not self.is_connected:
            return self._not_connected()

        with self._operation('decrypt'):
            self.status.pending("Verifying decryption on-chain...")
            try:
                outcome = await self.coordinator.verify(record_id)
            except GridLedgerError as e:
                return self._fail(e.kind, f"Decryption failed: {e}")
            except Exception as e:
                logger.error("Verification of %s failed: %s", record_id, e)
                return self._fail(ErrorKind.DECRYPTION_FAILED, f"Decryption failed: {e}")

            if not outcome.already_verified and outcome.value is not None:
                self.local_decryptions[record_id] = LocalDecryption(
                    record_id=record_id,
                    value=outcome.value,
                    obtained_at=datetime.now().isoformat(),
                )
                if self.security_logger:
                    self.security_logger.log_client_provisional(record_id)

            try:
                await self._reload()
            except Exception as e:
                logger.error("Refresh after verifying %s failed: %s", record_id, e)
                return self._fail(ErrorKind.LEDGER_ERROR, "Failed to load data")

        record = self.records.get(record_id)
        if outcome.already_verified:
            value = record.clear_load if record is not None and record.verified else outcome.value
            message = "Data already verified on-chain"
            self.status.success(message)
            return OperationOutcome.success(value=value, message=message,
                                            kind=ErrorKind.ALREADY_VERIFIED)

        message = "Data decrypted and verified successfully!"
        self.status.success(message)
        return OperationOutcome.success(value=outcome.value, message=message)

    def close_detail(self, record_id: str) -> None:
        """Drop the provisional value when a record's detail view closes"""
        self.local_decryptions.pop(record_id, None)

    # ==================== QUERIES ====================

    def get(self, record_id: str) -> Optional[Record]:
        return self.records.get(record_id)

    def list_records(self) -> List[Record]:
        return list(self.records.values())

    def search(self, term: str = "") -> List[Record]:
        term = (term or "").lower()
        return [
            r for r in self.records.values()
            if term in r.name.lower() or term in r.creator.lower()
        ]

    def statistics(self) -> GridStatistics:
        records = list(self.records.values())
        total = len(records)
        average = sum(r.capacity for r in records) / total if total else 0.0
        return GridStatistics(
            total=total,
            verified=sum(1 for r in records if r.verified),
            active=sum(1 for r in records if r.status == "Active"),
            average_capacity=average,
        )

    def load_view(self, record_id: str) -> LoadView:
        record = self.records.get(record_id)
        if record is not None and record.verified:
            return LoadView(record.clear_load, confirmed=True)
        local = self.local_decryptions.get(record_id)
        if local is not None:
            return LoadView(local.value, confirmed=False)
        return LoadView(None, confirmed=False)

    def analyze(self, record_id: str) -> Optional[GridAnalysis]:
        record = self.records.get(record_id)
        if record is None:
            return None
        local = self.local_decryptions.get(record_id)
        return analyze_grid(record, local.value if local else None)

    # ==================== INTERNALS ====================

    def _validate_create(self, name, load_value, capacity) -> str:
        if not isinstance(name, str) or not name.strip():
            raise InvalidInputError("Grid name is required")
        if isinstance(load_value, bool) or not isinstance(load_value, int) or load_value < 0:
            raise InvalidInputError("Load value must be a non-negative integer")
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise InvalidInputError("Capacity must be a positive integer")
        return name.strip()

    @staticmethod
    def _submission_message(error: GridLedgerError) -> str:
        if error.kind is ErrorKind.TRANSACTION_REJECTED:
            return "Transaction rejected by user"
        if error.kind is ErrorKind.ENCRYPTION_UNAVAILABLE:
            return "FHE co-processor is not initialized"
        return f"Submission failed: {error}"

    def _next_record_id(self) -> str:
        ms = int(self._clock() * 1000)
        if ms <= self._last_id_ms:
            ms = self._last_id_ms + 1
        self._last_id_ms = ms
        return f"{self.id_prefix}{ms}"

    async def _reload(self) -> int:
        """
        Fetch all records and swap them in.

        A failing listing raises; a failing single record is logged and skipped.
        """
        self._refresh_seq += 1
        seq = self._refresh_seq

        with self._operation('refresh'):
            try:
                ids = await self.ledger.list_ids()
                fetched: Dict[str, Record] = {}
                for record_id in ids:
                    try:
                        stored = await self.ledger.get_record(record_id)
                    except Exception as e:
                        logger.error("Error loading record %s: %s", record_id, e)
                        continue
                    fetched[record_id] = Record.from_ledger(record_id, stored)
            finally:
                self.loading = False

            if seq < self._applied_seq:
                logger.debug("Discarding stale refresh %d (applied %d)", seq, self._applied_seq)
                return len(self.records)

            self._apply(fetched, seq)
            return len(fetched)

    def _apply(self, fetched: Dict[str, Record], seq: int) -> None:
        merged: Dict[str, Record] = {}
        for record_id, record in fetched.items():
            previous = self.records.get(record_id)
            if previous is not None and previous.verified and not record.verified:
                record = previous
            merged[record_id] = record
            if self.security_logger:
                self.security_logger.log_client_store(record_id, record.verified,
                                                      record.clear_load)

        self.records = merged
        self._applied_seq = seq

        for record_id in list(self.local_decryptions):
            record = merged.get(record_id)
            if record is not None and record.verified:
                del self.local_decryptions[record_id]
