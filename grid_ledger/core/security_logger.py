"""
Security Logger for the Grid Ledger
===================================
Audit trail proving the client never commits unverified cleartext.

Purpose:
- Log every operation with the class of data it touched
- Separate provisional cleartext (co-processor output the client has not yet
  seen confirmed) from ledger-verified cleartext
- Flag any attempt to store provisional cleartext as authoritative record state
"""

import json
import threading
from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Dict, Any, Optional


class DataType(Enum):
    """Classification of data handled in an operation"""
    CIPHERTEXT = "ciphertext"
    PROVISIONAL_CLEARTEXT = "provisional_cleartext"   # decrypted, not yet confirmed
    VERIFIED_CLEARTEXT = "verified_cleartext"         # accepted by the ledger
    PUBLIC_PARAM = "public_param"                     # capacity, ids, addresses
    METADATA = "metadata"


class OperationType(Enum):
    """Types of operations in the system"""
    ENCRYPT = "encrypt"
    DECRYPT = "decrypt"
    SUBMIT_CREATE = "submit_create"
    SUBMIT_VERIFY = "submit_verify"
    VERIFY_PROOF = "verify_proof"
    REFRESH = "refresh"
    STORE = "store"


@dataclass
class SecurityLogEntry:
    """Single security audit log entry"""
    timestamp: str
    entity: str          # 'client', 'coprocessor', 'ledger'
    operation: str
    data_types: List[str]
    is_safe: bool
    details: Dict[str, Any]
    sequence_id: int

    def to_dict(self) -> dict:
        return asdict(self)


class SecurityLogger:
    """
    Append-only audit log for the verification invariant.

    The client may hold provisional cleartext (it asked for a decryption),
    but it must never STORE it into record state. A client STORE entry that
    carries PROVISIONAL_CLEARTEXT is a violation.
    """

    def __init__(self, log_file: Optional[str] = None):
        self._entries: List[SecurityLogEntry] = []
        self._lock = threading.Lock()
        self._sequence = 0
        self.log_file = Path(log_file) if log_file else None

        if self.log_file and self.log_file.exists():
            self._load_from_file()

    def log(self,
            entity: str,
            operation: OperationType,
            data_types: List[DataType],
            details: Dict[str, Any] = None) -> SecurityLogEntry:
        """
        Log a security-relevant operation.

        Args:
            entity: Who performed the operation ('client', 'coprocessor', 'ledger')
            operation: Type of operation performed
            data_types: Types of data involved in the operation
            details: Additional context for the operation

        Returns:
            The created log entry
        """
        with self._lock:
            self._sequence += 1

            is_safe = not (
                entity == 'client'
                and operation == OperationType.STORE
                and DataType.PROVISIONAL_CLEARTEXT in data_types
            )

            entry = SecurityLogEntry(
                timestamp=datetime.now().isoformat(),
                entity=entity,
                operation=operation.value,
                data_types=[dt.value for dt in data_types],
                is_safe=is_safe,
                details=details or {},
                sequence_id=self._sequence
            )

            self._entries.append(entry)

            if self.log_file:
                self._append_to_file(entry)

            return entry

    def log_client_encrypt(self, contract: str, handle: str) -> SecurityLogEntry:
        """Log the client encrypting its own load value"""
        return self.log(
            entity='client',
            operation=OperationType.ENCRYPT,
            data_types=[DataType.PROVISIONAL_CLEARTEXT, DataType.CIPHERTEXT],
            details={'contract': contract, 'handle': handle}
        )

    def log_coprocessor_decrypt(self, handle_count: int) -> SecurityLogEntry:
        """Log the co-processor decrypting handles for a verification request"""
        return self.log(
            entity='coprocessor',
            operation=OperationType.DECRYPT,
            data_types=[DataType.CIPHERTEXT, DataType.PROVISIONAL_CLEARTEXT],
            details={'handle_count': handle_count}
        )

    def log_ledger_verification(self, record_id: str, accepted: bool,
                                reason: str = "") -> SecurityLogEntry:
        """Log the ledger checking a decryption proof"""
        return self.log(
            entity='ledger',
            operation=OperationType.VERIFY_PROOF,
            data_types=[DataType.PROVISIONAL_CLEARTEXT, DataType.METADATA],
            details={'record_id': record_id, 'accepted': accepted, 'reason': reason}
        )

    def log_client_provisional(self, record_id: str) -> SecurityLogEntry:
        """Log the client holding a provisional value in its session"""
        return self.log(
            entity='client',
            operation=OperationType.DECRYPT,
            data_types=[DataType.PROVISIONAL_CLEARTEXT],
            details={'record_id': record_id, 'scope': 'session'}
        )

    def log_client_store(self, record_id: str, verified: bool,
                         clear_load: Optional[int] = None) -> SecurityLogEntry:
        """
        Log a record entering the client's authoritative view.

        A cleartext load stored on a record the ledger has not verified is
        classed as provisional, which makes the entry a violation.
        """
        data_types = [DataType.PUBLIC_PARAM, DataType.CIPHERTEXT]
        if clear_load is not None:
            data_types.append(DataType.VERIFIED_CLEARTEXT if verified
                              else DataType.PROVISIONAL_CLEARTEXT)
        return self.log(
            entity='client',
            operation=OperationType.STORE,
            data_types=data_types,
            details={'record_id': record_id, 'verified': verified}
        )

    def get_all_entries(self) -> List[SecurityLogEntry]:
        return list(self._entries)

    def get_entries_for_entity(self, entity: str) -> List[SecurityLogEntry]:
        return [e for e in self._entries if e.entity == entity]

    def get_violations(self) -> List[SecurityLogEntry]:
        """Get all security violation entries"""
        return [e for e in self._entries if not e.is_safe]

    def verify_no_violations(self) -> bool:
        return len(self.get_violations()) == 0

    def get_client_summary(self) -> Dict[str, Any]:
        """Summary of what the client committed to its record view"""
        stores = [e for e in self.get_entries_for_entity('client')
                  if e.operation == OperationType.STORE.value]

        data_types_seen = set()
        for entry in stores:
            data_types_seen.update(entry.data_types)

        return {
            'store_operations': len(stores),
            'data_types_stored': sorted(data_types_seen),
            'provisional_committed': DataType.PROVISIONAL_CLEARTEXT.value in data_types_seen,
            'violations': len([e for e in stores if not e.is_safe]),
        }

    def generate_audit_report(self) -> Dict[str, Any]:
        client_summary = self.get_client_summary()

        return {
            'report_generated': datetime.now().isoformat(),
            'total_log_entries': len(self._entries),
            'entities': sorted(set(e.entity for e in self._entries)),
            'client_store_audit': client_summary,
            'security_violations': [e.to_dict() for e in self.get_violations()],
            'conclusion': (
                "INVARIANT HELD: only ledger-verified cleartext entered record state."
                if not client_summary['provisional_committed']
                else "INVARIANT VIOLATED: provisional cleartext entered record state!"
            )
        }

    def _append_to_file(self, entry: SecurityLogEntry):
        with open(self.log_file, 'a') as f:
            f.write(json.dumps(entry.to_dict()) + '\n')

    def _load_from_file(self):
        with open(self.log_file, 'r') as f:
            for line in f:
                if line.strip():
                    data = json.loads(line)
                    self._entries.append(SecurityLogEntry(**data))
                    self._sequence = max(self._sequence, data['sequence_id'])

    def clear(self):
        """Clear all entries (for testing)"""
        self._entries.clear()
        self._sequence = 0
        if self.log_file and self.log_file.exists():
            self.log_file.unlink()

    def to_display_format(self, max_entries: int = 50) -> List[Dict[str, Any]]:
        """Recent entries in a compact form for the API"""
        return [
            {
                'time': e.timestamp.split('T')[1][:8],
                'entity': e.entity,
                'operation': e.operation,
                'data_types': e.data_types,
                'safe': e.is_safe,
                'details': e.details
            }
            for e in self._entries[-max_entries:]
        ]
