"""
Operation Status
================
Session-scoped, single-slot notification state.

Only one status is visible at a time; a new one replaces the previous one
immediately. Success and error statuses clear themselves after a fixed
display interval, pending statuses stay until replaced.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from ..errors import ErrorKind


class StatusKind(Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class OperationStatus:
    kind: StatusKind
    message: str
    error_kind: Optional[ErrorKind] = None

    def to_dict(self) -> dict:
        return {
            'kind': self.kind.value,
            'message': self.message,
            'error_kind': self.error_kind.value if self.error_kind else None,
        }


@dataclass(frozen=True)
class OperationOutcome:
    """What a store operation resolved to"""
    status: StatusKind
    value: Any = None
    kind: Optional[ErrorKind] = None
    message: str = ""

    @classmethod
    def success(cls, value: Any = None, message: str = "",
                kind: Optional[ErrorKind] = None) -> 'OperationOutcome':
        return cls(StatusKind.SUCCESS, value=value, kind=kind, message=message)

    @classmethod
    def error(cls, kind: ErrorKind, message: str) -> 'OperationOutcome':
        return cls(StatusKind.ERROR, kind=kind, message=message)

    @property
    def ok(self) -> bool:
        return self.status is StatusKind.SUCCESS

    def to_dict(self) -> dict:
        return {
            'status': self.status.value,
            'value': self.value,
            'kind': self.kind.value if self.kind else None,
            'message': self.message,
        }


class StatusBoard:
    """
    Holder of the current OperationStatus.

    Auto-clear is scheduled on the running event loop; outside a loop the
    status simply stays until replaced.
    """

    def __init__(self, success_seconds: float = 2.0, error_seconds: float = 3.0):
        self.success_seconds = success_seconds
        self.error_seconds = error_seconds
        self.current: Optional[OperationStatus] = None
        self._clear_handle: Optional[asyncio.TimerHandle] = None

    @property
    def visible(self) -> bool:
        return self.current is not None

    def show(self, kind: StatusKind, message: str,
             error_kind: Optional[ErrorKind] = None) -> OperationStatus:
        self._cancel_clear()
        status = OperationStatus(kind, message, error_kind)
        self.current = status

        delay = {
            StatusKind.SUCCESS: self.success_seconds,
            StatusKind.ERROR: self.error_seconds,
        }.get(kind)
        if delay is not None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
            if loop is not None:
                self._clear_handle = loop.call_later(delay, self._expire, status)
        return status

    def pending(self, message: str) -> OperationStatus:
        return self.show(StatusKind.PENDING, message)

    def success(self, message: str) -> OperationStatus:
        return self.show(StatusKind.SUCCESS, message)

    def error(self, message: str, error_kind: Optional[ErrorKind] = None) -> OperationStatus:
        return self.show(StatusKind.ERROR, message, error_kind)

    def clear(self) -> None:
        self._cancel_clear()
        self.current = None

    def _expire(self, status: OperationStatus) -> None:
        if self.current is status:
            self.current = None
        self._clear_handle = None

    def _cancel_clear(self) -> None:
        if self._clear_handle is not None:
            self._clear_handle.cancel()
            self._clear_handle = None

    def to_dict(self) -> dict:
        return {
            'visible': self.visible,
            'status': self.current.to_dict() if self.current else None,
        }
