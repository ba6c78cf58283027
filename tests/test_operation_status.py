"""
Operation Status Tests
======================
"""

import asyncio

from grid_ledger.coordinator.operation_status import (
    OperationOutcome,
    StatusBoard,
    StatusKind,
)
from grid_ledger.errors import ErrorKind


class TestStatusBoard:

    def test_new_status_replaces_previous(self):
        """Test new status replaces previous"""
        board = StatusBoard()
        board.pending("Working...")
        board.error("Failed", ErrorKind.LEDGER_ERROR)

        assert board.current.kind is StatusKind.ERROR
        assert board.current.error_kind is ErrorKind.LEDGER_ERROR

    def test_outside_loop_status_stays(self):
        """Test outside loop status stays"""
        board = StatusBoard(success_seconds=0.0)
        board.success("Done")
        assert board.visible

    def test_success_auto_clears(self):
        """Test success auto clears"""
        board = StatusBoard(success_seconds=0.01, error_seconds=10)

        async def scenario():
            board.success("Done")
            assert board.visible
            await asyncio.sleep(0.05)
            return board.visible

        assert asyncio.run(scenario()) is False

    def test_error_auto_clears_after_its_own_interval(self):
        """Test error auto clears after its own interval"""
        board = StatusBoard(success_seconds=10, error_seconds=0.01)

        async def scenario():
            board.error("Failed")
            await asyncio.sleep(0.05)
            return board.visible

        assert asyncio.run(scenario()) is False

    def test_pending_does_not_clear(self):
        """Test pending does not clear"""
        board = StatusBoard(success_seconds=0.01, error_seconds=0.01)

        async def scenario():
            board.pending("Working...")
            await asyncio.sleep(0.05)
            return board.current

        assert asyncio.run(scenario()).message == "Working..."

    def test_old_timer_does_not_clear_newer_status(self):
        """Test old timer does not clear newer status"""
        board = StatusBoard(success_seconds=0.02, error_seconds=0.02)

        async def scenario():
            board.success("First")
            await asyncio.sleep(0.01)
            board.pending("Second")
            await asyncio.sleep(0.05)
            return board.current

        assert asyncio.run(scenario()).message == "Second"

    def test_to_dict(self):
        """Test to dict"""
        board = StatusBoard()
        assert board.to_dict() == {'visible': False, 'status': None}
        board.error("Failed", ErrorKind.NOT_CONNECTED)
        assert board.to_dict()['status'] == {
            'kind': 'error', 'message': 'Failed', 'error_kind': 'not_connected',
        }


class TestOperationOutcome:

    def test_success(self):
        """Test success"""
        outcome = OperationOutcome.success("grid-1", "Created")
        assert outcome.ok
        assert outcome.to_dict() == {
            'status': 'success', 'value': 'grid-1', 'kind': None, 'message': 'Created',
        }

    def test_error(self):
        """Test error"""
        outcome = OperationOutcome.error(ErrorKind.INVALID_INPUT, "Bad")
        assert not outcome.ok
        assert outcome.to_dict()['kind'] == 'invalid_input'
